"""
Lua Scripts for Redis/Kvrocks

Uses redis-py's register_script(); scripts live next to the Kvrocks record
store and are loaded once per client.
"""

from typing import Any

from redis.asyncio import Redis
from redis.exceptions import NoScriptError

from src.platform.constant.path import LUA_SCRIPT_DIR
from src.platform.logging.loguru_io import Logger


SCRIPT_NAMES = ('compare_and_swap', 'insert_if_absent')


class LuaScripts:
    """Manages Lua scripts using redis-py's register_script()"""

    def __init__(self) -> None:
        self._sources: dict[str, str] = {}
        self._scripts: dict[str, Any] = {}

    @property
    def initialized(self) -> bool:
        return len(self._scripts) == len(SCRIPT_NAMES)

    async def initialize(self, *, client: Redis) -> None:
        """Load Lua scripts (idempotent)"""
        if self.initialized:
            return

        for name in SCRIPT_NAMES:
            path = LUA_SCRIPT_DIR / f'{name}.lua'
            self._sources[name] = path.read_text()
            self._scripts[name] = client.register_script(self._sources[name])
            Logger.base.info(f'🔥 [LUA] Registered {name}')

    async def run(self, name: str, *, client: Redis, keys: list[str], args: list[Any]) -> Any:
        """Execute a registered script, re-registering once if the server lost it"""
        script = self._scripts.get(name)
        if script is None:
            raise RuntimeError('Lua scripts not initialized')

        try:
            return await script(keys=keys, args=args, client=client)
        except NoScriptError:
            Logger.base.warning(f'⚠️ [LUA] {name} not found on server, re-registering...')
            self._scripts[name] = client.register_script(self._sources[name])
            return await self._scripts[name](keys=keys, args=args, client=client)


# Global singleton
lua_script_executor = LuaScripts()
