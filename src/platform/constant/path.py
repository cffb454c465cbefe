from pathlib import Path


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent.parent.parent

# Log directory
LOG_DIR = BASE_DIR / 'logs'

# Lua scripts for the Kvrocks record store
LUA_SCRIPT_DIR = (
    BASE_DIR / 'src' / 'service' / 'seating' / 'driven_adapter' / 'store' / 'lua_script'
)
