from typing import Optional

import attrs

from src.platform.exception.exceptions import DomainError


GLOBAL_SCOPE_KEY = 'global'


@attrs.define(frozen=True)
class Scope:
    """
    Where a committed record is announced.

    A room scope widens to its building and to global, so a building-level
    observer sees every room below it.
    """

    room_id: Optional[str] = None
    building_id: Optional[str] = None

    @classmethod
    def of_room(cls, *, room_id: str, building_id: str) -> 'Scope':
        return cls(room_id=room_id, building_id=building_id)

    @classmethod
    def parse(cls, *, scope_kind: str, scope_id: Optional[str] = None) -> 'Scope':
        if scope_kind == 'global':
            return cls()
        if not scope_id:
            raise DomainError(f'Scope {scope_kind} needs an id')
        if scope_kind == 'room':
            return cls(room_id=scope_id)
        if scope_kind == 'building':
            return cls(building_id=scope_id)
        raise DomainError(f'Unknown scope kind: {scope_kind}')

    @property
    def key(self) -> str:
        """The single key a subscriber of this scope listens on."""
        if self.room_id:
            return f'room:{self.room_id}'
        if self.building_id:
            return f'building:{self.building_id}'
        return GLOBAL_SCOPE_KEY

    def publish_keys(self) -> list[str]:
        keys = []
        if self.room_id:
            keys.append(f'room:{self.room_id}')
        if self.building_id:
            keys.append(f'building:{self.building_id}')
        keys.append(GLOBAL_SCOPE_KEY)
        return keys
