"""
Change Notifier Interface

Fans committed records out to the observers of their scope. No replay:
a late or lagged observer resyncs with a full read.
"""

from typing import Any, Protocol, Sequence

from anyio.streams.memory import MemoryObjectReceiveStream

from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.value_object.scope import Scope


class IChangeNotifier(Protocol):
    async def publish_committed(self, *, record: Any, scope: Scope) -> None:
        """
        Announce one committed record (seat_changed / booking_changed)

        Called by the gate while it still holds the record's key, so per-key
        publication order is commit order.
        """
        ...

    async def seats_bulk_changed(self, *, seats: Sequence[Seat], scope: Scope) -> None:
        """Announce many seats at once; records already superseded are left out"""
        ...

    async def allocation_conflict(
        self, *, message: str, conflicting_record: Any, scope: Scope
    ) -> None:
        """A claim or booking attempt lost a race to a committed competing change"""
        ...

    async def subscribe(self, *, scope: Scope) -> MemoryObjectReceiveStream[dict]: ...

    async def unsubscribe(
        self, *, scope: Scope, stream: MemoryObjectReceiveStream[dict]
    ) -> None: ...
