"""
Change Notifier Implementation

Turns committed records into scope events on the in-process broadcaster.

Event format:
    {'event_type': 'seat_changed', 'scope': 'room:<id>', 'data': <persisted layout>}
    {'event_type': 'seats_bulk_changed', 'scope': ..., 'data': {'records': [...]}}
    {'event_type': 'booking_changed', 'scope': ..., 'data': <persisted layout>}
    {'event_type': 'allocation_conflict', 'scope': ...,
     'data': {'message': str, 'conflictingRecord': <persisted layout>}}
"""

from typing import Any, Sequence

from anyio.streams.memory import MemoryObjectReceiveStream

from src.platform.event.i_in_memory_broadcaster import IInMemoryBroadcaster
from src.platform.logging.loguru_io import Logger
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.enum.notification_event_type import NotificationEventType
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.value_object.scope import Scope
from src.service.seating.driven_adapter.record_codec import encode_layout


_EVENT_TYPE_OF_KIND = {
    RecordKind.SEAT: NotificationEventType.SEAT_CHANGED,
    RecordKind.BOOKING: NotificationEventType.BOOKING_CHANGED,
}


def record_key(record: Any) -> str:
    return f'{record.KIND}:{record.id}'


class ChangeNotifierImpl:
    def __init__(self, *, broadcaster: IInMemoryBroadcaster) -> None:
        self.broadcaster = broadcaster
        # record key -> highest version announced so far
        self._latest_published: dict[str, int] = {}

    def latest_published_version(self, *, record: Any) -> int:
        return self._latest_published.get(record_key(record), -1)

    async def publish_committed(self, *, record: Any, scope: Scope) -> None:
        key = record_key(record)
        self._latest_published[key] = max(self._latest_published.get(key, -1), record.version)

        event_type = _EVENT_TYPE_OF_KIND.get(record.KIND)
        if event_type is None:
            # Calendars are internal bookkeeping; observers follow the bookings
            return
        await self._broadcast(event_type=event_type, scope=scope, data=encode_layout(record))

    async def seats_bulk_changed(self, *, seats: Sequence[Seat], scope: Scope) -> None:
        # A seat overtaken by a later commit would move an observer backwards
        fresh = [
            seat for seat in seats if seat.version >= self.latest_published_version(record=seat)
        ]
        if not fresh:
            return
        await self._broadcast(
            event_type=NotificationEventType.SEATS_BULK_CHANGED,
            scope=scope,
            data={'records': [encode_layout(seat) for seat in fresh]},
        )

    async def allocation_conflict(
        self, *, message: str, conflicting_record: Any, scope: Scope
    ) -> None:
        Logger.base.info(f'⚔️ [NOTIFIER] {message}')
        await self._broadcast(
            event_type=NotificationEventType.ALLOCATION_CONFLICT,
            scope=scope,
            data={'message': message, 'conflictingRecord': encode_layout(conflicting_record)},
        )

    async def subscribe(self, *, scope: Scope) -> MemoryObjectReceiveStream[dict]:
        return await self.broadcaster.subscribe(scope_key=scope.key)

    async def unsubscribe(self, *, scope: Scope, stream: MemoryObjectReceiveStream[dict]) -> None:
        await self.broadcaster.unsubscribe(scope_key=scope.key, stream=stream)

    async def _broadcast(
        self, *, event_type: NotificationEventType, scope: Scope, data: dict
    ) -> None:
        await self.broadcaster.broadcast(
            scope_keys=scope.publish_keys(),
            event_data={'event_type': str(event_type), 'scope': scope.key, 'data': data},
        )
