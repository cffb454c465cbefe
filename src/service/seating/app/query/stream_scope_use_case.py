"""
Stream Scope Use Case

SSE stream of one scope: full snapshot first, then live changes.

Subscribes before reading the snapshot, so nothing committed in between is
missed; live events at or below a version the observer already has are
dropped, so per-key versions only ever increase on the stream. When the
broadcaster cuts a lagging observer off, the stream simply ends and the
client reconnects for a fresh snapshot.
"""

from collections.abc import AsyncGenerator
from typing import Any, Optional, Self

import anyio
from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.seating.app.interface.i_change_notifier import IChangeNotifier
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.domain.enum.notification_event_type import NotificationEventType
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.value_object.scope import Scope
from src.service.seating.driven_adapter.record_codec import encode_layout


def _layout_key(layout: dict[str, Any]) -> str:
    return f'{layout["kind"]}:{layout["id"]}'


class StreamScopeUseCase:
    def __init__(self, *, record_store: IRecordStore, change_notifier: IChangeNotifier) -> None:
        self.record_store = record_store
        self.change_notifier = change_notifier

    @classmethod
    @inject
    def depends(
        cls,
        record_store: IRecordStore = Depends(Provide[Container.record_store]),
        change_notifier: IChangeNotifier = Depends(Provide[Container.change_notifier]),
    ) -> Self:
        return cls(record_store=record_store, change_notifier=change_notifier)

    async def check_scope(self, *, scope: Scope) -> None:
        """Fail before the SSE response starts, while a 404 can still be sent"""
        if scope.room_id and not await self.record_store.get(
            kind=RecordKind.ROOM, record_id=scope.room_id
        ):
            raise NotFoundError(f'Room {scope.room_id} not found')

    async def snapshot(self, *, scope: Scope) -> list[dict[str, Any]]:
        rooms = await self.record_store.list_records(kind=RecordKind.ROOM)
        if scope.room_id:
            rooms = [room for room in rooms if room.id == scope.room_id]
        elif scope.building_id:
            rooms = [room for room in rooms if room.building_id == scope.building_id]

        layouts = []
        for room in sorted(rooms, key=lambda r: r.id):
            seats = await self.record_store.list_records(kind=RecordKind.SEAT, parent_id=room.id)
            bookings = await self.record_store.list_records(
                kind=RecordKind.BOOKING, parent_id=room.id
            )
            layouts.extend(encode_layout(seat) for seat in sorted(seats, key=lambda s: s.position))
            layouts.extend(encode_layout(booking) for booking in bookings)
        return layouts

    async def stream(self, *, scope: Scope) -> AsyncGenerator[dict, None]:
        receive_stream = await self.change_notifier.subscribe(scope=scope)
        try:
            records = await self.snapshot(scope=scope)
            seen = {_layout_key(layout): layout['version'] for layout in records}
            yield {
                'event_type': str(NotificationEventType.INITIAL_STATE),
                'scope': scope.key,
                'data': {'records': records},
            }

            async with receive_stream:
                async for event in receive_stream:
                    fresh = self.drop_stale(event=event, seen=seen)
                    if fresh is not None:
                        yield fresh

            Logger.base.info(f'[SSE] Stream for {scope.key} ended, client must resync')

        except anyio.get_cancelled_exc_class():
            Logger.base.info(f'[SSE] Client disconnected from {scope.key}')
            raise
        except Exception as e:
            Logger.base.error(f'[SSE] Error in stream for {scope.key}: {type(e).__name__}: {e}')
            raise
        finally:
            with anyio.CancelScope(shield=True):
                await self.change_notifier.unsubscribe(scope=scope, stream=receive_stream)

    @staticmethod
    def drop_stale(*, event: dict, seen: dict[str, int]) -> Optional[dict]:
        """The event without records the observer already has, or None if nothing is left"""
        event_type = event.get('event_type')
        if event_type in (
            NotificationEventType.SEAT_CHANGED,
            NotificationEventType.BOOKING_CHANGED,
        ):
            layout = event['data']
            key = _layout_key(layout)
            if layout['version'] <= seen.get(key, -1):
                return None
            seen[key] = layout['version']
            return event

        if event_type == NotificationEventType.SEATS_BULK_CHANGED:
            records = []
            for layout in event['data']['records']:
                key = _layout_key(layout)
                if layout['version'] > seen.get(key, -1):
                    seen[key] = layout['version']
                    records.append(layout)
            if not records:
                return None
            return {**event, 'data': {'records': records}}

        return event
