"""
In-memory Scope Broadcaster Implementation

Singleton broadcaster for distributing committed record events to the SSE
endpoints of this process.
"""

from typing import Dict, List, Sequence

from anyio import BrokenResourceError, ClosedResourceError, WouldBlock, create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.seating_metrics import seating_metrics


_Pair = tuple[MemoryObjectSendStream[dict], MemoryObjectReceiveStream[dict]]


class InMemoryBroadcasterImpl:
    """
    In-memory pub/sub keyed by scope

    Architecture:
    - Gate commit -> ChangeNotifier -> broadcast() -> SSE endpoint
    - Each scope key has a list of (send_stream, receive_stream) pairs
    - send_nowait never blocks the writer

    Overflow policy:
    - A subscriber whose buffer is full is closed instead of losing the event,
      so an observer never sees a gap in a key's version sequence; it sees
      its stream end and has to resync.
    """

    def __init__(self, *, max_buffer_size: int | None = None) -> None:
        self._max_buffer_size = max_buffer_size or settings.NOTIFIER_STREAM_BUFFER_SIZE
        self._subscribers: Dict[str, List[_Pair]] = {}

    async def subscribe(self, *, scope_key: str) -> MemoryObjectReceiveStream[dict]:
        send_stream, receive_stream = create_memory_object_stream[dict](
            max_buffer_size=self._max_buffer_size
        )
        self._subscribers.setdefault(scope_key, []).append((send_stream, receive_stream))

        Logger.base.debug(
            f'📡 [BROADCASTER] Subscribed to {scope_key} '
            f'(total subscribers: {len(self._subscribers[scope_key])})'
        )
        return receive_stream

    async def broadcast(self, *, scope_keys: Sequence[str], event_data: dict) -> int:
        delivered = 0
        seen: set[int] = set()
        lagged: list[tuple[str, MemoryObjectReceiveStream[dict]]] = []

        for scope_key in scope_keys:
            for send_stream, receive_stream in list(self._subscribers.get(scope_key, [])):
                if id(receive_stream) in seen:
                    continue
                seen.add(id(receive_stream))
                try:
                    send_stream.send_nowait(event_data)
                    delivered += 1
                except WouldBlock:
                    lagged.append((scope_key, receive_stream))
                except (BrokenResourceError, ClosedResourceError):
                    # Receiver went away without unsubscribing
                    lagged.append((scope_key, receive_stream))

        for scope_key, receive_stream in lagged:
            Logger.base.warning(
                f'⚠️ [BROADCASTER] Subscriber on {scope_key} cannot keep up, closing stream '
                f'(event_type={event_data.get("event_type")})'
            )
            seating_metrics.notifier_lagged.inc()
            await self._close_sender(scope_key=scope_key, stream=receive_stream)

        if delivered:
            seating_metrics.notifier_deliveries.labels(
                event_type=str(event_data.get('event_type'))
            ).inc(delivered)
        Logger.base.debug(
            f'📡 [BROADCASTER] {event_data.get("event_type")} -> {list(scope_keys)}: '
            f'delivered={delivered}, lagged={len(lagged)}'
        )
        return delivered

    async def _close_sender(
        self, *, scope_key: str, stream: MemoryObjectReceiveStream[dict]
    ) -> None:
        # Buffered events stay readable; the stream ends after them
        subscribers = self._subscribers.get(scope_key, [])
        for i, (send_stream, receive_stream) in enumerate(subscribers):
            if receive_stream is stream:
                await send_stream.aclose()
                subscribers.pop(i)
                break
        if scope_key in self._subscribers and not self._subscribers[scope_key]:
            del self._subscribers[scope_key]

    async def unsubscribe(self, *, scope_key: str, stream: MemoryObjectReceiveStream[dict]) -> None:
        subscribers = self._subscribers.get(scope_key)
        if subscribers is None:
            await stream.aclose()
            return

        for i, (send_stream, receive_stream) in enumerate(subscribers):
            if receive_stream is stream:
                await send_stream.aclose()
                subscribers.pop(i)
                Logger.base.debug(
                    f'📡 [BROADCASTER] Unsubscribed from {scope_key} '
                    f'(remaining: {len(subscribers)})'
                )
                break
        await stream.aclose()

        if not subscribers:
            del self._subscribers[scope_key]

    def subscriber_count(self, *, scope_key: str) -> int:
        return len(self._subscribers.get(scope_key, []))
