"""
In-memory Scope Broadcaster Interface

Pub/sub between the writers of this process and the SSE streams of the
observers connected to it.
"""

from typing import Protocol, Sequence

from anyio.streams.memory import MemoryObjectReceiveStream


class IInMemoryBroadcaster(Protocol):
    async def subscribe(self, *, scope_key: str) -> MemoryObjectReceiveStream[dict]:
        """
        Register a subscriber for one scope

        Args:
            scope_key: e.g. 'room:<id>', 'building:<id>', 'global'

        Returns:
            Receive stream; it ends when the subscriber is unsubscribed or cut
            off for lagging
        """
        ...

    async def broadcast(self, *, scope_keys: Sequence[str], event_data: dict) -> int:
        """
        Deliver one event to every subscriber of any of the scopes

        A subscriber listening on several of the given scopes still receives
        the event once.

        Returns:
            Number of subscriber streams the event was handed to
        """
        ...

    async def unsubscribe(self, *, scope_key: str, stream: MemoryObjectReceiveStream[dict]) -> None:
        """Remove the subscriber and close its streams (safe for unknown streams)"""
        ...
