from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, status
import orjson
from sse_starlette.sse import EventSourceResponse

from src.platform.logging.loguru_io import Logger
from src.service.seating.app.query.stream_scope_use_case import StreamScopeUseCase
from src.service.seating.domain.value_object.scope import Scope


router = APIRouter()


def _event_source(use_case: StreamScopeUseCase, scope: Scope) -> EventSourceResponse:
    async def event_generator() -> AsyncGenerator[dict, None]:
        async for event in use_case.stream(scope=scope):
            yield {
                'event': event['event_type'],
                'data': orjson.dumps(event).decode(),
            }

    return EventSourceResponse(event_generator())


@router.get('/global', status_code=status.HTTP_200_OK)
@Logger.io
async def stream_global(
    use_case: StreamScopeUseCase = Depends(StreamScopeUseCase.depends),
) -> EventSourceResponse:
    """SSE: snapshot of everything, then every committed change."""
    return _event_source(use_case, Scope.parse(scope_kind='global'))


@router.get('/{scope_kind}/{scope_id}', status_code=status.HTTP_200_OK)
@Logger.io
async def stream_scope(
    scope_kind: str,
    scope_id: str,
    use_case: StreamScopeUseCase = Depends(StreamScopeUseCase.depends),
) -> EventSourceResponse:
    """
    SSE for a room or building: `initial_state` snapshot, then live events.
    The stream ends if the client falls behind; reconnect to resync.
    """
    scope = Scope.parse(scope_kind=scope_kind, scope_id=scope_id)
    await use_case.check_scope(scope=scope)
    return _event_source(use_case, scope)
