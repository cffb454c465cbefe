from anyio import fail_after
import pytest

from src.platform.exception.exceptions import DomainError, NotFoundError
from src.service.seating.app.command.write_seat_use_case import WriteSeatUseCase
from src.service.seating.app.query.stream_scope_use_case import StreamScopeUseCase
from src.service.seating.domain.value_object.scope import Scope
from src.service.seating.domain.value_object.seat_patch import SeatPatch


def _seat_layout(seat_id: str, version: int) -> dict:
    return {'kind': 'seat', 'id': seat_id, 'version': version}


@pytest.mark.unit
class TestScope:
    def test_room_scope_publishes_up_the_hierarchy(self):
        scope = Scope.of_room(room_id='R1', building_id='B1')

        assert scope.key == 'room:R1'
        assert scope.publish_keys() == ['room:R1', 'building:B1', 'global']

    @pytest.mark.parametrize(
        'scope_kind,scope_id,key',
        [('global', None, 'global'), ('room', 'R1', 'room:R1'), ('building', 'B1', 'building:B1')],
    )
    def test_parse(self, scope_kind, scope_id, key):
        assert Scope.parse(scope_kind=scope_kind, scope_id=scope_id).key == key

    @pytest.mark.parametrize('scope_kind,scope_id', [('room', None), ('campus', 'C1')])
    def test_parse_rejects(self, scope_kind, scope_id):
        with pytest.raises(DomainError):
            Scope.parse(scope_kind=scope_kind, scope_id=scope_id)


@pytest.mark.unit
class TestDropStale:
    def test_single_record_event_at_or_below_seen_version_is_dropped(self):
        seen = {'seat:R1-A1': 2}
        event = {'event_type': 'seat_changed', 'data': _seat_layout('R1-A1', 2)}

        assert StreamScopeUseCase.drop_stale(event=event, seen=seen) is None

    def test_newer_record_passes_and_is_remembered(self):
        seen = {'seat:R1-A1': 2}
        event = {'event_type': 'seat_changed', 'data': _seat_layout('R1-A1', 3)}

        assert StreamScopeUseCase.drop_stale(event=event, seen=seen) is event
        assert seen['seat:R1-A1'] == 3

    def test_bulk_event_is_trimmed_to_new_records(self):
        seen = {'seat:R1-A1': 5}
        event = {
            'event_type': 'seats_bulk_changed',
            'scope': 'room:R1',
            'data': {'records': [_seat_layout('R1-A1', 4), _seat_layout('R1-A2', 1)]},
        }

        fresh = StreamScopeUseCase.drop_stale(event=event, seen=seen)

        assert fresh['data']['records'] == [_seat_layout('R1-A2', 1)]
        assert fresh['scope'] == 'room:R1'

    def test_conflict_events_always_pass(self):
        event = {'event_type': 'allocation_conflict', 'data': {'message': 'x'}}

        assert StreamScopeUseCase.drop_stale(event=event, seen={}) is event


@pytest.mark.unit
class TestStreamScope:
    @pytest.fixture
    def use_case(self, record_store, change_notifier) -> StreamScopeUseCase:
        return StreamScopeUseCase(record_store=record_store, change_notifier=change_notifier)

    @pytest.mark.asyncio
    async def test_initial_state_then_live_changes(
        self, use_case, provision_room, record_store, optimistic_gate, keyed_lock, broadcaster
    ):
        """
        Given: A room with two seats and an observer on its scope
        When: A seat is written after the observer connected
        Then: The observer first gets every seat, then the change at version 1
        """
        await provision_room(rows=1, cols=2)
        scope = Scope(room_id='R1')
        events = use_case.stream(scope=scope)

        with fail_after(2):
            initial = await events.__anext__()
            assert initial['event_type'] == 'initial_state'
            assert [r['id'] for r in initial['data']['records']] == ['R1-A1', 'R1-A2']

            await WriteSeatUseCase(
                record_store=record_store, optimistic_gate=optimistic_gate, keyed_lock=keyed_lock
            ).write_seat(seat_id='R1-A2', expected_version=0, patch=SeatPatch(label='A2x'))

            live = await events.__anext__()
            assert live['event_type'] == 'seat_changed'
            assert live['data']['version'] == 1
            assert live['data']['positionalFields']['label'] == 'A2x'

        await events.aclose()
        assert broadcaster.subscriber_count(scope_key='room:R1') == 0

    @pytest.mark.asyncio
    async def test_building_snapshot_covers_its_rooms_only(self, use_case, provision_room):
        await provision_room('R1', building_id='B1', rows=1, cols=1)
        await provision_room('R2', building_id='B2', rows=1, cols=1)

        records = await use_case.snapshot(scope=Scope(building_id='B1'))

        assert [r['id'] for r in records] == ['R1-A1']

    @pytest.mark.asyncio
    async def test_unknown_room_scope(self, use_case):
        with pytest.raises(NotFoundError):
            await use_case.check_scope(scope=Scope(room_id='nowhere'))
