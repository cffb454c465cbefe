import attrs
import pytest

from src.service.seating.domain.entity.room_calendar_entity import RoomCalendar
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.value_object.scope import Scope


SCOPE = Scope.of_room(room_id='R1', building_id='B1')


def _seat(label: str, version: int) -> Seat:
    return Seat(id=f'R1-{label}', room_id='R1', label=label, row=0, col=0, version=version)


@pytest.mark.unit
class TestChangeNotifier:
    @pytest.mark.asyncio
    async def test_seat_commit_becomes_seat_changed(
        self, change_notifier, broadcaster, drain_events
    ):
        stream = await broadcaster.subscribe(scope_key='room:R1')

        await change_notifier.publish_committed(record=_seat('A1', 1), scope=SCOPE)

        [event] = drain_events(stream)
        assert event['event_type'] == 'seat_changed'
        assert event['scope'] == 'room:R1'
        assert event['data']['id'] == 'R1-A1'
        assert event['data']['version'] == 1

    @pytest.mark.asyncio
    async def test_calendar_commits_are_not_announced(
        self, change_notifier, broadcaster, drain_events
    ):
        stream = await broadcaster.subscribe(scope_key='global')
        calendar = RoomCalendar(id='R1', version=1)

        await change_notifier.publish_committed(record=calendar, scope=SCOPE)

        assert drain_events(stream) == []

    @pytest.mark.asyncio
    async def test_bulk_event_skips_seats_overtaken_by_later_commit(
        self, change_notifier, broadcaster, drain_events
    ):
        """
        Given: A1 was already announced at version 3
        When: A batch that read A1 at version 2 announces its results
        Then: Only the seats newer than what observers saw go out
        """
        await change_notifier.publish_committed(record=_seat('A1', 3), scope=SCOPE)
        stream = await broadcaster.subscribe(scope_key='building:B1')

        await change_notifier.seats_bulk_changed(
            seats=[_seat('A1', 2), _seat('A2', 1)], scope=SCOPE
        )

        [event] = drain_events(stream)
        assert event['event_type'] == 'seats_bulk_changed'
        assert [record['id'] for record in event['data']['records']] == ['R1-A2']

    @pytest.mark.asyncio
    async def test_bulk_event_with_only_stale_seats_is_not_sent(
        self, change_notifier, broadcaster, drain_events
    ):
        await change_notifier.publish_committed(record=_seat('A1', 3), scope=SCOPE)
        stream = await broadcaster.subscribe(scope_key='room:R1')

        await change_notifier.seats_bulk_changed(seats=[_seat('A1', 1)], scope=SCOPE)

        assert drain_events(stream) == []

    @pytest.mark.asyncio
    async def test_latest_published_version_never_moves_back(self, change_notifier):
        seat = _seat('A1', 4)
        await change_notifier.publish_committed(record=seat, scope=SCOPE)
        await change_notifier.publish_committed(record=attrs.evolve(seat, version=2), scope=SCOPE)

        assert change_notifier.latest_published_version(record=seat) == 4

    @pytest.mark.asyncio
    async def test_allocation_conflict_carries_message_and_record(
        self, change_notifier, broadcaster, drain_events
    ):
        stream = await broadcaster.subscribe(scope_key='global')
        current = _seat('A1', 2).claim(student_id='S1')

        await change_notifier.allocation_conflict(
            message='Seat A1 was taken', conflicting_record=current, scope=SCOPE
        )

        [event] = drain_events(stream)
        assert event['event_type'] == 'allocation_conflict'
        assert event['data']['message'] == 'Seat A1 was taken'
        assert event['data']['conflictingRecord']['ownerRef'] == 'S1'
        assert event['data']['conflictingRecord']['version'] == 2

    @pytest.mark.asyncio
    async def test_subscribe_listens_on_scope_key(self, change_notifier, broadcaster):
        stream = await change_notifier.subscribe(scope=Scope(building_id='B1'))

        assert broadcaster.subscriber_count(scope_key='building:B1') == 1

        await change_notifier.unsubscribe(scope=Scope(building_id='B1'), stream=stream)
        assert broadcaster.subscriber_count(scope_key='building:B1') == 0
