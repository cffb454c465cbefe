import asyncio

import pytest

from src.platform.exception.exceptions import NotFoundError
from src.service.seating.app.command.claim_best_seat_use_case import ClaimBestSeatUseCase
from src.service.seating.app.command.run_allocation_use_case import (
    RunAllocationUseCase,
    allocation_order,
)
from src.service.seating.app.command.write_seat_use_case import WriteSeatUseCase
from src.service.seating.domain.entity.student_entity import Student
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.enum.seat_status import SeatStatus
from src.service.seating.domain.value_object.allocation_outcome import OutcomeKind
from src.service.seating.domain.value_object.seat_patch import SeatPatch


@pytest.mark.unit
class TestAllocationOrder:
    def test_students_with_needs_go_first_then_by_id(self):
        students = [
            Student(id='S3', name='c', branch='CSE'),
            Student(id='S2', name='b', branch='CSE', accessibility_needs=['near_exit']),
            Student(id='S1', name='a', branch='CSE'),
            Student(
                id='S4',
                name='d',
                branch='CSE',
                accessibility_needs=['near_exit', 'wheelchair_access'],
            ),
        ]

        ordered = sorted(students, key=allocation_order)

        assert [s.id for s in ordered] == ['S4', 'S2', 'S1', 'S3']


@pytest.mark.unit
class TestRunAllocation:
    @pytest.fixture
    def use_case(self, record_store, seat_assigner, change_notifier) -> RunAllocationUseCase:
        return RunAllocationUseCase(
            record_store=record_store,
            seat_assigner=seat_assigner,
            change_notifier=change_notifier,
        )

    @pytest.mark.asyncio
    async def test_allocates_everyone_with_accessible_seat_kept_for_who_needs_it(
        self, use_case, provision_room, register_student, record_store
    ):
        """
        Given: Room A1..A4 where only A4 is wheelchair accessible
        When: S1 (no needs), S2 (wheelchair) and S3 (front row) are allocated
        Then: S2 gets A4 and nobody else takes it
        """
        await provision_room(rows=1, cols=4, seat_features={'A4': ['wheelchair_access']})
        await register_student('S1')
        await register_student('S2', needs=['wheelchair_access'])
        await register_student('S3', preferences=['front_row'])

        summary = await use_case.run_allocation()

        seat_of = {o.student_id: o.seat_id for o in summary.outcomes}
        assert seat_of == {'S2': 'R1-A4', 'S1': 'R1-A1', 'S3': 'R1-A2'}
        assert summary.allocated_count == 3
        assert summary.total_seats == 4
        assert summary.occupied_seats == 3
        assert summary.utilization == 75.0

        stored = await record_store.list_records(kind=RecordKind.SEAT, parent_id='R1')
        holders = [seat.student_id for seat in stored if seat.student_id]
        assert len(holders) == len(set(holders)) == 3

    @pytest.mark.asyncio
    async def test_student_without_suitable_seat_gets_reason(
        self, use_case, provision_room, register_student
    ):
        await provision_room(rows=1, cols=3, seat_features={'A3': ['wheelchair_access']})
        await register_student('S1', needs=['wheelchair_access'])
        await register_student('S2', needs=['wheelchair_access'])

        summary = await use_case.run_allocation()

        by_student = {o.student_id: o for o in summary.outcomes}
        assert by_student['S1'].outcome == OutcomeKind.ALLOCATED
        assert by_student['S2'].outcome == OutcomeKind.UNALLOCATED
        assert by_student['S2'].reason == (
            'no available seat satisfies accessibility requirement wheelchair_access'
        )

    @pytest.mark.asyncio
    async def test_more_students_than_seats(self, use_case, provision_room, register_student):
        await provision_room(rows=1, cols=2)
        for student_id in ('S1', 'S2', 'S3'):
            await register_student(student_id)

        summary = await use_case.run_allocation()

        assert summary.allocated_count == 2
        [left_out] = [o for o in summary.outcomes if not o.is_allocated]
        assert left_out.student_id == 'S3'
        assert left_out.reason == 'no available seats'
        assert summary.utilization == 100.0

    @pytest.mark.asyncio
    async def test_seated_students_are_skipped(
        self, use_case, provision_room, register_student, record_store, seat_assigner
    ):
        await provision_room(rows=1, cols=3)
        await register_student('S1')
        await register_student('S2')
        claim = ClaimBestSeatUseCase(record_store=record_store, seat_assigner=seat_assigner)
        await claim.claim_seat(room_id='R1', student_id='S1')

        summary = await use_case.run_allocation()

        assert [o.student_id for o in summary.outcomes] == ['S2']
        assert summary.occupied_seats == 2

    @pytest.mark.asyncio
    async def test_student_claiming_during_the_batch_is_not_seated_twice(
        self, use_case, provision_room, register_student, record_store, seat_assigner
    ):
        """
        Given: S1 claims a seat while a batch that planned to place S1 runs
        When: Both run concurrently
        Then: S1 ends with exactly one seat
        """
        await provision_room(rows=1, cols=3)
        await register_student('S1')
        claim = ClaimBestSeatUseCase(record_store=record_store, seat_assigner=seat_assigner)

        claimed, summary = await asyncio.gather(
            claim.claim_seat(room_id='R1', student_id='S1'),
            use_case.run_allocation(),
            return_exceptions=True,
        )

        seats = await record_store.list_records(kind=RecordKind.SEAT, parent_id='R1')
        assert len([seat for seat in seats if seat.student_id == 'S1']) == 1
        if not isinstance(claimed, Exception):
            assert summary.allocated_count == 0
            for outcome in summary.outcomes:
                assert outcome.outcome == OutcomeKind.ALREADY_SEATED
                assert outcome.seat_id == claimed.id

    @pytest.mark.asyncio
    async def test_student_seated_after_planning_is_reported_not_placed(
        self, use_case, provision_room, register_student, record_store, seat_assigner
    ):
        await provision_room(rows=1, cols=3)
        student = await register_student('S1')
        pool = await seat_assigner.load_pool(room_ids=['R1'])
        claim = ClaimBestSeatUseCase(record_store=record_store, seat_assigner=seat_assigner)
        claimed = await claim.claim_seat(room_id='R1', student_id='S1')

        summary = await use_case.allocate(students=[student], pool=pool, operation='allocation')

        [outcome] = summary.outcomes
        assert outcome.outcome == OutcomeKind.ALREADY_SEATED
        assert outcome.seat_id == claimed.id
        assert summary.already_seated_count == 1
        seats = await record_store.list_records(kind=RecordKind.SEAT, parent_id='R1')
        assert len([seat for seat in seats if seat.student_id == 'S1']) == 1

    @pytest.mark.asyncio
    async def test_room_pool_order_is_preference_order(
        self, use_case, provision_room, register_student
    ):
        await provision_room('R1', rows=1, cols=2)
        await provision_room('R2', rows=1, cols=2)
        await register_student('S1')

        summary = await use_case.run_allocation(room_ids=['R2', 'R1'])

        assert summary.outcomes[0].room_id == 'R2'
        assert summary.total_seats == 4

    @pytest.mark.asyncio
    async def test_broken_seats_do_not_count_as_capacity(
        self, use_case, provision_room, record_store, optimistic_gate, keyed_lock
    ):
        await provision_room(rows=1, cols=4)
        write_seat = WriteSeatUseCase(
            record_store=record_store, optimistic_gate=optimistic_gate, keyed_lock=keyed_lock
        )
        await write_seat.write_seat(
            seat_id='R1-A1', expected_version=0, patch=SeatPatch(status=SeatStatus.BROKEN)
        )

        summary = await use_case.run_allocation()

        assert summary.total_seats == 3
        assert summary.utilization == 0.0

    @pytest.mark.asyncio
    async def test_bulk_event_carries_committed_seats(
        self, use_case, provision_room, register_student, broadcaster, drain_events
    ):
        await provision_room(rows=1, cols=3)
        await register_student('S1')
        await register_student('S2')
        stream = await broadcaster.subscribe(scope_key='building:B1')

        await use_case.run_allocation()

        events = drain_events(stream)
        [bulk] = [e for e in events if e['event_type'] == 'seats_bulk_changed']
        assert {r['ownerRef'] for r in bulk['data']['records']} == {'S1', 'S2'}
        assert all(r['version'] == 1 for r in bulk['data']['records'])
        # Every single-seat commit was announced before the batch summary
        assert events[-1] is bulk

    @pytest.mark.asyncio
    async def test_unknown_student_id(self, use_case, provision_room):
        await provision_room()

        with pytest.raises(NotFoundError):
            await use_case.run_allocation(student_ids=['ghost'])
