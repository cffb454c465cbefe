import asyncio
from unittest.mock import AsyncMock

import pytest

from src.platform.exception.exceptions import (
    ConstraintUnsatisfiableError,
    DomainError,
    NotFoundError,
    RetryExhaustedError,
    VersionConflictError,
)
from src.service.seating.app.command.claim_best_seat_use_case import ClaimBestSeatUseCase
from src.service.seating.app.optimistic_gate import OptimisticGate
from src.service.seating.app.seat_assigner import SeatAssigner
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.enum.seat_status import SeatStatus
from src.service.seating.driven_adapter.store.in_memory_record_store import InMemoryRecordStore


class RacingRecordStore(InMemoryRecordStore):
    """Lets a rival claim the target seat right before each of our seat swaps"""

    def __init__(self, *, races: int) -> None:
        super().__init__()
        self.races = races
        self.rivals: list[str] = []

    async def compare_and_swap(self, *, kind, record_id, expected_version, mutation):
        if kind == RecordKind.SEAT and self.races > 0:
            self.races -= 1
            rival = f'rival-{len(self.rivals) + 1}'
            self.rivals.append(rival)
            await super().compare_and_swap(
                kind=kind,
                record_id=record_id,
                expected_version=expected_version,
                mutation=lambda seat: seat.claim(student_id=rival),
            )
        return await super().compare_and_swap(
            kind=kind, record_id=record_id, expected_version=expected_version, mutation=mutation
        )


@pytest.mark.unit
class TestClaimBestSeat:
    @pytest.fixture
    def use_case(self, record_store, seat_assigner) -> ClaimBestSeatUseCase:
        return ClaimBestSeatUseCase(record_store=record_store, seat_assigner=seat_assigner)

    @pytest.mark.asyncio
    async def test_claims_preferred_seat(self, use_case, provision_room, register_student):
        await provision_room(rows=2, cols=3)
        await register_student('S1', preferences=['front_row'])

        seat = await use_case.claim_seat(room_id='R1', student_id='S1')

        assert seat.label == 'A1'
        assert seat.status == SeatStatus.ALLOCATED
        assert seat.student_id == 'S1'
        assert seat.version == 1

    @pytest.mark.asyncio
    async def test_request_constraints_add_to_student_constraints(
        self, use_case, provision_room, register_student
    ):
        await provision_room(rows=2, cols=3, seat_features={'B3': ['near_exit']})
        await register_student('S1')

        seat = await use_case.claim_seat(room_id='R1', student_id='S1', hard=['near_exit'])

        assert seat.label == 'B3'

    @pytest.mark.asyncio
    async def test_hard_constraint_nobody_meets_is_unsatisfiable(
        self, use_case, provision_room, register_student, record_store
    ):
        """
        Given: A room without any wheelchair accessible seat
        When: A student who needs one claims a seat
        Then: ConstraintUnsatisfiableError, and no seat changed
        """
        await provision_room(rows=1, cols=3)
        await register_student('S1', needs=['wheelchair_access'])

        with pytest.raises(ConstraintUnsatisfiableError) as exc_info:
            await use_case.claim_seat(room_id='R1', student_id='S1')

        assert 'wheelchair_access' in exc_info.value.reason
        seats = await record_store.list_records(kind=RecordKind.SEAT, parent_id='R1')
        assert all(seat.version == 0 for seat in seats)

    @pytest.mark.asyncio
    async def test_student_already_seated_in_room(self, use_case, provision_room, register_student):
        await provision_room()
        await register_student('S1')
        await use_case.claim_seat(room_id='R1', student_id='S1')

        with pytest.raises(DomainError, match='already holds seat'):
            await use_case.claim_seat(room_id='R1', student_id='S1')

    @pytest.mark.asyncio
    async def test_unknown_student_or_room(self, use_case, provision_room, register_student):
        await provision_room()
        await register_student('S1')

        with pytest.raises(NotFoundError):
            await use_case.claim_seat(room_id='R1', student_id='ghost')
        with pytest.raises(NotFoundError):
            await use_case.claim_seat(room_id='nowhere', student_id='S1')

    @pytest.mark.asyncio
    async def test_concurrent_claims_never_share_a_seat(
        self, use_case, provision_room, register_student, record_store
    ):
        await provision_room(rows=2, cols=3)
        for i in range(4):
            await register_student(f'S{i}', preferences=['front_row'])

        seats = await asyncio.gather(
            *(use_case.claim_seat(room_id='R1', student_id=f'S{i}') for i in range(4))
        )

        assert len({seat.id for seat in seats}) == 4
        stored = await record_store.list_records(kind=RecordKind.SEAT, parent_id='R1')
        seated = sorted(seat.student_id for seat in stored if seat.student_id)
        assert seated == ['S0', 'S1', 'S2', 'S3']


@pytest.mark.unit
class TestClaimUnderContention:
    @pytest.fixture
    def racing_store(self) -> RacingRecordStore:
        return RacingRecordStore(races=1)

    @pytest.fixture
    def record_store(self, racing_store) -> RacingRecordStore:
        return racing_store

    @pytest.fixture
    def use_case(self, record_store, seat_assigner) -> ClaimBestSeatUseCase:
        return ClaimBestSeatUseCase(
            record_store=record_store, seat_assigner=seat_assigner, max_attempts=3
        )

    @pytest.mark.asyncio
    async def test_lost_race_emits_conflict_and_takes_next_best(
        self, use_case, provision_room, register_student, broadcaster, drain_events
    ):
        """
        Given: A rival takes A1 just before our write lands
        When: S1 claims with a front-row preference
        Then: allocation_conflict is emitted and S1 ends up in the next best seat
        """
        await provision_room(rows=2, cols=3)
        await register_student('S1', preferences=['front_row'])
        stream = await broadcaster.subscribe(scope_key='room:R1')

        seat = await use_case.claim_seat(room_id='R1', student_id='S1')

        assert seat.label == 'A2'
        events = drain_events(stream)
        conflicts = [e for e in events if e['event_type'] == 'allocation_conflict']
        assert len(conflicts) == 1
        assert conflicts[0]['data']['conflictingRecord']['id'] == 'R1-A1'
        assert conflicts[0]['data']['conflictingRecord']['ownerRef'] == 'rival-1'

    @pytest.mark.asyncio
    async def test_every_attempt_lost_is_retry_exhausted(
        self, use_case, provision_room, register_student, racing_store
    ):
        racing_store.races = 100
        await provision_room(rows=2, cols=3)
        await register_student('S1')

        with pytest.raises(RetryExhaustedError) as exc_info:
            await use_case.claim_seat(room_id='R1', student_id='S1')

        assert exc_info.value.attempts == 3
        assert len(racing_store.rivals) == 3


@pytest.mark.unit
class TestClaimWithMockedGate:
    @pytest.mark.asyncio
    async def test_conflict_without_any_commit_exhausts_budget(
        self,
        record_store,
        change_notifier,
        seat_selection_domain,
        keyed_lock,
        provision_room,
        register_student,
    ):
        _, seats = await provision_room(rows=1, cols=2)
        await register_student('S1')
        gate = AsyncMock(spec=OptimisticGate)
        gate.write.side_effect = VersionConflictError(current_record=seats[0], reason='stale')
        assigner = SeatAssigner(
            record_store=record_store,
            optimistic_gate=gate,
            change_notifier=change_notifier,
            seat_selection_domain=seat_selection_domain,
            keyed_lock=keyed_lock,
        )
        use_case = ClaimBestSeatUseCase(
            record_store=record_store, seat_assigner=assigner, max_attempts=2
        )

        with pytest.raises(RetryExhaustedError):
            await use_case.claim_seat(room_id='R1', student_id='S1')

        assert gate.write.await_count == 2
