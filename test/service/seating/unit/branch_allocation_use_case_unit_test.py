import pytest
import pytest_asyncio

from src.platform.exception.exceptions import DomainError, NotFoundError
from src.service.seating.app.command.branch_allocation_use_case import BranchAllocationUseCase
from src.service.seating.app.query.allocation_query_use_case import AllocationQueryUseCase
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.enum.seat_status import SeatStatus


@pytest.fixture
def branch_allocation(record_store, seat_assigner, change_notifier) -> BranchAllocationUseCase:
    return BranchAllocationUseCase(
        record_store=record_store,
        seat_assigner=seat_assigner,
        change_notifier=change_notifier,
    )


@pytest.fixture
def allocation_query(record_store) -> AllocationQueryUseCase:
    return AllocationQueryUseCase(record_store=record_store)


@pytest_asyncio.fixture
async def campus(provision_room, register_student):
    """R1 and R2 in building B1, R3 in B2; two CSE students, one ECE, one MECH"""
    await provision_room('R1', building_id='B1', rows=1, cols=3)
    await provision_room('R2', building_id='B1', rows=1, cols=3)
    await provision_room('R3', building_id='B2', rows=1, cols=3)
    await register_student('S1', branch='CSE')
    await register_student('S2', branch='CSE')
    await register_student('S3', branch='ECE')
    await register_student('S4', branch='MECH')


@pytest.mark.unit
class TestBranchAllocation:
    @pytest.mark.asyncio
    async def test_branch_fills_the_room(self, branch_allocation, campus, record_store):
        summary = await branch_allocation.allocate_branch(branch='CSE', room_id='R1')

        assert summary.allocated_count == 2
        assert {o.student_id for o in summary.outcomes} == {'S1', 'S2'}
        assert all(o.room_id == 'R1' for o in summary.outcomes)
        seats = await record_store.list_records(kind=RecordKind.SEAT, parent_id='R1')
        assert sum(1 for seat in seats if seat.status == SeatStatus.ALLOCATED) == 2

    @pytest.mark.asyncio
    async def test_seated_members_stay_where_they_are(self, branch_allocation, campus):
        await branch_allocation.allocate_branch(branch='CSE', room_id='R1')

        summary = await branch_allocation.allocate_branch(branch='CSE', room_id='R2')

        assert summary.outcomes == ()

    @pytest.mark.asyncio
    async def test_room_too_small_leaves_the_rest_unallocated(
        self, branch_allocation, provision_room, register_student
    ):
        await provision_room('R1', rows=1, cols=1)
        await register_student('S1')
        await register_student('S2')

        summary = await branch_allocation.allocate_branch(branch='CSE', room_id='R1')

        assert summary.allocated_count == 1
        assert summary.unallocated_count == 1

    @pytest.mark.asyncio
    async def test_unknown_room(self, branch_allocation):
        with pytest.raises(NotFoundError):
            await branch_allocation.allocate_branch(branch='CSE', room_id='nowhere')

    @pytest.mark.asyncio
    async def test_release_frees_only_that_branch(self, branch_allocation, campus, record_store):
        await branch_allocation.allocate_branch(branch='CSE', room_id='R1')
        await branch_allocation.allocate_branch(branch='ECE', room_id='R1')

        released = await branch_allocation.release_branch(branch='CSE', room_id='R1')

        assert len(released) == 2
        assert all(seat.status == SeatStatus.AVAILABLE for seat in released)
        seats = await record_store.list_records(kind=RecordKind.SEAT, parent_id='R1')
        assert [seat.student_id for seat in seats if seat.student_id] == ['S3']

    @pytest.mark.asyncio
    async def test_release_with_nothing_held(self, branch_allocation, campus):
        assert await branch_allocation.release_branch(branch='CSE', room_id='R2') == []


@pytest.mark.unit
class TestAllocationQuery:
    @pytest.mark.asyncio
    async def test_list_allocations_by_room_and_student(
        self, branch_allocation, allocation_query, campus
    ):
        await branch_allocation.allocate_branch(branch='CSE', room_id='R1')
        await branch_allocation.allocate_branch(branch='ECE', room_id='R3')

        everything = await allocation_query.list_allocations()
        in_r1 = await allocation_query.list_allocations(room_id='R1')
        of_s3 = await allocation_query.list_allocations(student_id='S3')

        assert [a.seat.room_id for a in everything] == ['R1', 'R1', 'R3']
        assert {a.student.id for a in in_r1} == {'S1', 'S2'}
        [only] = of_s3
        assert only.room.id == 'R3'
        assert only.room.building_id == 'B2'

    @pytest.mark.asyncio
    async def test_empty_room_is_open_to_every_waiting_branch(self, allocation_query, campus):
        assert await allocation_query.eligible_branches(room_id='R1') == ['CSE', 'ECE', 'MECH']

    @pytest.mark.asyncio
    async def test_allocated_room_is_kept_for_its_branch(
        self, branch_allocation, allocation_query, provision_room, register_student
    ):
        """
        Given: R1 holds one CSE student, another CSE student and an ECE student wait
        When: Eligible branches of R1 are asked for
        Then: Only CSE, since the room already belongs to it
        """
        await provision_room('R1', rows=1, cols=1)
        await register_student('S1', branch='CSE')
        await register_student('S2', branch='CSE')
        await register_student('S3', branch='ECE')
        await branch_allocation.allocate_branch(branch='CSE', room_id='R1')

        assert await allocation_query.eligible_branches(room_id='R1') == ['CSE']

    @pytest.mark.asyncio
    async def test_room_of_a_fully_seated_branch_is_open_to_nobody(
        self, branch_allocation, allocation_query, campus
    ):
        await branch_allocation.allocate_branch(branch='CSE', room_id='R1')

        assert await allocation_query.eligible_branches(room_id='R1') == []

    @pytest.mark.asyncio
    async def test_building_skips_branches_seated_in_other_buildings(
        self, branch_allocation, allocation_query, provision_room, register_student, campus
    ):
        await register_student('S5', branch='ECE')
        await provision_room('R4', building_id='B2', rows=1, cols=1)
        await branch_allocation.allocate_branch(branch='ECE', room_id='R4')

        assert await allocation_query.eligible_branches(building_id='B1') == ['CSE', 'MECH']
        assert await allocation_query.eligible_branches(building_id='B2') == [
            'CSE',
            'ECE',
            'MECH',
        ]

    @pytest.mark.asyncio
    async def test_room_or_building_is_required(self, allocation_query):
        with pytest.raises(DomainError):
            await allocation_query.eligible_branches()
        with pytest.raises(NotFoundError):
            await allocation_query.eligible_branches(room_id='nowhere')
