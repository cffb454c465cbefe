import pytest

from src.platform.exception.exceptions import DomainError
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.enum.seat_status import SeatStatus
from src.service.seating.domain.value_object.seat_patch import SeatPatch


def _seat(**overrides) -> Seat:
    fields = {'id': 'R1-A1', 'room_id': 'R1', 'label': 'A1', 'row': 0, 'col': 0}
    fields.update(overrides)
    return Seat(**fields)


@pytest.mark.unit
class TestSeatInvariant:
    def test_allocated_seat_requires_student(self):
        with pytest.raises(DomainError, match='cannot be Allocated without a student'):
            _seat(status=SeatStatus.ALLOCATED)

    @pytest.mark.parametrize('status', [SeatStatus.AVAILABLE, SeatStatus.BROKEN])
    def test_non_allocated_seat_cannot_hold_student(self, status):
        with pytest.raises(DomainError, match='cannot hold a student'):
            _seat(status=status, student_id='S1')

    def test_features_are_normalized_to_frozenset(self):
        seat = _seat(features=['near_exit', 'near_exit'])

        assert seat.features == frozenset({'near_exit'})


@pytest.mark.unit
class TestSeatTransitions:
    def test_claim_available_seat(self):
        seat = _seat(version=3)

        claimed = seat.claim(student_id='S1')

        assert claimed.status == SeatStatus.ALLOCATED
        assert claimed.student_id == 'S1'
        # The store assigns versions, never the entity
        assert claimed.version == 3

    @pytest.mark.parametrize(
        'seat',
        [
            _seat(status=SeatStatus.ALLOCATED, student_id='S2'),
            _seat(status=SeatStatus.BROKEN),
        ],
    )
    def test_claim_rejects_non_available_seat(self, seat):
        with pytest.raises(DomainError, match='not Available'):
            seat.claim(student_id='S1')

    def test_release_drops_student(self):
        seat = _seat(status=SeatStatus.ALLOCATED, student_id='S1')

        released = seat.release()

        assert released.status == SeatStatus.AVAILABLE
        assert released.student_id is None


@pytest.mark.unit
class TestSeatApplyPatch:
    def test_student_only_patch_implies_allocated(self):
        patched = _seat().apply_patch(SeatPatch(student_id='S1'))

        assert patched.status == SeatStatus.ALLOCATED
        assert patched.student_id == 'S1'

    def test_allocated_to_broken_clears_student(self):
        """
        Given: Seat allocated to S1
        When: An admin marks it Broken
        Then: The seat keeps no occupant
        """
        seat = _seat(status=SeatStatus.ALLOCATED, student_id='S1')

        patched = seat.apply_patch(SeatPatch(status=SeatStatus.BROKEN))

        assert patched.status == SeatStatus.BROKEN
        assert patched.student_id is None

    def test_student_on_broken_seat_is_rejected(self):
        with pytest.raises(DomainError, match='only be assigned to an Allocated seat'):
            _seat().apply_patch(SeatPatch(status=SeatStatus.BROKEN, student_id='S1'))

    def test_allocated_without_any_student_is_rejected(self):
        with pytest.raises(DomainError):
            _seat().apply_patch(SeatPatch(status=SeatStatus.ALLOCATED))

    def test_feature_and_label_edit_keep_allocation(self):
        seat = _seat(status=SeatStatus.ALLOCATED, student_id='S1', features=['near_exit'])

        patched = seat.apply_patch(SeatPatch(features=['wheelchair_access'], label='A1w'))

        assert patched.features == frozenset({'wheelchair_access'})
        assert patched.label == 'A1w'
        assert patched.student_id == 'S1'
        assert patched.status == SeatStatus.ALLOCATED

    def test_empty_features_clear_features(self):
        seat = _seat(features=['near_exit'])

        patched = seat.apply_patch(SeatPatch(features=[]))

        assert patched.features == frozenset()
