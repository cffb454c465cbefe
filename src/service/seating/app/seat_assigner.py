"""
Seat Assigner

The allocation engine's write side: picks the best seat from a snapshot and
commits it through the optimistic gate, one seat per gate write, retrying on
lost races within a bounded budget.
"""

from collections.abc import Iterable
from typing import Optional

from opentelemetry import trace

from src.platform.exception.exceptions import (
    ConstraintUnsatisfiableError,
    NotFoundError,
    RetryExhaustedError,
    VersionConflictError,
)
from src.platform.logging.loguru_io import Logger
from src.platform.state.keyed_lock import KeyedLock
from src.service.seating.app.interface.i_change_notifier import IChangeNotifier
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.app.optimistic_gate import OptimisticGate
from src.service.seating.domain.entity.room_entity import Room
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.seat_selection_domain import SeatSelectionDomain
from src.service.seating.domain.value_object.scope import Scope
from src.service.seating.domain.value_object.seat_constraints import SeatConstraints


def student_lock_key(student_id: str) -> str:
    """Key of the lock every seat change of one student is made under"""
    return f'{RecordKind.STUDENT}:{student_id}'


class SeatPool:
    """
    Working snapshot of rooms and their seats.

    Only ever updated with records the store returned (a commit or the current
    record carried by a conflict), never with locally computed versions.
    """

    def __init__(self, rooms: Iterable[tuple[Room, list[Seat]]]) -> None:
        self._rooms: dict[str, Room] = {}
        self._seats: dict[str, dict[str, Seat]] = {}
        for room, seats in rooms:
            self._rooms[room.id] = room
            self._seats[room.id] = {seat.id: seat for seat in seats}

    def __iter__(self):
        for room_id, room in self._rooms.items():
            yield room, list(self._seats[room_id].values())

    def room(self, room_id: str) -> Room:
        return self._rooms[room_id]

    def has_room(self, room_id: str) -> bool:
        return room_id in self._rooms

    def seats(self) -> list[Seat]:
        return [seat for seats in self._seats.values() for seat in seats.values()]

    def update(self, seat: Seat) -> None:
        seats = self._seats.get(seat.room_id)
        if seats is not None:
            seats[seat.id] = seat

    def replace_room(self, room: Room, seats: list[Seat]) -> None:
        self._rooms[room.id] = room
        self._seats[room.id] = {seat.id: seat for seat in seats}


class SeatAssigner:
    def __init__(
        self,
        *,
        record_store: IRecordStore,
        optimistic_gate: OptimisticGate,
        change_notifier: IChangeNotifier,
        seat_selection_domain: SeatSelectionDomain,
        keyed_lock: KeyedLock,
    ) -> None:
        self.record_store = record_store
        self.optimistic_gate = optimistic_gate
        self.change_notifier = change_notifier
        self.seat_selection_domain = seat_selection_domain
        self.keyed_lock = keyed_lock
        self.tracer = trace.get_tracer(__name__)

    async def get_room(self, *, room_id: str) -> Room:
        room = await self.record_store.get(kind=RecordKind.ROOM, record_id=room_id)
        if room is None:
            raise NotFoundError(f'Room {room_id} not found')
        return room

    async def load_pool(self, *, room_ids: Iterable[str]) -> SeatPool:
        rooms = []
        for room_id in room_ids:
            room = await self.get_room(room_id=room_id)
            seats = await self.record_store.list_records(kind=RecordKind.SEAT, parent_id=room.id)
            rooms.append((room, seats))
        return SeatPool(rooms)

    def student_lock(self, *, student_id: str):
        """Serializes seat changes of one student inside this process."""
        return self.keyed_lock.hold(key=student_lock_key(student_id))

    async def seats_of(self, *, student_id: str) -> list[Seat]:
        """Seats the student holds right now, read from the store"""
        seats = await self.record_store.list_records(kind=RecordKind.SEAT)
        return [seat for seat in seats if seat.student_id == student_id]

    @Logger.io
    async def assign(
        self,
        *,
        student_id: str,
        constraints: SeatConstraints,
        pool: SeatPool,
        max_attempts: int,
        refresh_on_conflict: bool = False,
    ) -> Seat:
        """
        Claim the best seat of the pool for one student

        Args:
            refresh_on_conflict: Re-read the whole room after a lost race
                instead of only taking the record the conflict carried

        Raises:
            ConstraintUnsatisfiableError: No candidate in the pool (retrying cannot help)
            RetryExhaustedError: Every attempt lost a race (try again later)
        """
        with self.tracer.start_as_current_span(
            'seat_assigner.assign', attributes={'student.id': student_id}
        ):
            for attempt in range(1, max_attempts + 1):
                best = self.seat_selection_domain.select_best_across(
                    pool=pool, constraints=constraints
                )
                if best is None:
                    raise ConstraintUnsatisfiableError(
                        self.seat_selection_domain.explain_unsatisfiable(
                            pool=pool, constraints=constraints
                        )
                    )

                scope = Scope.of_room(room_id=best.room.id, building_id=best.room.building_id)
                try:
                    seat = await self.optimistic_gate.write(
                        kind=RecordKind.SEAT,
                        record_id=best.seat.id,
                        expected_version=best.seat.version,
                        mutation=lambda current: current.claim(student_id=student_id),
                        scope=scope,
                    )
                except VersionConflictError as e:
                    current: Seat = e.current_record
                    Logger.base.warning(
                        f'⚔️ [ASSIGNER] Seat {best.seat.label} of room {best.room.id} taken '
                        f'concurrently (attempt {attempt}/{max_attempts})'
                    )
                    await self.change_notifier.allocation_conflict(
                        message=(
                            f'Seat {current.label} was changed by another writer '
                            f'before student {student_id} could claim it'
                        ),
                        conflicting_record=current,
                        scope=scope,
                    )
                    if refresh_on_conflict:
                        seats = await self.record_store.list_records(
                            kind=RecordKind.SEAT, parent_id=best.room.id
                        )
                        pool.replace_room(best.room, seats)
                    else:
                        pool.update(current)
                    continue

                pool.update(seat)
                Logger.base.info(
                    f'🪑 [ASSIGNER] Student {student_id} -> seat {seat.label} '
                    f'(room {seat.room_id}, score {best.score})'
                )
                return seat

        raise RetryExhaustedError(
            f'Could not claim a seat for student {student_id} after {max_attempts} attempts '
            f'under contention, try again later',
            attempts=max_attempts,
        )

    async def release(self, *, seat: Seat, student_id: str, max_attempts: int) -> Optional[Seat]:
        """
        Release a seat held by the student

        Returns:
            The released seat, or None if the student no longer held it

        Raises:
            RetryExhaustedError: The seat kept changing under us
        """
        room = await self.get_room(room_id=seat.room_id)
        scope = Scope.of_room(room_id=room.id, building_id=room.building_id)
        current = seat
        for _ in range(max_attempts):
            if current.student_id != student_id:
                return None
            try:
                return await self.optimistic_gate.write(
                    kind=RecordKind.SEAT,
                    record_id=current.id,
                    expected_version=current.version,
                    mutation=lambda s: s.release(),
                    scope=scope,
                )
            except VersionConflictError as e:
                current = e.current_record

        raise RetryExhaustedError(
            f'Could not release seat {seat.label} of student {student_id} '
            f'after {max_attempts} attempts',
            attempts=max_attempts,
        )
