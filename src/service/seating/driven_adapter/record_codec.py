"""
Record Codec

Persisted layout shared by the Kvrocks store, the change events and the
conflict payload:

    {kind, id, parentId, positionalFields, status, ownerRef, features[], version}

`version` is present only on kinds under optimistic control.
"""

from datetime import datetime
from typing import Any

import orjson

from src.service.seating.domain.entity.booking_entity import RoomBooking
from src.service.seating.domain.entity.room_calendar_entity import BookingSlot, RoomCalendar
from src.service.seating.domain.entity.room_entity import Room
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.entity.student_entity import Student
from src.service.seating.domain.enum.booking_status import BookingLifecycle
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.enum.seat_status import SeatStatus


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def encode_layout(record: Any) -> dict[str, Any]:
    kind = record.KIND
    if kind == RecordKind.SEAT:
        layout = {
            'positionalFields': {'row': record.row, 'col': record.col, 'label': record.label},
            'status': str(record.status),
            'ownerRef': record.student_id,
            'features': sorted(record.features),
        }
    elif kind == RecordKind.BOOKING:
        layout = {
            'positionalFields': {
                'startTime': _iso(record.start_time),
                'endTime': _iso(record.end_time),
                'capacity': record.capacity,
                'branch': record.branch,
                'createdAt': _iso(record.created_at),
            },
            'status': str(record.lifecycle),
            'ownerRef': record.teacher_id,
            'features': [],
        }
    elif kind == RecordKind.CALENDAR:
        layout = {
            'positionalFields': {
                'slots': [
                    {
                        'bookingId': slot.booking_id,
                        'teacherId': slot.teacher_id,
                        'startTime': _iso(slot.start_time),
                        'endTime': _iso(slot.end_time),
                    }
                    for slot in record.slots
                ]
            },
            'status': None,
            'ownerRef': None,
            'features': [],
        }
    elif kind == RecordKind.STUDENT:
        layout = {
            'positionalFields': {
                'name': record.name,
                'branch': record.branch,
                'tags': sorted(record.tags),
                'preferences': sorted(record.preferences),
            },
            'status': None,
            'ownerRef': None,
            'features': sorted(record.accessibility_needs),
        }
    elif kind == RecordKind.ROOM:
        layout = {
            'positionalFields': {
                'name': record.name,
                'rows': record.rows,
                'cols': record.cols,
                'capacity': record.capacity,
                'blockId': record.block_id,
                'floorId': record.floor_id,
                'aisleAfterCols': list(record.aisle_after_cols),
            },
            'status': None,
            'ownerRef': None,
            'features': [],
        }
    else:
        raise TypeError(f'Unknown record kind: {kind}')

    layout = {'kind': str(kind), 'id': record.id, 'parentId': record.parent_id, **layout}
    if kind.is_versioned:
        layout['version'] = record.version
    return layout


def decode_layout(layout: dict[str, Any]) -> Any:
    kind = RecordKind(layout['kind'])
    fields = layout['positionalFields']
    if kind == RecordKind.SEAT:
        return Seat(
            id=layout['id'],
            room_id=layout['parentId'],
            label=fields['label'],
            row=fields['row'],
            col=fields['col'],
            status=SeatStatus(layout['status']),
            student_id=layout['ownerRef'],
            features=layout['features'],
            version=layout['version'],
        )
    if kind == RecordKind.BOOKING:
        return RoomBooking(
            id=layout['id'],
            room_id=layout['parentId'],
            teacher_id=layout['ownerRef'],
            branch=fields['branch'],
            capacity=fields['capacity'],
            start_time=_parse(fields['startTime']),
            end_time=_parse(fields['endTime']),
            lifecycle=BookingLifecycle(layout['status']),
            created_at=_parse(fields.get('createdAt')),
            version=layout['version'],
        )
    if kind == RecordKind.CALENDAR:
        return RoomCalendar(
            id=layout['id'],
            slots=[
                BookingSlot(
                    booking_id=slot['bookingId'],
                    teacher_id=slot['teacherId'],
                    start_time=_parse(slot['startTime']),
                    end_time=_parse(slot['endTime']),
                )
                for slot in fields['slots']
            ],
            version=layout['version'],
        )
    if kind == RecordKind.STUDENT:
        return Student(
            id=layout['id'],
            name=fields['name'],
            branch=fields['branch'],
            accessibility_needs=layout['features'],
            tags=fields['tags'],
            preferences=fields['preferences'],
        )
    return Room(
        id=layout['id'],
        name=fields['name'],
        building_id=layout['parentId'],
        rows=fields['rows'],
        cols=fields['cols'],
        capacity=fields['capacity'],
        block_id=fields['blockId'],
        floor_id=fields['floorId'],
        aisle_after_cols=fields['aisleAfterCols'],
    )


def dumps(record: Any) -> bytes:
    return orjson.dumps(encode_layout(record))


def loads(data: bytes | str) -> Any:
    return decode_layout(orjson.loads(data))
