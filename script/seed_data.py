#!/usr/bin/env python3
"""
Kvrocks Seed Script
Provision demo rooms and students into the Kvrocks record store

Features:
1. Create Rooms - Two lecture rooms in building B1 with an aisle and accessible seats
2. Create Students - A small cohort, some with accessibility needs or seat preferences

Notes:
- Requires STORE_BACKEND=kvrocks; the in-memory store lives inside the app process
- Rooms that already exist are skipped, so the script can be re-run
"""

import asyncio
import sys

from src.platform.config.core_setting import settings
from src.platform.event.in_memory_broadcaster import InMemoryBroadcasterImpl
from src.platform.exception.exceptions import ConflictError
from src.platform.logging.loguru_io import Logger
from src.platform.state.kvrocks_client import kvrocks_client
from src.platform.state.lua_script_executor import lua_script_executor
from src.service.seating.app.command.provision_room_use_case import ProvisionRoomUseCase
from src.service.seating.app.command.register_student_use_case import RegisterStudentUseCase
from src.service.seating.domain.entity.room_entity import Room
from src.service.seating.domain.entity.student_entity import Student
from src.service.seating.domain.enum.seat_feature import SeatFeature
from src.service.seating.driven_adapter.notifier.change_notifier_impl import ChangeNotifierImpl
from src.service.seating.driven_adapter.store.kvrocks_record_store import KvrocksRecordStore


SEED_ROOMS = [
    (
        Room(
            id='R101',
            name='Lecture Hall 101',
            building_id='B1',
            floor_id='F1',
            rows=4,
            cols=8,
            capacity=30,
            aisle_after_cols=[3],
        ),
        [(3, 6), (3, 7)],
        {'A1': [SeatFeature.WHEELCHAIR_ACCESS], 'A8': [SeatFeature.NEAR_EXIT]},
    ),
    (
        Room(
            id='R102',
            name='Seminar Room 102',
            building_id='B1',
            floor_id='F1',
            rows=3,
            cols=5,
            capacity=15,
        ),
        [],
        {'C5': [SeatFeature.NEAR_EXIT]},
    ),
]

SEED_STUDENTS = [
    Student(id='S001', name='Student 001', branch='CSE', accessibility_needs=['wheelchair_access']),
    Student(id='S002', name='Student 002', branch='CSE', preferences=['front_row']),
    Student(id='S003', name='Student 003', branch='ECE', preferences=['aisle']),
    Student(id='S004', name='Student 004', branch='ECE'),
    Student(id='S005', name='Student 005', branch='ME', accessibility_needs=['near_exit']),
    Student(id='S006', name='Student 006', branch='ME', preferences=['back_row']),
]


async def seed() -> None:
    client = await kvrocks_client.initialize()
    await lua_script_executor.initialize(client=client)

    record_store = KvrocksRecordStore()
    provision = ProvisionRoomUseCase(
        record_store=record_store,
        change_notifier=ChangeNotifierImpl(broadcaster=InMemoryBroadcasterImpl()),
    )
    register = RegisterStudentUseCase(record_store=record_store)

    try:
        for room, unused_cells, seat_features in SEED_ROOMS:
            try:
                _, seats = await provision.provision_room(
                    room=room, unused_cells=unused_cells, seat_features=seat_features
                )
                Logger.base.info(f'✅ Room {room.id}: {len(seats)} seats')
            except ConflictError:
                Logger.base.info(f'⏭️  Room {room.id} already exists, skipped')

        for student in SEED_STUDENTS:
            await register.register_student(student=student)
        Logger.base.info(f'✅ {len(SEED_STUDENTS)} students registered')
    finally:
        await kvrocks_client.disconnect()


def main() -> None:
    if settings.STORE_BACKEND != 'kvrocks':
        Logger.base.error('❌ STORE_BACKEND must be kvrocks to seed shared data')
        sys.exit(1)

    Logger.base.info('🌱 Seeding rooms and students...')
    asyncio.run(seed())
    Logger.base.info('🎉 Seed complete')


if __name__ == '__main__':
    main()
