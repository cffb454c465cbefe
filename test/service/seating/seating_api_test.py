"""
HTTP surface of the seating service, on the in-memory record store.

Runs the real app (lifespan, DI wiring, exception handlers) through
TestClient; every test starts from empty container singletons.
"""

from collections.abc import Generator
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
import pytest

from src.main import app


@pytest.fixture
def client(reset_container) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


def _create_room(client: TestClient, room_id: str = 'R101', **overrides) -> dict:
    payload = {
        'id': room_id,
        'name': f'Hall {room_id}',
        'building_id': 'B1',
        'floor_id': 'F1',
        'rows': 2,
        'cols': 3,
        'capacity': 6,
        'seat_features': {'B3': ['wheelchair_access']},
        **overrides,
    }
    response = client.post('/api/rooms', json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _create_student(client: TestClient, student_id: str, **overrides) -> dict:
    payload = {'id': student_id, 'name': f'Student {student_id}', 'branch': 'CSE', **overrides}
    response = client.post('/api/students', json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.unit
class TestSeatingApi:
    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.json()['status'] == 'healthy'

    def test_provision_room_returns_seats(self, client):
        room = _create_room(client)

        assert [seat['label'] for seat in room['seats']] == ['A1', 'A2', 'A3', 'B1', 'B2', 'B3']
        assert room['seats'][-1]['features'] == ['wheelchair_access']

    def test_duplicate_room_is_409(self, client):
        _create_room(client)

        response = client.post(
            '/api/rooms',
            json={
                'id': 'R101',
                'name': 'x',
                'building_id': 'B1',
                'rows': 1,
                'cols': 1,
                'capacity': 1,
            },
        )

        assert response.status_code == 409

    def test_claim_and_read_back(self, client):
        _create_room(client)
        _create_student(client, 'S1', accessibility_needs=['wheelchair_access'])

        response = client.post('/api/rooms/R101/claim', json={'student_id': 'S1'})

        assert response.status_code == 200
        seat = response.json()
        assert seat['label'] == 'B3'
        assert seat['status'] == 'Allocated'
        assert seat['version'] == 1

        student = client.get('/api/students/S1').json()
        assert [s['id'] for s in student['seats']] == ['R101-B3']

    def test_unsatisfiable_claim_is_422(self, client):
        _create_room(client, seat_features={})
        _create_student(client, 'S1', accessibility_needs=['wheelchair_access'])

        response = client.post('/api/rooms/R101/claim', json={'student_id': 'S1'})

        assert response.status_code == 422
        assert 'wheelchair_access' in response.json()['detail']

    def test_stale_write_is_409_with_current_record(self, client):
        """
        Given: Seat A1 was marked Broken at version 0 -> 1
        When: Another admin writes with expected_version 0
        Then: 409 carrying the current record, and a retry with its version succeeds
        """
        _create_room(client)
        first = client.patch(
            '/api/seats/R101-A1', json={'expected_version': 0, 'status': 'Broken'}
        )
        assert first.status_code == 200

        stale = client.patch(
            '/api/seats/R101-A1', json={'expected_version': 0, 'features': ['near_exit']}
        )

        assert stale.status_code == 409
        current = stale.json()['currentRecord']
        assert current['version'] == 1
        assert current['status'] == 'Broken'

        retry = client.patch(
            '/api/seats/R101-A1',
            json={'expected_version': current['version'], 'features': ['near_exit']},
        )
        assert retry.status_code == 200
        assert retry.json()['version'] == 2

    def test_invalid_status_is_400(self, client):
        _create_room(client)

        response = client.patch(
            '/api/seats/R101-A1', json={'expected_version': 0, 'status': 'Lost'}
        )

        assert response.status_code == 400

    def test_unknown_seat_is_404(self, client):
        assert client.get('/api/seats/nope').status_code == 404

    def test_run_allocation_and_rebalance(self, client):
        _create_room(client, 'R101')
        _create_room(client, 'R102')
        for student_id in ('S1', 'S2'):
            _create_student(client, student_id)

        allocation = client.post('/api/allocation/run', json={'room_ids': ['R101']}).json()

        assert allocation['allocated'] == 2
        assert allocation['utilization'] == pytest.approx(33.33)

        rebalance = client.post(
            '/api/allocation/rebalance', json={'unavailable_room_ids': ['R101']}
        ).json()

        assert rebalance['released'] == 2
        assert {o['room_id'] for o in rebalance['outcomes']} == {'R102'}
        assert all(o['released_from'].startswith('R101-') for o in rebalance['outcomes'])

    def test_booking_lifecycle(self, client):
        _create_room(client)
        start = datetime.now(timezone.utc) + timedelta(days=1)
        payload = {
            'room_id': 'R101',
            'teacher_id': 'T1',
            'branch': 'CSE',
            'capacity': 6,
            'start_time': start.isoformat(),
            'end_time': (start + timedelta(hours=2)).isoformat(),
        }

        created = client.post('/api/bookings', json=payload)
        assert created.status_code == 201
        booking = created.json()
        assert booking['status'] == 'upcoming'

        overlap = client.post('/api/bookings', json={**payload, 'teacher_id': 'T2'})
        assert overlap.status_code == 409

        canceled = client.patch(
            f'/api/bookings/{booking["id"]}/cancel', json={'expected_version': 0}
        )
        assert canceled.status_code == 200
        assert canceled.json()['status'] == 'canceled'

        listed = client.get('/api/rooms/R101/bookings').json()
        assert [b['status'] for b in listed] == ['canceled']

    def test_booking_seats_its_branch_and_cancel_releases_it(self, client):
        _create_room(client)
        _create_student(client, 'S1')
        _create_student(client, 'S2', branch='ECE')
        start = datetime.now(timezone.utc) + timedelta(days=1)
        booking = client.post(
            '/api/bookings',
            json={
                'room_id': 'R101',
                'teacher_id': 'T1',
                'branch': 'CSE',
                'capacity': 6,
                'start_time': start.isoformat(),
                'end_time': (start + timedelta(hours=2)).isoformat(),
            },
        ).json()

        allocations = client.get('/api/allocation', params={'room_id': 'R101'}).json()
        assert [(a['student_id'], a['branch']) for a in allocations] == [('S1', 'CSE')]
        eligible = client.get('/api/allocation/eligible-branches', params={'room_id': 'R101'})
        assert eligible.json() == []
        assert client.get('/api/allocation/eligible-branches').status_code == 400

        client.patch(f'/api/bookings/{booking["id"]}/cancel', json={'expected_version': 0})

        assert client.get('/api/allocation').json() == []
        ece = client.post(
            '/api/allocation/branch', json={'branch': 'ECE', 'room_id': 'R101'}
        ).json()
        assert ece['allocated'] == 1

    def test_stream_of_unknown_room_is_404(self, client):
        assert client.get('/api/stream/room/nowhere').status_code == 404
