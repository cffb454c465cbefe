"""
Test Configuration and Fixtures

This module provides:
- Test environment variables, set before any application module is imported
- The seating core wired by hand on the in-memory record store
- Kvrocks isolation with worker-specific key prefixes (integration tests only)

Architecture:
- Unit tests (test/**/unit/): in-memory store, no infrastructure
- Integration tests: real Kvrocks, skipped when it is not reachable
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings are read once at import time
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    worker_id = os.environ.get('PYTEST_XDIST_WORKER', 'master')
    if worker_id == 'master':
        os.environ['KVROCKS_KEY_PREFIX'] = 'test_'
    else:
        os.environ['KVROCKS_KEY_PREFIX'] = f'test_{worker_id}_'

    os.environ['STORE_BACKEND'] = 'memory'

    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)


_early_setup_test_environment()

from collections.abc import Generator  # noqa: E402

import pytest  # noqa: E402

from src.platform.config.core_setting import settings  # noqa: E402
from src.platform.config.di import container  # noqa: E402
from src.platform.event.in_memory_broadcaster import InMemoryBroadcasterImpl  # noqa: E402
from src.platform.state.keyed_lock import KeyedLock  # noqa: E402
from src.service.seating.app.optimistic_gate import OptimisticGate  # noqa: E402
from src.service.seating.app.seat_assigner import SeatAssigner  # noqa: E402
from src.service.seating.domain.seat_scoring import WeightedFeatureScoring  # noqa: E402
from src.service.seating.domain.seat_selection_domain import SeatSelectionDomain  # noqa: E402
from src.service.seating.driven_adapter.notifier.change_notifier_impl import (  # noqa: E402
    ChangeNotifierImpl,
)
from src.service.seating.driven_adapter.store.in_memory_record_store import (  # noqa: E402
    InMemoryRecordStore,
)


# =============================================================================
# Seating core, wired by hand (fresh per test)
# =============================================================================
@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def broadcaster() -> InMemoryBroadcasterImpl:
    return InMemoryBroadcasterImpl(max_buffer_size=100)


@pytest.fixture
def change_notifier(broadcaster: InMemoryBroadcasterImpl) -> ChangeNotifierImpl:
    return ChangeNotifierImpl(broadcaster=broadcaster)


@pytest.fixture
def keyed_lock() -> KeyedLock:
    return KeyedLock()


@pytest.fixture
def optimistic_gate(
    record_store: InMemoryRecordStore, change_notifier: ChangeNotifierImpl, keyed_lock: KeyedLock
) -> OptimisticGate:
    return OptimisticGate(
        record_store=record_store, change_notifier=change_notifier, keyed_lock=keyed_lock
    )


@pytest.fixture
def seat_selection_domain() -> SeatSelectionDomain:
    return SeatSelectionDomain(
        scoring_policy=WeightedFeatureScoring(
            weights=settings.SEAT_SCORING_WEIGHTS,
            reserved_penalty=settings.RESERVED_FEATURE_PENALTY,
        )
    )


@pytest.fixture
def seat_assigner(
    record_store: InMemoryRecordStore,
    optimistic_gate: OptimisticGate,
    change_notifier: ChangeNotifierImpl,
    seat_selection_domain: SeatSelectionDomain,
    keyed_lock: KeyedLock,
) -> SeatAssigner:
    return SeatAssigner(
        record_store=record_store,
        optimistic_gate=optimistic_gate,
        change_notifier=change_notifier,
        seat_selection_domain=seat_selection_domain,
        keyed_lock=keyed_lock,
    )


# =============================================================================
# DI container (HTTP tests go through it)
# =============================================================================
@pytest.fixture
def reset_container() -> Generator[None, None, None]:
    container.reset_singletons()
    yield
    container.reset_singletons()
