"""
https://python-dependency-injector.ets-labs.org/index.html
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings, settings
from src.platform.event.in_memory_broadcaster import InMemoryBroadcasterImpl
from src.platform.state.keyed_lock import KeyedLock
from src.service.seating.app.optimistic_gate import OptimisticGate
from src.service.seating.app.seat_assigner import SeatAssigner
from src.service.seating.domain.seat_scoring import WeightedFeatureScoring
from src.service.seating.domain.seat_selection_domain import SeatSelectionDomain
from src.service.seating.driven_adapter.notifier.change_notifier_impl import ChangeNotifierImpl
from src.service.seating.driven_adapter.store.in_memory_record_store import InMemoryRecordStore
from src.service.seating.driven_adapter.store.kvrocks_record_store import KvrocksRecordStore


def _store_backend() -> str:
    return settings.STORE_BACKEND


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Record store: STORE_BACKEND picks the adapter
    record_store = providers.Selector(
        providers.Callable(_store_backend),
        memory=providers.Singleton(InMemoryRecordStore),
        kvrocks=providers.Singleton(KvrocksRecordStore),
    )

    # Per-key locks of this process (no global lock)
    keyed_lock = providers.Singleton(KeyedLock)

    # In-memory broadcaster for SSE (process-local pub/sub)
    in_memory_broadcaster = providers.Singleton(InMemoryBroadcasterImpl)
    change_notifier = providers.Singleton(ChangeNotifierImpl, broadcaster=in_memory_broadcaster)

    optimistic_gate = providers.Singleton(
        OptimisticGate,
        record_store=record_store,
        change_notifier=change_notifier,
        keyed_lock=keyed_lock,
    )

    # Seat matching policy (strategy, swap to change weighting)
    seat_scoring_policy = providers.Singleton(
        WeightedFeatureScoring,
        weights=config_service.provided.SEAT_SCORING_WEIGHTS,
        reserved_penalty=config_service.provided.RESERVED_FEATURE_PENALTY,
    )
    seat_selection_domain = providers.Singleton(
        SeatSelectionDomain, scoring_policy=seat_scoring_policy
    )

    # Allocation engine write side, shared by claim, bulk allocation and rebalance
    seat_assigner = providers.Singleton(
        SeatAssigner,
        record_store=record_store,
        optimistic_gate=optimistic_gate,
        change_notifier=change_notifier,
        seat_selection_domain=seat_selection_domain,
        keyed_lock=keyed_lock,
    )


container = Container()


def cleanup() -> None:
    container.reset_singletons()
