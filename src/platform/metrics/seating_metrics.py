from prometheus_client import Counter


class SeatingMetrics:
    """
    Seat/Booking Consistency Core Metrics

    Tracks optimistic gate outcomes, allocation results and notifier fan-out
    health. Labels stay low-cardinality: record kind and outcome, never ids.
    """

    def __init__(self) -> None:
        # ========== Optimistic Gate ==========
        self.gate_commits = Counter(
            'seating_gate_commits_total',
            'Committed compare-and-swap writes',
            ['kind'],
        )
        self.gate_conflicts = Counter(
            'seating_gate_conflicts_total',
            'Writes rejected for a stale expected version',
            ['kind'],
        )

        # ========== Allocation Engine ==========
        self.claim_results = Counter(
            'seating_claim_results_total',
            'Claim-best-seat outcomes',
            ['result'],  # claimed / unsatisfiable / retry_exhausted
        )
        self.allocation_outcomes = Counter(
            'seating_allocation_outcomes_total',
            'Per-student outcomes of bulk allocation and rebalance',
            ['operation', 'outcome'],
        )

        # ========== Change Notifier ==========
        self.notifier_deliveries = Counter(
            'seating_notifier_deliveries_total',
            'Events handed to subscriber streams',
            ['event_type'],
        )
        self.notifier_lagged = Counter(
            'seating_notifier_lagged_subscribers_total',
            'Subscribers closed because their buffer was full',
        )


seating_metrics = SeatingMetrics()
