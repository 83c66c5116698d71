from prometheus_client import Counter, Gauge, Histogram


class CheckoutMetrics:
    """
    Checkout Service Core Metrics Collector

    Tracks the order commit path, M-Pesa push/callback outcomes and the
    stale-order sweeper so oversell pressure and payment drop-off are visible.
    """

    def __init__(self):
        # ========== Order Commit Metrics ==========
        self.checkout_requests = Counter(
            'checkout_requests_total',
            'Checkout attempts by outcome',
            ['result'],  # result: success / <error_code>
        )

        self.order_commit_duration = Histogram(
            'checkout_order_commit_duration_seconds',
            'Atomic order + inventory commit duration',
            buckets=[0.005, 0.01, 0.05, 0.1, 0.2, 0.5, 1.0, 2.0, 5.0],
        )

        self.order_commit_conflicts = Counter(
            'checkout_order_commit_conflicts_total',
            'Commits rolled back because of concurrent writers',
        )

        self.tickets_claimed = Counter(
            'checkout_tickets_claimed_total',
            'Tickets taken from inventory by committed orders',
            ['listing_id'],
        )

        # ========== Payment Gateway Metrics ==========
        self.payment_initiations = Counter(
            'mpesa_payment_initiations_total',
            'STK push initiations',
            ['result', 'is_retry'],  # result: success/failure
        )

        self.payment_callbacks = Counter(
            'mpesa_payment_callbacks_total',
            'Provider callbacks by outcome',
            ['outcome'],  # completed/failed/ignored/unknown_request/rejected
        )

        self.gateway_request_duration = Histogram(
            'mpesa_gateway_request_duration_seconds',
            'Daraja API call duration',
            ['operation'],  # token/stk_push/stk_query
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 15.0],
        )

        # ========== Sweeper Metrics ==========
        self.stale_orders_expired = Counter(
            'checkout_stale_orders_expired_total',
            'Orders expired by the sweeper with their inventory released',
        )

        self.stale_orders_reconciled = Counter(
            'checkout_stale_orders_reconciled_total',
            'Stuck orders resolved by querying the gateway',
            ['outcome'],
        )

        self.last_sweep_timestamp = Gauge(
            'checkout_last_sweep_timestamp_seconds', 'Unix time of the last completed sweep'
        )

    # ========== Helper Methods ==========

    def record_checkout(self, *, result: str):
        self.checkout_requests.labels(result=result).inc()

    def record_payment_initiation(self, *, success: bool, is_retry: bool):
        self.payment_initiations.labels(
            result='success' if success else 'failure', is_retry=str(is_retry).lower()
        ).inc()

    def record_payment_callback(self, *, outcome: str):
        self.payment_callbacks.labels(outcome=outcome).inc()

    def record_tickets_claimed(self, *, listing_id: str, count: int):
        self.tickets_claimed.labels(listing_id=listing_id).inc(count)


# Global metrics instance
metrics = CheckoutMetrics()
