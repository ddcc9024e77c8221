from prometheus_client import Counter, Histogram

# Business Metrics
cleaning_order_transitions_total = Counter(
    "cleaning_order_transitions_total",
    "Order lifecycle commands processed",
    ["action", "outcome"] # outcome: 'committed', 'error', or the rejection kind
)

cleaning_order_lock_wait_seconds = Histogram(
    "cleaning_order_lock_wait_seconds",
    "Time spent waiting for the per-order lock"
)

cleaning_notifications_total = Counter(
    "cleaning_notifications_total",
    "Lifecycle notifications handed to the emitter",
    ["outcome"] # Labels: 'emitted', 'failed'
)

cleaning_notification_push_total = Counter(
    "cleaning_notification_push_total",
    "Push webhook deliveries",
    ["outcome"] # Labels: 'sent', 'failed'
)
