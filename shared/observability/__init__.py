from .setup import setup_observability
from .metrics import (
    cleaning_order_transitions_total,
    cleaning_order_lock_wait_seconds,
    cleaning_notifications_total,
    cleaning_notification_push_total,
)
