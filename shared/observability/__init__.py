from .setup import setup_observability, configure_logging
from .metrics import (
    ecomm_checkout_total,
    ecomm_checkout_duration_seconds,
    ecomm_checkout_step_failures_total,
    ecomm_stock_rejections_total,
    ecomm_notifications_total,
    ecomm_payment_webhooks_total,
)
