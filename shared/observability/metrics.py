from prometheus_client import Counter, Histogram

# Business Metrics
ecomm_checkout_total = Counter(
    "ecomm_checkout_total",
    "Total checkouts processed",
    ["status"] # Labels: 'success', 'failed'
)

ecomm_checkout_duration_seconds = Histogram(
    "ecomm_checkout_duration_seconds",
    "Checkout duration in seconds"
)

ecomm_checkout_step_failures_total = Counter(
    "ecomm_checkout_step_failures_total",
    "Checkout pipeline failures by step",
    ["step"] # Labels: 'validate_request', 'check_stock', 'persist_order', etc.
)

ecomm_stock_rejections_total = Counter(
    "ecomm_stock_rejections_total",
    "Order lines rejected for insufficient stock"
)

ecomm_notifications_total = Counter(
    "ecomm_notifications_total",
    "Outbox notifications processed",
    ["kind", "status"] # Labels: status='sent', 'failed', 'skipped'
)

ecomm_payment_webhooks_total = Counter(
    "ecomm_payment_webhooks_total",
    "Payment gateway webhook events received",
    ["event"]
)
