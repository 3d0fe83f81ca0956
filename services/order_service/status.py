from shared.errors import ValidationError

PENDING = "pending"
PROCESSING = "processing"
CONFIRMED = "confirmed"
SHIPPED = "shipped"
DELIVERED = "delivered"
CANCELLED = "cancelled"

ORDER_TRANSITIONS = {
    PENDING: {PROCESSING, CONFIRMED, CANCELLED},
    PROCESSING: {CONFIRMED, SHIPPED, CANCELLED},
    CONFIRMED: {PROCESSING, SHIPPED, CANCELLED},
    SHIPPED: {DELIVERED},
    DELIVERED: set(),
    CANCELLED: set(),
}

PAYMENT_AWAITING = "awaiting"
PAYMENT_PROCESSING = "processing"
PAYMENT_PAID = "paid"
PAYMENT_FAILED = "failed"



def can_transition(old: str, new: str) -> bool:
    return old == new or new in ORDER_TRANSITIONS.get(old, set())


def ensure_transition(old: str, new: str) -> None:
    if new not in ORDER_TRANSITIONS:
        raise ValidationError(f"Unknown status: {new}")
    if not can_transition(old, new):
        raise ValidationError(f"Invalid status transition: {old} -> {new}")
