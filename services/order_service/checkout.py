from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from shared.observability import ecomm_checkout_step_failures_total

logger = structlog.get_logger(__name__)


@dataclass
class CheckoutContext:
    """State handed from step to step during one checkout."""
    request: Any
    user: Optional[Any] = None
    account: Optional[Any] = None
    stock_requests: List[Any] = field(default_factory=list)
    products: Dict[str, Any] = field(default_factory=dict)
    quote: Optional[Any] = None
    order: Optional[Any] = None


class CheckoutStep:
    def __init__(self, name, action):
        self.name = name
        self.action = action


class CheckoutPipeline:
    """
    Runs checkout steps in order. There are no compensations: every write
    happens inside the single persist step's transaction, so a failure
    anywhere leaves nothing behind.
    """

    def __init__(self):
        self.steps: List[CheckoutStep] = []

    def add_step(self, name: str, action):
        """Builder pattern to append a step."""
        self.steps.append(CheckoutStep(name, action))
        return self

    async def execute(self, ctx: CheckoutContext) -> CheckoutContext:
        for step in self.steps:
            try:
                await step.action(ctx)
            except Exception as e:
                logger.warning("checkout_step_failed", step=step.name, error=str(e))
                ecomm_checkout_step_failures_total.labels(step=step.name).inc()
                raise
        return ctx
