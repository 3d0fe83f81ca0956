"""Standalone outbox drainer: python -m services.notification_service.worker"""
import asyncio

import structlog

from shared.config.database import database
from shared.observability import configure_logging

# Register every table the outbox rows may reference
from services.auth_service import models as auth_models  # noqa: F401
from services.product_service import models as product_models  # noqa: F401
from services.order_service import models as order_models  # noqa: F401
from services.payment_service import models as payment_models  # noqa: F401
from .dispatcher import dispatcher

logger = structlog.get_logger(__name__)


async def main():
    configure_logging()
    logger.info("notification_worker_starting")
    try:
        await dispatcher.run_forever()
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
