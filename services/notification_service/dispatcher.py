"""
Outbox dispatcher.

Rows move pending -> sending -> sent | failed. The pending -> sending step is
a conditional UPDATE, so when several dispatchers drain the same table each
row is claimed (and mailed) at most once. Failed rows are not retried.
"""
import asyncio
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import select, update

from shared.config.database import Database, database
from shared.config.settings import NOTIFIER_MODE, NOTIFIER_POLL_SECONDS
from shared.errors import NotificationError
from shared.observability import ecomm_notifications_total
from .mailer import SMTPMailer, build_mailer
from .models import NotificationOutbox
from .templates import RENDERERS

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        database: Database,
        mailer: SMTPMailer,
        poll_seconds: float = NOTIFIER_POLL_SECONDS,
        batch_size: int = 20,
    ):
        self.database = database
        self.mailer = mailer
        self.poll_seconds = poll_seconds
        self.batch_size = batch_size
        self._wakeup = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    async def _claim(self, db, row_id: int) -> bool:
        result = await db.execute(
            update(NotificationOutbox)
            .where(NotificationOutbox.id == row_id, NotificationOutbox.status == "pending")
            .values(status="sending", attempts=NotificationOutbox.attempts + 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount == 1

    async def _deliver(self, row: NotificationOutbox) -> Optional[str]:
        """Send one row. Returns the error text, or None on success."""
        renderer = RENDERERS.get(row.kind)
        if renderer is None:
            return f"Unknown notification kind: {row.kind}"
        try:
            await self.mailer.send(row.recipient, row.subject, renderer(row.payload))
        except NotificationError as e:
            return e.message
        except Exception as e:
            logger.exception("notification_send_crashed", kind=row.kind, outbox_id=row.id)
            return f"{type(e).__name__}: {e}"
        return None

    async def drain_once(self) -> int:
        """Process every currently pending row once. Returns how many were sent."""
        sent = 0
        async with self.database.session() as db:
            result = await db.execute(
                select(NotificationOutbox.id)
                .where(NotificationOutbox.status == "pending")
                .order_by(NotificationOutbox.id)
                .limit(self.batch_size)
            )
            for row_id in result.scalars().all():
                if not await self._claim(db, row_id):
                    continue

                row = await db.get(NotificationOutbox, row_id, populate_existing=True)
                error = await self._deliver(row)
                if error is None:
                    row.status = "sent"
                    row.sent_at = datetime.now(timezone.utc)
                    row.last_error = None
                    sent += 1
                    logger.info("notification_sent", kind=row.kind, outbox_id=row.id, recipient=row.recipient)
                else:
                    row.status = "failed"
                    row.last_error = error
                    logger.error("notification_failed", kind=row.kind, outbox_id=row.id, error=error)
                ecomm_notifications_total.labels(kind=row.kind, status=row.status).inc()
                await db.commit()
        return sent

    def wake(self) -> None:
        """Nudge the inline loop after a checkout commits."""
        if NOTIFIER_MODE == "inline":
            self._wakeup.set()

    async def run_forever(self):
        logger.info("notification_dispatcher_started", mode=NOTIFIER_MODE, poll_seconds=self.poll_seconds)
        while True:
            try:
                await self.drain_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                # Keep the loop alive; the rows stay pending for the next pass
                logger.exception("notification_drain_failed")
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.poll_seconds)
            except asyncio.TimeoutError:
                pass
            self._wakeup.clear()

    def start(self):
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever())
        return self._task

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("notification_dispatcher_stopped")


dispatcher = NotificationDispatcher(database, build_mailer())


def get_notification_dispatcher() -> NotificationDispatcher:
    return dispatcher
