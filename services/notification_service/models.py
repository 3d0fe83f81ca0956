from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from shared.config.database import Base


class NotificationOutbox(Base):
    """
    Emails waiting to go out. Rows are written in the same transaction as the
    change they announce and drained by the dispatcher afterwards.
    """
    __tablename__ = "notification_outbox"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(String(40), nullable=False) # order_confirmation, order_shipped
    recipient = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    payload = Column(JSON, nullable=False)
    status = Column(String(20), nullable=False, default="pending", index=True) # pending, sending, sent, failed
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    sent_at = Column(DateTime(timezone=True), nullable=True)
