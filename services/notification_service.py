from dataclasses import dataclass
from datetime import datetime
from typing import List

from core.retry import retry_reads, storage_errors
from models.models import Notification, as_utc, utcnow
from services.user_service import require_user


@dataclass(frozen=True)
class NotificationEntry:
    message: str
    timestamp: datetime


class NotificationService:
    """Append-only per-user notification log."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @staticmethod
    def append(session, user_id: str, message: str) -> Notification:
        """Add a notification inside the caller's transaction."""
        notification = Notification(user_id=user_id, message=message, created_at=utcnow())
        session.add(notification)
        return notification

    @retry_reads
    def list_notifications(self, user_id: str) -> List[NotificationEntry]:
        """Notifications for a user, oldest first."""
        with storage_errors("list_notifications"), self.session_factory() as session:
            user = require_user(session, user_id)
            rows = (
                session.query(Notification)
                .filter(Notification.user_id == user.id)
                .order_by(Notification.id)
                .all()
            )
            return [NotificationEntry(message=row.message, timestamp=as_utc(row.created_at)) for row in rows]
