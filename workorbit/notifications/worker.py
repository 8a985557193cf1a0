"""
Notification worker: drains the Redis notification queue into stored notifications.

Run with ``python -m workorbit.notifications.worker``.
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from workorbit import models  # noqa: F401  (registers every mapper)
from workorbit.core.config import settings
from workorbit.core.database import SessionLocal
from workorbit.core.logging_config import init_logging
from workorbit.core.redis_service import RedisQueueService, redis_service
from workorbit.notifications.models import Notification
from workorbit.organizations.models import Organization

logger = logging.getLogger(__name__)


class NotificationWorker:
    def __init__(self, db: Session, queue: Optional[RedisQueueService] = None, queue_key: Optional[str] = None):
        self.db = db
        self.queue = queue or redis_service
        self.queue_key = queue_key or settings.notification_queue_key

    def _resolve_recipient(self, event: Dict[str, Any]) -> Optional[uuid.UUID]:
        """Explicit recipient, else the admin owning the event's organization."""
        try:
            if event.get("recipient_id"):
                return uuid.UUID(event["recipient_id"])
            if event.get("organization_id"):
                organization_id = uuid.UUID(event["organization_id"])
                admin_id = self.db.query(Organization.admin_id).filter(
                    Organization.id == organization_id
                ).scalar()
                return admin_id
        except (ValueError, TypeError) as e:
            logger.error(f"Malformed notification addressing: {str(e)}")
        return None

    def _build_notification(self, event: Dict[str, Any]) -> Optional[Notification]:
        recipient_id = self._resolve_recipient(event)
        if recipient_id is None:
            logger.warning(f"Dropping notification without recipient: {event.get('type')}")
            return None

        organization_id = event.get("organization_id")
        return Notification(
            organization_id=uuid.UUID(organization_id) if organization_id else None,
            recipient_id=recipient_id,
            type=event.get("type", "unknown"),
            category=event.get("category", "general"),
            priority=event.get("priority", "NORMAL"),
            title=event.get("title", ""),
            message=event.get("message", ""),
            data=event.get("data") or {}
        )

    def _requeue(self, events):
        for event in events:
            if not self.queue.enqueue(self.queue_key, event):
                logger.error(f"Lost notification, re-queue failed: {event}")

    def process_batch(self, max_items: Optional[int] = None) -> int:
        """Store one batch of queued events; returns how many were stored.

        Events that cannot be stored on their own (bad addressing, constraint
        violations) are dropped one by one. A database failure that is not
        specific to a row rolls the batch back and puts it back on the queue.
        """
        events = self.queue.dequeue_batch(self.queue_key, max_items or settings.notification_worker_batch_size)
        if not events:
            return 0

        stored = []
        for index, event in enumerate(events):
            try:
                notification = self._build_notification(event)
            except (ValueError, TypeError, AttributeError) as e:
                logger.error(f"Dropping malformed notification event: {str(e)}")
                continue
            if notification is None:
                continue

            try:
                with self.db.begin_nested():
                    self.db.add(notification)
                    self.db.flush()
            except IntegrityError as e:
                logger.error(f"Dropping notification {event.get('type')} rejected by the database: {str(e.orig)}")
                continue
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Failed to store notifications, re-queueing batch: {str(e)}")
                self._requeue(stored + events[index:])
                return 0
            stored.append(event)

        if not stored:
            return 0

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store {len(stored)} notifications, re-queueing: {str(e)}")
            self._requeue(stored)
            return 0

        logger.info(f"Stored {len(stored)} notifications")
        return len(stored)

    def run_forever(self, poll_seconds: Optional[int] = None):
        poll_seconds = poll_seconds or settings.notification_worker_poll_seconds
        logger.info(f"Notification worker listening on {self.queue_key}")
        while True:
            if self.process_batch() == 0:
                time.sleep(poll_seconds)


def main():
    init_logging(settings.log_level, settings.log_file)
    if not redis_service.is_available():
        logger.error("Redis is not available, notification worker cannot start")
        raise SystemExit(1)

    db = SessionLocal()
    try:
        NotificationWorker(db).run_forever()
    except KeyboardInterrupt:
        logger.info("Notification worker stopped")
    finally:
        db.close()


if __name__ == "__main__":
    main()
