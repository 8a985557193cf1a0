"""
Outbound notification events.

Events are pushed onto a Redis list after the originating transaction has
committed and are turned into stored notifications by the worker. Nothing
here ever raises: a lost notification must not fail the request that
produced it.
"""

import logging
from typing import Any, Dict, Optional

from workorbit.core.config import settings
from workorbit.core.database import utcnow
from workorbit.core.redis_service import RedisQueueService, redis_service

logger = logging.getLogger(__name__)

CATEGORY_EMPLOYEE = "employee"
CATEGORY_SECURITY = "security"


class NotificationDispatcher:
    def __init__(self, queue: Optional[RedisQueueService] = None, queue_key: Optional[str] = None):
        self.queue = queue or redis_service
        self.queue_key = queue_key or settings.notification_queue_key

    def publish(
        self,
        event_type: str,
        organization_id: Optional[str],
        title: str,
        message: str,
        category: str,
        data: Optional[Dict[str, Any]] = None,
        recipient_id: Optional[str] = None,
        priority: str = "NORMAL"
    ) -> bool:
        event = {
            "type": event_type,
            "organization_id": str(organization_id) if organization_id else None,
            "recipient_id": str(recipient_id) if recipient_id else None,
            "title": title,
            "message": message,
            "category": category,
            "priority": priority,
            "data": data or {},
            "emitted_at": utcnow().isoformat(),
        }

        try:
            delivered = self.queue.enqueue(self.queue_key, event)
        except Exception as e:
            logger.error(f"Notification dispatch failed for {event_type}: {str(e)}")
            return False

        if delivered:
            logger.info(f"Notification queued: {event_type}", extra={"event_type": event_type})
        else:
            logger.warning(f"Notification not queued: {event_type}", extra={"event_type": event_type})
        return delivered

    def notify_employee_registered(self, organization_id, employee_id, name, email, role, department=None) -> bool:
        return self.publish(
            "employee_registered",
            organization_id,
            title="New Employee Registered",
            message=f"{name} joined as {role}" + (f" in {department}" if department else ""),
            category=CATEGORY_EMPLOYEE,
            data={
                "employee_id": str(employee_id),
                "name": name,
                "email": email,
                "role": role,
                "department": department,
            },
            priority="HIGH"
        )

    def notify_request_approved(self, organization_id, user_id, request_id, role, approved_by_name) -> bool:
        return self.publish(
            "request_approved",
            organization_id,
            title="Join Request Approved",
            message=f"Your request to join as {role} was approved by {approved_by_name}",
            category=CATEGORY_EMPLOYEE,
            data={"request_id": str(request_id), "role": role},
            recipient_id=user_id
        )

    def notify_request_rejected(self, organization_id, user_id, request_id, reason) -> bool:
        return self.publish(
            "request_rejected",
            organization_id,
            title="Join Request Rejected",
            message=reason,
            category=CATEGORY_EMPLOYEE,
            data={"request_id": str(request_id)},
            recipient_id=user_id
        )

    def notify_failed_login_attempts(self, organization_id, email, attempt_count, ip_address=None) -> bool:
        return self.publish(
            "failed_login_attempts",
            organization_id,
            title="Security Alert: Failed Login Attempts",
            message=f"{attempt_count} failed login attempts for {email} from {ip_address or 'Unknown'}",
            category=CATEGORY_SECURITY,
            data={"email": email, "attempt_count": attempt_count, "ip_address": ip_address},
            priority="CRITICAL"
        )

    def notify_account_lockout(self, organization_id, user_id, email, lockout_minutes, unlock_time) -> bool:
        return self.publish(
            "account_lockout",
            organization_id,
            title="Account Locked",
            message=f"{email} locked for {lockout_minutes} minutes (Unlock: {unlock_time})",
            category=CATEGORY_SECURITY,
            data={
                "user_id": str(user_id),
                "email": email,
                "lockout_minutes": lockout_minutes,
                "unlock_time": str(unlock_time),
            },
            priority="HIGH"
        )


notification_dispatcher = NotificationDispatcher()
