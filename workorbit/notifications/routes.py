from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from workorbit.auth.models import User
from workorbit.core.database import get_db
from workorbit.core.dependencies import get_current_user
from workorbit.core.exceptions import ResourceNotFoundError
from workorbit.core.service_base import BaseService
from workorbit.notifications.models import Notification
from workorbit.notifications.schemas import NotificationEnvelope, NotificationListEnvelope

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=NotificationListEnvelope)
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Notifications addressed to the current user, newest first."""
    query = db.query(Notification).filter(Notification.recipient_id == current_user.id)
    unread_count = query.filter(Notification.is_read.is_(False)).count()
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))

    notifications = query.order_by(Notification.created_at.desc()).limit(limit).all()
    return {"success": True, "data": notifications, "unread_count": unread_count}


@router.put("/{notification_id}/read", response_model=NotificationEnvelope)
async def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = BaseService(db)
    notification = service.get_or_404(Notification, notification_id, "Notification")
    if notification.recipient_id != current_user.id:
        raise ResourceNotFoundError("Notification", notification_id)

    with service.transaction("Failed to update notification"):
        notification.is_read = True

    db.refresh(notification)
    return {"success": True, "data": notification}
