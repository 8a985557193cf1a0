from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import datetime
from uuid import UUID


class NotificationResponse(BaseModel):
    id: UUID
    organization_id: Optional[UUID]
    type: str
    category: str
    priority: Optional[str]
    title: str
    message: str
    data: Optional[Dict[str, Any]]
    is_read: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class NotificationListEnvelope(BaseModel):
    success: bool = True
    data: List[NotificationResponse]
    unread_count: int


class NotificationEnvelope(BaseModel):
    success: bool = True
    data: NotificationResponse
