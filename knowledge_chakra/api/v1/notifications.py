"""Notification inbox API."""

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from knowledge_chakra.api.v1.auth import get_current_user, require_admin
from knowledge_chakra.db import get_db
from knowledge_chakra.exceptions import ForbiddenError, NotFoundError
from knowledge_chakra.models import Notification, NotificationType, User

router = APIRouter()


# === Schemas ===

class NotificationCreate(BaseModel):
    user_id: int
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    type: NotificationType
    resource_id: Optional[str] = None
    link: Optional[str] = None


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: NotificationType
    read: bool
    link: Optional[str]
    resource_id: Optional[str]
    created_at: datetime
    read_at: Optional[datetime]

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    total: int
    unread_count: int
    page: int
    total_pages: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MessageResponse(BaseModel):
    message: str
    count: int = 0


# === Helpers ===

def _unread_count(db: Session, user_id: int) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read.is_(False))
        .count()
    )


def _get_own_notification(db: Session, notification_id: int, user: User) -> Notification:
    notification = db.get(Notification, notification_id)
    if notification is None:
        raise NotFoundError("Notification", notification_id)
    if notification.user_id != user.id:
        raise ForbiddenError("Not authorized to access this notification")
    return notification


# === API endpoints ===

@router.get("/", response_model=NotificationListResponse)
async def list_my_notifications(
    page: int = 1,
    limit: int = 20,
    read: Optional[bool] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """The caller's notifications, newest first."""
    page = max(page, 1)
    limit = max(limit, 1)
    query = db.query(Notification).filter(Notification.user_id == current_user.id)
    if read is not None:
        query = query.filter(Notification.read.is_(read))

    total = query.count()
    notifications = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "notifications": notifications,
        "total": total,
        "unread_count": _unread_count(db, current_user.id),
        "page": page,
        "total_pages": (total + limit - 1) // limit,
    }


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {"unread_count": _unread_count(db, current_user.id)}


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_as_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    count = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id, Notification.read.is_(False))
        .update(
            {Notification.read: True, Notification.read_at: datetime.now(timezone.utc)},
            synchronize_session=False,
        )
    )
    db.commit()
    return {"message": "All notifications marked as read", "count": count}


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_as_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notification = _get_own_notification(db, notification_id, current_user)
    if not notification.read:
        notification.read = True
        notification.read_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)
    return notification


@router.delete("/read", response_model=MessageResponse)
async def delete_read_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    count = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id, Notification.read.is_(True))
        .delete(synchronize_session=False)
    )
    db.commit()
    return {"message": "All read notifications deleted", "count": count}


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notification = _get_own_notification(db, notification_id, current_user)
    db.delete(notification)
    db.commit()


@router.post("/", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(
    data: NotificationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Send a notification to any user (admin only)."""
    if db.get(User, data.user_id) is None:
        raise NotFoundError("User", data.user_id)
    notification = Notification(**data.model_dump(), read=False)
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification
