"""Inbox endpoints for payment notifications"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from realty_gateway.api.dependencies import get_current_user
from realty_gateway.api.v1.schemas import (
    MessageResponse,
    NotificationListResponse,
    NotificationSchema,
    NotificationStatisticsResponse,
)
from realty_gateway.domain.models import CurrentUser
from realty_gateway.infrastructure.database.repositories import NotificationRepository
from realty_gateway.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/notifications", response_model=NotificationListResponse)
def list_notifications(
    is_read: Optional[bool] = Query(None),
    type: Optional[str] = Query(None, description="Notification type"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Newest-first inbox of the authenticated user"""
    notifications = NotificationRepository(db).list_for_user(
        current_user.id,
        is_read=is_read,
        notification_type=type,
        limit=limit,
    )
    return NotificationListResponse(
        notifications=[NotificationSchema.model_validate(n) for n in notifications],
        count=len(notifications),
    )


@router.get("/notifications/statistics", response_model=NotificationStatisticsResponse)
def get_notification_statistics(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return NotificationStatisticsResponse(**NotificationRepository(db).statistics(current_user.id))


@router.put("/notifications/read-all", response_model=MessageResponse)
def mark_all_notifications_read(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = NotificationRepository(db).mark_all_read(current_user.id)
    db.commit()
    return MessageResponse(message=f"{updated} notifications marked as read")


@router.put("/notifications/{notification_id}/read", response_model=NotificationSchema)
def mark_notification_read(
    notification_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    repo = NotificationRepository(db)
    notification = repo.get_for_user(notification_id, current_user.id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")

    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return NotificationSchema.model_validate(notification)


@router.delete("/notifications/{notification_id}", response_model=NotificationSchema)
def delete_notification(
    notification_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    repo = NotificationRepository(db)
    notification = repo.get_for_user(notification_id, current_user.id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")

    deleted = NotificationSchema.model_validate(notification)
    db.delete(notification)
    db.commit()
    return deleted
