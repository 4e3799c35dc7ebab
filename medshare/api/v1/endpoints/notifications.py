# medshare/api/v1/endpoints/notifications.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from medshare.core.database import get_db
from medshare.core.org_context import get_current_user
from medshare.models.user import User
from medshare.schemas.notification import (
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from medshare.services import notification_service

router = APIRouter()


@router.get("", response_model=NotificationListResponse, tags=["notifications"])
def list_my_notifications(
    unread_only: bool = Query(False),
    type: Optional[str] = Query(None, description="record_request, shared_records, system"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationListResponse:
    items, total = notification_service.list_notifications(
        db,
        user_id=current_user.id,
        unread_only=unread_only,
        type=type,
        limit=limit,
        offset=offset,
    )
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        total=total,
    )


@router.get("/unread-count", response_model=UnreadCountResponse, tags=["notifications"])
def unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UnreadCountResponse:
    return UnreadCountResponse(count=notification_service.count_unread(db, user_id=current_user.id))


@router.post("/read-all", tags=["notifications"])
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    updated = notification_service.mark_all_read(db, user_id=current_user.id)
    return {"updated": updated}


@router.post("/{notification_id}/read", response_model=NotificationResponse, tags=["notifications"])
def mark_notification_read(
    notification_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationResponse:
    notif = notification_service.mark_read(db, notification_id=notification_id, user_id=current_user.id)
    return NotificationResponse.model_validate(notif)
