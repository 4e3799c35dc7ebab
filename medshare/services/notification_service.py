import json
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medshare.core.config import get_settings
from medshare.core.exceptions import NotFoundError, StorageError
from medshare.models.notification import Notification, NotificationType
from medshare.models.user import User

logger = logging.getLogger(__name__)


def notify(
    db: Session,
    *,
    user_id: UUID,
    title: str,
    message: str,
    type: NotificationType | str,
    action_url: str | None = None,
    metadata: dict | None = None,
) -> Optional[Notification]:
    """
    Write an in-app notification. Must never break the main flow.

    The row is written in a SAVEPOINT inside the caller's transaction, so it
    commits together with the primary change and a failure here only rolls
    back the notification itself.
    """
    if not get_settings().notifications_enabled:
        logger.info(f"Notifications disabled, skipping '{title}' for user {user_id}")
        return None

    log_message = message or ""
    if len(log_message) > 2000:
        log_message = log_message[:1997] + "..."

    try:
        with db.begin_nested():
            notif = Notification(
                user_id=user_id,
                title=title,
                message=log_message,
                type=type.value if isinstance(type, NotificationType) else str(type),
                action_url=action_url,
                metadata_json=json.dumps(metadata, default=str) if metadata else None,
                is_read=False,
            )
            db.add(notif)
            db.flush()
            return notif

    except SQLAlchemyError as e:
        logger.warning(f"[NOTIFICATION ERROR] Failed to notify user {user_id}: {e}", exc_info=True)
        return None
    except Exception as e:
        logger.warning(f"[NOTIFICATION ERROR] Failed to notify user {user_id}: {e}", exc_info=True)
        return None


def notify_organization_admins(
    db: Session,
    *,
    organization_id: UUID,
    title: str,
    message: str,
    type: NotificationType | str,
    action_url: str | None = None,
    metadata: dict | None = None,
) -> list[Notification]:
    """
    Notify every active admin of an organization (the reviewers of incoming requests).
    Best-effort: a failed lookup returns an empty list.
    """
    try:
        admins = (
            db.query(User)
            .filter(
                User.organization_id == organization_id,
                User.is_admin.is_(True),
                User.is_active.is_(True),
            )
            .all()
        )
    except SQLAlchemyError as e:
        logger.warning(f"[NOTIFICATION ERROR] Could not load admins of {organization_id}: {e}", exc_info=True)
        return []

    sent = []
    for admin in admins:
        notif = notify(
            db,
            user_id=admin.id,
            title=title,
            message=message,
            type=type,
            action_url=action_url,
            metadata=metadata,
        )
        if notif is not None:
            sent.append(notif)
    return sent


def list_notifications(
    db: Session,
    *,
    user_id: UUID,
    unread_only: bool = False,
    type: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Notification], int]:
    """
    Notifications for a user, newest first, with the total count for paging.
    """
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    if type:
        query = query.filter(Notification.type == type)

    total = query.count()
    items = (
        query.order_by(Notification.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def count_unread(db: Session, *, user_id: UUID) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def mark_read(db: Session, *, notification_id: UUID, user_id: UUID) -> Notification:
    """Mark one of the user's notifications as read."""
    notif = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if not notif:
        raise NotFoundError("Notification not found.")

    try:
        notif.is_read = True
        db.commit()
        db.refresh(notif)
        return notif
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to mark notification %s as read", notification_id)
        raise StorageError("Failed to mark notification as read.") from e


def mark_all_read(db: Session, *, user_id: UUID) -> int:
    """Mark all unread notifications of a user as read. Returns how many changed."""
    try:
        updated = (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        db.commit()
        return updated
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to mark notifications as read for user %s", user_id)
        raise StorageError("Failed to mark all notifications as read.") from e
