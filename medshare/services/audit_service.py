# medshare/services/audit_service.py
"""
Append-only audit trail.

Writes are best-effort, like notifications: a failure is logged and the
primary operation continues.
"""

import json
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medshare.core.actor import Actor, SystemActor, UserActor
from medshare.core.config import get_settings
from medshare.models.audit_entry import AuditEntry

logger = logging.getLogger(__name__)


def record(
    db: Session,
    *,
    actor: Actor,
    action: str,
    details: str | None = None,
    resource_type: str | None = None,
    resource_id: UUID | str | None = None,
    metadata: dict | None = None,
    organization_id: UUID | None = None,
) -> Optional[AuditEntry]:
    """Write an audit entry in a SAVEPOINT of the caller's transaction."""
    if not get_settings().audit_enabled:
        return None

    try:
        with db.begin_nested():
            entry = AuditEntry(
                actor_type=actor.actor_type,
                actor_user_id=actor.user_id if isinstance(actor, UserActor) else None,
                actor_subsystem=actor.subsystem if isinstance(actor, SystemActor) else None,
                organization_id=organization_id,
                action=action,
                details=details[:1000] if details else None,
                resource_type=resource_type,
                resource_id=str(resource_id) if resource_id is not None else None,
                metadata_json=json.dumps(metadata, default=str) if metadata else None,
            )
            db.add(entry)
            db.flush()
            return entry

    except SQLAlchemyError as e:
        logger.warning(f"[AUDIT ERROR] Failed to record '{action}': {e}", exc_info=True)
        return None
    except Exception as e:
        logger.warning(f"[AUDIT ERROR] Failed to record '{action}': {e}", exc_info=True)
        return None


def list_audit_entries(
    db: Session,
    *,
    actor_user_id: UUID | None = None,
    action: str | None = None,
    resource_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[AuditEntry]:
    query = db.query(AuditEntry)

    if actor_user_id:
        query = query.filter(AuditEntry.actor_user_id == actor_user_id)
    if action:
        query = query.filter(AuditEntry.action == action)
    if resource_type:
        query = query.filter(AuditEntry.resource_type == resource_type)
    if start:
        query = query.filter(AuditEntry.created_at >= start)
    if end:
        query = query.filter(AuditEntry.created_at <= end)

    return query.order_by(AuditEntry.created_at.desc()).offset(offset).limit(limit).all()


def list_organization_activity(db: Session, *, organization_id: UUID, limit: int = 10) -> list[AuditEntry]:
    """Recent actions taken on behalf of a hospital (user and system actors)."""
    return (
        db.query(AuditEntry)
        .filter(AuditEntry.organization_id == organization_id)
        .order_by(AuditEntry.created_at.desc())
        .limit(limit)
        .all()
    )
