# medshare/api/v1/endpoints/activity.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from medshare.core.database import get_db
from medshare.core.org_context import OrgContext, get_current_user
from medshare.dependencies.authz import require_org_admin
from medshare.models.user import User
from medshare.schemas.audit import AuditEntryResponse
from medshare.services import audit_service

router = APIRouter()


@router.get("", response_model=list[AuditEntryResponse], tags=["activity"])
def my_activity(
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[AuditEntryResponse]:
    """Actions taken by the caller, newest first."""
    entries = audit_service.list_audit_entries(
        db,
        actor_user_id=current_user.id,
        action=action,
        resource_type=resource_type,
        start=start_date,
        end=end_date,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return [AuditEntryResponse.model_validate(e) for e in entries]


@router.get("/organization", response_model=list[AuditEntryResponse], tags=["activity"])
def organization_activity(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(require_org_admin()),
) -> list[AuditEntryResponse]:
    """Recent activity of the caller's hospital, including system actions."""
    entries = audit_service.list_organization_activity(db, organization_id=ctx.organization.id, limit=limit)
    return [AuditEntryResponse.model_validate(e) for e in entries]
