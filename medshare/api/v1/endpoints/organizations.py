# medshare/api/v1/endpoints/organizations.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from medshare.core.database import get_db
from medshare.core.org_context import OrgContext, get_org_context
from medshare.models.organization import Organization
from medshare.schemas.organization import OrganizationOption

router = APIRouter()


@router.get("/sharing-targets", response_model=list[OrganizationOption], tags=["organizations"])
def list_sharing_targets(
    search: Optional[str] = Query(None, description="Search by hospital name or code"),
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
) -> list[OrganizationOption]:
    """
    Hospitals the caller can request records from (excludes the caller's own).
    """
    query = db.query(Organization).filter(Organization.id != ctx.organization.id)

    if search:
        search_term = f"%{search.strip()}%"
        query = query.filter(
            Organization.name.ilike(search_term) | Organization.code.ilike(search_term)
        )

    organizations = query.order_by(Organization.name.asc()).limit(50).all()
    return [OrganizationOption.model_validate(o) for o in organizations]
