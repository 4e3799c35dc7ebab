from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from medshare.core.database import get_db
from medshare.models.organization import Organization
from medshare.models.user import User


class OrgContext:
    """
    Wraps the caller's hospital and user for organization-scoped operations.

    - organization: row from organizations
    - user:         the calling staff member
    """

    def __init__(self, organization: Organization, user: User):
        self.organization = organization
        self.user = user


def get_current_user(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the caller from the X-User-Id header.

    Credentials are checked by the gateway in front of this service; here we
    only map the forwarded id to an active user row.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header.",
        )

    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid X-User-Id header.",
        )

    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown or inactive user.",
        )
    return user


def get_org_context(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> OrgContext:
    organization = db.get(Organization, current_user.organization_id)
    if not organization:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Hospital not found.",
        )
    return OrgContext(organization=organization, user=current_user)
