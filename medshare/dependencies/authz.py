# medshare/dependencies/authz.py
from fastapi import Depends, HTTPException, status

from medshare.core.org_context import OrgContext, get_org_context


def require_org_admin():
    """
    Dependency factory for hospital-admin-only endpoints.

    Usage:

    @router.get("/activity/organization")
    def organization_activity(ctx: OrgContext = Depends(require_org_admin())):
        ...

    Returns the OrgContext if the caller is an admin of their hospital.
    Whether the admin may act on a specific request is checked by the services.
    """

    def dependency(ctx: OrgContext = Depends(get_org_context)) -> OrgContext:
        if not ctx.user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Hospital admin role required.",
            )
        return ctx

    return dependency
