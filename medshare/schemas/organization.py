# medshare/schemas/organization.py
from uuid import UUID

from pydantic import BaseModel


class OrganizationOption(BaseModel):
    """Organization option for the sharing dropdown"""

    id: UUID
    name: str
    code: str
    contact_email: str | None = None

    class Config:
        from_attributes = True
