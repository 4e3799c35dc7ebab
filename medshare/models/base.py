# medshare/models/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Organizations, users and patients are shared by every hospital; requests,
    grants, notifications and audit entries reference them across hospitals.
    """

    pass
