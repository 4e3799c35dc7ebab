# medshare/api/v1/router.py
from fastapi import APIRouter

from medshare.api.v1.endpoints import (
    activity,
    notifications,
    organizations,
    record_requests,
    shared_records,
)

api_router = APIRouter()

api_router.include_router(organizations.router, prefix="/organizations", tags=["organizations"])
api_router.include_router(record_requests.router, prefix="/record-requests", tags=["record-requests"])
api_router.include_router(shared_records.router, prefix="/shared-records", tags=["shared-records"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(activity.router, prefix="/activity", tags=["activity"])
