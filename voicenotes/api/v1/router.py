from fastapi import APIRouter

from voicenotes.api.v1.endpoints import (
    process_endpoints,
    recording_endpoints,
    upload_endpoints,
)

api_router = APIRouter()

api_router.include_router(upload_endpoints.router, tags=["upload"])
api_router.include_router(process_endpoints.router, tags=["processing"])
api_router.include_router(recording_endpoints.router, tags=["recordings"])
