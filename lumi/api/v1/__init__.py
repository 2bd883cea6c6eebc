"""
API v1 router aggregation.
"""
from fastapi import APIRouter
from lumi.api.v1.endpoints import (
    auth, content, exercises, progress, settings, together
)

api_router = APIRouter()

# Include all endpoint routers
# Note: Each router already defines its own prefix, so we don't add another one here
api_router.include_router(auth.router)
api_router.include_router(content.router)
api_router.include_router(exercises.router)
api_router.include_router(progress.router)
api_router.include_router(settings.router)
api_router.include_router(together.router)
