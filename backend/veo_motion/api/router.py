from __future__ import annotations
"""Master API router: mounts all sub-routers."""

from fastapi import APIRouter

from veo_motion.api.credentials import router as credentials_router
from veo_motion.api.generation import router as generation_router

api_router = APIRouter(prefix="/api", redirect_slashes=False)

api_router.include_router(credentials_router, prefix="/credential", tags=["Credential"])
api_router.include_router(generation_router, prefix="/generation", tags=["Generation"])
