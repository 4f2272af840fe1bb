from __future__ import annotations
"""Master API routers — mounts all sub-routers."""

from fastapi import APIRouter

from threadflow.api.dashboard import router as dashboard_router
from threadflow.api.functions import router as functions_router
from threadflow.api.generations import router as generations_router
from threadflow.api.metrics import router as metrics_router
from threadflow.api.profile import router as profile_router
from threadflow.api.projects import router as projects_router
from threadflow.api.system import router as system_router

api_router = APIRouter(prefix="/api", redirect_slashes=False)

api_router.include_router(generations_router, prefix="/generations", tags=["Generation"])
api_router.include_router(projects_router, prefix="/projects", tags=["Projects"])
api_router.include_router(profile_router, prefix="/profile", tags=["Profile"])
api_router.include_router(dashboard_router, tags=["Dashboard"])
api_router.include_router(metrics_router, prefix="/metrics", tags=["Metrics"])
api_router.include_router(system_router, prefix="/system", tags=["System"])

# Serverless-style function surface, kept at the path the web client invokes
functions_api_router = APIRouter(prefix="/functions/v1", redirect_slashes=False)
functions_api_router.include_router(functions_router, tags=["Functions"])
