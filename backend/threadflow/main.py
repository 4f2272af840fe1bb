from __future__ import annotations
"""ThreadFlow — FastAPI application entry point.

Mounts the API and function routes, configures CORS, maps ThreadFlowError
to JSON responses, and manages database/HTTP client lifecycles.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import Headers

from threadflow.api.router import api_router, functions_api_router
from threadflow.config import get_settings
from threadflow.database import close_db, init_db
from threadflow.errors import ThreadFlowError
from threadflow.services.llm_client import close_client

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type", "x-session-id"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: optional create_all on startup, close pools on shutdown."""
    logger.info("ThreadFlow starting up...")
    logger.info("Script model: %s", settings.SCRIPT_MODEL)
    if not settings.OPENAI_API_KEY and not settings.GATEWAY_URL:
        logger.warning("OPENAI_API_KEY is not set; script generation will fail")

    if settings.AUTO_CREATE_TABLES:
        await init_db()
    else:
        logger.info("Skipping init_db (schema managed by Alembic)")

    yield

    await close_client()
    await close_db()
    logger.info("ThreadFlow shut down")


class PreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose successful preflight is a bodiless 204."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            k: v for k, v in response.headers.items()
            if k not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)


app = FastAPI(
    title="ThreadFlow API",
    description="Turn social-media threads into short-video scripts",
    version="0.1.0",
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    PreflightCORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=ALLOWED_HEADERS,
)


@app.exception_handler(ThreadFlowError)
async def threadflow_error_handler(request: Request, exc: ThreadFlowError):
    if not exc.recoverable:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(api_router)
app.include_router(functions_api_router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"service": settings.APP_NAME, "status": "running"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "completion_key": bool(settings.OPENAI_API_KEY),
        "remote_gateway": bool(settings.GATEWAY_URL),
    }
