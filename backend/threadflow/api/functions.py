from __future__ import annotations
"""generate-script function — the gateway's public HTTP contract.

POST /functions/v1/generate-script
    body    {"thread_content": str, "video_vibe": str}
    200     {"scenes": [{"id", "dialogue", "visualInstruction", "duration"}, ...]}
    500     {"error": str}    (every failure, including bad input)
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from threadflow.errors import ThreadFlowError
from threadflow.schemas.script import GatewayError, GenerateScriptRequest
from threadflow.services.script_gateway import ScriptGateway

logger = logging.getLogger(__name__)

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def get_script_gateway() -> ScriptGateway:
    return ScriptGateway()


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content=GatewayError(error=message).model_dump(), headers=CORS_HEADERS)


@router.options("/generate-script")
async def generate_script_preflight():
    """CORS preflight for clients that send a bare OPTIONS."""
    return Response(status_code=204, headers=CORS_HEADERS)


@router.post("/generate-script")
async def generate_script(
    request: Request,
    gateway: ScriptGateway = Depends(get_script_gateway),
):
    """Generate a scene-by-scene script for a thread."""
    try:
        payload = GenerateScriptRequest.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        logger.warning("Rejected generate-script body: %s", e)
        return _error("Request body must be JSON with thread_content and video_vibe")

    try:
        script = await gateway.generate(payload.thread_content, payload.video_vibe)
    except ThreadFlowError as e:
        logger.error("Error generating script: %s", e.message)
        return _error(e.message)
    except Exception:
        logger.exception("Unexpected error generating script")
        return _error("Failed to generate script")

    return JSONResponse(content=script.model_dump(), headers=CORS_HEADERS)
