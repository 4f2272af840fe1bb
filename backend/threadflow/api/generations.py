from __future__ import annotations
"""Generation API — runs the full workflow for the signed-in session."""

from fastapi import APIRouter, Depends

from threadflow.schemas.generation import GenerationRequest, GenerationResponse
from threadflow.services.auth import get_session_context
from threadflow.services.generation_workflow import (
    GenerationWorkflow,
    get_generation_workflow,
)
from threadflow.services.sessions import SessionContext

router = APIRouter()


@router.post("/", response_model=GenerationResponse, status_code=201)
async def create_generation(
    data: GenerationRequest,
    ctx: SessionContext = Depends(get_session_context),
    workflow: GenerationWorkflow = Depends(get_generation_workflow),
):
    """Check credits, generate, save the project, then debit one credit.

    Errors surface as ``{"detail": message}`` through the app's
    ThreadFlowError handler.
    """
    outcome = await workflow.run(ctx, data.thread_content, data.video_vibe, timeout=data.timeout)
    return GenerationResponse(
        request_id=outcome.request_id,
        project_id=outcome.project_id,
        video_vibe=outcome.vibe,
        scenes=outcome.script.scenes,
        credits_remaining=outcome.credits_remaining,
        accounting_ok=outcome.accounting_ok,
    )
