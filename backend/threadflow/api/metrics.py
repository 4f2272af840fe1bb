from __future__ import annotations
"""Metrics API — generation workflow usage and accounting failures."""

from fastapi import APIRouter, Depends

from threadflow.services.generation_workflow import (
    GenerationWorkflow,
    get_generation_workflow,
)

router = APIRouter()


@router.get("/generation")
async def generation_metrics(
    workflow: GenerationWorkflow = Depends(get_generation_workflow),
):
    """Return usage statistics for the generation workflow."""
    return {"services": [workflow.get_metrics()]}
