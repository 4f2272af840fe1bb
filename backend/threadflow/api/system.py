"""System status endpoint — checks health of the services generation depends on."""

from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from threadflow.config import get_settings
from threadflow.database import get_db
from threadflow.prompts import PromptManager

router = APIRouter()


@router.get("/check-llm")
async def check_llm():
    """Pre-check the completion service key before generating."""
    from threadflow.services.llm_client import check_llm_health
    return await check_llm_health()


async def _check_database(db: AsyncSession) -> dict[str, Any]:
    t0 = time.time()
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        return {"status": "error", "error": str(e)}
    return {"status": "ok", "latency_ms": round((time.time() - t0) * 1000, 1)}


@router.get("/status")
async def system_status(db: AsyncSession = Depends(get_db)):
    """Aggregate status: database reachability and configuration completeness."""
    settings = get_settings()
    database = await _check_database(db)
    config = {
        "completion_key": bool(settings.OPENAI_API_KEY),
        "auth_provider": bool(settings.AUTH_URL),
        "remote_gateway": bool(settings.GATEWAY_URL),
        "model": settings.SCRIPT_MODEL,
        "vibes": settings.vibe_list,
        "vibes_with_notes": PromptManager.vibes_with_notes(),
    }
    ok = database["status"] == "ok" and config["completion_key"] and config["auth_provider"]
    return {"status": "ok" if ok else "degraded", "database": database, "config": config}
