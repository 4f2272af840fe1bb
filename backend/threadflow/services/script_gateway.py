from __future__ import annotations
"""Script gateway — turns thread text into a Script with one completion call.

The gateway is stateless: validate, build the prompts, make exactly one
call, parse the JSON reply, renumber scenes 1..N. Nothing is retried.
"""

import asyncio
import json
import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from threadflow.config import get_settings
from threadflow.errors import (
    ConfigurationError,
    GenerationTimeoutError,
    InputValidationError,
    ScriptParseError,
    UpstreamServiceError,
)
from threadflow.prompts import PromptManager
from threadflow.schemas.script import MAX_SCRIPT_SECONDS, Script
from threadflow.services.llm_client import llm_call

logger = logging.getLogger(__name__)


class ScriptGenerator(Protocol):
    """Anything that can produce a Script from thread text."""

    async def generate(
        self, thread_text: str, vibe: str | None = None, *, timeout: float | None = None,
    ) -> Script: ...


def normalize_vibe(vibe: str | None) -> str:
    """Map a requested vibe onto a configured one; unknown or empty → default."""
    settings = get_settings()
    candidate = (vibe or "").strip().lower()
    if candidate in settings.vibe_list:
        return candidate
    if candidate:
        logger.info("Unrecognized vibe %r, using %s", vibe, settings.DEFAULT_VIBE)
    return settings.DEFAULT_VIBE


def build_prompts(thread_text: str, vibe: str) -> tuple[str, str]:
    """Return (system_prompt, user_prompt) for a thread and a normalized vibe."""
    vibe_notes = PromptManager.get_prompt("vibe_notes", style=vibe)
    system_prompt = PromptManager.render("script_system", vibe=vibe, vibe_notes=vibe_notes)
    user_prompt = PromptManager.render("script_user", thread_content=thread_text)
    return system_prompt, user_prompt


def parse_script(content: str) -> Script:
    """Parse the model's JSON reply into a Script.

    Scene order is the order the model returned; ids are rewritten to 1..N.
    """
    try:
        payload = json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        raise ScriptParseError("Completion reply is not valid JSON") from e

    if not isinstance(payload, dict) or not isinstance(payload.get("scenes"), list):
        raise ScriptParseError("Completion reply has no scenes list")
    raw_scenes: list[Any] = payload["scenes"]
    if not raw_scenes:
        raise ScriptParseError("Completion reply contains no scenes")

    scenes: list[dict[str, Any]] = []
    for position, raw in enumerate(raw_scenes, start=1):
        if not isinstance(raw, dict):
            raise ScriptParseError(f"Scene {position} is not an object")
        if raw.get("id") != position:
            logger.debug("Renumbering scene id %r -> %d", raw.get("id"), position)
        scenes.append({
            "id": position,
            "dialogue": raw.get("dialogue") or "",
            "visualInstruction": raw.get("visualInstruction") or "",
            "duration": str(raw.get("duration") or ""),
        })

    try:
        script = Script.model_validate({"scenes": scenes})
    except ValidationError as e:
        raise ScriptParseError(f"Completion reply has an invalid scene: {e.errors()[0]['msg']}") from e

    total = script.total_seconds()
    if total > MAX_SCRIPT_SECONDS:
        logger.warning("Generated script runs %.1fs, over the %ds target", total, MAX_SCRIPT_SECONDS)
    return script


class ScriptGateway:
    """In-process gateway backed by the LLM client."""

    def __init__(self, http_client: httpx.AsyncClient | None = None):
        self._http_client = http_client

    async def generate(
        self, thread_text: str, vibe: str | None = None, *, timeout: float | None = None,
    ) -> Script:
        if not get_settings().OPENAI_API_KEY:
            raise ConfigurationError("OpenAI API key not configured")
        if not thread_text or not thread_text.strip():
            raise InputValidationError("Thread content is required")

        vibe = normalize_vibe(vibe)
        system_prompt, user_prompt = build_prompts(thread_text, vibe)

        call = llm_call(
            system_prompt,
            user_prompt,
            json_mode=True,
            caller="script_gateway",
            client=self._http_client,
        )
        try:
            content = await asyncio.wait_for(call, timeout=timeout) if timeout else await call
        except asyncio.TimeoutError as e:
            raise GenerationTimeoutError(f"Script generation timed out after {timeout:g}s") from e

        script = parse_script(content)
        logger.info("Generated %d scenes (vibe=%s)", len(script.scenes), vibe)
        return script


def _remote_error(response: httpx.Response) -> str:
    """The function's ``{"error": ...}`` message, or the bare status for non-JSON bodies."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return f"AI service returned HTTP {response.status_code}"


class RemoteScriptGateway:
    """Client for a gateway deployed behind the generate-script HTTP contract."""

    def __init__(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.headers = headers or {}
        self._http_client = http_client

    async def generate(
        self, thread_text: str, vibe: str | None = None, *, timeout: float | None = None,
    ) -> Script:
        if not thread_text or not thread_text.strip():
            raise InputValidationError("Thread content is required")

        body = {"thread_content": thread_text, "video_vibe": normalize_vibe(vibe)}
        client = self._http_client or httpx.AsyncClient(timeout=float(get_settings().LLM_TIMEOUT))
        try:
            response = await asyncio.wait_for(
                client.post(self.url, json=body, headers=self.headers), timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise GenerationTimeoutError("Script generation timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamServiceError(f"Failed to call AI service: {e}") from e
        finally:
            if self._http_client is None:
                await client.aclose()

        if response.status_code != 200:
            raise UpstreamServiceError(_remote_error(response))

        try:
            data = response.json()
        except ValueError as e:
            raise ScriptParseError("AI service returned a non-JSON response") from e

        if isinstance(data, dict) and "error" in data:
            raise UpstreamServiceError(str(data["error"] or "AI service returned an error"))
        if not data:
            raise ScriptParseError("No data returned from AI service")

        return parse_script(json.dumps(data))


def get_script_generator() -> ScriptGenerator:
    """Gateway used by the workflow: remote when GATEWAY_URL is set."""
    settings = get_settings()
    if settings.GATEWAY_URL:
        return RemoteScriptGateway(settings.GATEWAY_URL)
    return ScriptGateway()


__all__ = [
    "RemoteScriptGateway",
    "ScriptGateway",
    "ScriptGenerator",
    "build_prompts",
    "get_script_generator",
    "normalize_vibe",
    "parse_script",
]
