"""LLM client for the OpenAI-compatible chat-completions endpoint.

One call, one outcome: there is no retry or key rotation here. Callers
decide what a failure means for them.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from threadflow.config import get_settings
from threadflow.errors import (
    ConfigurationError,
    GenerationTimeoutError,
    ScriptParseError,
    UpstreamServiceError,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared HTTP client (lazy init)
# ---------------------------------------------------------------------------

_http_client: httpx.AsyncClient | None = None


def _get_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(timeout=float(get_settings().LLM_TIMEOUT))
    return _http_client


async def close_client() -> None:
    global _http_client
    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
    _http_client = None


def _mask_key(key: str) -> str:
    """Mask an API key for safe logging: show first 8 and last 4 chars."""
    if len(key) <= 16:
        return "***"
    return f"{key[:8]}...{key[-4:]}"


def _completions_url() -> str:
    return f"{get_settings().OPENAI_BASE_URL.rstrip('/')}/chat/completions"


def _upstream_message(response: httpx.Response) -> str:
    """Pull the provider's own error message out of an error envelope."""
    try:
        data = response.json()
    except ValueError:
        return f"Completion service returned HTTP {response.status_code}"
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return f"Completion service returned HTTP {response.status_code}"


# ---------------------------------------------------------------------------
# Core LLM call
# ---------------------------------------------------------------------------

async def llm_call(
    system_prompt: str,
    user_prompt: str,
    *,
    json_mode: bool = False,
    model: str | None = None,
    temperature: float | None = None,
    caller: str = "unknown",
    client: httpx.AsyncClient | None = None,
) -> str:
    """Send one chat-completion request and return the message content.

    Args:
        system_prompt: System message.
        user_prompt: User message.
        json_mode: If True, request JSON-object output.
        model: Override the default SCRIPT_MODEL.
        temperature: Override SCRIPT_TEMPERATURE.
        caller: Identifier for logging.
        client: HTTP client to use instead of the shared one.

    Raises:
        ConfigurationError: No API key is configured.
        GenerationTimeoutError: The request timed out.
        UpstreamServiceError: Transport failure, error status or error envelope.
        ScriptParseError: The reply envelope is not JSON or has no content.
    """
    settings = get_settings()
    key = settings.OPENAI_API_KEY
    if not key:
        raise ConfigurationError("OpenAI API key not configured")

    model = model or settings.SCRIPT_MODEL
    headers = {
        "Authorization": f"Bearer {key}",
        "Content-Type": "application/json",
    }
    body: dict[str, Any] = {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "temperature": settings.SCRIPT_TEMPERATURE if temperature is None else temperature,
    }
    if json_mode:
        body["response_format"] = {"type": "json_object"}

    logger.info(
        "[%s] LLM call model=%s key=%s json=%s",
        caller, model, _mask_key(key), json_mode,
    )

    try:
        response = await (client or _get_client()).post(
            _completions_url(), headers=headers, json=body,
        )
    except httpx.TimeoutException as e:
        logger.warning("[%s] LLM call timed out", caller)
        raise GenerationTimeoutError("Completion service timed out") from e
    except httpx.HTTPError as e:
        logger.error("[%s] LLM transport error: %s", caller, e)
        raise UpstreamServiceError(f"Could not reach completion service: {e}") from e

    if response.status_code >= 400:
        message = _upstream_message(response)
        logger.error("[%s] HTTP error %d: %s", caller, response.status_code, message)
        raise UpstreamServiceError(message)

    try:
        data = response.json()
    except ValueError as e:
        raise ScriptParseError("Completion service returned a non-JSON reply") from e

    if isinstance(data, dict) and data.get("error"):
        message = _upstream_message(response)
        logger.error("[%s] Error envelope: %s", caller, message)
        raise UpstreamServiceError(message)

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise ScriptParseError("Completion service reply has no message content") from e

    logger.info("[%s] LLM response OK, length=%d", caller, len(content or ""))
    return content or ""


# ---------------------------------------------------------------------------
# Health check (GET /api/system/check-llm)
# ---------------------------------------------------------------------------

async def check_llm_health() -> dict[str, Any]:
    """Send a one-token prompt to verify the configured key works."""
    settings = get_settings()
    key = settings.OPENAI_API_KEY
    if not key:
        return {"status": "not_configured", "model": settings.SCRIPT_MODEL}

    body = {
        "model": settings.SCRIPT_MODEL,
        "messages": [{"role": "user", "content": "Hi"}],
        "max_tokens": 1,
    }
    headers = {"Authorization": f"Bearer {key}", "Content-Type": "application/json"}
    try:
        resp = await _get_client().post(_completions_url(), headers=headers, json=body)
    except httpx.HTTPError as e:
        return {"status": "error", "key": _mask_key(key), "error": str(e)}
    if resp.status_code == 200:
        return {"status": "ok", "key": _mask_key(key), "model": settings.SCRIPT_MODEL}
    return {"status": "error", "key": _mask_key(key), "http_status": resp.status_code}
