"""Tests for the script gateway and the LLM client underneath it."""

import json

import httpx
import pytest

from conftest import run
from threadflow.config import get_settings
from threadflow.errors import (
    ConfigurationError,
    GenerationTimeoutError,
    InputValidationError,
    ScriptParseError,
    UpstreamServiceError,
)
from threadflow.services.script_gateway import (
    RemoteScriptGateway,
    ScriptGateway,
    build_prompts,
    normalize_vibe,
    parse_script,
)


def _completion(content) -> dict:
    if not isinstance(content, str):
        content = json.dumps(content)
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _gateway(handler, requests=None):
    def _record(request: httpx.Request):
        if requests is not None:
            requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    return ScriptGateway(http_client=client)


SCENES = {
    "scenes": [
        {"id": 1, "dialogue": "You won't believe this...", "visualInstruction": "Wide shot", "duration": "3s"},
        {"id": 2, "dialogue": "The CEO walked on stage", "visualInstruction": "Close-up", "duration": "4s"},
        {"id": 3, "dialogue": "Follow for more", "visualInstruction": "End card", "duration": "4s"},
    ]
}


# ── parse_script ────────────────────────────────


def test_parse_script_keeps_model_order_and_numbers_from_one():
    reply = {"scenes": [
        {"id": 7, "dialogue": "first", "visualInstruction": "a", "duration": "2s"},
        {"id": 3, "dialogue": "second", "visualInstruction": "b", "duration": "2s"},
        {"dialogue": "third", "visualInstruction": "c", "duration": "2s"},
    ]}
    script = parse_script(json.dumps(reply))

    assert [s.id for s in script.scenes] == [1, 2, 3]
    assert [s.dialogue for s in script.scenes] == ["first", "second", "third"]
    assert script.ordinals_are_dense()


def test_parse_script_accepts_numeric_durations():
    reply = {"scenes": [{"id": 1, "dialogue": "hi", "visualInstruction": "x", "duration": 5}]}
    script = parse_script(json.dumps(reply))
    assert script.scenes[0].duration == "5"
    assert script.total_seconds() == 5.0


@pytest.mark.parametrize(
    "content",
    [
        "not json at all",
        json.dumps(["scenes"]),
        json.dumps({"script": []}),
        json.dumps({"scenes": []}),
        json.dumps({"scenes": ["just a string"]}),
        json.dumps({"scenes": [{"id": 1, "dialogue": "   ", "visualInstruction": "x", "duration": "3s"}]}),
    ],
)
def test_parse_script_rejects_unusable_replies(content):
    with pytest.raises(ScriptParseError):
        parse_script(content)


def test_over_length_script_is_still_returned(caplog):
    reply = {"scenes": [
        {"id": i, "dialogue": "line", "visualInstruction": "x", "duration": "20s"} for i in range(1, 5)
    ]}
    script = parse_script(json.dumps(reply))
    assert script.total_seconds() == 80
    assert "over the 60s target" in caplog.text


# ── vibes and prompts ───────────────────────────


@pytest.mark.parametrize(
    "requested, expected",
    [
        ("fast-paced", "fast-paced"),
        ("Minimalist", "minimalist"),
        (None, "cinematic"),
        ("", "cinematic"),
        ("vaporwave", "cinematic"),
    ],
)
def test_normalize_vibe(requested, expected):
    assert normalize_vibe(requested) == expected


def test_build_prompts_carry_vibe_and_raw_thread():
    thread = "Day 1 of {not a placeholder} my cat saga"
    system_prompt, user_prompt = build_prompts(thread, "fast-paced")

    assert 'The user wants a "fast-paced" vibe.' in system_prompt
    assert "quick, energetic edits" in system_prompt
    assert '"visualInstruction"' in system_prompt
    assert "under 60 seconds" in system_prompt
    assert user_prompt.endswith(thread)


# ── ScriptGateway ───────────────────────────────


def test_generate_makes_one_json_mode_call():
    requests = []
    gateway = _gateway(lambda r: httpx.Response(200, json=_completion(SCENES)), requests)

    script = run(gateway.generate("A thread about a cat", "minimalist"))

    assert [s.id for s in script.scenes] == [1, 2, 3]
    assert len(requests) == 1
    request = requests[0]
    assert str(request.url) == "https://llm.test/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test-0123456789abcdef"
    body = json.loads(request.content)
    assert body["model"] == "gpt-4o"
    assert body["response_format"] == {"type": "json_object"}
    assert [m["role"] for m in body["messages"]] == ["system", "user"]
    assert "A thread about a cat" in body["messages"][1]["content"]
    assert '"minimalist"' in body["messages"][0]["content"]


def test_unrecognized_vibe_falls_back_to_cinematic():
    requests = []
    gateway = _gateway(lambda r: httpx.Response(200, json=_completion(SCENES)), requests)
    run(gateway.generate("thread", "unknown-vibe"))
    body = json.loads(requests[0].content)
    assert '"cinematic"' in body["messages"][0]["content"]


def test_empty_thread_is_rejected_before_any_call():
    requests = []
    gateway = _gateway(lambda r: httpx.Response(200, json=_completion(SCENES)), requests)

    with pytest.raises(InputValidationError, match="Thread content is required"):
        run(gateway.generate("   \n ", "cinematic"))
    assert requests == []


def test_missing_credential_is_a_configuration_error(monkeypatch):
    monkeypatch.setattr(get_settings(), "OPENAI_API_KEY", "")
    requests = []
    gateway = _gateway(lambda r: httpx.Response(200, json=_completion(SCENES)), requests)

    with pytest.raises(ConfigurationError) as exc:
        run(gateway.generate("thread", "cinematic"))
    assert exc.value.recoverable is False
    assert requests == []


def test_upstream_error_message_is_propagated():
    envelope = {"error": {"message": "You exceeded your current quota", "type": "insufficient_quota"}}
    gateway = _gateway(lambda r: httpx.Response(429, json=envelope))

    with pytest.raises(UpstreamServiceError, match="You exceeded your current quota"):
        run(gateway.generate("thread", "cinematic"))


def test_error_envelope_with_200_status_is_an_upstream_error():
    envelope = {"error": {"message": "The model `gpt-4o` does not exist"}}
    gateway = _gateway(lambda r: httpx.Response(200, json=envelope))

    with pytest.raises(UpstreamServiceError, match="does not exist"):
        run(gateway.generate("thread", "cinematic"))


def test_non_json_content_is_a_parse_error():
    gateway = _gateway(lambda r: httpx.Response(200, json=_completion("Sure! Here is your script:")))

    with pytest.raises(ScriptParseError):
        run(gateway.generate("thread", "cinematic"))


def test_transport_timeout_is_a_generation_timeout():
    def _timeout(request):
        raise httpx.ReadTimeout("timed out", request=request)

    gateway = _gateway(_timeout)

    with pytest.raises(GenerationTimeoutError):
        run(gateway.generate("thread", "cinematic"))


def test_caller_timeout_bounds_a_slow_reply():
    import asyncio

    class _Slow(httpx.AsyncBaseTransport):
        async def handle_async_request(self, request):
            await asyncio.sleep(5)
            return httpx.Response(200, json=_completion(SCENES))

    gateway = ScriptGateway(http_client=httpx.AsyncClient(transport=_Slow()))

    with pytest.raises(GenerationTimeoutError, match="timed out after 0.05s"):
        run(gateway.generate("thread", "cinematic", timeout=0.05))


# ── RemoteScriptGateway ─────────────────────────


def test_remote_gateway_posts_the_function_contract():
    requests = []

    def _handler(request):
        requests.append(request)
        return httpx.Response(200, json=SCENES)

    client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    gateway = RemoteScriptGateway(
        "https://fn.test/functions/v1/generate-script",
        headers={"Authorization": "Bearer anon"},
        http_client=client,
    )

    script = run(gateway.generate("thread text", "fast-paced"))

    assert len(script.scenes) == 3
    assert json.loads(requests[0].content) == {"thread_content": "thread text", "video_vibe": "fast-paced"}
    assert requests[0].headers["Authorization"] == "Bearer anon"


def test_remote_gateway_surfaces_function_error_verbatim():
    client = httpx.AsyncClient(transport=httpx.MockTransport(
        lambda r: httpx.Response(500, json={"error": "OpenAI API key not configured"})
    ))
    gateway = RemoteScriptGateway("https://fn.test/generate-script", http_client=client)

    with pytest.raises(UpstreamServiceError, match="^OpenAI API key not configured$"):
        run(gateway.generate("thread", "cinematic"))


def test_undecodable_reply_is_a_parse_error():
    gateway = _gateway(lambda r: httpx.Response(200, content=b"\x80\x81not json"))

    with pytest.raises(ScriptParseError):
        run(gateway.generate("thread", "cinematic"))


def test_remote_gateway_html_error_page_is_an_upstream_error():
    client = httpx.AsyncClient(transport=httpx.MockTransport(
        lambda r: httpx.Response(502, content=b"<html><body>Bad Gateway</body></html>",
                                 headers={"content-type": "text/html"})
    ))
    gateway = RemoteScriptGateway("https://fn.test/generate-script", http_client=client)

    with pytest.raises(UpstreamServiceError, match="HTTP 502"):
        run(gateway.generate("thread", "cinematic"))
