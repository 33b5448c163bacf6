import json

import httpx
import pytest

from errors import InvalidUpstreamResponse, MissingCredential, RelayTransportError, UpstreamError
from services.credentials import CredentialService
from services.relay import ModelRelay, extract_error_message

from conftest import USER_ID, UpstreamRecorder, completion_body

HISTORY = [
    {"role": "system", "content": "You are a helpful assistant."},
    {"role": "user", "content": "Hello"},
]


def make_relay(db, recorder):
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return ModelRelay(db, USER_ID, client, api_url="https://openrouter.test/api/v1/chat/completions")


async def test_missing_credential_never_calls_upstream(db, upstream, relay):
    with pytest.raises(MissingCredential):
        await relay.complete(HISTORY, "openai/gpt-4-turbo")

    assert upstream.requests == []


async def test_blank_credential_counts_as_missing(db, upstream, relay):
    CredentialService.set_api_key(db, USER_ID, "   ")

    with pytest.raises(MissingCredential):
        await relay.complete(HISTORY, "openai/gpt-4-turbo")
    assert upstream.requests == []


async def test_request_shape(api_key, upstream, relay):
    reply = await relay.complete(HISTORY, "anthropic/claude-3-opus")

    assert reply == "Hi there!"
    request = upstream.requests[0]
    assert request.method == "POST"
    assert request.headers["Authorization"] == f"Bearer {api_key}"
    assert request.headers["X-Title"] == "Chat Worlds"
    assert json.loads(request.content) == {
        "model": "anthropic/claude-3-opus",
        "messages": HISTORY,
        "temperature": 0.7,
        "max_tokens": 2000,
    }


async def test_empty_model_uses_default(api_key, upstream, relay):
    await relay.complete(HISTORY, "")

    assert json.loads(upstream.requests[0].content)["model"] == "openai/gpt-4-turbo"


async def test_complete_raw_returns_model_and_usage(api_key, relay):
    completion = await relay.complete_raw(HISTORY, "openai/gpt-4-turbo")

    assert completion.content == "Hi there!"
    assert completion.model == "openai/gpt-4-turbo"
    assert completion.usage["total_tokens"] == 15


async def test_upstream_error_message_is_extracted(db, api_key):
    recorder = UpstreamRecorder(status_code=401, json_body={"error": {"message": "No auth credentials found", "code": 401}})

    with pytest.raises(UpstreamError) as exc_info:
        await make_relay(db, recorder).complete(HISTORY, "openai/gpt-4-turbo")

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "No auth credentials found"
    assert str(exc_info.value) == "No auth credentials found (401)"


async def test_unparseable_upstream_error_gets_generic_label(db, api_key):
    recorder = UpstreamRecorder(status_code=502, text_body="<html>Bad gateway</html>")

    with pytest.raises(UpstreamError) as exc_info:
        await make_relay(db, recorder).complete(HISTORY, "openai/gpt-4-turbo")

    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "OpenRouter API error"


@pytest.mark.parametrize("body", [
    {},
    {"choices": []},
    {"choices": [{"index": 0}]},
    {"choices": [{"message": {"role": "assistant"}}]},
    {"choices": [{"message": {"role": "assistant", "content": [{"type": "text", "text": "hello"}]}}]},
    {"choices": [{"message": {"role": "assistant", "content": 42}}]},
])
async def test_missing_completion_is_invalid(db, api_key, body):
    recorder = UpstreamRecorder(json_body=body)

    with pytest.raises(InvalidUpstreamResponse):
        await make_relay(db, recorder).complete(HISTORY, "openai/gpt-4-turbo")


async def test_null_content_is_empty_reply(db, api_key):
    recorder = UpstreamRecorder(json_body=completion_body(None))

    assert await make_relay(db, recorder).complete(HISTORY, "openai/gpt-4-turbo") == ""


async def test_non_json_success_is_invalid(db, api_key):
    recorder = UpstreamRecorder(status_code=200, text_body="not json")

    with pytest.raises(InvalidUpstreamResponse):
        await make_relay(db, recorder).complete(HISTORY, "openai/gpt-4-turbo")


async def test_transport_failure(db, api_key):
    recorder = UpstreamRecorder(exc=httpx.ConnectError("connection refused"))

    with pytest.raises(RelayTransportError):
        await make_relay(db, recorder).complete(HISTORY, "openai/gpt-4-turbo")


async def test_key_is_not_logged(db, api_key, caplog):
    recorder = UpstreamRecorder(status_code=500, json_body={"error": {"message": "boom"}})

    with caplog.at_level("DEBUG"):
        with pytest.raises(UpstreamError):
            await make_relay(db, recorder).complete(HISTORY, "openai/gpt-4-turbo")

    assert api_key not in caplog.text


async def test_key_is_read_on_every_call(db, api_key):
    recorder = UpstreamRecorder(json_body=completion_body("ok"))
    relay = make_relay(db, recorder)

    await relay.complete(HISTORY, "openai/gpt-4-turbo")
    CredentialService.set_api_key(db, USER_ID, "sk-or-rotated")
    await relay.complete(HISTORY, "openai/gpt-4-turbo")

    assert recorder.requests[1].headers["Authorization"] == "Bearer sk-or-rotated"


@pytest.mark.parametrize("body, expected", [
    ('{"error": {"message": "Rate limited"}}', "Rate limited"),
    ('{"error": "Plain error"}', "Plain error"),
    ('{"error": {}}', None),
    ('[]', None),
    ("oops", None),
])
def test_extract_error_message(body, expected):
    assert extract_error_message(body) == expected
