"""Tests for the OpenAI inference client."""

import logging
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from src.llm.client import Completion, FailureKind, InferenceClient, classify

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
SECRET = "sk-test-secret-key"


def _status_error(cls, status: int):
    response = httpx.Response(
        status, request=_REQUEST, json={"error": {"message": f"leaked {SECRET}"}}
    )
    return cls(f"status {status}", response=response, body={"error": {"message": SECRET}})


def _reply(text: str | None):
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=text))]
    return response


def _client_with(create: AsyncMock) -> InferenceClient:
    sdk = MagicMock()
    sdk.chat.completions.create = create
    return InferenceClient(SECRET, model="gpt-test", max_tokens=50, temperature=0.2, client=sdk)


async def test_complete_returns_text() -> None:
    create = AsyncMock(return_value=_reply("hello world"))
    client = _client_with(create)
    messages = [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "hi"},
    ]

    result = await client.complete(messages)

    assert result == Completion(text="hello world")
    assert result.ok
    create.assert_awaited_once()
    kwargs = create.call_args.kwargs
    assert kwargs["messages"] == messages
    assert kwargs["model"] == "gpt-test"
    assert kwargs["max_tokens"] == 50
    assert kwargs["temperature"] == 0.2


async def test_complete_passes_messages_untouched() -> None:
    create = AsyncMock(return_value=_reply("ok"))
    client = _client_with(create)
    messages = [{"role": "user", "content": "  spaced  "}]

    await client.complete(messages)

    assert create.call_args.kwargs["messages"] is messages


@pytest.mark.parametrize(
    ("error", "kind"),
    [
        (_status_error(openai.AuthenticationError, 401), FailureKind.AUTH_FAILURE),
        (_status_error(openai.RateLimitError, 429), FailureKind.RATE_LIMITED),
        (_status_error(openai.InternalServerError, 500), FailureKind.UNAVAILABLE),
        (_status_error(openai.BadRequestError, 400), FailureKind.UNAVAILABLE),
        (openai.APITimeoutError(request=_REQUEST), FailureKind.UNAVAILABLE),
        (openai.APIConnectionError(request=_REQUEST), FailureKind.UNAVAILABLE),
    ],
)
async def test_complete_classifies_failures(error, kind) -> None:
    client = _client_with(AsyncMock(side_effect=error))

    result = await client.complete([{"role": "user", "content": "hi"}])

    assert result == Completion(failure=kind)
    assert not result.ok


async def test_empty_reply_is_unavailable() -> None:
    client = _client_with(AsyncMock(return_value=_reply(None)))
    result = await client.complete([{"role": "user", "content": "hi"}])
    assert result.failure is FailureKind.UNAVAILABLE


async def test_no_choices_is_unavailable() -> None:
    response = MagicMock()
    response.choices = []
    client = _client_with(AsyncMock(return_value=response))
    result = await client.complete([{"role": "user", "content": "hi"}])
    assert result.failure is FailureKind.UNAVAILABLE


async def test_failure_logs_do_not_leak_credential_or_payload(caplog) -> None:
    client = _client_with(AsyncMock(side_effect=_status_error(openai.AuthenticationError, 401)))

    with caplog.at_level(logging.DEBUG, logger="src.llm.client"):
        await client.complete([{"role": "user", "content": "hi"}])

    assert "status=401" in caplog.text
    assert SECRET not in caplog.text


def test_classify_plain_exception_is_unavailable() -> None:
    assert classify(RuntimeError("boom")) is FailureKind.UNAVAILABLE


def test_default_sdk_client_never_retries() -> None:
    client = InferenceClient(SECRET, timeout=12.5)
    assert client._client.max_retries == 0
    assert client._client.timeout == 12.5
