"""Async OpenAI chat completions client with outcome classification."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import openai
from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


class FailureKind(StrEnum):
    """Why an inference call produced no reply."""

    AUTH_FAILURE = "auth_failure"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Completion:
    """Either the reply text or the classified failure, never both."""

    text: str | None = None
    failure: FailureKind | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def classify(exc: Exception) -> FailureKind:
    """Map an SDK exception onto a failure kind."""
    if isinstance(exc, openai.AuthenticationError):
        return FailureKind.AUTH_FAILURE
    if isinstance(exc, openai.RateLimitError):
        return FailureKind.RATE_LIMITED
    return FailureKind.UNAVAILABLE


class InferenceClient:
    """Sends an assembled message list to the model, one round trip per call.

    The client never retries and never reorders or edits the messages.
    Every outcome comes back as a ``Completion``; SDK exceptions do not
    escape ``complete``.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        timeout: float = 30.0,
        base_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or None,
            timeout=timeout,
            max_retries=0,
        )

    async def complete(self, messages: list[dict[str, Any]]) -> Completion:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except openai.APIStatusError as exc:
            kind = classify(exc)
            # Status and class only: the body may echo request details.
            logger.error(
                "Inference call failed: status=%d error=%s kind=%s",
                exc.status_code,
                type(exc).__name__,
                kind,
            )
            return Completion(failure=kind)
        except openai.APIError as exc:
            logger.error("Inference call failed: error=%s (transport)", type(exc).__name__)
            return Completion(failure=FailureKind.UNAVAILABLE)

        if not response.choices or not response.choices[0].message.content:
            logger.error("Inference call returned no content (model=%s)", self.model)
            return Completion(failure=FailureKind.UNAVAILABLE)

        text = response.choices[0].message.content
        logger.info(
            "Inference reply: %d message(s) in, %d chars out",
            len(messages),
            len(text),
        )
        return Completion(text=text)

    async def close(self) -> None:
        await self._client.close()
