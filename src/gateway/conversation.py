"""Conversation gateway: session lookup, quota, context, inference, history."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from src.errors import (
    InvalidRequest,
    QuotaExceeded,
    ServerMisconfigured,
    UpstreamBusy,
    UpstreamError,
)
from src.llm.client import FailureKind
from src.llm.prompt import build_messages

if TYPE_CHECKING:
    from src.config import Settings
    from src.llm.client import InferenceClient
    from src.quota.tracker import QuotaTracker
    from src.sessions.store import SessionStore

logger = logging.getLogger(__name__)

_FAILURE_ERRORS = {
    FailureKind.AUTH_FAILURE: ServerMisconfigured,
    FailureKind.RATE_LIMITED: UpstreamBusy,
    FailureKind.UNAVAILABLE: UpstreamError,
}


@dataclass(frozen=True)
class ChatReply:
    response: str
    prompts_remaining: int

    def to_dict(self) -> dict[str, Any]:
        return {"response": self.response, "promptsRemaining": self.prompts_remaining}


@dataclass(frozen=True)
class UsageStats:
    prompts_used: int
    max_prompts: int
    remaining: int
    week_start: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "promptsUsed": self.prompts_used,
            "maxPrompts": self.max_prompts,
            "remaining": self.remaining,
            "weekStart": self.week_start.isoformat(),
        }


class ConversationGateway:
    """Runs one chat request through validate, quota, assemble, invoke, persist.

    Quota is charged when a request is allowed to reach the model, before the
    call is made. With ``charge_failed_calls=False`` the unit is handed back
    when the call fails, so only successful replies count.
    """

    def __init__(
        self,
        sessions: SessionStore,
        quota: QuotaTracker,
        inference: InferenceClient,
        *,
        max_prompts: int,
        system_prompt: str,
        charge_failed_calls: bool = True,
    ) -> None:
        self.sessions = sessions
        self.quota = quota
        self.inference = inference
        self.max_prompts = max_prompts
        self.system_prompt = system_prompt
        self.charge_failed_calls = charge_failed_calls

    @classmethod
    def from_settings(
        cls,
        cfg: Settings,
        sessions: SessionStore,
        quota: QuotaTracker,
        inference: InferenceClient,
    ) -> ConversationGateway:
        return cls(
            sessions,
            quota,
            inference,
            max_prompts=cfg.max_prompts_per_week,
            system_prompt=cfg.system_prompt,
            charge_failed_calls=cfg.charge_failed_calls,
        )

    def create_session(self) -> str:
        session_id = self.sessions.create()
        logger.info("New session %s (%d live)", session_id, len(self.sessions))
        return session_id

    def history(self, user_id: str) -> list[dict[str, str]]:
        return self.sessions.get(user_id)

    async def chat(self, user_id: Any, message: Any) -> ChatReply:
        if not isinstance(user_id, str) or not user_id:
            raise InvalidRequest
        if not isinstance(message, str) or not message.strip():
            raise InvalidRequest
        history = self.sessions.get(user_id)

        charged_at = self.quota.acquire(self.max_prompts)
        if charged_at is None:
            logger.warning("Weekly limit of %d prompts reached", self.max_prompts)
            raise QuotaExceeded(
                f"Weekly limit of {self.max_prompts} prompts reached. Try again next week."
            )

        messages = build_messages(history, message, self.system_prompt)
        result = await self.inference.complete(messages)

        if not result.ok:
            if not self.charge_failed_calls:
                self.quota.refund(charged_at)
            logger.warning("Chat failed for session %s: %s", user_id, result.failure)
            raise _FAILURE_ERRORS[result.failure]

        self.sessions.append(user_id, message, result.text)
        return ChatReply(
            response=result.text,
            prompts_remaining=self.quota.remaining(self.max_prompts),
        )

    def usage(self) -> UsageStats:
        snap = self.quota.snapshot()
        return UsageStats(
            prompts_used=snap.count,
            max_prompts=self.max_prompts,
            remaining=max(0, self.max_prompts - snap.count),
            week_start=snap.window_start,
        )

    def health(self) -> dict[str, Any]:
        snap = self.quota.snapshot()
        return {
            "status": "OK",
            "timestamp": datetime.now(UTC).isoformat(),
            "promptsUsed": snap.count,
            "maxPrompts": self.max_prompts,
        }
