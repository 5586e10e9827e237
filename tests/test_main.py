"""Tests for startup wiring."""

from unittest.mock import patch

import pytest

from src.config import Settings
from src.main import create_gateway, main


def test_main_exits_without_api_key() -> None:
    with (
        patch("src.main.settings", Settings(openai_api_key="")),
        patch("src.main.asyncio.run") as run,
        pytest.raises(SystemExit) as exc_info,
    ):
        main()

    assert exc_info.value.code == 1
    run.assert_not_called()


def test_main_serves_with_api_key() -> None:
    cfg = Settings(openai_api_key="sk-test")
    with (
        patch("src.main.settings", cfg),
        patch("src.main.serve") as serve,
        patch("src.main.asyncio.run") as run,
    ):
        main()

    serve.assert_called_once_with(cfg)
    run.assert_called_once()


def test_create_gateway_applies_settings() -> None:
    cfg = Settings(
        openai_api_key="sk-test",
        openai_model="gpt-test",
        max_prompts_per_week=9,
        max_history=6,
        session_idle_ttl_seconds=120,
        charge_failed_calls=False,
    )
    gateway = create_gateway(cfg)

    assert gateway.max_prompts == 9
    assert gateway.charge_failed_calls is False
    assert gateway.sessions.max_history == 6
    assert gateway.sessions.idle_ttl == 120
    assert gateway.inference.model == "gpt-test"
    assert gateway.quota.remaining(9) == 9
