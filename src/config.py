"""Application settings loaded from environment variables."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful and kind AI assistant. "
    "Answer concisely and professionally."
)


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Gateway configuration. All values come from environment variables."""

    # OpenAI
    openai_api_key: str = Field(default="")
    openai_model: str = Field(default="gpt-4o-mini")
    openai_base_url: str = Field(default="")
    max_tokens: int = Field(default=1000)
    temperature: float = Field(default=0.7)
    inference_timeout_seconds: float = Field(default=30.0)
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)

    # Quota
    max_prompts_per_week: int = Field(default=4000, ge=0)
    charge_failed_calls: bool = Field(default=True)

    # Sessions
    max_history: int = Field(default=20, ge=2)
    session_idle_ttl_seconds: float = Field(default=0.0, ge=0)
    session_sweep_interval_seconds: float = Field(default=300.0, gt=0)

    # HTTP
    frontend_url: str = Field(default="http://localhost:5173")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def missing_required(self) -> list[str]:
        """Names of required settings that are unset."""
        missing = []
        if not self.openai_api_key.strip():
            missing.append("OPENAI_API_KEY")
        return missing

    def session_idle_ttl(self) -> float | None:
        """Idle expiry in seconds, or None when sessions never expire."""
        return self.session_idle_ttl_seconds or None


settings = Settings()
