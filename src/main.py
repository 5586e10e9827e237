"""Chat gateway entry point."""

import asyncio
import logging
import sys

from src.config import Settings, settings
from src.gateway.conversation import ConversationGateway
from src.llm.client import InferenceClient
from src.quota.tracker import QuotaTracker
from src.server.app import GatewayServer
from src.sessions.store import SessionStore

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


def create_gateway(cfg: Settings) -> ConversationGateway:
    """Construct the process-wide store, tracker and client, once."""
    inference = InferenceClient(
        cfg.openai_api_key,
        model=cfg.openai_model,
        max_tokens=cfg.max_tokens,
        temperature=cfg.temperature,
        timeout=cfg.inference_timeout_seconds,
        base_url=cfg.openai_base_url,
    )
    return ConversationGateway.from_settings(
        cfg,
        SessionStore(max_history=cfg.max_history, idle_ttl=cfg.session_idle_ttl()),
        QuotaTracker(),
        inference,
    )


async def serve(cfg: Settings) -> None:
    gateway = create_gateway(cfg)
    server = GatewayServer(
        gateway,
        allowed_origin=cfg.frontend_url,
        host=cfg.host,
        port=cfg.port,
        sweep_interval=cfg.session_sweep_interval_seconds,
    )
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()
        await gateway.inference.close()


def main() -> None:
    """Validate configuration, then serve until interrupted."""
    missing = settings.missing_required()
    if missing:
        logger.error(
            "Missing required configuration: %s (set it in the environment or .env)",
            ", ".join(missing),
        )
        sys.exit(1)

    logger.info("Weekly limit: %d prompts", settings.max_prompts_per_week)
    logger.info(
        "Model: %s, API key configured: %s",
        settings.openai_model,
        bool(settings.openai_api_key),
    )
    if settings.session_idle_ttl() is None:
        logger.info("Session expiry disabled")
    else:
        logger.info("Sessions expire after %.0fs idle", settings.session_idle_ttl_seconds)

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
