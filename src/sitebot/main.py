"""Entry point for the site bot.

Runs two things in one event loop:
- The Discord chat gateway that handles commands
- A FastAPI app served by uvicorn whose /health endpoint satisfies the
  hosting platform's liveness check and whose /metrics endpoint serves
  Prometheus metrics
"""

import asyncio
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST

from src.sitebot.config import BotSettings, get_settings
from src.sitebot.controller import BotController
from src.sitebot.gateway import ChatGateway
from src.sitebot.github.client import GitHubClient
from src.sitebot.metrics import generate_metrics_output
from src.sitebot.state.repository import (
    GitHubStateRepository,
    InMemoryStateRepository,
    StateRepository,
    StateStoreError,
)

logger = logging.getLogger(__name__)

# Set once the gateway is constructed, read by /ready
gateway: Optional[ChatGateway] = None


def _redact_secret(value: str, visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: BotSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info("Site bot configuration:")
    logger.info(f"  Discord Token: {_redact_secret(settings.discord_token)}")
    logger.info(f"  Discord Channel ID: {settings.discord_channel_id or 'any'}")
    logger.info(f"  GitHub Base URL: {settings.github_base_url}")
    logger.info(f"  GitHub Token: {_redact_secret(settings.github_token)}")
    logger.info(f"  GitHub Repository: {settings.github_repository}")
    logger.info(f"  GitHub Base Branch: {settings.github_base_branch}")
    logger.info(f"  State Backend: {settings.state_backend}")
    logger.info(f"  State Path: {settings.state_path}")
    logger.info(f"  Host: {settings.host}")
    logger.info(f"  Port: {settings.port}")


app = FastAPI(
    title="Site Bot",
    description="Health and metrics endpoints for the chat-driven site bot",
    version="1.0.0",
)


@app.get("/health")
async def health():
    """Liveness probe endpoint.

    Returns 200 OK while the process is running.
    """
    return {"status": "healthy"}


@app.get("/ready")
async def ready():
    """Readiness probe endpoint.

    Reports whether the chat gateway has finished logging in.
    """
    connected = gateway is not None and gateway.is_ready()
    return {
        "status": "ready" if connected else "not_ready",
        "dependencies": {"discord": "connected" if connected else "disconnected"},
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_metrics_output(), media_type=CONTENT_TYPE_LATEST)


def create_state_repository(settings: BotSettings, github_client: GitHubClient) -> StateRepository:
    """Create the state repository selected by STATE_BACKEND."""
    if settings.state_backend == "memory":
        return InMemoryStateRepository()
    return GitHubStateRepository(
        github_client,
        owner=settings.repo_owner,
        repo=settings.repo_name,
        path=settings.state_path,
        branch=settings.github_base_branch,
    )


def build_controller(settings: BotSettings, github_client: GitHubClient) -> BotController:
    """Wire the controller's dependencies."""
    return BotController(
        github_client=github_client,
        state_repository=create_state_repository(settings, github_client),
        owner=settings.repo_owner,
        repo=settings.repo_name,
        base_branch=settings.github_base_branch,
    )


async def _log_session_state(controller: BotController) -> None:
    """Log the stored session at startup.

    A state store that cannot be read is logged and left for the first
    command to report; it does not stop the bot from starting.
    """
    try:
        state = await controller.state_repository.load()
    except StateStoreError:
        logger.exception("Could not load session state at startup")
        return
    logger.info(
        "Session state loaded",
        extra={
            "pending_question": state.pending_question,
            "last_issue": state.last_issue.number if state.last_issue else None,
            "last_pr": state.last_pr.number if state.last_pr else None,
        },
    )


async def serve(settings: BotSettings) -> None:
    """Run the chat gateway and the health server until either stops."""
    global gateway

    github_client = GitHubClient(
        token=settings.github_token,
        base_url=settings.github_base_url,
    )
    try:
        controller = build_controller(settings, github_client)
        await _log_session_state(controller)

        gateway = ChatGateway(controller, channel_id=settings.discord_channel_id)
        await _run_until_stopped(settings, gateway)
    finally:
        await github_client.close()
        logger.info("Site bot shutdown complete")


async def _run_until_stopped(settings: BotSettings, chat_gateway: ChatGateway) -> None:
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
        )
    )

    tasks = [
        asyncio.create_task(server.serve(), name="health-server"),
        asyncio.create_task(chat_gateway.start(settings.discord_token), name="discord-gateway"),
    ]

    logger.info("Site bot started")

    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if task.exception() is not None:
                logger.error(
                    "Task stopped with an error",
                    exc_info=task.exception(),
                    extra={"task": task.get_name()},
                )
    finally:
        logger.info("Site bot shutting down...")
        server.should_exit = True
        if not chat_gateway.is_closed():
            await chat_gateway.close()
        await asyncio.gather(*tasks, return_exceptions=True)


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    _log_configuration(settings)
    asyncio.run(serve(settings))


if __name__ == "__main__":
    main()
