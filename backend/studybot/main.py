"""
Study Optimizer Bot FastAPI Application Entry Point.

Run with: uvicorn studybot.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from studybot.api.routes import admin, webhook
from studybot.config import Settings, get_settings
from studybot.context import AppContext
from studybot.logging_config import configure_logging
from studybot.services.bot_config import BotConfigService

logger = logging.getLogger(__name__)


async def configure_webhook(context: AppContext) -> None:
    """Point the platform at our webhook, or clear it in polling mode. Never fatal."""
    settings = context.settings
    if settings.is_polling:
        await context.bot.delete_webhook()
        logger.info("Polling mode enabled, webhook deleted")
        return

    await context.bot.delete_webhook()
    logger.info("Existing webhook deleted")
    if await context.bot.set_webhook(settings.webhook_url, settings.webhook_secret):
        logger.info("Webhook set to: %s", settings.webhook_url)
    else:
        logger.error("Could not set webhook to %s", settings.webhook_url)


async def start_context(context: AppContext) -> None:
    async with context.database.session() as db:
        await BotConfigService().seed_defaults(db)

    context.planner.register_daily_jobs()
    context.scheduler.restore_all_jobs()
    context.scheduler.start()
    await configure_webhook(context)


def create_app(context: AppContext | None = None, settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI app.

    With an explicit `context` the caller owns its lifecycle (tests);
    otherwise the lifespan builds, starts and closes one.
    """
    settings = settings or (context.settings if context else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager for startup/shutdown."""
        # Startup
        configure_logging(settings.log_level, json_format=settings.environment != "development")
        owned = context is None
        ctx = app.state.context if not owned else AppContext.build(settings)
        app.state.context = ctx
        if owned:
            await start_context(ctx)
        logger.info("%s started (%s)", settings.app_name, settings.environment)
        try:
            yield
        finally:
            # Shutdown
            logger.info("Shutting down gracefully...")
            if owned:
                await ctx.close()

    app = FastAPI(
        title=settings.app_name,
        description="Class schedule and assignment reminder bot for Zalo",
        version="0.1.0",
        lifespan=lifespan,
    )
    if context is not None:
        app.state.context = context

    # Include routers
    app.include_router(webhook.router)
    app.include_router(admin.router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
