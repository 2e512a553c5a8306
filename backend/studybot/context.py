"""Process-wide application context.

Everything long-lived (database, scheduler, HTTP client, services) is built
once here and handed to the FastAPI app, instead of living in module-level
singletons.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from studybot.config import Settings
from studybot.db.session import Database
from studybot.scheduling.scheduler import JobScheduler
from studybot.scheduling.state import JobStateStore
from studybot.services.authorization import AssignmentEditorPolicy
from studybot.services.dispatcher import CommandDispatcher
from studybot.services.planner import NotificationPlanner
from studybot.services.zalo import ZaloBotClient

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    database: Database
    scheduler: JobScheduler
    bot: ZaloBotClient
    planner: NotificationPlanner
    dispatcher: CommandDispatcher

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        database: Database | None = None,
        bot: ZaloBotClient | None = None,
        scheduler: JobScheduler | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> "AppContext":
        """Wire the object graph; any part can be supplied (tests pass fakes)."""
        database = database or Database(settings.database_url, echo=settings.debug)
        bot = bot or ZaloBotClient(
            settings.zalo_bot_token,
            settings.zalo_api_base_url,
            timeout=settings.http_timeout_seconds,
        )
        scheduler = scheduler or JobScheduler(settings.timezone, JobStateStore(settings.job_state_file))
        planner = NotificationPlanner(database, bot, scheduler, settings, clock=clock)
        dispatcher = CommandDispatcher(
            settings, planner, AssignmentEditorPolicy(settings.assignment_editors)
        )
        return cls(
            settings=settings,
            database=database,
            scheduler=scheduler,
            bot=bot,
            planner=planner,
            dispatcher=dispatcher,
        )

    async def close(self) -> None:
        """Drain jobs, snapshot the scheduler, then release network and database resources."""
        await self.scheduler.shutdown(drain_timeout=self.settings.shutdown_drain_seconds)
        aclose = getattr(self.bot, "aclose", None)
        if aclose is not None:
            await aclose()
        await self.database.dispose()
        logger.info("Application context closed")
