"""Bot config and job schemas."""

from datetime import datetime

from pydantic import Field

from studybot.schemas.base import BaseSchema


class BotConfigRead(BaseSchema):
    key: str
    value: str
    description: str | None = None
    updated_at: datetime


class BotConfigUpdate(BaseSchema):
    value: str = Field(..., max_length=10_000)
    description: str | None = None


class JobRead(BaseSchema):
    """A scheduler job with its runtime counters."""

    name: str
    status: str
    cron_expression: str
    next_run_time: datetime | None = None
    runs: int = 0
    skipped: int = 0
    failures: int = 0
    last_run_at: datetime | None = None
