"""Cron-driven job scheduling."""

from studybot.scheduling.scheduler import InvalidCronExpression, JobCallback, JobScheduler, ScheduledJob
from studybot.scheduling.state import JobSnapshot, JobStateStore

__all__ = [
    "InvalidCronExpression",
    "JobCallback",
    "JobScheduler",
    "JobSnapshot",
    "JobStateStore",
    "ScheduledJob",
]
