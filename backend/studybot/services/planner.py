"""
Scheduled notifications.

The planner is driven by scheduler callbacks. It reads the store, composes
the Vietnamese reminder texts and hands them to the message sink one user
at a time. A failed delivery for one user is logged and counted; it never
aborts the rest of the batch.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studybot import responses
from studybot.config import Settings
from studybot.db.models import Assignment, ClassSubject, MessageDirection, MessageType, User
from studybot.db.session import Database
from studybot.scheduling.scheduler import JobScheduler
from studybot.services.assignments import AssignmentService
from studybot.services.classes import ClassService
from studybot.services.messages import MessageLog
from studybot.services.users import UserService
from studybot.utils.dates import day_of_week, format_datetime, is_same_day, next_class_datetime

logger = logging.getLogger(__name__)

DAILY_DIGEST_JOB = "daily-notification"
ASSIGNMENT_DUE_JOB = "daily-reminder-assignment-due"
PRE_CLASS_JOB_PREFIX = "notify-before-start-subject-"


class MessageSink(Protocol):
    """Outbound channel. Returns whether the text was delivered."""

    async def send_message(self, chat_id: str, text: str) -> bool: ...


@dataclass
class TodaySchedule:
    subjects: list[ClassSubject]
    message: str


@dataclass
class PreClassReminder:
    """One pending reminder, due a configured lead time before a class starts."""

    user_id: UUID
    external_id: str
    subject_name: str
    notify_at: datetime
    text: str


@dataclass
class Outgoing:
    user_id: UUID
    external_id: str
    text: str


@dataclass
class BatchResult:
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    failed_users: list[str] = field(default_factory=list)


def pre_class_job_name(external_id: str) -> str:
    return f"{PRE_CLASS_JOB_PREFIX}{external_id}"


def format_today_message(subjects: list[ClassSubject]) -> str:
    if not subjects:
        return responses.TODAY_EMPTY
    lines = [responses.TODAY_HEADER]
    for subject in subjects:
        lines.append(
            f"• Môn: {subject.name}\n"
            f"• Giảng viên: {subject.teacher}\n"
            f"• Thời gian: {subject.start_time} đến {subject.end_time}"
        )
    lines.append("Chúc bạn một ngày học tập hiệu quả! 🎉")
    return "\n".join(lines)


def format_due_reminder(assignments: list[Assignment], tz: ZoneInfo) -> str:
    lines = [responses.DUE_REMINDER_HEADER.format(count=len(assignments))]
    for assignment in assignments:
        lines.append(f"📍 {assignment.name}   ✒️ Hạn nộp: {format_datetime(assignment.deadline, tz)}")
    return "\n".join(lines) + "\n\n" + responses.DUE_REMINDER_FOOTER


class NotificationPlanner:
    """Composes and delivers the daily digest, pre-class and due-date reminders."""

    def __init__(
        self,
        database: Database,
        sink: MessageSink,
        scheduler: JobScheduler,
        settings: Settings,
        *,
        clock: Callable[[], datetime] | None = None,
    ):
        self.database = database
        self.sink = sink
        self.scheduler = scheduler
        self.settings = settings
        self.tz = ZoneInfo(settings.timezone)
        self._clock = clock or (lambda: datetime.now(self.tz))
        self.users = UserService()
        self.classes = ClassService()
        self.assignments = AssignmentService()
        self.messages = MessageLog()

    def now(self) -> datetime:
        return self._clock().astimezone(self.tz)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def classes_today(self, db, user: User) -> TodaySchedule:
        """The user's classes for today in the configured term, with the /today text."""
        subjects = await self.classes.find_enrolled_today(
            db,
            user.id,
            day_of_week(self.now()),
            self.settings.academic_year,
            self.settings.semester,
        )
        return TodaySchedule(subjects=subjects, message=format_today_message(subjects))

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    async def deliver(
        self,
        user_id: UUID,
        external_id: str,
        text: str,
        message_type: MessageType = MessageType.TEMPLATE,
    ) -> bool:
        """
        Send one message and log it as OUTGOING if it went through.

        Never raises: a failed send returns False, and a failed log write
        is reported but still counts as delivered.
        """
        try:
            delivered = await self.sink.send_message(external_id, text)
        except Exception:
            logger.exception("Sending to user %s raised", external_id)
            return False

        if not delivered:
            logger.warning("Message to user %s was not delivered", external_id)
            return False

        try:
            async with self.database.session() as db:
                await self.messages.save(
                    db,
                    user_id,
                    text,
                    MessageDirection.OUTGOING,
                    message_type,
                    chat_id=external_id,
                )
        except SQLAlchemyError:
            logger.exception("Delivered message to user %s could not be logged", external_id)
        return True

    # -------------------------------------------------------------------------
    # Batches
    # -------------------------------------------------------------------------

    async def _compose_for_eligible(
        self,
        batch: BatchResult,
        compose: Callable[[AsyncSession, User], Awaitable[str | None]],
    ) -> list[Outgoing]:
        """
        Run `compose` for every notify-eligible user.

        `compose` returning None counts the user as skipped. A store error
        for one user is rolled back to its savepoint and counted as failed.
        """
        outbox: list[Outgoing] = []
        async with self.database.session() as db:
            for user in await self.users.find_notify_eligible(db):
                user_id, external_id = user.id, user.external_id
                try:
                    async with db.begin_nested():
                        text = await compose(db, user)
                except SQLAlchemyError:
                    logger.exception("Could not prepare message for user %s", external_id)
                    batch.failed += 1
                    batch.failed_users.append(external_id)
                    continue
                if text is None:
                    batch.skipped += 1
                else:
                    outbox.append(Outgoing(user_id, external_id, text))
        return outbox

    async def _deliver_all(self, batch: BatchResult, outbox: list[Outgoing], *, pause: float = 0.0) -> None:
        for i, item in enumerate(outbox):
            if pause and i:
                await asyncio.sleep(pause)
            if await self.deliver(item.user_id, item.external_id, item.text):
                batch.sent += 1
            else:
                batch.failed += 1
                batch.failed_users.append(item.external_id)

    # -------------------------------------------------------------------------
    # Daily digest
    # -------------------------------------------------------------------------

    async def send_daily_digest(self) -> BatchResult:
        """Send each notify-eligible user with a class today one digest."""

        async def compose(db: AsyncSession, user: User) -> str | None:
            today = await self.classes_today(db, user)
            return today.message if today.subjects else None

        batch = BatchResult()
        await self._deliver_all(batch, await self._compose_for_eligible(batch, compose))
        logger.info(
            "Daily digest: %d sent, %d failed, %d without classes",
            batch.sent, batch.failed, batch.skipped,
        )
        return batch

    # -------------------------------------------------------------------------
    # Pre-class reminders
    # -------------------------------------------------------------------------

    async def plan_pre_class_reminders(self) -> dict[str, list[PreClassReminder]]:
        """Upcoming reminders for today's classes, grouped by user, earliest first."""
        now = self.now()
        lead = timedelta(minutes=self.settings.pre_class_reminder_minutes)
        planned: dict[str, list[PreClassReminder]] = {}

        async with self.database.session() as db:
            for user in await self.users.find_notify_eligible(db):
                user_id, external_id = user.id, user.external_id
                try:
                    async with db.begin_nested():
                        today = await self.classes_today(db, user)
                except SQLAlchemyError:
                    logger.exception("Could not load today's classes for user %s", external_id)
                    continue

                for subject in today.subjects:
                    starts_at = next_class_datetime(subject.day_of_week, subject.start_time, now)
                    notify_at = starts_at - lead
                    if notify_at <= now:
                        logger.info(
                            "Reminder time for user %s, subject %s has already passed",
                            external_id, subject.name,
                        )
                        continue
                    planned.setdefault(external_id, []).append(
                        PreClassReminder(
                            user_id=user_id,
                            external_id=external_id,
                            subject_name=subject.name,
                            notify_at=notify_at,
                            text=responses.PRE_CLASS_REMINDER.format(
                                subject=subject.name, start_time=subject.start_time
                            ),
                        )
                    )

        for reminders in planned.values():
            reminders.sort(key=lambda r: r.notify_at)
        return planned

    async def schedule_pre_class_reminders(self) -> list[str]:
        """
        Replace every pre-class job with one job per user for today.

        Each job is armed for the user's next reminder. When it fires it
        sends every reminder that is due, re-arms for the next one still
        ahead, and removes itself after the last.
        """
        planned = await self.plan_pre_class_reminders()
        for name in self.scheduler.get_jobs():
            if name.startswith(PRE_CLASS_JOB_PREFIX):
                self.scheduler.remove_job(name)

        scheduled: list[str] = []
        for external_id, reminders in planned.items():
            name = pre_class_job_name(external_id)
            self._arm_pre_class_job(name, reminders)
            scheduled.append(name)
            logger.info(
                "Scheduled %d pre-class reminders for user %s, first at %s",
                len(reminders), external_id, reminders[0].notify_at.strftime("%H:%M"),
            )
        return scheduled

    def _arm_pre_class_job(self, name: str, reminders: list[PreClassReminder]) -> None:
        async def send_due_reminders() -> None:
            now = self.now()
            ahead: list[PreClassReminder] = []
            for reminder in reminders:
                if reminder.notify_at > now:
                    ahead.append(reminder)
                elif is_same_day(reminder.notify_at, now, self.tz):
                    await self.deliver(reminder.user_id, reminder.external_id, reminder.text)
                else:
                    logger.info(
                        "Dropping stale reminder for user %s, subject %s",
                        reminder.external_id, reminder.subject_name,
                    )
            if ahead:
                self._arm_pre_class_job(name, ahead)
            else:
                self.scheduler.remove_job(name)

        first = reminders[0].notify_at
        self.scheduler.add_job(name, f"{first.minute} {first.hour} * * *", send_due_reminders)

    async def run_daily_notification(self) -> None:
        """Digest first, then today's pre-class reminders."""
        try:
            await self.send_daily_digest()
        except SQLAlchemyError:
            logger.exception("Daily digest failed, scheduling pre-class reminders anyway")
        await self.schedule_pre_class_reminders()

    # -------------------------------------------------------------------------
    # Assignment due reminders
    # -------------------------------------------------------------------------

    async def send_assignment_due_reminders(self) -> BatchResult:
        """Remind each notify-eligible user about pending work due within the window."""
        now = self.now()

        async def compose(db: AsyncSession, user: User) -> str | None:
            due = await self.assignments.find_due_soon(
                db, user.id, now, self.settings.assignment_due_window_days
            )
            return format_due_reminder(due, self.tz) if due else None

        batch = BatchResult()
        await self._deliver_all(batch, await self._compose_for_eligible(batch, compose))
        logger.info(
            "Assignment due reminders: %d sent, %d failed, %d with nothing due",
            batch.sent, batch.failed, batch.skipped,
        )
        return batch

    # -------------------------------------------------------------------------
    # Broadcast
    # -------------------------------------------------------------------------

    async def send_broadcast(self, text: str, external_ids: list[str] | None = None) -> BatchResult:
        """
        Send `text` to the listed users, or to every known user.

        Registration and notify flags are ignored. Listed ids with no user
        are counted as skipped. Sends are spaced by `broadcast_pause_seconds`.
        """
        batch = BatchResult()
        async with self.database.session() as db:
            users = await self.users.find_all(db, external_ids)
            outbox = [Outgoing(user.id, user.external_id, text) for user in users]

        if external_ids:
            missing = set(external_ids) - {item.external_id for item in outbox}
            if missing:
                logger.warning("Broadcast skipped unknown users: %s", ", ".join(sorted(missing)))
            batch.skipped = len(missing)

        await self._deliver_all(batch, outbox, pause=self.settings.broadcast_pause_seconds)
        logger.info("Broadcast sent to %d of %d users", batch.sent, len(outbox))
        return batch

    # -------------------------------------------------------------------------
    # Job registration
    # -------------------------------------------------------------------------

    def register_daily_jobs(self) -> None:
        self.scheduler.add_job(DAILY_DIGEST_JOB, self.settings.daily_digest_cron, self.run_daily_notification)
        self.scheduler.add_job(
            ASSIGNMENT_DUE_JOB, self.settings.assignment_reminder_cron, self.send_assignment_due_reminders
        )
