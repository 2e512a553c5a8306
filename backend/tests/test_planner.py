"""Tests for scheduled notifications."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from studybot import responses
from studybot.db.models import (
    Assignment,
    AssignmentStatus,
    Message,
    MessageDirection,
    UserAssignment,
    UserClassSubject,
)
from studybot.services.planner import (
    ASSIGNMENT_DUE_JOB,
    DAILY_DIGEST_JOB,
    pre_class_job_name,
)
from conftest import FIXED_NOW, make_user


async def enroll(database, settings, user, *subjects):
    async with database.session() as db:
        for subject in subjects:
            db.add(
                UserClassSubject(
                    user_id=user.id,
                    class_subject_id=subject.id,
                    year=settings.academic_year,
                    semester=settings.semester,
                )
            )


async def give_assignment(database, user, subject, name, deadline, *, status="pending", deleted=False):
    async with database.session() as db:
        assignment = Assignment(class_subject_id=subject.id, name=name, deadline=deadline)
        db.add(assignment)
        await db.flush()
        db.add(
            UserAssignment(
                assignment_id=assignment.id,
                user_id=user.id,
                status=status,
                is_deleted=deleted,
                created_by="admin",
            )
        )


async def outgoing_count(database) -> int:
    async with database.session() as db:
        return await db.scalar(
            select(func.count())
            .select_from(Message)
            .where(Message.direction == MessageDirection.OUTGOING.value)
        )


class TestDailyDigest:
    async def test_only_users_with_classes_today_get_a_digest(self, context, database, settings, classes, fake_bot):
        with_class = await make_user(database, "u1")
        tuesday_only = await make_user(database, "u2")
        muted = await make_user(database, "u3", notify=False)
        await enroll(database, settings, with_class, classes["MA004"], classes["IT003"])
        await enroll(database, settings, tuesday_only, classes["IE105"])
        await enroll(database, settings, muted, classes["MA004"])

        batch = await context.planner.send_daily_digest()

        assert (batch.sent, batch.failed, batch.skipped) == (1, 0, 1)
        [digest] = fake_bot.texts_for("u1")
        assert digest.startswith(responses.TODAY_HEADER)
        # Ordered by start time
        assert digest.index("Cấu trúc rời rạc") < digest.index("Cấu trúc dữ liệu")
        assert fake_bot.texts_for("u2") == [] and fake_bot.texts_for("u3") == []

    async def test_one_failed_delivery_does_not_stop_the_batch(
        self, context, database, settings, classes, fake_bot
    ):
        for external_id in ("u1", "u2", "u3"):
            user = await make_user(database, external_id)
            await enroll(database, settings, user, classes["MA004"])
        fake_bot.raise_for.add("u1")
        fake_bot.fail_for.add("u2")

        batch = await context.planner.send_daily_digest()

        assert batch.sent == 1
        assert batch.failed == 2
        assert sorted(batch.failed_users) == ["u1", "u2"]
        assert len(fake_bot.texts_for("u3")) == 1

    async def test_delivered_messages_are_logged(self, context, database, settings, classes):
        user = await make_user(database, "u1")
        await enroll(database, settings, user, classes["MA004"])

        await context.planner.send_daily_digest()

        async with database.session() as db:
            logged = await db.scalar(
                select(func.count())
                .select_from(Message)
                .where(Message.user_id == user.id, Message.direction == MessageDirection.OUTGOING.value)
            )
        assert logged == 1

    async def test_failed_log_write_still_counts_as_sent(
        self, context, database, settings, classes, fake_bot, monkeypatch, caplog
    ):
        for external_id in ("u1", "u2", "u3"):
            user = await make_user(database, external_id)
            await enroll(database, settings, user, classes["MA004"])
        save = context.planner.messages.save
        calls = 0

        async def save_failing_first(*args, **kwargs):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise OperationalError("INSERT INTO messages", {}, Exception("disk I/O error"))
            return await save(*args, **kwargs)

        monkeypatch.setattr(context.planner.messages, "save", save_failing_first)

        batch = await context.planner.send_daily_digest()

        assert (batch.sent, batch.failed) == (3, 0)
        for external_id in ("u1", "u2", "u3"):
            assert len(fake_bot.texts_for(external_id)) == 1
        assert await outgoing_count(database) == 2
        assert "could not be logged" in caplog.text

    async def test_store_error_for_one_user_is_counted_as_failed(
        self, context, database, settings, classes, fake_bot, monkeypatch
    ):
        users = {}
        for external_id in ("u1", "u2", "u3"):
            users[external_id] = await make_user(database, external_id)
            await enroll(database, settings, users[external_id], classes["MA004"])
        find = context.planner.classes.find_enrolled_today

        async def find_failing_for_u2(db, user_id, *args):
            if user_id == users["u2"].id:
                raise OperationalError("SELECT", {}, Exception("database is locked"))
            return await find(db, user_id, *args)

        monkeypatch.setattr(context.planner.classes, "find_enrolled_today", find_failing_for_u2)

        batch = await context.planner.send_daily_digest()

        assert (batch.sent, batch.failed) == (2, 1)
        assert batch.failed_users == ["u2"]
        assert fake_bot.texts_for("u2") == []
        assert len(fake_bot.texts_for("u3")) == 1


class TestAssignmentDueReminders:
    async def test_reminder_window(self, context, database, classes, fake_bot):
        user = await make_user(database, "u1")
        subject = classes["MA004"]
        await give_assignment(database, user, subject, "Quá xa", FIXED_NOW + timedelta(days=8))
        await give_assignment(database, user, subject, "Sát hạn", FIXED_NOW + timedelta(days=6, hours=23))
        await give_assignment(database, user, subject, "Đã qua", FIXED_NOW - timedelta(hours=1))
        await give_assignment(
            database, user, subject, "Đã xong", FIXED_NOW + timedelta(days=2),
            status=AssignmentStatus.COMPLETED.value,
        )
        await give_assignment(database, user, subject, "Đã xóa", FIXED_NOW + timedelta(days=2), deleted=True)

        batch = await context.planner.send_assignment_due_reminders()

        assert batch.sent == 1
        [text] = fake_bot.texts_for("u1")
        assert text.startswith(responses.DUE_REMINDER_HEADER.format(count=1))
        assert "📍 Sát hạn   ✒️ Hạn nộp: 14/07/2025 07:00" in text
        for excluded in ("Quá xa", "Đã qua", "Đã xong", "Đã xóa"):
            assert excluded not in text
        assert text.endswith(responses.DUE_REMINDER_FOOTER)

    async def test_users_with_nothing_due_are_skipped(self, context, database, classes, fake_bot):
        busy = await make_user(database, "u1")
        await make_user(database, "u2")
        muted = await make_user(database, "u3", notify=False)
        await give_assignment(database, busy, classes["MA004"], "Lab", FIXED_NOW + timedelta(days=1))
        await give_assignment(database, muted, classes["MA004"], "Lab", FIXED_NOW + timedelta(days=1))

        batch = await context.planner.send_assignment_due_reminders()

        assert (batch.sent, batch.skipped) == (1, 1)
        assert [target for target, _ in fake_bot.sent] == ["u1"]


class TestPreClassReminders:
    async def test_schedules_next_class_and_rearms(
        self, context, database, settings, classes, scheduler, fake_bot, clock
    ):
        user = await make_user(database, "u1")
        await enroll(database, settings, user, classes["MA004"], classes["IT003"])
        name = pre_class_job_name("u1")

        assert await context.planner.schedule_pre_class_reminders() == [name]
        assert scheduler.get_job(name).cron_expression == "30 9 * * *"

        clock.now = FIXED_NOW.replace(hour=9, minute=30)
        await scheduler.fire(name)
        assert fake_bot.texts_for("u1") == [
            responses.PRE_CLASS_REMINDER.format(subject="Cấu trúc rời rạc", start_time="10:00")
        ]
        assert scheduler.get_job(name).cron_expression == "30 13 * * *"

        clock.now = FIXED_NOW.replace(hour=13, minute=30)
        await scheduler.fire(name)
        assert fake_bot.texts_for("u1")[-1] == responses.PRE_CLASS_REMINDER.format(
            subject="Cấu trúc dữ liệu và giải thuật", start_time="14:00"
        )
        assert scheduler.get_status(name) == "not_found"

    async def test_passed_reminder_times_are_not_scheduled(self, context, database, settings, classes, scheduler):
        user = await make_user(database, "u1")
        async with database.session() as db:
            early = classes["MA004"]
            (await db.get(type(early), early.id)).start_time = "08:15"
        await enroll(database, settings, user, classes["MA004"])

        assert await context.planner.schedule_pre_class_reminders() == []
        assert scheduler.get_status(pre_class_job_name("u1")) == "not_found"

    async def test_rescheduling_replaces_the_users_job(self, context, database, settings, classes, scheduler):
        user = await make_user(database, "u1")
        await enroll(database, settings, user, classes["MA004"])

        await context.planner.schedule_pre_class_reminders()
        await context.planner.schedule_pre_class_reminders()

        assert scheduler.get_jobs().count(pre_class_job_name("u1")) == 1

    async def test_classes_starting_together_are_all_reminded(
        self, context, database, settings, classes, scheduler, fake_bot, clock
    ):
        user = await make_user(database, "u1")
        async with database.session() as db:
            dsa = classes["IT003"]
            (await db.get(type(dsa), dsa.id)).start_time = "10:00"
        await enroll(database, settings, user, classes["MA004"], classes["IT003"])
        name = pre_class_job_name("u1")

        await context.planner.schedule_pre_class_reminders()
        assert scheduler.get_job(name).cron_expression == "30 9 * * *"

        clock.now = FIXED_NOW.replace(hour=9, minute=30)
        await scheduler.fire(name)

        assert sorted(fake_bot.texts_for("u1")) == sorted(
            [
                responses.PRE_CLASS_REMINDER.format(subject="Cấu trúc rời rạc", start_time="10:00"),
                responses.PRE_CLASS_REMINDER.format(subject="Cấu trúc dữ liệu và giải thuật", start_time="10:00"),
            ]
        )
        assert scheduler.get_status(name) == "not_found"

    async def test_late_fire_sends_everything_already_due(
        self, context, database, settings, classes, scheduler, fake_bot, clock
    ):
        user = await make_user(database, "u1")
        await enroll(database, settings, user, classes["MA004"], classes["IT003"])
        name = pre_class_job_name("u1")
        await context.planner.schedule_pre_class_reminders()

        clock.now = FIXED_NOW.replace(hour=13, minute=45)
        await scheduler.fire(name)

        assert len(fake_bot.texts_for("u1")) == 2
        assert scheduler.get_status(name) == "not_found"

    async def test_yesterdays_job_sends_nothing_and_is_removed(
        self, context, database, settings, classes, scheduler, fake_bot, clock
    ):
        user = await make_user(database, "u1")
        await enroll(database, settings, user, classes["MA004"])
        name = pre_class_job_name("u1")
        await context.planner.schedule_pre_class_reminders()

        clock.now = FIXED_NOW + timedelta(days=1)
        await scheduler.fire(name)

        assert fake_bot.sent == []
        assert scheduler.get_status(name) == "not_found"

    async def test_replanning_drops_jobs_of_users_with_nothing_left(
        self, context, database, settings, classes, scheduler, clock
    ):
        user = await make_user(database, "u1")
        await enroll(database, settings, user, classes["MA004"])
        await context.planner.schedule_pre_class_reminders()
        assert pre_class_job_name("u1") in scheduler.get_jobs()

        # Tuesday: u1 has no classes
        clock.now = FIXED_NOW + timedelta(days=1)

        assert await context.planner.schedule_pre_class_reminders() == []
        assert scheduler.get_status(pre_class_job_name("u1")) == "not_found"

    async def test_daily_notification_runs_digest_then_reminders(
        self, context, database, settings, classes, scheduler, fake_bot
    ):
        user = await make_user(database, "u1")
        await enroll(database, settings, user, classes["MA004"])
        context.planner.register_daily_jobs()

        assert set(scheduler.get_jobs()) == {DAILY_DIGEST_JOB, ASSIGNMENT_DUE_JOB}
        assert await scheduler.fire(DAILY_DIGEST_JOB) is True

        assert len(fake_bot.texts_for("u1")) == 1
        assert pre_class_job_name("u1") in scheduler.get_jobs()


class TestBroadcast:
    async def test_reaches_every_user_and_isolates_failures(self, context, database, fake_bot):
        await make_user(database, "u1")
        await make_user(database, "u2", notify=False)
        await make_user(database, "u3", active=False)
        fake_bot.raise_for.add("u2")

        batch = await context.planner.send_broadcast("Lớp MA004 nghỉ ngày mai")

        assert (batch.sent, batch.failed, batch.skipped) == (2, 1, 0)
        assert batch.failed_users == ["u2"]
        assert fake_bot.texts_for("u3") == ["Lớp MA004 nghỉ ngày mai"]
        assert await outgoing_count(database) == 2

    async def test_only_listed_users_and_unknown_ids_are_skipped(self, context, database, fake_bot, caplog):
        await make_user(database, "u1")
        await make_user(database, "u2")

        batch = await context.planner.send_broadcast("Nhắc nhở", ["u2", "ghost"])

        assert (batch.sent, batch.failed, batch.skipped) == (1, 0, 1)
        assert [target for target, _ in fake_bot.sent] == ["u2"]
        assert "ghost" in caplog.text


@pytest.mark.parametrize("minutes, expected", [(30, "30 9 * * *"), (90, "30 8 * * *")])
async def test_reminder_lead_time_is_configurable(
    context, database, settings, classes, scheduler, minutes, expected
):
    settings.pre_class_reminder_minutes = minutes
    user = await make_user(database, "u1")
    await enroll(database, settings, user, classes["MA004"])

    await context.planner.schedule_pre_class_reminders()

    assert scheduler.get_job(pre_class_job_name("u1")).cron_expression == expected
