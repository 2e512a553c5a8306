"""Tests for chat command dispatch."""

import json

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from studybot import responses
from studybot.db.models import (
    Assignment,
    AssignmentStatus,
    Message,
    MessageDirection,
    User,
    UserAssignment,
    UserClassSubject,
)
from studybot.services.bot_config import DEFAULT_RESPONSE, BotConfigService
from studybot.services.dispatcher import IncomingText
from conftest import EDITOR_ID, make_user


@pytest.fixture
def send(context):
    """Dispatch one text as `user_id` in its own unit of work."""

    async def _send(text: str, user_id: str = "u1", name: str = "An"):
        async with context.database.session() as db:
            return await context.dispatcher.dispatch(
                db, IncomingText(user_id=user_id, chat_id=user_id, display_name=name, text=text)
            )

    return _send


async def fetch_user(database, external_id: str) -> User | None:
    async with database.session() as db:
        result = await db.execute(select(User).where(User.external_id == external_id))
        return result.scalar_one_or_none()


async def count(database, model, *criteria) -> int:
    async with database.session() as db:
        return await db.scalar(select(func.count()).select_from(model).where(*criteria))


def add_assignment_command(**payload) -> str:
    return "/add_assignment_class " + json.dumps(payload, ensure_ascii=False)


class TestInformational:
    async def test_help(self, send):
        result = await send("/help")
        assert result.handled
        assert result.response_text == responses.HELP_TEXT

    async def test_menu_lists_buttons(self, send):
        result = await send("/menu")
        assert result.response_text.startswith(responses.MENU_TEXT)
        assert "/assignments" in result.response_text

    async def test_unknown_text_gets_default_reply(self, send):
        result = await send("xin chào", name="Bình")
        assert not result.handled
        assert result.response_text == responses.DEFAULT_REPLY.format(name="Bình")

    async def test_configured_default_response_wins(self, send, database):
        async with database.session() as db:
            await BotConfigService().set(db, DEFAULT_RESPONSE, "Chào {name}!")
        result = await send("hello", name="Bình")
        assert result.response_text == "Chào Bình!"

    async def test_turn_is_logged_both_ways(self, send, database):
        await send("/info")
        user = await fetch_user(database, "u1")
        assert await count(database, Message, Message.user_id == user.id) == 2
        assert await count(
            database,
            Message,
            Message.user_id == user.id,
            Message.direction == MessageDirection.OUTGOING.value,
            Message.content == responses.INFO_TEXT,
        ) == 1


class TestRegistration:
    async def test_register_enrolls_main_classes_of_current_term(self, send, database, classes):
        result = await send("/register")

        assert result.response_text.startswith(responses.REGISTER_SUCCESS)
        user = await fetch_user(database, "u1")
        assert user.active and user.notify
        # MA004 and IT003 only: IE105 is not main, OLD01 is another term
        assert await count(database, UserClassSubject, UserClassSubject.user_id == user.id) == 2

    async def test_register_twice_is_idempotent(self, send, database, classes):
        await send("/register")
        result = await send("/register")

        assert result.response_text == responses.ALREADY_REGISTERED
        user = await fetch_user(database, "u1")
        assert await count(database, UserClassSubject, UserClassSubject.user_id == user.id) == 2

    async def test_reregister_after_unregister(self, send, database, classes):
        await send("/register")
        assert (await send("/unregister")).response_text == responses.UNREGISTER_SUCCESS
        user = await fetch_user(database, "u1")
        assert not user.active and not user.notify

        assert (await send("/register")).response_text.startswith(responses.REGISTER_SUCCESS)
        assert await count(database, UserClassSubject, UserClassSubject.user_id == user.id) == 2

    async def test_unregister_when_not_registered(self, send):
        assert (await send("/unregister")).response_text == responses.NOT_REGISTERED


class TestNotify:
    async def test_invalid_value_changes_nothing(self, send, database):
        await make_user(database, "u1", notify=True)
        result = await send("/notify xyz")

        assert result.response_text == responses.NOTIFY_SYNTAX
        assert (await fetch_user(database, "u1")).notify is True

    async def test_toggle_is_case_insensitive(self, send, database):
        await make_user(database, "u1", notify=True)

        result = await send("/notify OFF", name="An")
        assert result.response_text.startswith("Chào An, Bạn đã tắt")
        assert (await fetch_user(database, "u1")).notify is False

        await send("/notify On")
        assert (await fetch_user(database, "u1")).notify is True

    async def test_notify_does_not_change_registration(self, send, database):
        await make_user(database, "u1", active=False, notify=False)
        await send("/notify on")
        user = await fetch_user(database, "u1")
        assert user.notify is True
        assert user.active is False


class TestClasses:
    async def test_requires_registration(self, send, classes):
        assert (await send("/class")).response_text == responses.NOT_REGISTERED
        assert (await send("/today")).response_text == responses.NOT_REGISTERED
        assert (await send("/docs")).response_text == responses.NOT_REGISTERED

    async def test_list_and_filter(self, send, classes):
        await send("/register")

        listing = (await send("/class")).response_text
        assert listing.startswith(responses.CLASS_HEADER)
        assert "MA004.F13.LT.CNTT" in listing and "IT003.F12.CNTT" in listing
        assert listing.endswith(responses.CLASS_FOOTER)

        one = (await send("/class MA004")).response_text
        assert "MA004.F13.LT.CNTT" in one and "IT003" not in one
        assert "Thứ Hai" in one

        by_name = (await send("/class Cấu trúc rời rạc")).response_text
        assert "MA004.F13.LT.CNTT" in by_name

        assert (await send("/class ZZ999")).response_text == responses.CLASS_NOT_FOUND.format(code="ZZ999")

    async def test_registered_without_classes(self, send, database):
        await make_user(database, "u1")
        assert (await send("/class")).response_text == responses.NO_CLASSES

    async def test_today_uses_planner_clock(self, send, classes):
        await send("/register")
        text = (await send("/today")).response_text
        assert text.startswith(responses.TODAY_HEADER)
        assert "Cấu trúc rời rạc" in text and "10:00 đến 11:30" in text


class TestDocs:
    async def test_listing_match_and_miss(self, send, database):
        await make_user(database, "u1")

        listing = (await send("/docs")).response_text
        assert listing.startswith(responses.DOCS_LIST_HEADER)
        assert "- MA004: " in listing

        match = (await send("/docs ma004.f13")).response_text
        assert match.startswith("📚 Tài liệu cho lớp học MA004.F13:")

        assert (await send("/docs XX1")).response_text == responses.DOCS_NOT_FOUND.format(code="XX1")


class TestAddAssignment:
    async def test_only_editors_may_add(self, send, database, classes):
        result = await send(add_assignment_command(name="Lab 1", classSubjectId="MA004", deadline="2025-07-10 23:59"))
        assert result.response_text == responses.PERMISSION_DENIED
        assert await count(database, Assignment) == 0

    @pytest.mark.parametrize(
        "text",
        [
            "/add_assignment_class",
            "/add_assignment_class not json",
            "/add_assignment_class []",
            add_assignment_command(name="Lab 1", deadline="2025-07-10"),
            add_assignment_command(classSubjectId="MA004", deadline="2025-07-10"),
            add_assignment_command(name="Lab 1", classSubjectId="MA004"),
        ],
    )
    async def test_payload_validation(self, send, classes, text):
        result = await send(text, user_id=EDITOR_ID)
        assert result.response_text == responses.ADD_ASSIGNMENT_SYNTAX

    async def test_unknown_class_and_bad_date(self, send, classes):
        unknown = await send(
            add_assignment_command(name="Lab 1", classSubjectId="ZZ999", deadline="2025-07-10"),
            user_id=EDITOR_ID,
        )
        assert unknown.response_text == responses.ADD_ASSIGNMENT_CLASS_NOT_FOUND.format(code="ZZ999")

        bad_date = await send(
            add_assignment_command(name="Lab 1", classSubjectId="MA004", deadline="next friday"),
            user_id=EDITOR_ID,
        )
        assert bad_date.response_text == responses.ADD_ASSIGNMENT_BAD_DATE

    async def test_creates_and_fans_out_to_enrolled_users(self, send, database, classes):
        await send("/register", user_id="u1")
        await send("/register", user_id="u2")

        result = await send(
            add_assignment_command(name="Lab 1", classSubjectId="MA004", deadline="2025-07-10 23:59"),
            user_id=EDITOR_ID,
        )

        assert result.response_text.startswith("Đã thêm bài tập: Lab 1 thuộc môn Cấu trúc rời rạc")
        assert responses.ADD_ASSIGNMENT_ASSIGNED.format(count=2) in result.response_text
        assert await count(database, Assignment) == 1
        assert await count(database, UserAssignment, UserAssignment.created_by == EDITOR_ID) == 2

    async def test_one_failed_assignment_does_not_stop_the_fan_out(
        self, send, context, database, classes, monkeypatch, caplog
    ):
        for external_id in ("u1", "u2", "u3"):
            await send("/register", user_id=external_id)
        assign = context.dispatcher.assignments.assign
        calls = []

        async def assign_failing_second(db, assignment_id, user_id, created_by):
            calls.append(user_id)
            if len(calls) == 2:
                raise IntegrityError("INSERT INTO user_assignments", {}, Exception("constraint failed"))
            return await assign(db, assignment_id, user_id, created_by=created_by)

        monkeypatch.setattr(context.dispatcher.assignments, "assign", assign_failing_second)

        result = await send(
            add_assignment_command(name="Lab 1", classSubjectId="MA004", deadline="2025-07-10 23:59"),
            user_id=EDITOR_ID,
        )

        assert len(calls) == 3
        assert responses.ADD_ASSIGNMENT_ASSIGNED.format(count=2) in result.response_text
        assert await count(database, Assignment) == 1
        assert await count(database, UserAssignment) == 2
        assert "Failed to assign" in caplog.text

    async def test_duplicate_same_day_is_rejected(self, send, database, classes):
        first = add_assignment_command(name="Lab 1", classSubjectId="MA004", deadline="2025-07-10 08:00")
        same_day = add_assignment_command(name="Lab 1", classSubjectId="MA004", deadline="2025-07-10 23:59")
        other_day = add_assignment_command(name="Lab 1", classSubjectId="MA004", deadline="2025-07-11 08:00")

        await send(first, user_id=EDITOR_ID)
        duplicate = await send(same_day, user_id=EDITOR_ID)
        assert duplicate.response_text == responses.ADD_ASSIGNMENT_DUPLICATE.format(
            name="Lab 1", subject="Cấu trúc rời rạc", date="10/07/2025"
        )

        await send(other_day, user_id=EDITOR_ID)
        assert await count(database, Assignment) == 2


class TestUserAssignments:
    @pytest.fixture
    async def assigned(self, send, database, classes):
        """u1 registered with one assignment; returns the per-user row id."""
        await send("/register")
        await send(
            add_assignment_command(name="Lab 1", classSubjectId="MA004", deadline="2025-07-10 23:59"),
            user_id=EDITOR_ID,
        )
        async with database.session() as db:
            return await db.scalar(select(UserAssignment.id))

    async def test_list_shows_status(self, send, assigned):
        text = (await send("/assignments")).response_text
        assert text.startswith(responses.ASSIGNMENTS_HEADER)
        assert str(assigned) in text
        assert "• Hoàn thành: ❌" in text
        assert "10/07/2025 23:59" in text

    async def test_status_round_trip(self, send, database, assigned):
        done = await send(f"/status_assignment {assigned}|true")
        assert done.response_text.endswith(f"thành {responses.STATUS_COMPLETED}.")
        async with database.session() as db:
            assert (await db.get(UserAssignment, assigned)).status == AssignmentStatus.COMPLETED.value
        assert "• Hoàn thành: ✅" in (await send("/assignments")).response_text

        await send(f"/status_assignment {assigned} | false")
        async with database.session() as db:
            assert (await db.get(UserAssignment, assigned)).status == AssignmentStatus.PENDING.value

    @pytest.mark.parametrize("args", ["", "abc", "abc|yes", "|true"])
    async def test_status_syntax(self, send, assigned, args):
        result = await send(f"/status_assignment {args}")
        assert result.response_text == responses.STATUS_ASSIGNMENT_SYNTAX

    async def test_remove_soft_deletes(self, send, database, assigned):
        result = await send(f"/remove_assignment {assigned}")
        assert result.response_text == responses.REMOVE_ASSIGNMENT_SUCCESS.format(name="Lab 1")

        async with database.session() as db:
            assert (await db.get(UserAssignment, assigned)).is_deleted is True
        assert (await send("/assignments")).response_text == responses.ASSIGNMENTS_EMPTY
        # Already deleted rows are no longer found
        again = await send(f"/remove_assignment {assigned}")
        assert again.response_text == responses.ASSIGNMENT_NOT_FOUND.format(id=assigned)

    async def test_cannot_touch_someone_elses_assignment(self, send, database, assigned):
        await make_user(database, "u2")
        result = await send(f"/remove_assignment {assigned}", user_id="u2")
        assert result.response_text == responses.ASSIGNMENT_NOT_FOUND.format(id=assigned)

    async def test_remove_syntax_and_bad_id(self, send, assigned):
        assert (await send("/remove_assignment")).response_text == responses.REMOVE_ASSIGNMENT_SYNTAX
        assert (await send("/remove_assignment not-a-uuid")).response_text == (
            responses.ASSIGNMENT_NOT_FOUND.format(id="not-a-uuid")
        )
