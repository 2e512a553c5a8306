"""
Chat command dispatch.

Turns one incoming text into one reply, reading and writing the store
along the way. Commands are matched by prefix in a fixed order; the first
match wins. Validation, not-found and permission outcomes are returned as
reply text. Store errors propagate to the caller.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studybot import responses
from studybot.config import Settings
from studybot.db.models import AssignmentStatus, ClassSubject, MessageDirection, MessageType, User
from studybot.services.assignments import AssignmentService
from studybot.services.authorization import AssignmentEditorPolicy
from studybot.services.bot_config import DEFAULT_RESPONSE, BotConfigService
from studybot.services.classes import ClassService
from studybot.services.messages import MessageLog
from studybot.services.planner import NotificationPlanner
from studybot.services.users import UserService
from studybot.utils.dates import day_of_week_text, format_date, format_datetime, parse_deadline

logger = logging.getLogger(__name__)


@dataclass
class IncomingText:
    user_id: str
    chat_id: str
    display_name: str
    text: str


@dataclass
class DispatchResult:
    handled: bool
    response_text: str
    message_type: MessageType = MessageType.TEXT


Handler = Callable[[AsyncSession, IncomingText, str], Awaitable[DispatchResult]]


class CommandDispatcher:
    """Routes `/command args` texts to handlers and logs both sides of the turn."""

    def __init__(
        self,
        settings: Settings,
        planner: NotificationPlanner,
        policy: AssignmentEditorPolicy,
    ):
        self.settings = settings
        self.planner = planner
        self.policy = policy
        self.tz = ZoneInfo(settings.timezone)
        self.users = UserService()
        self.classes = ClassService()
        self.assignments = AssignmentService()
        self.messages = MessageLog()
        self.configs = BotConfigService()

        # Order matters: first prefix match wins
        self.commands: list[tuple[str, Handler]] = [
            ("/help", self._help),
            ("/menu", self._menu),
            ("/info", self._info),
            ("/class", self._class),
            ("/today", self._today),
            ("/register", self._register),
            ("/unregister", self._unregister),
            ("/assignments", self._assignments),
            ("/add_assignment_class", self._add_assignment_class),
            ("/remove_assignment", self._remove_assignment),
            ("/status_assignment", self._status_assignment),
            ("/notify", self._notify),
            ("/docs", self._docs),
        ]

    def match(self, text: str) -> tuple[str, Handler] | None:
        for token, handler in self.commands:
            if text.startswith(token):
                return token, handler
        return None

    async def dispatch(self, db: AsyncSession, incoming: IncomingText) -> DispatchResult:
        """
        Handle one text turn inside the caller's session.

        The incoming text is logged before dispatch and the reply after it,
        both as messages of the sender. The reply is cut to the configured
        `max_message_length` before it is logged, so the log holds exactly
        what is sent.
        """
        text = (incoming.text or "").strip()
        user = await self.users.find_or_create(db, incoming.user_id, incoming.display_name)
        await self.messages.save(
            db, user.id, text, MessageDirection.INCOMING, MessageType.TEXT, chat_id=incoming.chat_id
        )

        matched = self.match(text)
        if matched is None:
            logger.info("No command matched for user %s", incoming.user_id)
            result = await self._default(db, incoming, "")
        else:
            token, handler = matched
            logger.info("Processing %s command for user %s", token, incoming.user_id)
            result = await handler(db, incoming, text[len(token):].strip())

        limit = await self.configs.max_message_length(db)
        if limit and len(result.response_text) > limit:
            result.response_text = result.response_text[:limit]

        await self.messages.save(
            db,
            user.id,
            result.response_text,
            MessageDirection.OUTGOING,
            result.message_type,
            chat_id=incoming.chat_id,
        )
        return result

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _registered_user(self, db: AsyncSession, external_id: str) -> User | None:
        return await self.users.find_by_external_id(db, external_id, active_only=True)

    @staticmethod
    def _template(text: str) -> DispatchResult:
        return DispatchResult(handled=True, response_text=text, message_type=MessageType.TEMPLATE)

    @staticmethod
    def _format_class(subject: ClassSubject) -> str:
        return (
            f"• Mã: {subject.subject_id}\n"
            f"• Môn: {subject.name}\n"
            f"• Giảng viên: {subject.teacher}\n"
            f"• Thời gian: {subject.start_time} đến {subject.end_time} "
            f"{day_of_week_text(subject.day_of_week)}\n"
            f"{responses.SEPARATOR}"
        )

    # -------------------------------------------------------------------------
    # Informational
    # -------------------------------------------------------------------------

    async def _help(self, db: AsyncSession, incoming: IncomingText, args: str) -> DispatchResult:
        return self._template(responses.HELP_TEXT)

    async def _menu(self, db: AsyncSession, incoming: IncomingText, args: str) -> DispatchResult:
        buttons = "\n".join(f"{label} - {command}" for label, command in responses.MENU_BUTTONS)
        return self._template(f"{responses.MENU_TEXT}\n{buttons}")

    async def _info(self, db: AsyncSession, incoming: IncomingText, args: str) -> DispatchResult:
        return self._template(responses.INFO_TEXT)

    async def _default(self, db: AsyncSession, incoming: IncomingText, args: str) -> DispatchResult:
        configured = await self.configs.get(db, DEFAULT_RESPONSE)
        if configured:
            text = configured.replace("{name}", incoming.display_name or "bạn")
        else:
            text = responses.DEFAULT_REPLY.format(name=incoming.display_name)
        return DispatchResult(handled=False, response_text=text, message_type=MessageType.TEXT)

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    async def _register(self, db: AsyncSession, incoming: IncomingText, args: str) -> DispatchResult:
        if await self._registered_user(db, incoming.user_id):
            return self._template(responses.ALREADY_REGISTERED)

        user = await self.users.find_or_create(db, incoming.user_id, incoming.display_name)
        await self.users.set_active(db, user, True)
        await self.users.set_notify(db, user, True)

        main_classes = await self.classes.find_all_main(db, self.settings.academic_year, self.settings.semester)
        await self.classes.replace_for_user(
            db,
            user.id,
            [subject.id for subject in main_classes],
            self.settings.academic_year,
            self.settings.semester,
        )
        logger.info("User %s registered into %d main classes", incoming.user_id, len(main_classes))
        return self._template(f"{responses.REGISTER_SUCCESS}\n\n{responses.REGISTER_ENROLLED}")

    async def _unregister(self, db: AsyncSession, incoming: IncomingText, args: str) -> DispatchResult:
        user = await self._registered_user(db, incoming.user_id)
        if user is None:
            return self._template(responses.NOT_REGISTERED)

        await self.users.set_active(db, user, False)
        await self.users.set_notify(db, user, False)
        return self._template(responses.UNREGISTER_SUCCESS)

    async def _notify(self, db: AsyncSession, incoming: IncomingText, args: str) -> DispatchResult:
        choice = args.lower()
        if choice not in ("on", "off"):
            return self._template(responses.NOTIFY_SYNTAX)

        enabled = choice == "on"
        user = await self.users.find_or_create(db, incoming.user_id, incoming.display_name)
        await self.users.set_notify(db, user, enabled)

        text = responses.NOTIFY_SUCCESS.format(name=incoming.display_name, state="bật" if enabled else "tắt")
        if not enabled:
            text += responses.NOTIFY_OFF_SUFFIX
        return self._template(text)

    # -------------------------------------------------------------------------
    # Classes
    # -------------------------------------------------------------------------

    async def _class(self, db: AsyncSession, incoming: IncomingText, args: str) -> DispatchResult:
        user = await self._registered_user(db, incoming.user_id)
        if user is None:
            return DispatchResult(handled=True, response_text=responses.NOT_REGISTERED)

        enrolled = await self.classes.find_enrolled(db, user.id)
        if not enrolled:
            return self._template(responses.NO_CLASSES)

        if args:
            match = next(
                (s for s in enrolled if s.subject_id.startswith(args) or s.name == args),
                None,
            )
            if match is None:
                return self._template(responses.CLASS_NOT_FOUND.format(code=args))
            body = self._format_class(match)
        else:
            body = "\n".join(self._format_class(subject) for subject in enrolled)

        return self._template(f"{responses.CLASS_HEADER}\n{body}\n{responses.CLASS_FOOTER}")

    async def _today(self, db: AsyncSession, incoming: IncomingText, args: str) -> DispatchResult:
        user = await self._registered_user(db, incoming.user_id)
        if user is None:
            return self._template(responses.NOT_REGISTERED)

        today = await self.planner.classes_today(db, user)
        return self._template(today.message)

    async def _docs(self, db: AsyncSession, incoming: IncomingText, args: str) -> DispatchResult:
        if await self._registered_user(db, incoming.user_id) is None:
            return DispatchResult(handled=True, response_text=responses.NOT_REGISTERED)

        links = self.settings.docs_links
        code = args.upper()
        if not code:
            listing = "\n".join(f"- {key}: {url}" for key, url in links.items())
            return self._template(f"{responses.DOCS_LIST_HEADER}\n{listing}")

        for key, url in links.items():
            if code.startswith(key.upper()):
                return self._template(responses.DOCS_MATCH.format(code=code, url=url))
        return self._template(responses.DOCS_NOT_FOUND.format(code=code))

    # -------------------------------------------------------------------------
    # Assignments
    # -------------------------------------------------------------------------

    async def _assignments(self, db: AsyncSession, incoming: IncomingText, args: str) -> DispatchResult:
        user = await self.users.find_by_external_id(db, incoming.user_id)
        items = await self.assignments.list_for_user(db, user.id) if user else []
        if not items:
            return self._template(responses.ASSIGNMENTS_EMPTY)

        blocks = []
        for item in items:
            assignment = item.assignment
            subject = assignment.class_subject.name if assignment.class_subject else responses.UNKNOWN_SUBJECT
            done = "✅" if item.status == AssignmentStatus.COMPLETED.value else "❌"
            block = (
                f"• Mã: {item.id}\n"
                f"• Bài tập: {assignment.name}\n"
                f"• Hạn nộp: {format_datetime(assignment.deadline, self.tz)}\n"
                f"• Môn: {subject}\n"
                f"• Hoàn thành: {done}\n"
            )
            if assignment.description:
                block += f"• Mô tả: {assignment.description}\n"
            blocks.append(block + responses.ASSIGNMENT_SEPARATOR)

        text = f"{responses.ASSIGNMENTS_HEADER}\n\n" + "\n".join(blocks) + f"\n{responses.ASSIGNMENTS_FOOTER}"
        return self._template(text)

    async def _add_assignment_class(
        self, db: AsyncSession, incoming: IncomingText, args: str
    ) -> DispatchResult:
        if not self.policy.can_add_assignments(incoming.user_id):
            logger.warning("User %s is not allowed to add assignments", incoming.user_id)
            return DispatchResult(handled=True, response_text=responses.PERMISSION_DENIED)

        try:
            payload = json.loads(args) if args else None
        except json.JSONDecodeError:
            payload = None
        if not isinstance(payload, dict):
            return self._template(responses.ADD_ASSIGNMENT_SYNTAX)

        code = str(payload.get("classSubjectId") or "").strip()
        name = str(payload.get("name") or "").strip()
        raw_deadline = str(payload.get("deadline") or "").strip()
        if not code or not name or not raw_deadline:
            return self._template(responses.ADD_ASSIGNMENT_SYNTAX)

        subject = await self.classes.find_by_code_contains(db, code)
        if subject is None:
            return self._template(responses.ADD_ASSIGNMENT_CLASS_NOT_FOUND.format(code=code))

        deadline = parse_deadline(raw_deadline, self.tz)
        if deadline is None:
            return self._template(responses.ADD_ASSIGNMENT_BAD_DATE)

        if await self.assignments.has_duplicate(db, subject.id, name, deadline, self.tz):
            return self._template(
                responses.ADD_ASSIGNMENT_DUPLICATE.format(
                    name=name, subject=subject.name, date=format_date(deadline, self.tz)
                )
            )

        assignment = await self.assignments.create(
            db,
            subject.id,
            name,
            deadline,
            description=str(payload.get("description") or ""),
        )

        assigned = 0
        for user_id in await self.classes.enrolled_user_ids(db, subject.id):
            try:
                async with db.begin_nested():
                    await self.assignments.assign(db, assignment.id, user_id, created_by=incoming.user_id)
                assigned += 1
            except SQLAlchemyError:
                logger.exception("Failed to assign %s to user %s", assignment.id, user_id)

        text = responses.ADD_ASSIGNMENT_SUCCESS.format(
            name=name, subject=subject.name, date=format_date(deadline, self.tz)
        )
        return self._template(f"{text}\n{responses.ADD_ASSIGNMENT_ASSIGNED.format(count=assigned)}")

    async def _remove_assignment(
        self, db: AsyncSession, incoming: IncomingText, args: str
    ) -> DispatchResult:
        user = await self._registered_user(db, incoming.user_id)
        if user is None:
            return self._template(responses.NOT_REGISTERED)
        if not args:
            return self._template(responses.REMOVE_ASSIGNMENT_SYNTAX)

        item = await self.assignments.get_for_user(db, args, user.id)
        if item is None:
            return self._template(responses.ASSIGNMENT_NOT_FOUND.format(id=args))

        await self.assignments.soft_delete(db, item)
        return self._template(responses.REMOVE_ASSIGNMENT_SUCCESS.format(name=item.assignment.name))

    async def _status_assignment(
        self, db: AsyncSession, incoming: IncomingText, args: str
    ) -> DispatchResult:
        user = await self._registered_user(db, incoming.user_id)
        if user is None:
            return self._template(responses.NOT_REGISTERED)

        parts = [part.strip() for part in args.split("|")]
        item_id = parts[0] if parts else ""
        flag = parts[1] if len(parts) > 1 else ""
        if not item_id or flag not in ("true", "false"):
            logger.info("Invalid /status_assignment arguments: %r", args)
            return self._template(responses.STATUS_ASSIGNMENT_SYNTAX)

        item = await self.assignments.get_for_user(db, item_id, user.id)
        if item is None:
            return self._template(responses.ASSIGNMENT_NOT_FOUND.format(id=item_id))

        completed = flag == "true"
        await self.assignments.update_status(
            db, item, AssignmentStatus.COMPLETED if completed else AssignmentStatus.PENDING
        )
        subject = item.assignment.class_subject
        return self._template(
            responses.STATUS_ASSIGNMENT_SUCCESS.format(
                name=item.assignment.name,
                subject=subject.name if subject else responses.UNKNOWN_SUBJECT,
                status=responses.STATUS_COMPLETED if completed else responses.STATUS_PENDING,
            )
        )
