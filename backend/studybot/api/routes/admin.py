"""Admin-only routes, guarded by the shared admin key."""

import math
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studybot.api.deps import Context, DbSession, require_admin
from studybot.config import sanitize_error
from studybot.db.models import MessageType
from studybot.schemas.assignments import (
    AssignmentCreate,
    AssignmentRead,
    AssignmentUpdate,
    NotifyDeadlineResult,
)
from studybot.schemas.classes import ClassSubjectRead
from studybot.schemas.configs import BotConfigRead, BotConfigUpdate, JobRead
from studybot.schemas.messages import (
    BroadcastRequest,
    BroadcastResult,
    MessagePage,
    MessageRead,
    SendMessageRequest,
    SendMessageResult,
)
from studybot.services.assignments import AssignmentService
from studybot.services.bot_config import BotConfigService
from studybot.services.classes import ClassService
from studybot.services.messages import MessageLog
from studybot.services.users import UserService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

_assignments = AssignmentService()
_classes = ClassService()
_configs = BotConfigService()
_messages = MessageLog()
_users = UserService()


async def _get_assignment_or_404(db: AsyncSession, assignment_id: UUID):
    assignment = await _assignments.get(db, assignment_id)
    if assignment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")
    return assignment


async def _require_class_subject(db: AsyncSession, class_subject_id: UUID) -> None:
    if await _classes.get(db, class_subject_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown class_subject_id")


# =============================================================================
# ASSIGNMENTS
# =============================================================================


@router.get("/assignments", response_model=list[AssignmentRead])
async def list_assignments(db: DbSession, class_subject_id: UUID) -> list[AssignmentRead]:
    """List the assignments of one class, earliest deadline first."""
    assignments = await _assignments.find_by_class_subject(db, class_subject_id)
    return [AssignmentRead.model_validate(a) for a in assignments]


@router.post("/assignments", response_model=AssignmentRead, status_code=status.HTTP_201_CREATED)
async def create_assignment(data: AssignmentCreate, db: DbSession) -> AssignmentRead:
    """Create an assignment. It is not fanned out to enrolled users."""
    await _require_class_subject(db, data.class_subject_id)
    assignment = await _assignments.create(
        db,
        data.class_subject_id,
        data.name,
        data.deadline,
        description=data.description,
        deadline_remind=data.deadline_remind,
    )
    return AssignmentRead.model_validate(assignment)


@router.post("/assignments/notify-deadline", response_model=NotifyDeadlineResult)
async def notify_deadline(context: Context) -> NotifyDeadlineResult:
    """Run the assignment-due reminder now."""
    batch = await context.planner.send_assignment_due_reminders()
    return NotifyDeadlineResult(sent=batch.sent, failed=batch.failed, skipped=batch.skipped)


@router.put("/assignments/{assignment_id}", response_model=AssignmentRead)
async def update_assignment(assignment_id: UUID, data: AssignmentUpdate, db: DbSession) -> AssignmentRead:
    """Partially update an assignment."""
    assignment = await _get_assignment_or_404(db, assignment_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("class_subject_id"):
        await _require_class_subject(db, changes["class_subject_id"])
    try:
        await _assignments.update(db, assignment, **changes)
    except IntegrityError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=sanitize_error(e, generic_message="Invalid assignment update"),
        ) from e
    return AssignmentRead.model_validate(assignment)


@router.delete("/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(assignment_id: UUID, db: DbSession) -> None:
    """Delete an assignment and every per-user copy of it."""
    assignment = await _get_assignment_or_404(db, assignment_id)
    await _assignments.delete(db, assignment)


# =============================================================================
# CLASS SUBJECTS
# =============================================================================


@router.get("/class-subjects", response_model=list[ClassSubjectRead])
async def list_class_subjects(
    db: DbSession, year: str | None = None, semester: int | None = None
) -> list[ClassSubjectRead]:
    subjects = await _classes.find_all(db, year=year, semester=semester)
    return [ClassSubjectRead.model_validate(s) for s in subjects]


# =============================================================================
# BOT CONFIG
# =============================================================================


@router.get("/configs", response_model=list[BotConfigRead])
async def list_configs(db: DbSession) -> list[BotConfigRead]:
    return [BotConfigRead.model_validate(c) for c in await _configs.all(db)]


@router.put("/configs/{key}", response_model=BotConfigRead)
async def set_config(key: str, data: BotConfigUpdate, db: DbSession) -> BotConfigRead:
    config = await _configs.set(db, key, data.value, data.description)
    await db.refresh(config)
    return BotConfigRead.model_validate(config)


# =============================================================================
# MESSAGES
# =============================================================================


@router.post("/send-message", response_model=SendMessageResult)
async def send_message(data: SendMessageRequest, context: Context, db: DbSession) -> SendMessageResult:
    """Send a direct message to a known user and log it as OUTGOING."""
    user = await _users.find_by_external_id(db, data.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not await context.planner.deliver(user.id, user.external_id, data.message, MessageType.TEXT):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to send message")
    return SendMessageResult(success=True)


@router.post("/broadcast", response_model=BroadcastResult)
async def broadcast(data: BroadcastRequest, context: Context) -> BroadcastResult:
    """Send one message to the listed users, or to everyone."""
    batch = await context.planner.send_broadcast(data.message, data.user_ids or None)
    return BroadcastResult(
        sent=batch.sent, failed=batch.failed, skipped=batch.skipped, failed_users=batch.failed_users
    )


@router.get("/users/{external_id}/messages", response_model=MessagePage)
async def list_user_messages(
    external_id: str,
    db: DbSession,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> MessagePage:
    """A user's conversation, newest first. Unknown users have an empty history."""
    user = await _users.find_by_external_id(db, external_id)
    messages, total = await _messages.list_for_user(db, user.id, page=page, limit=limit) if user else ([], 0)
    return MessagePage(
        messages=[MessageRead.model_validate(m) for m in messages],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )



# =============================================================================
# JOBS
# =============================================================================


@router.get("/jobs", response_model=list[JobRead])
async def list_jobs(context: Context) -> list[JobRead]:
    """Registered scheduler jobs with their status and counters."""
    scheduler = context.scheduler
    jobs = []
    for name in scheduler.get_jobs():
        job = scheduler.get_job(name)
        if job is None:
            continue
        jobs.append(
            JobRead(
                name=name,
                status=scheduler.get_status(name),
                cron_expression=job.cron_expression,
                next_run_time=scheduler.next_run_time(name),
                runs=job.runs,
                skipped=job.skipped,
                failures=job.failures,
                last_run_at=job.last_run_at,
            )
        )
    return jobs
