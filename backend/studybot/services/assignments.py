"""Assignment and per-user assignment persistence."""

from datetime import datetime, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studybot.db.models import Assignment, AssignmentStatus, UserAssignment
from studybot.utils.dates import is_same_day


def parse_uuid(value: str | UUID) -> UUID | None:
    """Parse a user-supplied id; malformed ids are treated as unknown."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(value.strip())
    except (ValueError, AttributeError):
        return None


class AssignmentService:
    """Class-wide assignments plus each user's own copy of them."""

    # -------------------------------------------------------------------------
    # Assignments
    # -------------------------------------------------------------------------

    async def create(
        self,
        db: AsyncSession,
        class_subject_id: UUID,
        name: str,
        deadline: datetime,
        description: str = "",
        deadline_remind: datetime | None = None,
    ) -> Assignment:
        assignment = Assignment(
            class_subject_id=class_subject_id,
            name=name,
            description=description,
            deadline=deadline,
            deadline_remind=deadline_remind,
        )
        db.add(assignment)
        await db.flush()
        return assignment

    async def get(self, db: AsyncSession, assignment_id: UUID | str) -> Assignment | None:
        parsed = parse_uuid(assignment_id)
        if parsed is None:
            return None
        return await db.get(Assignment, parsed)

    async def find_by_class_subject(self, db: AsyncSession, class_subject_id: UUID) -> list[Assignment]:
        result = await db.execute(
            select(Assignment)
            .where(Assignment.class_subject_id == class_subject_id)
            .order_by(Assignment.deadline)
        )
        return list(result.scalars())

    async def has_duplicate(
        self, db: AsyncSession, class_subject_id: UUID, name: str, deadline: datetime, tz: ZoneInfo
    ) -> bool:
        """Same name, same class and a deadline on the same calendar day in `tz`."""
        for existing in await self.find_by_class_subject(db, class_subject_id):
            if existing.name == name and is_same_day(existing.deadline, deadline, tz):
                return True
        return False

    async def update(self, db: AsyncSession, assignment: Assignment, **fields) -> Assignment:
        for key, value in fields.items():
            setattr(assignment, key, value)
        await db.flush()
        return assignment

    async def delete(self, db: AsyncSession, assignment: Assignment) -> None:
        await db.delete(assignment)
        await db.flush()

    # -------------------------------------------------------------------------
    # Per-user assignments
    # -------------------------------------------------------------------------

    async def assign(
        self, db: AsyncSession, assignment_id: UUID, user_id: UUID, created_by: str
    ) -> UserAssignment:
        user_assignment = UserAssignment(
            assignment_id=assignment_id,
            user_id=user_id,
            status=AssignmentStatus.PENDING.value,
            created_by=created_by,
        )
        db.add(user_assignment)
        await db.flush()
        return user_assignment

    async def list_for_user(self, db: AsyncSession, user_id: UUID) -> list[UserAssignment]:
        """The user's non-deleted assignments, earliest deadline first."""
        result = await db.execute(
            select(UserAssignment)
            .join(Assignment, Assignment.id == UserAssignment.assignment_id)
            .where(UserAssignment.user_id == user_id, UserAssignment.is_deleted.is_(False))
            .options(selectinload(UserAssignment.assignment).selectinload(Assignment.class_subject))
            .order_by(Assignment.deadline)
        )
        return list(result.scalars())

    async def get_for_user(
        self, db: AsyncSession, user_assignment_id: UUID | str, user_id: UUID
    ) -> UserAssignment | None:
        """A non-deleted per-user assignment owned by `user_id`, or None."""
        parsed = parse_uuid(user_assignment_id)
        if parsed is None:
            return None
        result = await db.execute(
            select(UserAssignment)
            .where(
                UserAssignment.id == parsed,
                UserAssignment.user_id == user_id,
                UserAssignment.is_deleted.is_(False),
            )
            .options(selectinload(UserAssignment.assignment).selectinload(Assignment.class_subject))
        )
        return result.scalar_one_or_none()

    async def soft_delete(self, db: AsyncSession, user_assignment: UserAssignment) -> None:
        user_assignment.is_deleted = True
        await db.flush()

    async def update_status(
        self, db: AsyncSession, user_assignment: UserAssignment, status: AssignmentStatus
    ) -> None:
        user_assignment.status = status.value
        await db.flush()

    async def find_due_soon(
        self, db: AsyncSession, user_id: UUID, now: datetime, window_days: int
    ) -> list[Assignment]:
        """
        Pending, non-deleted assignments of a user due within the window.

        The window is `now < deadline <= now + window_days`; past deadlines
        are excluded.
        """
        result = await db.execute(
            select(Assignment)
            .join(UserAssignment, UserAssignment.assignment_id == Assignment.id)
            .where(
                UserAssignment.user_id == user_id,
                UserAssignment.is_deleted.is_(False),
                UserAssignment.status == AssignmentStatus.PENDING.value,
                Assignment.deadline > now,
                Assignment.deadline <= now + timedelta(days=window_days),
            )
            .order_by(Assignment.deadline)
        )
        return list(result.scalars())
