"""Class subject and enrollment persistence."""

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from studybot.db.models import ClassSubject, UserClassSubject


class ClassService:
    """
    Queries over class subjects and user enrollments.

    Term-scoped lookups take the academic `year` ("2025-2026") and
    `semester` (1, 2 or 3) explicitly; callers pass the configured term.
    """

    async def get(self, db: AsyncSession, class_subject_id: UUID) -> ClassSubject | None:
        return await db.get(ClassSubject, class_subject_id)

    async def find_all(
        self, db: AsyncSession, year: str | None = None, semester: int | None = None
    ) -> list[ClassSubject]:
        stmt = select(ClassSubject)
        if year is not None:
            stmt = stmt.where(ClassSubject.year == year)
        if semester is not None:
            stmt = stmt.where(ClassSubject.semester == semester)
        result = await db.execute(stmt.order_by(ClassSubject.subject_id))
        return list(result.scalars())

    async def find_by_code_prefix(self, db: AsyncSession, prefix: str) -> list[ClassSubject]:
        result = await db.execute(
            select(ClassSubject)
            .where(ClassSubject.subject_id.startswith(prefix, autoescape=True))
            .order_by(ClassSubject.subject_id)
        )
        return list(result.scalars())

    async def find_by_code_contains(self, db: AsyncSession, text: str) -> ClassSubject | None:
        """First class whose code contains `text`."""
        result = await db.execute(
            select(ClassSubject)
            .where(ClassSubject.subject_id.contains(text, autoescape=True))
            .order_by(ClassSubject.subject_id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_all_main(self, db: AsyncSession, year: str, semester: int) -> list[ClassSubject]:
        result = await db.execute(
            select(ClassSubject)
            .where(
                ClassSubject.is_main.is_(True),
                ClassSubject.year == year,
                ClassSubject.semester == semester,
            )
            .order_by(ClassSubject.name)
        )
        return list(result.scalars())

    async def find_enrolled(self, db: AsyncSession, user_id: UUID) -> list[ClassSubject]:
        """Every class the user is enrolled in, any term."""
        result = await db.execute(
            select(ClassSubject)
            .join(UserClassSubject, UserClassSubject.class_subject_id == ClassSubject.id)
            .where(UserClassSubject.user_id == user_id)
            .order_by(ClassSubject.day_of_week, ClassSubject.start_time)
        )
        return list(result.scalars())

    async def find_enrolled_today(
        self, db: AsyncSession, user_id: UUID, day_of_week: int, year: str, semester: int
    ) -> list[ClassSubject]:
        """The user's classes on `day_of_week` in the given term, by start time."""
        result = await db.execute(
            select(ClassSubject)
            .join(UserClassSubject, UserClassSubject.class_subject_id == ClassSubject.id)
            .where(
                UserClassSubject.user_id == user_id,
                UserClassSubject.year == year,
                UserClassSubject.semester == semester,
                ClassSubject.day_of_week == day_of_week,
                ClassSubject.year == year,
                ClassSubject.semester == semester,
            )
            .order_by(ClassSubject.start_time)
        )
        return list(result.scalars())

    async def enrolled_user_ids(self, db: AsyncSession, class_subject_id: UUID) -> list[UUID]:
        result = await db.execute(
            select(UserClassSubject.user_id)
            .where(UserClassSubject.class_subject_id == class_subject_id)
            .distinct()
        )
        return list(result.scalars())

    async def replace_for_user(
        self,
        db: AsyncSession,
        user_id: UUID,
        class_subject_ids: list[UUID],
        year: str,
        semester: int,
    ) -> None:
        """Drop all of a user's enrollments and enroll them in `class_subject_ids`."""
        await db.execute(delete(UserClassSubject).where(UserClassSubject.user_id == user_id))
        # dict.fromkeys keeps order and drops repeats
        for class_subject_id in dict.fromkeys(class_subject_ids):
            db.add(
                UserClassSubject(
                    user_id=user_id,
                    class_subject_id=class_subject_id,
                    year=year,
                    semester=semester,
                )
            )
        await db.flush()

    async def add_user_to_class(
        self, db: AsyncSession, user_id: UUID, class_subject_id: UUID, year: str, semester: int
    ) -> UserClassSubject:
        """Enroll a user; an existing enrollment is returned unchanged."""
        result = await db.execute(
            select(UserClassSubject).where(
                UserClassSubject.user_id == user_id,
                UserClassSubject.class_subject_id == class_subject_id,
            )
        )
        link = result.scalar_one_or_none()
        if link is None:
            link = UserClassSubject(
                user_id=user_id, class_subject_id=class_subject_id, year=year, semester=semester
            )
            db.add(link)
            await db.flush()
        return link

    async def remove_user_from_class(self, db: AsyncSession, user_id: UUID, class_subject_id: UUID) -> bool:
        result = await db.execute(
            delete(UserClassSubject).where(
                UserClassSubject.user_id == user_id,
                UserClassSubject.class_subject_id == class_subject_id,
            )
        )
        return result.rowcount > 0
