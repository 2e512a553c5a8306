"""User persistence."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studybot.db.models import User


class UserService:
    """Lookups and state changes for bot users, keyed by their platform id."""

    async def find_by_external_id(
        self, db: AsyncSession, external_id: str, *, active_only: bool = False
    ) -> User | None:
        stmt = select(User).where(User.external_id == external_id)
        if active_only:
            stmt = stmt.where(User.active.is_(True))
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_or_create(self, db: AsyncSession, external_id: str, name: str | None = None) -> User:
        """
        Return the user for `external_id`, creating an inactive one if needed.

        A non-empty display name refreshes the stored one.
        """
        user = await self.find_by_external_id(db, external_id)
        if user is None:
            user = User(external_id=external_id, name=name or "Unknown", active=False, notify=False)
            db.add(user)
            await db.flush()
        elif name and user.name != name:
            user.name = name
            await db.flush()
        return user

    async def find_all(self, db: AsyncSession, external_ids: list[str] | None = None) -> list[User]:
        """Every known user, or only those with the given platform ids."""
        stmt = select(User).order_by(User.created_at)
        if external_ids:
            stmt = stmt.where(User.external_id.in_(external_ids))
        result = await db.execute(stmt)
        return list(result.scalars())

    async def set_active(self, db: AsyncSession, user: User, active: bool) -> None:
        user.active = active
        await db.flush()

    async def set_notify(self, db: AsyncSession, user: User, notify: bool) -> None:
        user.notify = notify
        await db.flush()

    async def find_notify_eligible(self, db: AsyncSession) -> list[User]:
        """Users that are registered and have reminders switched on."""
        result = await db.execute(
            select(User)
            .where(User.active.is_(True), User.notify.is_(True))
            .order_by(User.created_at)
        )
        return list(result.scalars())
