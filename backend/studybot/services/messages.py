"""Conversation log."""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studybot.db.models import Message, MessageDirection, MessageType


class MessageLog:
    """Append-only record of incoming and outgoing messages."""

    async def save(
        self,
        db: AsyncSession,
        user_id: UUID,
        content: str,
        direction: MessageDirection,
        message_type: MessageType = MessageType.TEXT,
        chat_id: str | None = None,
    ) -> Message:
        message = Message(
            user_id=user_id,
            chat_id=chat_id,
            content=content,
            type=message_type.value,
            direction=direction.value,
        )
        db.add(message)
        await db.flush()
        return message

    async def list_for_user(
        self, db: AsyncSession, user_id: UUID, *, page: int = 1, limit: int = 50
    ) -> tuple[list[Message], int]:
        """Newest first, paginated. Returns the page and the total count."""
        total = await db.scalar(select(func.count()).select_from(Message).where(Message.user_id == user_id))
        result = await db.execute(
            select(Message)
            .where(Message.user_id == user_id)
            .order_by(Message.timestamp.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars()), total or 0
