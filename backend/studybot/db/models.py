"""
SQLAlchemy 2.0 Models for the Study Optimizer bot.

Uses modern declarative syntax with Mapped[] type annotations.
Column types are kept portable so the same models run on PostgreSQL
(production) and SQLite (tests).
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from enum import IntEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studybot.db.base import Base
from studybot.db.types import UTCDateTime


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================


class AssignmentStatus(str, PyEnum):
    """Per-user progress of an assignment."""

    PENDING = "pending"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class MessageType(str, PyEnum):
    """Kind of message exchanged with a user."""

    TEXT = "TEXT"
    TEMPLATE = "TEMPLATE"
    IMAGE = "IMAGE"
    FILE = "FILE"
    STICKER = "STICKER"
    LOCATION = "LOCATION"


class MessageDirection(str, PyEnum):
    """Whether a message came from the user or was sent by the bot."""

    INCOMING = "INCOMING"
    OUTGOING = "OUTGOING"


class Semester(IntEnum):
    """Semester number within an academic year."""

    FIRST = 1
    SECOND = 2
    SUMMER = 3


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """
    A student talking to the bot.

    `external_id` is the messaging-platform identity; `active` means
    registered, `notify` is the reminder opt-in. The two are independent.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    external_id: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="Unknown")
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notify: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    # Relationships
    class_links: Mapped[list["UserClassSubject"]] = relationship(
        "UserClassSubject", back_populates="user", cascade="all, delete-orphan"
    )
    assignments: Mapped[list["UserAssignment"]] = relationship(
        "UserAssignment", back_populates="user", cascade="all, delete-orphan"
    )
    messages: Mapped[list["Message"]] = relationship(
        "Message", back_populates="user", cascade="all, delete-orphan"
    )


class ClassSubject(Base):
    """
    A scheduled class section.

    `day_of_week` runs 0 (Sunday) to 6 (Saturday); times are "HH:MM" in the
    bot's configured timezone. `is_main` subjects are auto-enrolled on
    registration.
    """

    __tablename__ = "class_subjects"
    __table_args__ = (
        Index("idx_class_subjects_term", "year", "semester"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="valid_day_of_week"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    subject_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)  # e.g. "MA004.F13.LT.CNTT"
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    teacher: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    year: Mapped[str] = mapped_column(String(16), nullable=False)  # e.g. "2025-2026"
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    is_main: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, nullable=False)

    # Relationships
    user_links: Mapped[list["UserClassSubject"]] = relationship(
        "UserClassSubject", back_populates="class_subject", cascade="all, delete-orphan"
    )
    assignments: Mapped[list["Assignment"]] = relationship(
        "Assignment", back_populates="class_subject", cascade="all, delete-orphan"
    )


class UserClassSubject(Base):
    """Enrollment of a user in a class for a given year/semester."""

    __tablename__ = "user_class_subjects"
    __table_args__ = (
        UniqueConstraint("user_id", "class_subject_id", name="unique_user_class_subject"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    class_subject_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("class_subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    year: Mapped[str] = mapped_column(String(16), nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="class_links")
    class_subject: Mapped["ClassSubject"] = relationship("ClassSubject", back_populates="user_links")


class Assignment(Base):
    """An assignment shared by everyone enrolled in a class."""

    __tablename__ = "assignments"
    __table_args__ = (
        Index("idx_assignments_class_deadline", "class_subject_id", "deadline"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    class_subject_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("class_subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    deadline: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    deadline_remind: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, nullable=False)

    # Relationships
    class_subject: Mapped["ClassSubject"] = relationship("ClassSubject", back_populates="assignments")
    user_assignments: Mapped[list["UserAssignment"]] = relationship(
        "UserAssignment", back_populates="assignment", cascade="all, delete-orphan"
    )


class UserAssignment(Base):
    """
    Per-user copy of an assignment.

    Rows are only soft-deleted by users (`is_deleted`); soft-deleted rows
    are excluded from listings and reminders.
    """

    __tablename__ = "user_assignments"
    __table_args__ = (
        Index("idx_user_assignments_user_active", "user_id", "is_deleted"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    assignment_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=AssignmentStatus.PENDING.value)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, nullable=False)

    # Relationships
    assignment: Mapped["Assignment"] = relationship("Assignment", back_populates="user_assignments")
    user: Mapped["User"] = relationship("User", back_populates="assignments")


class Message(Base):
    """Log of every message received from or sent to a user."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("idx_messages_user_timestamp", "user_id", "timestamp"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    chat_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(16), nullable=False, default=MessageType.TEXT.value)
    direction: Mapped[str] = mapped_column(String(16), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="messages")


class BotConfig(Base):
    """Key/value runtime configuration editable from the admin surface."""

    __tablename__ = "bot_configs"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False
    )
