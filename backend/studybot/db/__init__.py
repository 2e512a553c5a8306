"""Database layer."""

from studybot.db.base import Base
from studybot.db.models import (
    Assignment,
    AssignmentStatus,
    BotConfig,
    ClassSubject,
    Message,
    MessageDirection,
    MessageType,
    Semester,
    User,
    UserAssignment,
    UserClassSubject,
)
from studybot.db.session import Database

__all__ = [
    "Assignment",
    "AssignmentStatus",
    "Base",
    "BotConfig",
    "ClassSubject",
    "Database",
    "Message",
    "MessageDirection",
    "MessageType",
    "Semester",
    "User",
    "UserAssignment",
    "UserClassSubject",
]
