"""Assignment schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, model_validator

from studybot.schemas.base import BaseSchema


class AssignmentBase(BaseSchema):
    """Base assignment schema."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    deadline: datetime
    deadline_remind: datetime | None = None

    @model_validator(mode="after")
    def validate_remind(self) -> "AssignmentBase":
        """Ensure deadline_remind <= deadline if both are set."""
        if self.deadline_remind and self.deadline_remind > self.deadline:
            raise ValueError("deadline_remind must be on or before deadline")
        return self


class AssignmentCreate(AssignmentBase):
    """Schema for creating an assignment."""

    class_subject_id: UUID


class AssignmentRead(AssignmentBase):
    """Schema for reading assignment data."""

    id: UUID
    class_subject_id: UUID
    created_at: datetime


class AssignmentUpdate(BaseSchema):
    """Schema for updating an assignment. All fields optional."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    deadline: datetime | None = None
    deadline_remind: datetime | None = None
    class_subject_id: UUID | None = None


class NotifyDeadlineResult(BaseSchema):
    """Outcome of a manually triggered due-date reminder run."""

    sent: int
    failed: int
    skipped: int
