"""Class subject schemas."""

from uuid import UUID

from studybot.schemas.base import BaseSchema


class ClassSubjectRead(BaseSchema):
    """Schema for reading class subject data."""

    id: UUID
    subject_id: str
    name: str
    teacher: str
    credits: int
    day_of_week: int
    start_time: str
    end_time: str
    year: str
    semester: int
    is_main: bool
