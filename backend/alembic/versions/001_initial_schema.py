"""Initial schema with all tables.

Revision ID: 001_initial
Revises:
Create Date: 2025-07-01

Creates the bot schema:
- Tables: users, class_subjects, user_class_subjects, assignments,
  user_assignments, messages, bot_configs
- Indexes: lookups by platform id, term, deadline and per-user message history
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ==========================================================================
    # USERS
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("external_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notify", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_external_id", "users", ["external_id"], unique=True)

    # ==========================================================================
    # CLASS SUBJECTS
    # ==========================================================================
    op.create_table(
        "class_subjects",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("subject_id", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("teacher", sa.String(255), nullable=False, server_default=""),
        sa.Column("credits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("year", sa.String(16), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("is_main", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="valid_day_of_week"),
    )
    op.create_index("idx_class_subjects_term", "class_subjects", ["year", "semester"])

    op.create_table(
        "user_class_subjects",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "class_subject_id",
            sa.Uuid(),
            sa.ForeignKey("class_subjects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("year", sa.String(16), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "class_subject_id", name="unique_user_class_subject"),
    )
    op.create_index("ix_user_class_subjects_user_id", "user_class_subjects", ["user_id"])
    op.create_index("ix_user_class_subjects_class_subject_id", "user_class_subjects", ["class_subject_id"])

    # ==========================================================================
    # ASSIGNMENTS
    # ==========================================================================
    op.create_table(
        "assignments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "class_subject_id",
            sa.Uuid(),
            sa.ForeignKey("class_subjects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deadline_remind", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_assignments_class_subject_id", "assignments", ["class_subject_id"])
    op.create_index("idx_assignments_class_deadline", "assignments", ["class_subject_id", "deadline"])

    op.create_table(
        "user_assignments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "assignment_id",
            sa.Uuid(),
            sa.ForeignKey("assignments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.String(64), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_user_assignments_assignment_id", "user_assignments", ["assignment_id"])
    op.create_index("ix_user_assignments_user_id", "user_assignments", ["user_id"])
    op.create_index("idx_user_assignments_user_active", "user_assignments", ["user_id", "is_deleted"])

    # ==========================================================================
    # MESSAGES & CONFIG
    # ==========================================================================
    op.create_table(
        "messages",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("chat_id", sa.String(64), nullable=True),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("type", sa.String(16), nullable=False, server_default="TEXT"),
        sa.Column("direction", sa.String(16), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_messages_user_timestamp", "messages", ["user_id", "timestamp"])

    op.create_table(
        "bot_configs",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("bot_configs")
    op.drop_table("messages")
    op.drop_table("user_assignments")
    op.drop_table("assignments")
    op.drop_table("user_class_subjects")
    op.drop_table("class_subjects")
    op.drop_table("users")
