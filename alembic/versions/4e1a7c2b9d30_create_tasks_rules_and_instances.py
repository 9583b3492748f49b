"""Create tasks, recurrence rules and task instances

Revision ID: 4e1a7c2b9d30
Revises:
Create Date: 2026-10-17
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4e1a7c2b9d30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "tasks",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="open"),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
    )
    op.create_index(op.f("ix_tasks_deleted_at"), "tasks", ["deleted_at"], unique=False)

    op.create_table(
        "recurrence_rules",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("task_id", sa.String(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("pattern", sa.String(), nullable=False),
        sa.Column("interval", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("days_of_week", sa.JSON(), nullable=True),
        sa.Column("day_of_month", sa.Integer(), nullable=True),
        sa.Column("week_of_month", sa.Integer(), nullable=True),
        sa.Column("day_of_week_for_month", sa.Integer(), nullable=True),
        sa.Column("custom_unit", sa.String(), nullable=True),
        sa.Column("end_type", sa.String(), nullable=False, server_default="never"),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("end_count", sa.Integer(), nullable=True),
        sa.Column("series_anchor_at", sa.DateTime(), nullable=True),
        sa.Column("last_occurrence_at", sa.DateTime(), nullable=True),
        sa.Column("materialized_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_recurrence_rules_task_id"), "recurrence_rules", ["task_id"], unique=True)

    op.create_table(
        "task_instances",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("task_id", sa.String(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("rule_id", sa.String(), sa.ForeignKey("recurrence_rules.id", ondelete="SET NULL"), nullable=True),
        sa.Column("occurrence_at", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("task_id", "occurrence_at", name="uq_task_instance_occurrence"),
    )
    op.create_index(op.f("ix_task_instances_task_id"), "task_instances", ["task_id"], unique=False)
    op.create_index(op.f("ix_task_instances_rule_id"), "task_instances", ["rule_id"], unique=False)
    op.create_index(op.f("ix_task_instances_occurrence_at"), "task_instances", ["occurrence_at"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_task_instances_occurrence_at"), table_name="task_instances")
    op.drop_index(op.f("ix_task_instances_rule_id"), table_name="task_instances")
    op.drop_index(op.f("ix_task_instances_task_id"), table_name="task_instances")
    op.drop_table("task_instances")
    op.drop_index(op.f("ix_recurrence_rules_task_id"), table_name="recurrence_rules")
    op.drop_table("recurrence_rules")
    op.drop_index(op.f("ix_tasks_deleted_at"), table_name="tasks")
    op.drop_table("tasks")
