"""create modules, questions, assessment configs and results

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


question_type_enum = sa.Enum("mcq", "coding", "scenario", name="questiontype")
difficulty_enum = sa.Enum("beginner", "intermediate", "advanced", name="difficulty")


def upgrade() -> None:
    op.create_table(
        "modules",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=300), nullable=False),
        sa.Column("description", sa.String(length=5000), nullable=True),
        sa.Column("domain", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_modules_name", "modules", ["name"], unique=False)
    op.create_index("ix_modules_domain", "modules", ["domain"], unique=False)

    op.create_table(
        "questions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("module_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("modules.id"), nullable=True),
        sa.Column("domain", sa.String(length=100), nullable=False),
        sa.Column("question_type", question_type_enum, nullable=False),
        sa.Column("difficulty", difficulty_enum, nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("question_text", sa.String(), nullable=False, server_default=""),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("correct_answer", sa.String(), nullable=False, server_default=""),
        sa.Column("explanation", sa.String(), nullable=True),
        sa.Column("code_template", sa.String(), nullable=True),
        sa.Column("test_cases", sa.JSON(), nullable=True),
        sa.Column("time_limit", sa.Integer(), nullable=True),
        sa.Column("memory_limit", sa.Integer(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_questions_module_id", "questions", ["module_id"], unique=False)
    op.create_index("ix_questions_domain", "questions", ["domain"], unique=False)
    op.create_index("ix_questions_question_type", "questions", ["question_type"], unique=False)
    op.create_index("ix_questions_difficulty", "questions", ["difficulty"], unique=False)

    op.create_table(
        "assessment_configs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("module_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("modules.id"), nullable=False),
        sa.Column("domain", sa.String(length=100), nullable=False),
        sa.Column("mcq_count", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("coding_count", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("scenario_count", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("total_time_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("difficulty_distribution", sa.JSON(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("module_id", name="uq_assessment_configs_module_id"),
    )
    op.create_index("ix_assessment_configs_domain", "assessment_configs", ["domain"], unique=False)

    op.create_table(
        "assessments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("module_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("modules.id"), nullable=True),
        sa.Column("domain", sa.String(length=100), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_questions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("question_ids", sa.JSON(), nullable=True),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("detailed_results", sa.JSON(), nullable=True),
        sa.Column("strong_areas", sa.JSON(), nullable=True),
        sa.Column("weak_areas", sa.JSON(), nullable=True),
        sa.Column("time_taken", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_assessments_user_id", "assessments", ["user_id"], unique=False)
    op.create_index("ix_assessments_module_id", "assessments", ["module_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_assessments_module_id", table_name="assessments")
    op.drop_index("ix_assessments_user_id", table_name="assessments")
    op.drop_table("assessments")

    op.drop_index("ix_assessment_configs_domain", table_name="assessment_configs")
    op.drop_table("assessment_configs")

    op.drop_index("ix_questions_difficulty", table_name="questions")
    op.drop_index("ix_questions_question_type", table_name="questions")
    op.drop_index("ix_questions_domain", table_name="questions")
    op.drop_index("ix_questions_module_id", table_name="questions")
    op.drop_table("questions")

    op.drop_index("ix_modules_domain", table_name="modules")
    op.drop_index("ix_modules_name", table_name="modules")
    op.drop_table("modules")

    op.execute("DROP TYPE IF EXISTS difficulty")
    op.execute("DROP TYPE IF EXISTS questiontype")
