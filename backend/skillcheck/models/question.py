import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from skillcheck.db.base import Base


class QuestionType(str, enum.Enum):
    mcq = "mcq"
    coding = "coding"
    scenario = "scenario"


class Difficulty(str, enum.Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Questions without a module stay in the bank and never reach a generated assessment.
    module_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("modules.id"), nullable=True, index=True
    )
    domain: Mapped[str] = mapped_column(String(100), index=True)

    question_type: Mapped[QuestionType] = mapped_column(Enum(QuestionType), index=True)
    difficulty: Mapped[Difficulty] = mapped_column(Enum(Difficulty), index=True)

    title: Mapped[str] = mapped_column(String(500), default="")
    question_text: Mapped[str] = mapped_column(String, default="")
    options: Mapped[list | None] = mapped_column(JSON, nullable=True)
    correct_answer: Mapped[str] = mapped_column(String, default="")
    explanation: Mapped[str | None] = mapped_column(String, nullable=True)

    code_template: Mapped[str | None] = mapped_column(String, nullable=True)
    test_cases: Mapped[list | None] = mapped_column(JSON, nullable=True)
    time_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    memory_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)

    tags: Mapped[list | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
