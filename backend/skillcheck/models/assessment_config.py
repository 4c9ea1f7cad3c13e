import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from skillcheck.db.base import Base


class AssessmentConfig(Base):
    __tablename__ = "assessment_configs"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    module_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("modules.id"), unique=True)
    domain: Mapped[str] = mapped_column(String(100), index=True)

    mcq_count: Mapped[int] = mapped_column(Integer, default=10)
    coding_count: Mapped[int] = mapped_column(Integer, default=5)
    scenario_count: Mapped[int] = mapped_column(Integer, default=5)
    total_time_minutes: Mapped[int] = mapped_column(Integer, default=60)

    # Stored as written; legacy rows may hold malformed JSON, parsed on read.
    difficulty_distribution: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
