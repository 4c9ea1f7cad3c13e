from __future__ import annotations

import uuid
from typing import Any, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from skillcheck.models.assessment_config import AssessmentConfig
from skillcheck.models.question import Question


class ConfigurationStore(Protocol):
    def get_configuration(self, module_id: Any) -> Any | None: ...


class QuestionStore(Protocol):
    def get_questions(self, module_id: Any) -> Sequence[Any]: ...


def as_uuid(value) -> uuid.UUID | None:
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class SqlConfigurationStore:
    def __init__(self, db: Session):
        self.db = db

    def get_configuration(self, module_id: Any) -> AssessmentConfig | None:
        mid = as_uuid(module_id)
        if mid is None:
            return None
        return self.db.scalar(select(AssessmentConfig).where(AssessmentConfig.module_id == mid))


class SqlQuestionStore:
    def __init__(self, db: Session):
        self.db = db

    def get_questions(self, module_id: Any) -> list[Question]:
        mid = as_uuid(module_id)
        if mid is None:
            return []
        return list(self.db.scalars(select(Question).where(Question.module_id == mid)))
