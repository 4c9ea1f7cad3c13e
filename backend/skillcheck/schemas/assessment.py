from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from skillcheck.schemas.assessment_config import AssessmentConfigPublic


class AssessmentMetadataPublic(BaseModel):
    total_questions: int
    mcq_count: int
    coding_count: int
    scenario_count: int
    difficulty_breakdown: dict[str, int]
    estimated_time_minutes: int


class AssessmentQuestionPublic(BaseModel):
    id: str
    question_type: str
    difficulty: str
    title: str
    question_text: str
    options: list[Any] | None = None
    code_template: str | None = None
    time_limit: int | None = None
    memory_limit: int | None = None
    tags: list[str] | None = None


class AssessmentPreviewResponse(BaseModel):
    module_id: str
    config: AssessmentConfigPublic
    metadata: AssessmentMetadataPublic
    minutes_per_question: float | None


class AssessmentStartResponse(BaseModel):
    module_id: str
    started_at: int
    time_limit_seconds: int
    config: AssessmentConfigPublic
    metadata: AssessmentMetadataPublic
    questions: list[AssessmentQuestionPublic]


class AssessmentSubmitAnswer(BaseModel):
    question_id: str
    answer: str = ""


class AssessmentSubmitRequest(BaseModel):
    answers: list[AssessmentSubmitAnswer] = Field(default_factory=list)


class TypeBreakdownPublic(BaseModel):
    total: int
    answered: int
    correct: int


class AssessmentSubmitResponse(BaseModel):
    assessment_id: str
    module_id: str
    score: int
    total: int
    percentage: int
    by_type: dict[str, TypeBreakdownPublic]
    strong_areas: list[str]
    weak_areas: list[str]
    time_taken: int | None


class AssessmentResultPublic(BaseModel):
    id: str
    module_id: str | None
    domain: str
    score: int
    percentage: int
    total_questions: int
    time_taken: int | None
    completed_at: datetime | None


class AssessmentHistoryResponse(BaseModel):
    items: list[AssessmentResultPublic]
