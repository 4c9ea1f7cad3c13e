from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class DifficultyDistributionIn(BaseModel):
    beginner: int = Field(default=40, ge=0, le=100)
    intermediate: int = Field(default=40, ge=0, le=100)
    advanced: int = Field(default=20, ge=0, le=100)


class AssessmentConfigUpsert(BaseModel):
    domain: str | None = Field(default=None, max_length=100)
    mcq_count: int = Field(default=10, ge=0)
    coding_count: int = Field(default=5, ge=0)
    scenario_count: int = Field(default=5, ge=0)
    total_time_minutes: int = Field(default=60, ge=1)
    difficulty_distribution: DifficultyDistributionIn = Field(default_factory=DifficultyDistributionIn)

    @model_validator(mode="after")
    def _distribution_sums_to_100(self) -> "AssessmentConfigUpsert":
        d = self.difficulty_distribution
        if d.beginner + d.intermediate + d.advanced != 100:
            raise ValueError("Difficulty distribution must sum to 100%")
        return self


class AssessmentConfigPublic(BaseModel):
    id: str | None = None
    module_id: str
    domain: str | None
    mcq_count: int
    coding_count: int
    scenario_count: int
    total_time_minutes: int
    difficulty_distribution: dict[str, float]
    updated_at: datetime | None = None


class QuestionCounts(BaseModel):
    mcq: int = 0
    coding: int = 0
    scenario: int = 0
    total: int = 0
    by_difficulty: dict[str, int] = Field(default_factory=dict)


class AssessmentConfigOverview(BaseModel):
    module_name: str | None
    config: AssessmentConfigPublic
    available: QuestionCounts
    sufficient: bool


class AssessmentConfigOverviewResponse(BaseModel):
    items: list[AssessmentConfigOverview]
