from __future__ import annotations

import json
import logging
import math
import random
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from skillcheck.models.question import Difficulty, QuestionType
from skillcheck.services.assessment_stores import ConfigurationStore, QuestionStore

logger = logging.getLogger(__name__)

QUESTION_TYPES: tuple[str, ...] = tuple(t.value for t in QuestionType)
DIFFICULTIES: tuple[str, ...] = tuple(d.value for d in Difficulty)

# Up to this many questions of a type, tiers are pooled and the percentage split is ignored.
SMALL_COUNT_THRESHOLD = 3

_DIFFICULTY_RANK = {level: i for i, level in enumerate(DIFFICULTIES)}

T = TypeVar("T")


class AssessmentGenerationError(Exception):
    error_code = "assessment_generation_failed"
    status_code = 409

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationMissing(AssessmentGenerationError):
    error_code = "configuration_missing"
    status_code = 404

    def __init__(self, module_id: str):
        super().__init__("No assessment configuration found for this module")
        self.module_id = module_id


class NoQuestionsAvailable(AssessmentGenerationError):
    error_code = "no_questions_available"

    def __init__(self, module_id: str):
        super().__init__("No questions found for this module")
        self.module_id = module_id


@dataclass(frozen=True)
class Shortfall:
    question_type: str
    required: int
    available: int

    def describe(self) -> str:
        return f"Insufficient {self.question_type} questions: need {self.required}, have {self.available}"


class InsufficientQuestions(AssessmentGenerationError):
    error_code = "insufficient_questions"

    def __init__(self, shortfalls: Sequence[Shortfall]):
        self.shortfalls = list(shortfalls)
        super().__init__("Cannot generate assessment: " + ", ".join(s.describe() for s in self.shortfalls))


@dataclass(frozen=True)
class DifficultyDistribution:
    beginner: float
    intermediate: float
    advanced: float

    def as_dict(self) -> dict[str, float]:
        return {"beginner": self.beginner, "intermediate": self.intermediate, "advanced": self.advanced}

    def total(self) -> float:
        return self.beginner + self.intermediate + self.advanced


DEFAULT_DIFFICULTY_DISTRIBUTION = DifficultyDistribution(beginner=40, intermediate=40, advanced=20)


def _as_percentage(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num) or num < 0:
        return None
    return int(num) if num.is_integer() else num


def parse_difficulty_distribution(raw: Any) -> DifficultyDistribution:
    """Parse a stored difficulty distribution, falling back to the default split.

    Accepts a mapping or its JSON text. Any missing, non-numeric or negative
    tier makes the whole value malformed. Percentages are not required to sum
    to 100 here; allocation absorbs the drift in the advanced tier.
    """
    if isinstance(raw, DifficultyDistribution):
        return raw

    data = raw
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError:
            logger.warning("difficulty distribution is not valid JSON, using defaults: %r", raw)
            return DEFAULT_DIFFICULTY_DISTRIBUTION

    if not isinstance(data, Mapping):
        if raw is not None:
            logger.warning("difficulty distribution is not an object, using defaults: %r", raw)
        return DEFAULT_DIFFICULTY_DISTRIBUTION

    values: dict[str, float] = {}
    for level in DIFFICULTIES:
        pct = _as_percentage(data.get(level))
        if pct is None:
            logger.warning("difficulty distribution field %r is malformed, using defaults: %r", level, raw)
            return DEFAULT_DIFFICULTY_DISTRIBUTION
        values[level] = pct
    return DifficultyDistribution(**values)


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def allocate_difficulty_counts(total: int, distribution: DifficultyDistribution) -> dict[str, int]:
    """Split `total` across tiers; the three counts always sum to `total`."""
    total = max(0, int(total))
    beginner = max(0, round_half_up(total * distribution.beginner / 100))
    intermediate = max(0, round_half_up(total * distribution.intermediate / 100))

    # Percentages above 100 in sum would push the advanced remainder negative.
    beginner = min(beginner, total)
    intermediate = min(intermediate, total - beginner)

    return {
        "beginner": beginner,
        "intermediate": intermediate,
        "advanced": total - beginner - intermediate,
    }


def shuffle(items: Iterable[T], rng: random.Random | None = None) -> list[T]:
    """Fisher-Yates shuffle into a new list."""
    rnd = rng or random
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rnd.randrange(i + 1)
        out[i], out[j] = out[j], out[i]
    return out


def _value(v: Any) -> str:
    return str(getattr(v, "value", v))


def _group_by(questions: Iterable[T], attr: str) -> dict[str, list[T]]:
    groups: dict[str, list[T]] = {}
    for q in questions:
        groups.setdefault(_value(getattr(q, attr)), []).append(q)
    return groups


def count_by_type(questions: Iterable[Any]) -> dict[str, int]:
    counts = {qtype: 0 for qtype in QUESTION_TYPES}
    for q in questions:
        key = _value(q.question_type)
        counts[key] = counts.get(key, 0) + 1
    return counts


def count_by_difficulty(questions: Iterable[Any]) -> dict[str, int]:
    counts = {level: 0 for level in DIFFICULTIES}
    for q in questions:
        key = _value(q.difficulty)
        counts[key] = counts.get(key, 0) + 1
    return counts


def _field(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


@dataclass(frozen=True)
class GenerationConfig:
    module_id: str
    mcq_count: int
    coding_count: int
    scenario_count: int
    total_time_minutes: int
    difficulty_distribution: DifficultyDistribution = DEFAULT_DIFFICULTY_DISTRIBUTION
    domain: str | None = None
    id: str | None = None

    @classmethod
    def from_record(cls, record: Any, *, module_id: Any = None) -> "GenerationConfig":
        def _count(name: str) -> int:
            return max(0, int(_field(record, name) or 0))

        rid = _field(record, "id")
        return cls(
            module_id=str(_field(record, "module_id") or module_id or ""),
            mcq_count=_count("mcq_count"),
            coding_count=_count("coding_count"),
            scenario_count=_count("scenario_count"),
            total_time_minutes=int(_field(record, "total_time_minutes") or 0),
            difficulty_distribution=parse_difficulty_distribution(_field(record, "difficulty_distribution")),
            domain=_field(record, "domain"),
            id=str(rid) if rid is not None else None,
        )

    def target_count(self, question_type: str) -> int:
        return int(getattr(self, f"{question_type}_count", 0) or 0)


@dataclass(frozen=True)
class AssessmentMetadata:
    total_questions: int
    mcq_count: int
    coding_count: int
    scenario_count: int
    difficulty_breakdown: dict[str, int]
    estimated_time_minutes: int


@dataclass
class GeneratedAssessment:
    questions: list[Any]
    config: GenerationConfig
    metadata: AssessmentMetadata
    question_ids: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.question_ids:
            self.question_ids = [str(q.id) for q in self.questions]


def validate_question_availability(config: GenerationConfig, questions: Sequence[Any]) -> None:
    available = count_by_type(questions)
    shortfalls = [
        Shortfall(question_type=qtype, required=config.target_count(qtype), available=available.get(qtype, 0))
        for qtype in QUESTION_TYPES
        if available.get(qtype, 0) < config.target_count(qtype)
    ]
    if shortfalls:
        raise InsufficientQuestions(shortfalls)


def select_questions_for_type(
    questions: Sequence[T],
    count: int,
    distribution: DifficultyDistribution,
    rng: random.Random | None = None,
) -> list[T]:
    pool = list(questions)
    if count <= 0:
        return []
    if count >= len(pool):
        return shuffle(pool, rng)

    if count <= SMALL_COUNT_THRESHOLD:
        ordered = sorted(pool, key=lambda q: _DIFFICULTY_RANK.get(_value(q.difficulty), len(DIFFICULTIES)))
        return shuffle(ordered, rng)[:count]

    by_difficulty = _group_by(pool, "difficulty")
    targets = allocate_difficulty_counts(count, distribution)

    selected: list[T] = []
    for level in DIFFICULTIES:
        tier = by_difficulty.get(level, [])
        selected.extend(shuffle(tier, rng)[: targets[level]])

    if len(selected) < count:
        # A short tier leaves a gap; fill it from whatever is left regardless of difficulty.
        taken = {str(q.id) for q in selected}
        remaining = [q for q in pool if str(q.id) not in taken]
        selected.extend(shuffle(remaining, rng)[: count - len(selected)])

    return selected


def build_metadata(questions: Sequence[Any], config: GenerationConfig) -> AssessmentMetadata:
    types = count_by_type(questions)
    return AssessmentMetadata(
        total_questions=len(questions),
        mcq_count=types.get("mcq", 0),
        coding_count=types.get("coding", 0),
        scenario_count=types.get("scenario", 0),
        difficulty_breakdown={k: v for k, v in count_by_difficulty(questions).items() if k in DIFFICULTIES},
        estimated_time_minutes=config.total_time_minutes,
    )


class AssessmentGenerator:
    """Generates a randomized assessment for a module from its configuration.

    The generator is stateless between calls: every `generate` fetches the
    configuration and the question pool anew. Either every configured count
    is met or the call raises; partial assessments are never returned.
    """

    def __init__(
        self,
        config_store: ConfigurationStore,
        question_store: QuestionStore,
        rng: random.Random | None = None,
    ):
        self.config_store = config_store
        self.question_store = question_store
        self.rng = rng or random.Random()

    def generate(self, module_id: Any) -> GeneratedAssessment:
        record = self.config_store.get_configuration(module_id)
        if record is None:
            raise ConfigurationMissing(str(module_id))
        config = GenerationConfig.from_record(record, module_id=module_id)

        questions = list(self.question_store.get_questions(module_id) or [])
        if not questions:
            raise NoQuestionsAvailable(str(module_id))

        validate_question_availability(config, questions)

        selected = self.select_questions(config, questions)
        metadata = build_metadata(selected, config)

        logger.info(
            "generated assessment module=%s total=%d mcq=%d coding=%d scenario=%d pool=%d",
            config.module_id,
            metadata.total_questions,
            metadata.mcq_count,
            metadata.coding_count,
            metadata.scenario_count,
            len(questions),
        )
        return GeneratedAssessment(questions=selected, config=config, metadata=metadata)

    def select_questions(self, config: GenerationConfig, questions: Sequence[Any]) -> list[Any]:
        by_type = _group_by(questions, "question_type")
        selected: list[Any] = []
        for qtype in QUESTION_TYPES:
            picked = select_questions_for_type(
                by_type.get(qtype, []),
                config.target_count(qtype),
                config.difficulty_distribution,
                self.rng,
            )
            logger.debug("selected %d/%d %s questions", len(picked), config.target_count(qtype), qtype)
            selected.extend(picked)
        return shuffle(selected, self.rng)
