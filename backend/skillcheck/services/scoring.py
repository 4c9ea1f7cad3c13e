from __future__ import annotations

import re
import string
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from skillcheck.services.assessment_generator import QUESTION_TYPES, round_half_up

STRONG_AREA_THRESHOLD = 70
WEAK_AREA_THRESHOLD = 50

_LETTERS = string.ascii_uppercase


def _normalize(text: Any) -> str:
    return re.sub(r"\s+", " ", str(text or "")).strip().casefold()


def _option_from_key(key: str, options: Sequence[Any]) -> str | None:
    # Accept "A", "b)", "(c)", "2" as references to an option.
    m = re.fullmatch(r"\(?\s*([A-Za-z]|\d{1,2})\s*[).:]?", (key or "").strip())
    if not m or not options:
        return None
    token = m.group(1)
    if token.isdigit():
        idx = int(token)
    else:
        idx = _LETTERS.index(token.upper())
    if 0 <= idx < len(options):
        return str(options[idx])
    return None


def _resolve_mcq(value: Any, options: Sequence[Any]) -> str:
    raw = str(value or "").strip()
    norm = _normalize(raw)
    if any(_normalize(o) == norm for o in options):
        return norm
    resolved = _option_from_key(raw, options)
    if resolved is not None:
        return _normalize(resolved)
    return norm


def is_correct(*, question: Any, answer: Any) -> bool:
    expected = str(question.correct_answer or "").strip()
    got = str(answer or "").strip()
    if not got:
        return False

    qtype = str(getattr(question.question_type, "value", question.question_type))
    if qtype == "mcq":
        options = list(question.options or [])
        return _resolve_mcq(expected, options) == _resolve_mcq(got, options)

    # coding / scenario: free-form answers
    if expected.upper() == "ANY":
        return True
    return _normalize(expected) == _normalize(got)


@dataclass
class TypeBreakdown:
    total: int = 0
    answered: int = 0
    correct: int = 0


@dataclass
class ScoreResult:
    correct: int
    total: int
    percentage: int
    by_type: dict[str, TypeBreakdown]
    per_question: dict[str, bool]
    strong_areas: list[str] = field(default_factory=list)
    weak_areas: list[str] = field(default_factory=list)

    def detailed_results(self) -> dict[str, Any]:
        return {
            "by_type": {k: vars(v) for k, v in self.by_type.items()},
            "per_question": dict(self.per_question),
        }


def score_answers(questions: Sequence[Any], answers: Mapping[str, Any], *, domain: str | None) -> ScoreResult:
    by_type = {qtype: TypeBreakdown() for qtype in QUESTION_TYPES}
    per_question: dict[str, bool] = {}
    correct = 0

    for q in questions:
        qid = str(q.id)
        qtype = str(getattr(q.question_type, "value", q.question_type))
        row = by_type.setdefault(qtype, TypeBreakdown())
        row.total += 1

        ans = answers.get(qid)
        if ans is not None and str(ans).strip():
            row.answered += 1

        ok = is_correct(question=q, answer=ans)
        per_question[qid] = ok
        if ok:
            row.correct += 1
            correct += 1

    total = len(questions)
    percentage = round_half_up(correct / total * 100) if total > 0 else 0

    # areas use the unrounded ratio
    area = [domain] if domain else []
    return ScoreResult(
        correct=correct,
        total=total,
        percentage=percentage,
        by_type=by_type,
        per_question=per_question,
        strong_areas=list(area) if correct * 100 > STRONG_AREA_THRESHOLD * total else [],
        weak_areas=list(area) if correct * 100 <= WEAK_AREA_THRESHOLD * total else [],
    )
