import random
from dataclasses import dataclass
from itertools import count

import pytest

from skillcheck.services.assessment_generator import (
    DEFAULT_DIFFICULTY_DISTRIBUTION,
    AssessmentGenerator,
    ConfigurationMissing,
    DifficultyDistribution,
    InsufficientQuestions,
    NoQuestionsAvailable,
    allocate_difficulty_counts,
    count_by_difficulty,
    select_questions_for_type,
    shuffle,
)


_ids = count(1)


@dataclass(frozen=True)
class _Q:
    id: str
    question_type: str
    difficulty: str
    title: str = ""


def _pool(counts: dict[tuple[str, str], int]) -> list[_Q]:
    out = []
    for (qtype, difficulty), n in counts.items():
        for _ in range(n):
            out.append(_Q(id=f"q{next(_ids)}", question_type=qtype, difficulty=difficulty))
    return out


class _ConfigStore:
    def __init__(self, config):
        self.config = config
        self.calls = 0

    def get_configuration(self, module_id):
        self.calls += 1
        return self.config


class _QuestionStore:
    def __init__(self, questions):
        self.questions = questions

    def get_questions(self, module_id):
        return list(self.questions)


def _config(mcq=0, coding=0, scenario=0, minutes=45, distribution=None):
    return {
        "module_id": "m1",
        "mcq_count": mcq,
        "coding_count": coding,
        "scenario_count": scenario,
        "total_time_minutes": minutes,
        "difficulty_distribution": distribution
        if distribution is not None
        else {"beginner": 40, "intermediate": 40, "advanced": 20},
    }


def _generator(config, questions, seed=7):
    return AssessmentGenerator(_ConfigStore(config), _QuestionStore(questions), rng=random.Random(seed))


def test_generate_meets_every_requested_count():
    questions = _pool(
        {
            ("mcq", "beginner"): 6,
            ("mcq", "intermediate"): 6,
            ("mcq", "advanced"): 6,
            ("coding", "beginner"): 3,
            ("coding", "intermediate"): 3,
            ("coding", "advanced"): 3,
            ("scenario", "intermediate"): 4,
        }
    )
    out = _generator(_config(mcq=10, coding=5, scenario=2), questions).generate("m1")

    assert out.metadata.mcq_count == 10
    assert out.metadata.coding_count == 5
    assert out.metadata.scenario_count == 2
    assert out.metadata.total_questions == len(out.questions) == 17
    assert out.metadata.estimated_time_minutes == 45
    assert len({q.id for q in out.questions}) == len(out.questions)
    assert out.question_ids == [q.id for q in out.questions]


def test_metadata_difficulty_breakdown_reflects_actual_selection():
    questions = _pool({("mcq", "beginner"): 4, ("mcq", "intermediate"): 3, ("mcq", "advanced"): 3})
    out = _generator(_config(mcq=10), questions).generate("m1")

    assert out.metadata.difficulty_breakdown == {"beginner": 4, "intermediate": 3, "advanced": 3}
    assert sum(out.metadata.difficulty_breakdown.values()) == out.metadata.total_questions


def test_example_distribution_draws_three_two_one():
    questions = _pool({("mcq", "beginner"): 4, ("mcq", "intermediate"): 3, ("mcq", "advanced"): 3})
    config = _config(mcq=6, distribution={"beginner": 50, "intermediate": 30, "advanced": 20})

    for seed in range(20):
        out = _generator(config, questions, seed=seed).generate("m1")
        assert out.metadata.mcq_count == 6
        assert out.metadata.difficulty_breakdown == {"beginner": 3, "intermediate": 2, "advanced": 1}


def test_missing_configuration_fails():
    gen = AssessmentGenerator(_ConfigStore(None), _QuestionStore(_pool({("mcq", "beginner"): 3})))
    with pytest.raises(ConfigurationMissing) as ei:
        gen.generate("m1")
    assert ei.value.status_code == 404


def test_empty_pool_fails_regardless_of_configuration():
    for cfg in (_config(), _config(mcq=3, coding=1)):
        with pytest.raises(NoQuestionsAvailable):
            _generator(cfg, []).generate("m1")


def test_shortfall_lists_every_short_type():
    questions = _pool({("mcq", "beginner"): 3, ("coding", "advanced"): 1, ("scenario", "beginner"): 4})
    with pytest.raises(InsufficientQuestions) as ei:
        _generator(_config(mcq=5, coding=2, scenario=4), questions).generate("m1")

    err = ei.value
    assert [(s.question_type, s.required, s.available) for s in err.shortfalls] == [
        ("mcq", 5, 3),
        ("coding", 2, 1),
    ]
    assert "mcq" in err.message and "5" in err.message and "3" in err.message
    assert "coding" in err.message
    assert "scenario" not in err.message


def test_single_shortfall_message():
    questions = _pool({("mcq", "beginner"): 3})
    with pytest.raises(InsufficientQuestions) as ei:
        _generator(_config(mcq=5), questions).generate("m1")
    assert str(ei.value) == "Cannot generate assessment: Insufficient mcq questions: need 5, have 3"


def test_small_count_ignores_distribution():
    questions = _pool({("coding", "advanced"): 10})
    config = _config(coding=2, distribution={"beginner": 100, "intermediate": 0, "advanced": 0})

    out = _generator(config, questions).generate("m1")
    assert out.metadata.coding_count == 2
    assert out.metadata.difficulty_breakdown["advanced"] == 2


def test_small_count_draws_from_every_tier_regardless_of_distribution():
    # Stratified selection at 100% beginner would always include the lone beginner question.
    questions = _pool({("mcq", "beginner"): 1, ("mcq", "intermediate"): 5, ("mcq", "advanced"): 5})
    beginner_id = next(q.id for q in questions if q.difficulty == "beginner")
    dist = DifficultyDistribution(beginner=100, intermediate=0, advanced=0)

    for n in (1, 2, 3):
        picks = [select_questions_for_type(questions, n, dist, random.Random(seed)) for seed in range(30)]
        for picked in picks:
            assert len(picked) == n
            assert len({q.id for q in picked}) == n
        assert any(beginner_id not in {q.id for q in picked} for picked in picks)
        drawn = {q.difficulty for picked in picks for q in picked}
        assert {"intermediate", "advanced"} <= drawn


def test_full_pool_is_returned_in_varying_order():
    questions = _pool({("mcq", "beginner"): 5, ("mcq", "advanced"): 5})
    config = _config(mcq=10)

    orderings = set()
    for seed in range(10):
        out = _generator(config, questions, seed=seed).generate("m1")
        assert sorted(q.id for q in out.questions) == sorted(q.id for q in questions)
        orderings.add(tuple(q.id for q in out.questions))
    assert len(orderings) >= 2


def test_short_tier_is_backfilled_from_other_difficulties():
    # 8 requested at 50/30/20 asks for 4 beginner, only 1 exists.
    questions = _pool({("mcq", "beginner"): 1, ("mcq", "intermediate"): 6, ("mcq", "advanced"): 6})
    config = _config(mcq=8, distribution={"beginner": 50, "intermediate": 30, "advanced": 20})

    out = _generator(config, questions).generate("m1")
    assert out.metadata.mcq_count == 8
    assert out.metadata.difficulty_breakdown["beginner"] == 1
    assert len({q.id for q in out.questions}) == 8


def test_malformed_distribution_uses_default():
    questions = _pool({("mcq", "beginner"): 5, ("mcq", "intermediate"): 5, ("mcq", "advanced"): 5})
    out = _generator(_config(mcq=10, distribution="not json"), questions).generate("m1")

    assert out.config.difficulty_distribution == DEFAULT_DIFFICULTY_DISTRIBUTION
    assert out.metadata.difficulty_breakdown == {"beginner": 4, "intermediate": 4, "advanced": 2}


def test_generate_works_with_attribute_records():
    @dataclass
    class _Cfg:
        module_id: str = "m9"
        mcq_count: int = 4
        coding_count: int = 0
        scenario_count: int = 0
        total_time_minutes: int = 20
        difficulty_distribution: object = None
        domain: str = "linux"

    questions = _pool({("mcq", "beginner"): 2, ("mcq", "intermediate"): 2, ("mcq", "advanced"): 2})
    out = _generator(_Cfg(), questions).generate("m9")
    assert out.config.domain == "linux"
    assert out.metadata.total_questions == 4


@pytest.mark.parametrize(
    "total,dist,expected",
    [
        (6, (50, 30, 20), {"beginner": 3, "intermediate": 2, "advanced": 1}),
        (10, (40, 40, 20), {"beginner": 4, "intermediate": 4, "advanced": 2}),
        # 5 * 50% = 2.5 rounds half up
        (5, (50, 50, 0), {"beginner": 3, "intermediate": 2, "advanced": 0}),
        # percentages over 100 would leave a negative remainder
        (5, (60, 60, 0), {"beginner": 3, "intermediate": 2, "advanced": 0}),
        (4, (150, 50, 0), {"beginner": 4, "intermediate": 0, "advanced": 0}),
        # percentages under 100 push the drift into advanced
        (10, (10, 10, 10), {"beginner": 1, "intermediate": 1, "advanced": 8}),
        (0, (40, 40, 20), {"beginner": 0, "intermediate": 0, "advanced": 0}),
    ],
)
def test_allocate_difficulty_counts(total, dist, expected):
    out = allocate_difficulty_counts(total, DifficultyDistribution(*dist))
    assert out == expected
    assert sum(out.values()) == total
    assert all(v >= 0 for v in out.values())


def test_select_for_type_zero_count_selects_nothing():
    questions = _pool({("mcq", "beginner"): 5})
    assert select_questions_for_type(questions, 0, DEFAULT_DIFFICULTY_DISTRIBUTION, random.Random(1)) == []


def test_select_for_type_sum_invariant_with_inconsistent_percentages():
    questions = _pool({("mcq", "beginner"): 10, ("mcq", "intermediate"): 10, ("mcq", "advanced"): 10})
    dist = DifficultyDistribution(beginner=70, intermediate=70, advanced=70)
    for n in range(4, 20):
        picked = select_questions_for_type(questions, n, dist, random.Random(n))
        assert len(picked) == n
        assert len({q.id for q in picked}) == n
        assert sum(count_by_difficulty(picked).values()) == n


def test_shuffle_returns_permutation_without_mutating_input():
    items = list(range(20))
    out = shuffle(items, random.Random(3))
    assert items == list(range(20))
    assert sorted(out) == items
    assert shuffle([], random.Random(3)) == []


def test_generator_is_stateless_between_calls():
    questions = _pool({("mcq", "beginner"): 4, ("mcq", "intermediate"): 4})
    store = _ConfigStore(_config(mcq=4))
    gen = AssessmentGenerator(store, _QuestionStore(questions), rng=random.Random(5))

    first = gen.generate("m1")
    second = gen.generate("m1")
    assert store.calls == 2
    assert first.metadata.total_questions == second.metadata.total_questions == 4
