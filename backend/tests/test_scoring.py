from types import SimpleNamespace

from skillcheck.models.question import QuestionType
from skillcheck.services.scoring import is_correct, score_answers


def _mcq(correct, options=("alpha", "beta", "gamma", "delta"), qid="q1"):
    return SimpleNamespace(id=qid, question_type=QuestionType.mcq, options=list(options), correct_answer=correct)


def _open(qtype, correct, qid="q2"):
    return SimpleNamespace(id=qid, question_type=qtype, options=None, correct_answer=correct)


def test_mcq_accepts_option_text_letter_and_index():
    q = _mcq("beta")
    assert is_correct(question=q, answer="beta")
    assert is_correct(question=q, answer="  BETA ")
    assert is_correct(question=q, answer="B")
    assert is_correct(question=q, answer="b)")
    assert is_correct(question=q, answer="1")
    assert not is_correct(question=q, answer="A")
    assert not is_correct(question=q, answer="")


def test_mcq_letter_correct_answer_resolves_to_option():
    q = _mcq("C")
    assert is_correct(question=q, answer="gamma")
    assert is_correct(question=q, answer="c")
    assert not is_correct(question=q, answer="delta")


def test_open_questions():
    assert is_correct(question=_open("scenario", "ANY"), answer="my reasoning")
    assert not is_correct(question=_open("scenario", "ANY"), answer="   ")
    assert is_correct(question=_open("coding", "print( 1 )"), answer="PRINT(  1 )")
    assert not is_correct(question=_open("coding", "print(1)"), answer="print(2)")


def test_score_answers_breakdown_and_areas():
    questions = [
        _mcq("beta", qid="a"),
        _mcq("alpha", qid="b"),
        _open("coding", "ANY", qid="c"),
        _open("scenario", "yes", qid="d"),
    ]
    out = score_answers(questions, {"a": "beta", "b": "alpha", "c": "def f(): pass"}, domain="python")

    assert out.correct == 3
    assert out.total == 4
    assert out.percentage == 75
    assert out.strong_areas == ["python"]
    assert out.weak_areas == []
    assert out.by_type["mcq"].correct == 2
    assert out.by_type["scenario"].answered == 0
    assert out.per_question == {"a": True, "b": True, "c": True, "d": False}


def test_score_answers_weak_area_at_fifty_percent():
    questions = [_mcq("beta", qid="a"), _mcq("beta", qid="b")]
    out = score_answers(questions, {"a": "beta", "b": "gamma"}, domain="devops")
    assert out.percentage == 50
    assert out.weak_areas == ["devops"]
    assert out.strong_areas == []


def test_score_answers_empty():
    out = score_answers([], {}, domain="python")
    assert out.total == 0
    assert out.percentage == 0


def _graded(correct, total):
    questions = [_mcq("beta", qid=f"q{i}") for i in range(total)]
    answers = {f"q{i}": "beta" if i < correct else "alpha" for i in range(total)}
    return score_answers(questions, answers, domain="sql")


def test_areas_use_unrounded_ratio():
    # 70.4% rounds to 70 but is above the strong threshold
    out = _graded(69, 98)
    assert out.percentage == 70
    assert out.strong_areas == ["sql"]

    # 50.4% rounds to 50 but is above the weak threshold
    out = _graded(126, 250)
    assert out.percentage == 50
    assert out.weak_areas == []

    out = _graded(7, 10)
    assert out.strong_areas == []
