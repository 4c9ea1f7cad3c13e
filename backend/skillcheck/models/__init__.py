from skillcheck.models.user import User, UserRole
from skillcheck.models.module import Module
from skillcheck.models.question import Difficulty, Question, QuestionType
from skillcheck.models.assessment_config import AssessmentConfig
from skillcheck.models.assessment import Assessment

__all__ = [
    "User",
    "UserRole",
    "Module",
    "Question",
    "QuestionType",
    "Difficulty",
    "AssessmentConfig",
    "Assessment",
]
