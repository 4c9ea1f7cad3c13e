import sys
from pathlib import Path
import uuid
import time

import pytest
from fastapi.testclient import TestClient

backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from skillcheck.db.base import Base
from skillcheck.db import session as session_module
from skillcheck.main import create_app

# Import models so that they are registered in Base.metadata before create_all.
from skillcheck.models.user import User, UserRole
from skillcheck.models.module import Module
from skillcheck.models.question import Difficulty, Question, QuestionType
from skillcheck.models.assessment_config import AssessmentConfig
from skillcheck.models.assessment import Assessment  # noqa: F401
from skillcheck.core.security import create_access_token


class _MemoryRedis:
    def __init__(self):
        self._data: dict[str, tuple[str, float | None]] = {}

    def ping(self):
        return True

    def _now(self) -> float:
        return time.time()

    def _get_entry(self, key: str):
        v = self._data.get(key)
        if not v:
            return None
        value, exp = v
        if exp is not None and exp <= self._now():
            self._data.pop(key, None)
            return None
        return value, exp

    def get(self, key: str):
        entry = self._get_entry(key)
        return entry[0] if entry else None

    def set(self, key: str, value: str, ex: int | None = None):
        exp = (self._now() + int(ex)) if ex else None
        self._data[key] = (value, exp)
        return True

    def delete(self, key: str):
        existed = self._get_entry(key) is not None
        self._data.pop(key, None)
        return 1 if existed else 0

    def incr(self, key: str):
        cur = self.get(key)
        n = int(cur or 0) + 1
        _, exp = self._data.get(key, ("", None))
        self._data[key] = (str(n), exp)
        return n

    def expire(self, key: str, seconds: int):
        entry = self._get_entry(key)
        if not entry:
            return False
        value, _ = entry
        self._data[key] = (value, self._now() + int(seconds))
        return True

    def ttl(self, key: str):
        entry = self._get_entry(key)
        if not entry:
            return -2
        _, exp = entry
        if exp is None:
            return -1
        return max(0, int(exp - self._now()))


# Configure test DB (SQLite in-memory) at import time so all tests importing
# skillcheck.db.session.SessionLocal get the patched version.
_engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
Base.metadata.create_all(bind=_engine)
session_module.engine = _engine
session_module.SessionLocal = session_module.sessionmaker(autocommit=False, autoflush=False, bind=_engine)


# Stub Redis at import time (rate limiting + assessment sessions).
_mem_redis = _MemoryRedis()
import skillcheck.core.redis_client as redis_client_module

redis_client_module.get_redis = lambda: _mem_redis

import skillcheck.core.rate_limit as rate_limit_module
rate_limit_module.get_redis = lambda: _mem_redis

import skillcheck.routers.assessments as assessments_router_module
assessments_router_module.get_redis = lambda: _mem_redis

import skillcheck.routers.health as health_router_module
health_router_module.get_redis = lambda: _mem_redis


@pytest.fixture(scope="session")
def client():
    app = create_app()

    def _get_db_override():
        db = session_module.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[session_module.get_db] = _get_db_override
    return TestClient(app)


@pytest.fixture()
def memory_redis():
    return _mem_redis


@pytest.fixture()
def db():
    with session_module.SessionLocal() as session:
        yield session


def _create_user(role: UserRole) -> User:
    with session_module.SessionLocal() as db:
        user = User(name=f"{role.value}_{uuid.uuid4().hex[:8]}", role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user


@pytest.fixture()
def learner_headers():
    user = _create_user(UserRole.learner)
    return {"Authorization": f"Bearer {create_access_token(user_id=str(user.id))}"}


@pytest.fixture()
def admin_headers():
    user = _create_user(UserRole.admin)
    return {"Authorization": f"Bearer {create_access_token(user_id=str(user.id))}"}


def seed_module(
    *,
    domain: str = "python",
    pool: dict[tuple[str, str], int] | None = None,
    config: dict | None = None,
    is_active: bool = True,
) -> uuid.UUID:
    """Create a module with `pool[(type, difficulty)]` questions and an optional config."""
    with session_module.SessionLocal() as db:
        m = Module(name=f"Module {uuid.uuid4().hex[:6]}", description=None, domain=domain, is_active=is_active)
        db.add(m)
        db.flush()

        for (qtype, difficulty), n in (pool or {}).items():
            for i in range(n):
                db.add(
                    Question(
                        module_id=m.id,
                        domain=domain,
                        question_type=QuestionType(qtype),
                        difficulty=Difficulty(difficulty),
                        title=f"{qtype} {difficulty} {i}",
                        question_text=f"Question {qtype}/{difficulty}/{i}",
                        options=["alpha", "beta", "gamma", "delta"] if qtype == "mcq" else None,
                        correct_answer="beta" if qtype == "mcq" else "ANY",
                    )
                )

        if config is not None:
            db.add(AssessmentConfig(module_id=m.id, domain=domain, **config))

        db.commit()
        return m.id


@pytest.fixture()
def make_module():
    return seed_module
