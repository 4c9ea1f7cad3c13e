from __future__ import annotations

import dataclasses
import json
import logging
import time
import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from skillcheck.core.config import settings
from skillcheck.core.rate_limit import rate_limit
from skillcheck.core.redis_client import get_redis
from skillcheck.core.security import get_current_user
from skillcheck.db.session import get_db
from skillcheck.models.assessment import Assessment
from skillcheck.models.module import Module
from skillcheck.models.question import Question
from skillcheck.models.user import User
from skillcheck.schemas.assessment import (
    AssessmentHistoryResponse,
    AssessmentPreviewResponse,
    AssessmentStartResponse,
    AssessmentSubmitRequest,
    AssessmentSubmitResponse,
)
from skillcheck.services.assessment_generator import (
    AssessmentGenerator,
    GeneratedAssessment,
    GenerationConfig,
    round_half_up,
)
from skillcheck.services.assessment_stores import SqlConfigurationStore, SqlQuestionStore, as_uuid
from skillcheck.services.scoring import score_answers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assessments", tags=["assessments"])


def _session_key(user_id: str, module_id: str) -> str:
    return f"assessment_session:{user_id}:{module_id}"


def _parse_module_id(module_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(module_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="invalid module id") from e


def _get_active_module(db: Session, module_id: uuid.UUID) -> Module:
    m = db.scalar(select(Module).where(Module.id == module_id))
    if m is None or not m.is_active:
        raise HTTPException(status_code=404, detail="module not found")
    return m


def _generator(db: Session) -> AssessmentGenerator:
    return AssessmentGenerator(SqlConfigurationStore(db), SqlQuestionStore(db))


def _config_public(config: GenerationConfig) -> dict[str, Any]:
    return {
        "id": config.id,
        "module_id": config.module_id,
        "domain": config.domain,
        "mcq_count": config.mcq_count,
        "coding_count": config.coding_count,
        "scenario_count": config.scenario_count,
        "total_time_minutes": config.total_time_minutes,
        "difficulty_distribution": config.difficulty_distribution.as_dict(),
    }


def _question_public(q: Question) -> dict[str, Any]:
    return {
        "id": str(q.id),
        "question_type": q.question_type.value,
        "difficulty": q.difficulty.value,
        "title": q.title or "",
        "question_text": q.question_text or "",
        "options": q.options,
        "code_template": q.code_template,
        "time_limit": q.time_limit,
        "memory_limit": q.memory_limit,
        "tags": q.tags,
    }


def _deadline_passed(started_at: int, time_limit_seconds: int, now: int) -> bool:
    if not time_limit_seconds:
        return False
    return now - started_at > time_limit_seconds + int(settings.assessment_session_grace_seconds)


def _load_questions(db: Session, question_ids: list[str]) -> dict[str, Question]:
    parsed = [qid for qid in (as_uuid(x) for x in question_ids) if qid is not None]
    if not parsed:
        return {}
    rows = db.scalars(select(Question).where(Question.id.in_(parsed)))
    return {str(q.id): q for q in rows}


@router.get("/modules/{module_id}/preview", response_model=AssessmentPreviewResponse)
def preview_assessment(module_id: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    mid = _parse_module_id(module_id)
    _get_active_module(db, mid)

    generated = _generator(db).generate(mid)
    meta = generated.metadata
    mpq = None
    if meta.total_questions > 0:
        mpq = round_half_up(meta.estimated_time_minutes / meta.total_questions * 10) / 10

    return {
        "module_id": str(mid),
        "config": _config_public(generated.config),
        "metadata": dataclasses.asdict(meta),
        "minutes_per_question": mpq,
    }


@router.post("/modules/{module_id}/start", response_model=AssessmentStartResponse)
def start_assessment(
    module_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    _: object = rate_limit(key_prefix="assessment_start", limit=lambda: settings.assessment_start_rate_limit),
):
    mid = _parse_module_id(module_id)
    module = _get_active_module(db, mid)

    # An open session is reused so a reload cannot re-roll questions or restart the timer.
    r = get_redis()
    key = _session_key(str(user.id), str(mid))
    existing_raw = r.get(key)
    if existing_raw is not None:
        try:
            session = json.loads(existing_raw)
            qids: list[str] = session["question_ids"]
            prev_started_at = int(session["started_at"])
            prev_limit = int(session["time_limit_seconds"])
            if _deadline_passed(prev_started_at, prev_limit, int(time.time())):
                logger.info("assessment session expired, regenerating key=%s", key)
            else:
                qmap = _load_questions(db, qids)
                if qids and len(qmap) == len(set(qids)):
                    return {
                        "module_id": str(mid),
                        "started_at": prev_started_at,
                        "time_limit_seconds": prev_limit,
                        "config": session["config"],
                        "metadata": session["metadata"],
                        "questions": [_question_public(qmap[qid]) for qid in qids],
                    }
                logger.info("discarding stale assessment session key=%s", key)
        except (ValueError, KeyError, TypeError):
            logger.warning("corrupted assessment session, regenerating key=%s", key)

    generated: GeneratedAssessment = _generator(db).generate(mid)

    started_at = int(time.time())
    time_limit_seconds = int(generated.config.total_time_minutes) * 60
    config_public = _config_public(generated.config)
    metadata_public = dataclasses.asdict(generated.metadata)
    payload = {
        "question_ids": generated.question_ids,
        "started_at": started_at,
        "time_limit_seconds": time_limit_seconds,
        "domain": generated.config.domain or module.domain,
        "config": config_public,
        "metadata": metadata_public,
    }
    # Keep the key a little past the deadline so late submits get an explicit time-limit error.
    ttl = (time_limit_seconds or 60 * 60) + int(settings.assessment_session_grace_seconds) + 5 * 60
    r.set(key, json.dumps(payload), ex=ttl)

    logger.info("assessment started user=%s module=%s questions=%d", user.id, mid, len(generated.question_ids))

    return {
        "module_id": str(mid),
        "started_at": started_at,
        "time_limit_seconds": time_limit_seconds,
        "config": config_public,
        "metadata": metadata_public,
        "questions": [_question_public(q) for q in generated.questions],
    }


@router.post("/modules/{module_id}/submit", response_model=AssessmentSubmitResponse)
def submit_assessment(
    module_id: str,
    body: AssessmentSubmitRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    _: object = rate_limit(key_prefix="assessment_submit", limit=lambda: settings.assessment_submit_rate_limit),
):
    mid = _parse_module_id(module_id)
    module = _get_active_module(db, mid)

    r = get_redis()
    key = _session_key(str(user.id), str(mid))
    raw = r.get(key)
    if raw is None:
        raise HTTPException(status_code=409, detail="assessment session not found or expired")

    try:
        session = json.loads(raw)
        question_ids: list[str] = list(session["question_ids"])
        started_at = int(session["started_at"])
        time_limit_seconds = int(session.get("time_limit_seconds") or 0)
    except (ValueError, KeyError, TypeError) as e:
        r.delete(key)
        raise HTTPException(status_code=409, detail="assessment session is corrupted") from e

    now = int(time.time())
    time_spent = max(0, now - started_at)
    if _deadline_passed(started_at, time_limit_seconds, now):
        r.delete(key)
        raise HTTPException(status_code=409, detail="time limit exceeded")

    # Deleting the key claims the attempt; a concurrent submit that loses the race sees 0.
    if not r.delete(key):
        raise HTTPException(status_code=409, detail="assessment session not found or expired")

    qmap = _load_questions(db, question_ids)
    if len(qmap) != len(set(question_ids)):
        raise HTTPException(status_code=409, detail="assessment questions are no longer available")
    questions = [qmap[qid] for qid in question_ids]

    answers_by_qid = {a.question_id: a.answer for a in body.answers if a.question_id in qmap}
    domain = str(session.get("domain") or module.domain)
    result = score_answers(questions, answers_by_qid, domain=domain)

    row = Assessment(
        user_id=user.id,
        module_id=mid,
        domain=domain,
        score=result.correct,
        percentage=result.percentage,
        total_questions=result.total,
        question_ids=question_ids,
        answers=answers_by_qid,
        detailed_results=result.detailed_results(),
        strong_areas=result.strong_areas,
        weak_areas=result.weak_areas,
        time_taken=time_spent,
        completed_at=datetime.utcnow(),
    )
    db.add(row)
    db.commit()

    logger.info(
        "assessment submitted user=%s module=%s score=%d/%d",
        user.id,
        mid,
        result.correct,
        result.total,
    )

    return {
        "assessment_id": str(row.id),
        "module_id": str(mid),
        "score": result.correct,
        "total": result.total,
        "percentage": result.percentage,
        "by_type": {k: dataclasses.asdict(v) for k, v in result.by_type.items()},
        "strong_areas": result.strong_areas,
        "weak_areas": result.weak_areas,
        "time_taken": time_spent,
    }


@router.get("/me", response_model=AssessmentHistoryResponse)
def my_assessments(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = db.scalars(
        select(Assessment).where(Assessment.user_id == user.id).order_by(Assessment.created_at.desc())
    ).all()
    return {
        "items": [
            {
                "id": str(a.id),
                "module_id": str(a.module_id) if a.module_id else None,
                "domain": a.domain,
                "score": a.score,
                "percentage": a.percentage,
                "total_questions": a.total_questions,
                "time_taken": a.time_taken,
                "completed_at": a.completed_at,
            }
            for a in rows
        ]
    }
