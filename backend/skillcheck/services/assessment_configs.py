from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from skillcheck.models.assessment_config import AssessmentConfig
from skillcheck.models.module import Module
from skillcheck.models.question import Question
from skillcheck.schemas.assessment_config import AssessmentConfigUpsert
from skillcheck.services.assessment_generator import (
    DIFFICULTIES,
    QUESTION_TYPES,
    GenerationConfig,
    parse_difficulty_distribution,
)

logger = logging.getLogger(__name__)


def validate_difficulty_distribution(distribution: Any) -> bool:
    if isinstance(distribution, Mapping):
        values = [distribution.get(level) for level in DIFFICULTIES]
    else:
        values = [getattr(distribution, level, None) for level in DIFFICULTIES]
    try:
        return sum(float(v) for v in values) == 100
    except (TypeError, ValueError):
        return False


def _empty_counts() -> dict[str, Any]:
    counts: dict[str, Any] = {qtype: 0 for qtype in QUESTION_TYPES}
    counts["total"] = 0
    counts["by_difficulty"] = {level: 0 for level in DIFFICULTIES}
    return counts


def _counts_for_modules(db: Session, module_ids: list[uuid.UUID]) -> dict[uuid.UUID, dict[str, Any]]:
    res: dict[uuid.UUID, dict[str, Any]] = {mid: _empty_counts() for mid in module_ids}
    if not module_ids:
        return res

    rows = db.execute(
        select(Question.module_id, Question.question_type, Question.difficulty, func.count(Question.id))
        .where(Question.module_id.in_(module_ids))
        .group_by(Question.module_id, Question.question_type, Question.difficulty)
    ).all()

    for mid, qtype, difficulty, n in rows:
        counts = res.setdefault(mid, _empty_counts())
        counts[qtype.value] = counts.get(qtype.value, 0) + int(n)
        counts["by_difficulty"][difficulty.value] = counts["by_difficulty"].get(difficulty.value, 0) + int(n)
        counts["total"] += int(n)
    return res


def question_counts(db: Session, module_id: uuid.UUID) -> dict[str, Any]:
    return _counts_for_modules(db, [module_id])[module_id]


def has_enough_questions(config: Any, counts: Mapping[str, Any] | None) -> bool:
    if not counts:
        return False
    cfg = config if isinstance(config, GenerationConfig) else GenerationConfig.from_record(config)
    return all(int(counts.get(qtype, 0) or 0) >= cfg.target_count(qtype) for qtype in QUESTION_TYPES)


def config_to_public(cfg: AssessmentConfig) -> dict[str, Any]:
    return {
        "id": str(cfg.id),
        "module_id": str(cfg.module_id),
        "domain": cfg.domain,
        "mcq_count": int(cfg.mcq_count or 0),
        "coding_count": int(cfg.coding_count or 0),
        "scenario_count": int(cfg.scenario_count or 0),
        "total_time_minutes": int(cfg.total_time_minutes or 0),
        "difficulty_distribution": parse_difficulty_distribution(cfg.difficulty_distribution).as_dict(),
        "updated_at": cfg.updated_at,
    }


def get_config(db: Session, module_id: uuid.UUID) -> AssessmentConfig | None:
    return db.scalar(select(AssessmentConfig).where(AssessmentConfig.module_id == module_id))


def upsert_config(
    db: Session,
    *,
    module: Module,
    payload: AssessmentConfigUpsert,
    actor_id: uuid.UUID | None = None,
) -> AssessmentConfig:
    """Create or update the single configuration of `module`. Caller commits."""
    cfg = get_config(db, module.id)
    created = cfg is None
    if cfg is None:
        cfg = AssessmentConfig(module_id=module.id, created_by=actor_id)
        db.add(cfg)

    cfg.domain = (payload.domain or "").strip() or module.domain
    cfg.mcq_count = payload.mcq_count
    cfg.coding_count = payload.coding_count
    cfg.scenario_count = payload.scenario_count
    cfg.total_time_minutes = payload.total_time_minutes
    cfg.difficulty_distribution = payload.difficulty_distribution.model_dump()
    cfg.updated_at = datetime.utcnow()
    db.flush()

    logger.info("assessment config %s module=%s", "created" if created else "updated", module.id)
    return cfg


def list_config_overviews(db: Session) -> list[dict[str, Any]]:
    rows = db.execute(
        select(AssessmentConfig, Module.name)
        .outerjoin(Module, Module.id == AssessmentConfig.module_id)
        .order_by(AssessmentConfig.domain)
    ).all()
    counts_map = _counts_for_modules(db, [cfg.module_id for cfg, _ in rows])

    items = []
    for cfg, module_name in rows:
        counts = counts_map.get(cfg.module_id) or _empty_counts()
        items.append(
            {
                "module_name": module_name,
                "config": config_to_public(cfg),
                "available": counts,
                "sufficient": has_enough_questions(cfg, counts),
            }
        )
    return items
