from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from skillcheck.core.security import require_roles
from skillcheck.db.session import get_db
from skillcheck.models.module import Module
from skillcheck.models.user import User, UserRole
from skillcheck.schemas.assessment_config import (
    AssessmentConfigOverviewResponse,
    AssessmentConfigPublic,
    AssessmentConfigUpsert,
    QuestionCounts,
)
from skillcheck.services.assessment_configs import (
    config_to_public,
    get_config,
    list_config_overviews,
    question_counts,
    upsert_config,
)

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_module(db: Session, module_id: str) -> Module:
    try:
        mid = uuid.UUID(module_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="invalid module id") from e
    m = db.scalar(select(Module).where(Module.id == mid))
    if m is None:
        raise HTTPException(status_code=404, detail="module not found")
    return m


@router.get("/assessment-configs", response_model=AssessmentConfigOverviewResponse)
def list_assessment_configs(db: Session = Depends(get_db), _: User = Depends(require_roles(UserRole.admin))):
    return {"items": list_config_overviews(db)}


@router.get("/assessment-configs/{module_id}", response_model=AssessmentConfigPublic)
def get_assessment_config(
    module_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(UserRole.admin)),
):
    m = _get_module(db, module_id)
    cfg = get_config(db, m.id)
    if cfg is None:
        raise HTTPException(status_code=404, detail="assessment config not found")
    return config_to_public(cfg)


@router.put("/assessment-configs/{module_id}", response_model=AssessmentConfigPublic)
def put_assessment_config(
    module_id: str,
    body: AssessmentConfigUpsert,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.admin)),
):
    m = _get_module(db, module_id)
    cfg = upsert_config(db, module=m, payload=body, actor_id=user.id)
    db.commit()
    db.refresh(cfg)
    return config_to_public(cfg)


@router.get("/modules/{module_id}/question-counts", response_model=QuestionCounts)
def module_question_counts(
    module_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(UserRole.admin)),
):
    m = _get_module(db, module_id)
    return question_counts(db, m.id)
