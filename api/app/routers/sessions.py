"""Sessions router: accepts learner responses and serves proficiency estimates.

The interaction layer posts one response per user action; every read
recomputes the estimate from the stored posterior.
"""

import logging
from datetime import datetime
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.estimator.confidence import ConfidenceLevel
from app.estimator.responses import ResponseEvent, ResponseKind
from app.estimator.session import LearningSession
from app.estimator.store import (
    apply_response,
    create_session,
    get_session_row,
    load_session,
    reset_session,
)
from app.models.learner_session import LearnerSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sessions"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ResponseIn(BaseModel):
    event_id: UUID = Field(default_factory=uuid4)
    word_id: str = Field(min_length=1, max_length=255)
    kind: ResponseKind
    timestamp: datetime | None = None


class EstimateOut(BaseModel):
    point_estimate_pct: float
    std_dev_pct: float
    ci_lower_pct: float
    ci_upper_pct: float
    confidence: ConfidenceLevel
    sample_count: int


class SessionOut(BaseModel):
    id: UUID
    phase: str
    alpha: float
    beta: float
    sample_count: int
    counts: dict[ResponseKind, int]
    estimated_vocab: int
    exact_interval_pct: tuple[float, float]
    hdi_pct: tuple[float, float]
    estimate: EstimateOut


class ResponseApplied(BaseModel):
    applied: bool
    estimate: EstimateOut


class ExportOut(BaseModel):
    level: float
    estimatedVocab: int
    confidence: ConfidenceLevel
    sampleCount: int
    counts: dict[ResponseKind, int]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _get_session_row(session_id: UUID, db: AsyncSession, for_update: bool = False) -> LearnerSession:
    row = await get_session_row(db, session_id, for_update=for_update)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return row


def _estimate_out(session: LearningSession) -> EstimateOut:
    return EstimateOut(**session.estimate().as_dict())


def _session_out(session_id: UUID, session: LearningSession) -> SessionOut:
    return SessionOut(
        id=session_id,
        phase=session.phase,
        alpha=session.state.alpha,
        beta=session.state.beta,
        sample_count=session.sample_count,
        counts=session.counts,
        estimated_vocab=session.estimated_vocab(),
        exact_interval_pct=tuple(100 * bound for bound in session.state.credible_interval()),
        hdi_pct=tuple(100 * bound for bound in session.state.hdi()),
        estimate=_estimate_out(session),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/sessions", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
async def start_session(db: AsyncSession = Depends(get_db)) -> SessionOut:
    """Start a new learning session in the prior state."""
    row = await create_session(db)
    return _session_out(row.id, load_session(row))


@router.get("/sessions/{session_id}", response_model=SessionOut)
async def get_session(session_id: UUID, db: AsyncSession = Depends(get_db)) -> SessionOut:
    """Posterior parameters, response counts and the current estimate."""
    row = await _get_session_row(session_id, db)
    return _session_out(row.id, load_session(row))


@router.post("/sessions/{session_id}/responses", response_model=ResponseApplied)
async def record_response(
    session_id: UUID,
    body: ResponseIn,
    db: AsyncSession = Depends(get_db),
) -> ResponseApplied:
    """Apply one learner response.

    Re-sending a response with an ``event_id`` that was already applied is
    harmless: the posterior is left unchanged and ``applied`` is false.
    """
    row = await _get_session_row(session_id, db, for_update=True)
    fields = body.model_dump(exclude_none=True)
    event = ResponseEvent(**fields)
    try:
        session, applied = await apply_response(db, row, event)
    except Exception:
        logger.exception("Failed to apply response %s to session %s", body.event_id, session_id)
        raise
    return ResponseApplied(applied=applied, estimate=_estimate_out(session))


@router.get("/sessions/{session_id}/estimate", response_model=EstimateOut)
async def get_estimate(session_id: UUID, db: AsyncSession = Depends(get_db)) -> EstimateOut:
    row = await _get_session_row(session_id, db)
    return _estimate_out(load_session(row))


@router.get("/sessions/{session_id}/export", response_model=ExportOut)
async def export_session(session_id: UUID, db: AsyncSession = Depends(get_db)) -> ExportOut:
    """Export payload: ``level``, ``estimatedVocab`` and ``confidence``."""
    row = await _get_session_row(session_id, db)
    return ExportOut(**load_session(row).export_payload())


@router.post("/sessions/{session_id}/reset", response_model=SessionOut)
async def reset(session_id: UUID, db: AsyncSession = Depends(get_db)) -> SessionOut:
    """Discard all evidence and return the session to the uniform prior."""
    row = await _get_session_row(session_id, db, for_update=True)
    session = await reset_session(db, row)
    return _session_out(row.id, session)
