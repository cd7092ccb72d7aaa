"""Database persistence for learning sessions.

Each applied response event is recorded in ``applied_responses`` under a
unique (session_id, event_id) constraint, so a retried save folds the
same event into the posterior at most once.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.estimator.records import from_record, to_record
from app.estimator.responses import ResponseEvent
from app.estimator.session import LearningSession
from app.models.applied_response import AppliedResponse
from app.models.learner_session import LearnerSession

logger = logging.getLogger(__name__)


async def create_session(db: AsyncSession) -> LearnerSession:
    """Persist a new session in the prior state."""
    row = LearnerSession(id=uuid.uuid4(), state=to_record(LearningSession()))
    db.add(row)
    await db.flush()
    return row


async def get_session_row(
    db: AsyncSession,
    session_id: uuid.UUID,
    for_update: bool = False,
) -> Optional[LearnerSession]:
    """Fetch a session row, optionally locking it for the rest of the transaction."""
    query = select(LearnerSession).where(LearnerSession.id == session_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


def load_session(row: LearnerSession) -> LearningSession:
    return from_record(row.state)


async def _already_applied(db: AsyncSession, session_id: uuid.UUID, event_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(AppliedResponse.id).where(
            AppliedResponse.session_id == session_id,
            AppliedResponse.event_id == event_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def apply_response(
    db: AsyncSession,
    row: LearnerSession,
    event: ResponseEvent,
) -> tuple[LearningSession, bool]:
    """Fold ``event`` into the stored session unless it was applied before.

    Parameters
    ----------
    db : AsyncSession
        Database session.
    row : LearnerSession
        The session row, ideally fetched with ``for_update=True``.
    event : ResponseEvent
        The learner's response.

    Returns
    -------
    tuple[LearningSession, bool]
        (session, applied) where ``applied`` is False for a duplicate event.
    """
    if await _already_applied(db, row.id, event.event_id):
        logger.info("Ignoring duplicate response event %s for session %s", event.event_id, row.id)
        return load_session(row), False

    session = load_session(row).apply(event)
    try:
        async with db.begin_nested():
            db.add(
                AppliedResponse(
                    session_id=row.id,
                    event_id=event.event_id,
                    word_id=event.word_id,
                    kind=event.kind.value,
                    timestamp=event.timestamp,
                )
            )
            row.state = to_record(session)
            await db.flush()
    except IntegrityError:
        # A concurrent writer recorded the same event first.
        logger.info("Response event %s for session %s was applied concurrently", event.event_id, row.id)
        await db.refresh(row)
        return load_session(row), False

    return session, True


async def reset_session(db: AsyncSession, row: LearnerSession) -> LearningSession:
    """Return the stored session to the prior.

    Applied event ids are kept, so a stale retry of a response made before
    the reset is still ignored.
    """
    session = LearningSession()
    row.state = to_record(session)
    await db.flush()
    return session
