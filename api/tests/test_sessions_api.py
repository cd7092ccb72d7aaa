"""Tests for the sessions API.

Runs the FastAPI app in-process with the database dependency pointed at a
temporary SQLite file.
"""

import asyncio
import os
import sys
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.core.database import get_db
from app.estimator import store
from app.estimator.responses import ResponseEvent, ResponseKind
from app.main import app
from app.models import AppliedResponse, Base, LearnerSession

PREFIX = "/api/v1"


@pytest.fixture
def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lexilevel.db'}", poolclass=NullPool)

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    yield async_sessionmaker(engine, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def session_id(client):
    resp = client.post(f"{PREFIX}/sessions")
    assert resp.status_code == 201
    return resp.json()["id"]


def _respond(client, session_id, kind, event_id=None, word_id="haus"):
    body = {"word_id": word_id, "kind": kind}
    if event_id is not None:
        body["event_id"] = event_id
    return client.post(f"{PREFIX}/sessions/{session_id}/responses", json=body)


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestSessionLifecycle:
    def test_new_session_is_prior(self, client):
        resp = client.post(f"{PREFIX}/sessions")
        assert resp.status_code == 201
        data = resp.json()
        assert data["phase"] == "prior"
        assert data["alpha"] == 1.0
        assert data["beta"] == 1.0
        assert data["sample_count"] == 0
        assert data["estimated_vocab"] == 0
        assert data["estimate"]["point_estimate_pct"] == 50.0
        assert data["exact_interval_pct"] == pytest.approx([2.5, 97.5])
        assert data["hdi_pct"][1] - data["hdi_pct"][0] == pytest.approx(95.0, abs=1.0)
        assert data["estimate"]["confidence"] == "Very Low"

    def test_apply_response(self, client, session_id):
        resp = _respond(client, session_id, "know_sentence")
        assert resp.status_code == 200
        data = resp.json()
        assert data["applied"] is True
        assert data["estimate"]["point_estimate_pct"] == pytest.approx(66.67, abs=0.01)
        assert data["estimate"]["sample_count"] == 1

        state = client.get(f"{PREFIX}/sessions/{session_id}").json()
        assert state["alpha"] == 2.0
        assert state["beta"] == 1.0
        assert state["phase"] == "updated"
        assert state["counts"]["know_sentence"] == 1
        assert state["estimated_vocab"] == 150

    def test_duplicate_event_applied_once(self, client, session_id):
        event_id = str(uuid.uuid4())
        first = _respond(client, session_id, "know_word", event_id=event_id)
        second = _respond(client, session_id, "know_word", event_id=event_id)
        assert first.json()["applied"] is True
        assert second.json()["applied"] is False
        assert second.json()["estimate"] == first.json()["estimate"]

        state = client.get(f"{PREFIX}/sessions/{session_id}").json()
        assert state["sample_count"] == 1
        assert state["counts"]["know_word"] == 1

    def test_estimate_and_export(self, client, session_id):
        for kind in ["know_sentence", "know_word", "uncertain", "dont_know"]:
            assert _respond(client, session_id, kind).status_code == 200

        estimate = client.get(f"{PREFIX}/sessions/{session_id}/estimate").json()
        assert estimate["sample_count"] == 4
        assert estimate["ci_lower_pct"] <= estimate["point_estimate_pct"] <= estimate["ci_upper_pct"]
        assert estimate["point_estimate_pct"] == pytest.approx(50.0)

        export = client.get(f"{PREFIX}/sessions/{session_id}/export").json()
        assert export["level"] == estimate["point_estimate_pct"]
        assert export["estimatedVocab"] == 300
        assert export["confidence"] == estimate["confidence"]
        assert export["sampleCount"] == 4

    def test_reset(self, client, session_id):
        stale_event = str(uuid.uuid4())
        _respond(client, session_id, "know_sentence", event_id=stale_event)
        _respond(client, session_id, "know_word")

        resp = client.post(f"{PREFIX}/sessions/{session_id}/reset")
        assert resp.status_code == 200
        data = resp.json()
        assert data["alpha"] == 1.0
        assert data["beta"] == 1.0
        assert data["sample_count"] == 0
        assert data["estimated_vocab"] == 0

        # A retried save from before the reset must not resurrect evidence
        retry = _respond(client, session_id, "know_sentence", event_id=stale_event)
        assert retry.json()["applied"] is False
        assert client.get(f"{PREFIX}/sessions/{session_id}").json()["sample_count"] == 0


class TestBoundaryErrors:
    def test_unknown_session(self, client):
        missing = uuid.uuid4()
        assert client.get(f"{PREFIX}/sessions/{missing}").status_code == 404
        assert client.get(f"{PREFIX}/sessions/{missing}/estimate").status_code == 404
        assert _respond(client, missing, "know_word").status_code == 404

    def test_invalid_kind_rejected(self, client, session_id):
        resp = _respond(client, session_id, "sort_of")
        assert resp.status_code == 422
        assert client.get(f"{PREFIX}/sessions/{session_id}").json()["sample_count"] == 0

    def test_empty_word_id_rejected(self, client, session_id):
        assert _respond(client, session_id, "know_word", word_id="").status_code == 422


class TestCorruptState:
    def test_corrupt_state_served_as_prior(self, client, session_factory):
        async def insert_corrupt():
            async with session_factory() as db:
                row = LearnerSession(id=uuid.uuid4(), state={"alpha": "oops", "beta": None})
                db.add(row)
                await db.commit()
                return row.id

        row_id = asyncio.run(insert_corrupt())
        resp = client.get(f"{PREFIX}/sessions/{row_id}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["phase"] == "prior"
        assert data["estimate"]["point_estimate_pct"] == 50.0

        # The next response starts over from the prior
        applied = _respond(client, row_id, "know_sentence").json()
        assert applied["estimate"]["point_estimate_pct"] == pytest.approx(66.67, abs=0.01)

    def test_null_state_served_as_prior(self, client, session_factory):
        async def insert_empty():
            async with session_factory() as db:
                row = LearnerSession(id=uuid.uuid4(), state=None)
                db.add(row)
                await db.commit()
                return row.id

        row_id = asyncio.run(insert_empty())
        data = client.get(f"{PREFIX}/sessions/{row_id}/export").json()
        assert data["level"] == 50.0
        assert data["estimatedVocab"] == 0
        assert data["confidence"] == "Very Low"


class TestStoreApplyOnce:
    """The unique (session_id, event_id) key catches races the pre-check misses."""

    def test_constraint_rejects_concurrent_duplicate(self, session_factory, monkeypatch):
        async def never_applied(db, session_id, event_id):
            return False

        async def scenario():
            async with session_factory() as db:
                row = await store.create_session(db)
                event = ResponseEvent(word_id="baum", kind=ResponseKind.know_sentence)
                first, first_applied = await store.apply_response(db, row, event)
                await db.commit()

                # Simulate a second writer that checked before the first committed
                monkeypatch.setattr(store, "_already_applied", never_applied)
                second, second_applied = await store.apply_response(db, row, event)
                await db.commit()

                ledger_rows = await db.scalar(select(func.count()).select_from(AppliedResponse))
                stored = store.load_session(await store.get_session_row(db, row.id))
                return first, first_applied, second, second_applied, ledger_rows, stored

        first, first_applied, second, second_applied, ledger_rows, stored = asyncio.run(scenario())
        assert first_applied is True
        assert second_applied is False
        assert second.sample_count == 1
        assert second.state == first.state
        assert ledger_rows == 1
        assert stored.sample_count == 1
        assert (stored.state.alpha, stored.state.beta) == (2.0, 1.0)
