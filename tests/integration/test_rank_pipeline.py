"""Integration test: workflow writes, SQLite store and rank() over one database."""

import json
import sqlite3
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from main import export_page_json
from referral_ranking.core.config import ScoringConfig
from referral_ranking.core.db import (
    init_db,
    insert_circle_link,
    insert_interest,
    insert_requirement,
    insert_response,
    insert_user,
)
from referral_ranking.core.errors import RequirementNotFoundError
from referral_ranking.core.schemas import (
    CircleLink,
    CircleRelation,
    CircleStatus,
    InterestRecord,
    InterestStatus,
    Requirement,
    Response,
    ResponseStatus,
    User,
    UserRole,
)
from referral_ranking.ranking.ranker import rank
from referral_ranking.ranking.sqlite_store import SqliteResponseStore
from referral_ranking.responses.workflow import ResponseWorkflow

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)

# ---------------------------------------------------------------------------
# Dataset
#
# viewer owns req-q. Competing referrers:
#   ref-r  2/3 track record, direct circle, recent interest with cand-c
#   ref-b  no history, direct circle (invited the viewer)
#   ref-i  no history, reached through ref-b
#   ref-s  perfect record, only a pending circle invite, stale interest
# Candidates: cand-c active, cand-p premium but idle, cand-d never logged in.
# ---------------------------------------------------------------------------


def _user(user_id: str, role: UserRole = UserRole.REFERRER, **kw: object) -> User:
    return User(
        id=user_id,
        email=f"{user_id}@example.com",
        first_name=user_id.split("-")[1].upper(),
        last_name="Tester",
        role=role,
        password_hash="secret-hash",
        balance=1000,
        **kw,  # type: ignore[arg-type]
    )


def _response(
    response_id: str,
    requirement_id: str,
    referrer_id: str,
    candidate_id: str,
    status: ResponseStatus = ResponseStatus.PENDING,
    age: timedelta = timedelta(hours=1),
) -> Response:
    return Response(
        id=response_id,
        requirement_id=requirement_id,
        candidate_id=candidate_id,
        referrer_id=referrer_id,
        candidate_overview="Backend engineer",
        why_this_candidate="Worked together for two years",
        purchase_price=5000,
        status=status,
        created_at=NOW - age,
    )


def _seed(conn: sqlite3.Connection) -> None:
    for uid in ("ref-viewer", "ref-r", "ref-b", "ref-i", "ref-s"):
        insert_user(conn, _user(uid))
    insert_user(conn, _user("cand-c", UserRole.CANDIDATE, last_login_at=NOW - timedelta(days=2)))
    insert_user(conn, _user(
        "cand-p", UserRole.CANDIDATE, last_login_at=NOW - timedelta(days=30), subscription_purchased=True,
    ))
    insert_user(conn, _user("cand-d", UserRole.CANDIDATE))

    insert_requirement(conn, Requirement(id="req-q", referrer_id="ref-viewer", title="Backend", created_at=NOW))
    insert_requirement(conn, Requirement(id="req-h", referrer_id="ref-b", title="History", created_at=NOW))

    # Track records on another requirement.
    for response_id, referrer_id, candidate_id, status in (
        ("hist-r1", "ref-r", "cand-c", ResponseStatus.APPROVED),
        ("hist-r2", "ref-r", "cand-p", ResponseStatus.APPROVED),
        ("hist-r3", "ref-r", "cand-d", ResponseStatus.REJECTED),
        ("hist-s1", "ref-s", "cand-c", ResponseStatus.APPROVED),
    ):
        insert_response(conn, _response(
            response_id, "req-h", referrer_id, candidate_id, status, age=timedelta(days=40),
        ))

    # Responses to the viewer's requirement.
    insert_response(conn, _response("resp-1", "req-q", "ref-r", "cand-c", age=timedelta(hours=4)))
    insert_response(conn, _response("resp-2", "req-q", "ref-i", "cand-p", age=timedelta(hours=3)))
    insert_response(conn, _response("resp-3", "req-q", "ref-s", "cand-d", age=timedelta(hours=2)))
    insert_response(conn, _response("resp-4", "req-q", "ref-b", "cand-c", age=timedelta(hours=1)))
    insert_response(conn, _response(
        "resp-5", "req-q", "ref-s", "cand-c", ResponseStatus.APPROVED, age=timedelta(hours=5),
    ))

    for interest_id, referrer_id, candidate_id, status, age in (
        ("int-rc", "ref-r", "cand-c", InterestStatus.ACCEPTED, timedelta(days=5)),
        ("int-sd", "ref-s", "cand-d", InterestStatus.ACCEPTED, timedelta(days=20)),
        ("int-ip", "ref-i", "cand-p", InterestStatus.PENDING, timedelta(days=1)),
    ):
        insert_interest(conn, InterestRecord(
            id=interest_id,
            referrer_id=referrer_id,
            candidate_id=candidate_id,
            status=status,
            created_at=NOW - age,
        ))

    for inviter, accepter, status in (
        ("ref-viewer", "ref-r", CircleStatus.ACCEPTED),
        ("ref-b", "ref-viewer", CircleStatus.ACCEPTED),
        ("ref-b", "ref-i", CircleStatus.ACCEPTED),
        ("ref-viewer", "ref-s", CircleStatus.PENDING),
    ):
        insert_circle_link(conn, CircleLink(
            id=f"{inviter}-{accepter}", inviter_id=inviter, accepter_id=accepter, status=status,
        ))


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "referrals.db"
    conn = init_db(path)
    _seed(conn)
    conn.close()
    return path


@pytest.fixture()
def store(db_path: Path) -> SqliteResponseStore:
    return SqliteResponseStore(db_path)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestRankPipeline:
    async def test_pending_ranking(self, store: SqliteResponseStore) -> None:
        page = await rank(store, "req-q", "ref-viewer", now=NOW)

        assert page.total == 4
        assert [s.response.id for s in page.items] == ["resp-1", "resp-3", "resp-4", "resp-2"]
        assert [s.score for s in page.items] == [45.0, 30.0, 15.0, 10.0]

    async def test_breakdown_of_top_response(self, store: SqliteResponseStore) -> None:
        page = await rank(store, "req-q", "ref-viewer", now=NOW)
        top = page.items[0].score_details

        assert top.success_rate.approved == 2
        assert top.success_rate.acted == 3
        assert top.success_rate.rate == 0.6667
        assert top.success_rate.score == 20.0
        assert top.candidate_active.is_recent is True
        assert top.recent_interest.has_recent_accepted is True
        assert top.circle.relation == CircleRelation.DIRECT
        assert top.premium.is_premium is False
        assert top.review_score == 0.0
        assert top.invited_score == 0.0

    async def test_indirect_and_premium(self, store: SqliteResponseStore) -> None:
        page = await rank(store, "req-q", "ref-viewer", now=NOW)
        by_id = {s.response.id: s for s in page.items}

        indirect = by_id["resp-2"].score_details
        assert indirect.circle.relation == CircleRelation.INDIRECT
        assert indirect.premium.is_premium is True
        assert indirect.candidate_active.is_recent is False
        # Pending interest does not count.
        assert indirect.recent_interest.has_recent_accepted is False

        stale = by_id["resp-3"].score_details
        assert stale.circle.relation == CircleRelation.NONE
        assert stale.recent_interest.has_recent_accepted is False
        assert stale.candidate_active.last_login_at is None

    async def test_all_statuses(self, store: SqliteResponseStore) -> None:
        page = await rank(store, "req-q", "ref-viewer", status=None, now=NOW)

        assert page.total == 5
        assert [s.response.id for s in page.items] == ["resp-1", "resp-5", "resp-3", "resp-4", "resp-2"]
        assert page.items[1].score == 35.0

    async def test_second_page(self, store: SqliteResponseStore) -> None:
        page = await rank(store, "req-q", "ref-viewer", page=2, limit=3, now=NOW)

        assert page.total == 4
        assert [s.response.id for s in page.items] == ["resp-2"]

    async def test_non_owner_rejected(self, store: SqliteResponseStore) -> None:
        with pytest.raises(RequirementNotFoundError):
            await rank(store, "req-q", "ref-r", now=NOW)

    async def test_custom_weights(self, store: SqliteResponseStore) -> None:
        scoring = ScoringConfig(success_rate_weight=0.0, premium_bonus=50.0)
        page = await rank(store, "req-q", "ref-viewer", scoring=scoring, now=NOW)

        assert page.items[0].response.id == "resp-2"
        assert page.items[0].score == 55.0

    async def test_rejection_feeds_back_into_success_rate(
        self, store: SqliteResponseStore, db_path: Path,
    ) -> None:
        conn = init_db(db_path)
        try:
            ResponseWorkflow(conn).reject("req-q", "resp-3", "ref-viewer")
        finally:
            conn.close()

        pending = await rank(store, "req-q", "ref-viewer", now=NOW)
        assert [s.response.id for s in pending.items] == ["resp-1", "resp-4", "resp-2"]

        everything = await rank(store, "req-q", "ref-viewer", status=None, now=NOW)
        scores = {s.response.id: s.score for s in everything.items}
        assert scores["resp-5"] == 25.0
        assert scores["resp-3"] == 20.0


class TestRedaction:
    async def test_parties_are_summaries(self, store: SqliteResponseStore) -> None:
        page = await rank(store, "req-q", "ref-viewer", now=NOW)
        top = page.items[0]

        assert top.response.candidate is None
        assert top.response.referrer is None
        assert top.candidate.id == "cand-c"
        assert top.referrer.first_name == "R"

    async def test_export_json_has_no_private_fields(self, store: SqliteResponseStore) -> None:
        page = await rank(store, "req-q", "ref-viewer", now=NOW)
        raw = export_page_json(page)
        data = json.loads(raw)

        assert data["total"] == 4
        assert len(data["items"]) == 4
        first = data["items"][0]
        assert set(first["candidate"]) == {"id", "first_name", "last_name"}
        assert set(first["referrer"]) == {"id", "first_name", "last_name"}
        assert "secret-hash" not in raw
        assert "@example.com" not in raw
        assert "balance" not in raw
