#!/usr/bin/env python3
"""Seed a demo database with one requirement and a handful of competing responses.

The viewer owns the requirement. Referrers differ in track record, circle
distance to the viewer and interest history, so the ranked output shows each
score component at work.

Usage:
    python scripts/seed_demo.py
    python scripts/seed_demo.py --db data/demo.db
    python main.py rank --requirement req-demo --viewer ref-viewer
"""

import argparse
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

# Ensure project root is on the path when run as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

from referral_ranking.core.db import (
    init_db,
    insert_circle_link,
    insert_interest,
    insert_requirement,
    insert_response,
    insert_user,
)
from referral_ranking.core.schemas import (
    CircleLink,
    CircleStatus,
    InterestRecord,
    InterestStatus,
    Requirement,
    Response,
    ResponseStatus,
    User,
    UserRole,
)


REQUIREMENT_ID = "req-demo"
VIEWER_ID = "ref-viewer"


def _referrer(user_id: str, first: str, last: str) -> User:
    return User(
        id=user_id,
        email=f"{user_id}@example.com",
        first_name=first,
        last_name=last,
        role=UserRole.REFERRER,
        balance=100_000,
        password_hash="not-a-real-hash",
    )


def _candidate(user_id: str, first: str, last: str, login_days_ago: int | None, premium: bool) -> User:
    now = datetime.now(UTC)
    return User(
        id=user_id,
        email=f"{user_id}@example.com",
        first_name=first,
        last_name=last,
        role=UserRole.CANDIDATE,
        last_login_at=now - timedelta(days=login_days_ago) if login_days_ago is not None else None,
        subscription_purchased=premium,
    )


def seed(db_path: str) -> None:
    conn = init_db(db_path)
    now = datetime.now(UTC)

    referrers = [
        _referrer(VIEWER_ID, "Vera", "Owner"),
        _referrer("ref-direct", "Dana", "Direct"),
        _referrer("ref-bridge", "Ben", "Bridge"),
        _referrer("ref-indirect", "Ivan", "Indirect"),
        _referrer("ref-stranger", "Sam", "Stranger"),
    ]
    candidates = [
        _candidate("cand-a", "Alice", "Active", login_days_ago=2, premium=False),
        _candidate("cand-b", "Bob", "Premium", login_days_ago=30, premium=True),
        _candidate("cand-c", "Cleo", "Dormant", login_days_ago=None, premium=False),
    ]
    for user in referrers + candidates:
        insert_user(conn, user)

    insert_requirement(conn, Requirement(
        id=REQUIREMENT_ID,
        referrer_id=VIEWER_ID,
        title="Senior Backend Engineer",
        overview="Python, distributed systems",
        created_at=now - timedelta(days=10),
    ))

    # Track record on other requirements: ref-direct is 2/3, ref-stranger 1/1.
    insert_requirement(conn, Requirement(id="req-history", referrer_id="ref-bridge", title="History"))
    history = [
        ("ref-direct", "cand-a", ResponseStatus.APPROVED),
        ("ref-direct", "cand-b", ResponseStatus.APPROVED),
        ("ref-direct", "cand-c", ResponseStatus.REJECTED),
        ("ref-stranger", "cand-a", ResponseStatus.APPROVED),
    ]
    for i, (referrer_id, candidate_id, status) in enumerate(history):
        insert_response(conn, Response(
            id=f"hist-{i}",
            requirement_id="req-history",
            candidate_id=candidate_id,
            referrer_id=referrer_id,
            status=status,
            created_at=now - timedelta(days=60 + i),
        ))

    # Circle: viewer <-> ref-direct, viewer <-> ref-bridge, ref-bridge <-> ref-indirect.
    for inviter, accepter in (
        (VIEWER_ID, "ref-direct"),
        ("ref-bridge", VIEWER_ID),
        ("ref-bridge", "ref-indirect"),
    ):
        insert_circle_link(conn, CircleLink(
            id=f"circle-{inviter}-{accepter}",
            inviter_id=inviter,
            accepter_id=accepter,
            status=CircleStatus.ACCEPTED,
        ))

    insert_interest(conn, InterestRecord(
        id="interest-1",
        referrer_id="ref-direct",
        candidate_id="cand-a",
        position_title="Backend Engineer",
        company="Acme",
        status=InterestStatus.ACCEPTED,
        created_at=now - timedelta(days=5),
    ))

    pending = [
        ("resp-1", "ref-direct", "cand-a", 5000),
        ("resp-2", "ref-indirect", "cand-b", 4000),
        ("resp-3", "ref-stranger", "cand-c", 3000),
        ("resp-4", "ref-bridge", "cand-a", 4500),
    ]
    for i, (response_id, referrer_id, candidate_id, price) in enumerate(pending):
        insert_response(conn, Response(
            id=response_id,
            requirement_id=REQUIREMENT_ID,
            candidate_id=candidate_id,
            referrer_id=referrer_id,
            candidate_overview=f"Candidate proposed by {referrer_id}",
            why_this_candidate="Strong match for the stack.",
            purchase_price=price,
            created_at=now - timedelta(hours=i + 1),
        ))

    conn.close()
    print(f"Seeded {db_path}: requirement '{REQUIREMENT_ID}' owned by '{VIEWER_ID}'")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a demo referral database")
    parser.add_argument("--db", default="data/referrals.db", help="Database path")
    args = parser.parse_args()
    seed(args.db)


if __name__ == "__main__":
    main()
