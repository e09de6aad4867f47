"""SQLite database layer for users, requirements, responses, interests and circles.

Bulk readers take ID collections and return an empty result without touching
the database when a collection is empty, so no query is ever issued with an
empty ``IN ()`` clause.
"""

import sqlite3
from collections.abc import Collection
from datetime import datetime
from pathlib import Path

from referral_ranking.core.schemas import (
    CandidateSnapshot,
    CircleLink,
    CircleStatus,
    InterestRecord,
    InterestStatus,
    Requirement,
    Response,
    ResponseStatus,
    SuccessCounts,
    User,
    as_utc,
    utc_now,
)

_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id                      TEXT    PRIMARY KEY,
    email                   TEXT    NOT NULL UNIQUE,
    first_name              TEXT    NOT NULL,
    last_name               TEXT    NOT NULL,
    role                    TEXT    NOT NULL,
    status                  TEXT    NOT NULL DEFAULT 'active',
    last_login_at           TEXT,
    subscription_purchased  INTEGER NOT NULL DEFAULT 0,
    balance                 INTEGER NOT NULL DEFAULT 0,
    password_hash           TEXT
);
"""

_REQUIREMENTS_TABLE = """
CREATE TABLE IF NOT EXISTS requirements (
    id              TEXT PRIMARY KEY,
    referrer_id     TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    title           TEXT NOT NULL,
    overview        TEXT NOT NULL DEFAULT '',
    status          TEXT NOT NULL DEFAULT 'open',
    visibility      TEXT NOT NULL DEFAULT 'public',
    created_at      TEXT NOT NULL
);
"""

_RESPONSES_TABLE = """
CREATE TABLE IF NOT EXISTS requirement_responses (
    id                  TEXT    PRIMARY KEY,
    requirement_id      TEXT    NOT NULL REFERENCES requirements(id) ON DELETE CASCADE,
    candidate_id        TEXT    NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    referrer_id         TEXT    NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    candidate_overview  TEXT    NOT NULL DEFAULT '',
    why_this_candidate  TEXT    NOT NULL DEFAULT '',
    purchase_price      INTEGER NOT NULL DEFAULT 0,
    status              TEXT    NOT NULL DEFAULT 'pending',
    deck_id             TEXT,
    created_at          TEXT    NOT NULL,
    UNIQUE(requirement_id, candidate_id, referrer_id)
);
"""

_INTEREST_TABLE = """
CREATE TABLE IF NOT EXISTS candidate_interest (
    id              TEXT PRIMARY KEY,
    candidate_id    TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    referrer_id     TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    position_title  TEXT NOT NULL DEFAULT '',
    company         TEXT NOT NULL DEFAULT '',
    status          TEXT NOT NULL DEFAULT 'pending',
    created_at      TEXT NOT NULL
);
"""

_CIRCLE_TABLE = """
CREATE TABLE IF NOT EXISTS referrer_circle (
    id              TEXT PRIMARY KEY,
    inviter_id      TEXT NOT NULL,
    accepter_id     TEXT NOT NULL,
    status          TEXT NOT NULL DEFAULT 'pending',
    created_at      TEXT NOT NULL,
    UNIQUE(inviter_id, accepter_id)
);
"""

_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_responses_referrer ON requirement_responses(referrer_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_candidate_interest_candidate ON candidate_interest(candidate_id)",
    "CREATE INDEX IF NOT EXISTS idx_candidate_interest_referrer ON candidate_interest(referrer_id)",
    "CREATE INDEX IF NOT EXISTS idx_candidate_interest_status ON candidate_interest(status)",
    "CREATE INDEX IF NOT EXISTS idx_circle_inviter ON referrer_circle(inviter_id)",
    "CREATE INDEX IF NOT EXISTS idx_circle_accepter ON referrer_circle(accepter_id)",
    "CREATE INDEX IF NOT EXISTS idx_circle_status ON referrer_circle(status)",
)


def connect(path: str | Path) -> sqlite3.Connection:
    """Open a connection to an existing database file."""
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    return conn


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = connect(path)
    conn.execute("PRAGMA journal_mode=WAL")
    for ddl in (_USERS_TABLE, _REQUIREMENTS_TABLE, _RESPONSES_TABLE, _INTEREST_TABLE, _CIRCLE_TABLE):
        conn.execute(ddl)
    for ddl in _INDEXES:
        conn.execute(ddl)
    conn.commit()
    return conn


def _placeholders(values: Collection[object]) -> str:
    return ", ".join("?" for _ in values)


def _ts(value: datetime | None) -> str | None:
    # Fixed-width UTC strings, so SQL string comparison matches time order.
    if value is None:
        return None
    return as_utc(value).isoformat(timespec="microseconds")


def _parse_ts(value: str | None) -> datetime | None:
    return as_utc(datetime.fromisoformat(value)) if value else None


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def _user_from_row(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        role=row["role"],
        status=row["status"],
        last_login_at=_parse_ts(row["last_login_at"]),
        subscription_purchased=bool(row["subscription_purchased"]),
        balance=row["balance"],
        password_hash=row["password_hash"],
    )


def _requirement_from_row(row: sqlite3.Row) -> Requirement:
    return Requirement(
        id=row["id"],
        referrer_id=row["referrer_id"],
        title=row["title"],
        overview=row["overview"],
        status=row["status"],
        visibility=row["visibility"],
        created_at=_parse_ts(row["created_at"]),
    )


def _response_from_row(
    row: sqlite3.Row,
    candidate: User | None = None,
    referrer: User | None = None,
) -> Response:
    return Response(
        id=row["id"],
        requirement_id=row["requirement_id"],
        candidate_id=row["candidate_id"],
        referrer_id=row["referrer_id"],
        candidate_overview=row["candidate_overview"],
        why_this_candidate=row["why_this_candidate"],
        purchase_price=row["purchase_price"],
        status=row["status"],
        deck_id=row["deck_id"],
        created_at=_parse_ts(row["created_at"]),
        candidate=candidate,
        referrer=referrer,
    )


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------


def insert_user(conn: sqlite3.Connection, user: User) -> None:
    conn.execute(
        """
        INSERT INTO users
            (id, email, first_name, last_name, role, status, last_login_at,
             subscription_purchased, balance, password_hash)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            user.id,
            user.email,
            user.first_name,
            user.last_name,
            user.role.value,
            user.status.value,
            _ts(user.last_login_at),
            int(user.subscription_purchased),
            user.balance,
            user.password_hash,
        ),
    )
    conn.commit()


def touch_last_login(
    conn: sqlite3.Connection,
    user_id: str,
    at: datetime | None = None,
) -> None:
    """Record a login for the user at the given time (default: now)."""
    conn.execute(
        "UPDATE users SET last_login_at = ? WHERE id = ?",
        (_ts(at or utc_now()), user_id),
    )
    conn.commit()


def insert_requirement(conn: sqlite3.Connection, requirement: Requirement) -> None:
    conn.execute(
        """
        INSERT INTO requirements
            (id, referrer_id, title, overview, status, visibility, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            requirement.id,
            requirement.referrer_id,
            requirement.title,
            requirement.overview,
            requirement.status,
            requirement.visibility,
            _ts(requirement.created_at),
        ),
    )
    conn.commit()


def insert_response(conn: sqlite3.Connection, response: Response) -> bool:
    """Insert a response, ignoring it if the (requirement, candidate, referrer)
    triple already exists.

    Returns True if a new row was inserted, False if it was a duplicate.
    """
    try:
        conn.execute(
            """
            INSERT INTO requirement_responses
                (id, requirement_id, candidate_id, referrer_id, candidate_overview,
                 why_this_candidate, purchase_price, status, deck_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                response.id,
                response.requirement_id,
                response.candidate_id,
                response.referrer_id,
                response.candidate_overview,
                response.why_this_candidate,
                response.purchase_price,
                response.status.value,
                response.deck_id,
                _ts(response.created_at),
            ),
        )
        conn.commit()
        return True
    except sqlite3.IntegrityError:
        return False


def update_response_status(
    conn: sqlite3.Connection,
    response_id: str,
    status: ResponseStatus,
) -> None:
    conn.execute(
        "UPDATE requirement_responses SET status = ? WHERE id = ?",
        (status.value, response_id),
    )
    conn.commit()


def insert_interest(conn: sqlite3.Connection, interest: InterestRecord) -> None:
    conn.execute(
        """
        INSERT INTO candidate_interest
            (id, candidate_id, referrer_id, position_title, company, status, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            interest.id,
            interest.candidate_id,
            interest.referrer_id,
            interest.position_title,
            interest.company,
            interest.status.value,
            _ts(interest.created_at),
        ),
    )
    conn.commit()


def insert_circle_link(conn: sqlite3.Connection, link: CircleLink) -> bool:
    """Insert an inviter/accepter row. Returns False if the pair already exists."""
    try:
        conn.execute(
            """
            INSERT INTO referrer_circle (id, inviter_id, accepter_id, status, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                link.id,
                link.inviter_id,
                link.accepter_id,
                link.status.value,
                _ts(link.created_at),
            ),
        )
        conn.commit()
        return True
    except sqlite3.IntegrityError:
        return False


# ---------------------------------------------------------------------------
# Single-row readers
# ---------------------------------------------------------------------------


def get_user(conn: sqlite3.Connection, user_id: str) -> User | None:
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return _user_from_row(row) if row is not None else None


def get_users(conn: sqlite3.Connection, user_ids: Collection[str]) -> dict[str, User]:
    if not user_ids:
        return {}
    ids = list(user_ids)
    rows = conn.execute(
        f"SELECT * FROM users WHERE id IN ({_placeholders(ids)})",
        ids,
    ).fetchall()
    return {row["id"]: _user_from_row(row) for row in rows}


def get_requirement(conn: sqlite3.Connection, requirement_id: str) -> Requirement | None:
    row = conn.execute(
        "SELECT * FROM requirements WHERE id = ?", (requirement_id,),
    ).fetchone()
    return _requirement_from_row(row) if row is not None else None


def get_owned_requirement(
    conn: sqlite3.Connection,
    requirement_id: str,
    owner_id: str,
) -> Requirement | None:
    """Return the requirement only if ``owner_id`` is the referrer who posted it."""
    row = conn.execute(
        "SELECT * FROM requirements WHERE id = ? AND referrer_id = ?",
        (requirement_id, owner_id),
    ).fetchone()
    return _requirement_from_row(row) if row is not None else None


def get_response(
    conn: sqlite3.Connection,
    response_id: str,
    requirement_id: str | None = None,
) -> Response | None:
    if requirement_id is None:
        row = conn.execute(
            "SELECT * FROM requirement_responses WHERE id = ?", (response_id,),
        ).fetchone()
    else:
        row = conn.execute(
            "SELECT * FROM requirement_responses WHERE id = ? AND requirement_id = ?",
            (response_id, requirement_id),
        ).fetchone()
    return _response_from_row(row) if row is not None else None


def find_response_triple(
    conn: sqlite3.Connection,
    requirement_id: str,
    candidate_id: str,
    referrer_id: str,
) -> Response | None:
    row = conn.execute(
        """
        SELECT * FROM requirement_responses
        WHERE requirement_id = ? AND candidate_id = ? AND referrer_id = ?
        LIMIT 1
        """,
        (requirement_id, candidate_id, referrer_id),
    ).fetchone()
    return _response_from_row(row) if row is not None else None


def count_responses(conn: sqlite3.Connection, requirement_id: str) -> int:
    row = conn.execute(
        "SELECT COUNT(*) FROM requirement_responses WHERE requirement_id = ?",
        (requirement_id,),
    ).fetchone()
    return int(row[0])


# ---------------------------------------------------------------------------
# Ranking readers
# ---------------------------------------------------------------------------


def list_responses(
    conn: sqlite3.Connection,
    requirement_id: str,
    status: ResponseStatus | None = None,
) -> list[Response]:
    """All responses for a requirement with candidate and referrer rows attached.

    Rows come back newest first; this is only a stable fetch order, ranking
    re-sorts after scoring.
    """
    if status is None:
        rows = conn.execute(
            """
            SELECT * FROM requirement_responses
            WHERE requirement_id = ?
            ORDER BY created_at DESC
            """,
            (requirement_id,),
        ).fetchall()
    else:
        rows = conn.execute(
            """
            SELECT * FROM requirement_responses
            WHERE requirement_id = ? AND status = ?
            ORDER BY created_at DESC
            """,
            (requirement_id, status.value),
        ).fetchall()
    if not rows:
        return []

    user_ids = {row["candidate_id"] for row in rows} | {row["referrer_id"] for row in rows}
    users = get_users(conn, user_ids)
    return [
        _response_from_row(row, users.get(row["candidate_id"]), users.get(row["referrer_id"]))
        for row in rows
    ]


def get_success_counts(
    conn: sqlite3.Connection,
    referrer_ids: Collection[str],
) -> dict[str, SuccessCounts]:
    """Approved and acted-upon (approved or rejected) counts per referrer,
    across every requirement."""
    if not referrer_ids:
        return {}
    ids = list(referrer_ids)
    rows = conn.execute(
        f"""
        SELECT referrer_id,
               SUM(CASE WHEN status = 'approved' THEN 1 ELSE 0 END) AS approved,
               SUM(CASE WHEN status IN ('approved', 'rejected') THEN 1 ELSE 0 END) AS acted
        FROM requirement_responses
        WHERE referrer_id IN ({_placeholders(ids)})
        GROUP BY referrer_id
        """,
        ids,
    ).fetchall()
    return {
        row["referrer_id"]: SuccessCounts(approved=row["approved"], acted=row["acted"])
        for row in rows
    }


def get_candidate_snapshots(
    conn: sqlite3.Connection,
    candidate_ids: Collection[str],
) -> dict[str, CandidateSnapshot]:
    if not candidate_ids:
        return {}
    ids = list(candidate_ids)
    rows = conn.execute(
        f"""
        SELECT id, last_login_at, subscription_purchased
        FROM users
        WHERE id IN ({_placeholders(ids)})
        """,
        ids,
    ).fetchall()
    return {
        row["id"]: CandidateSnapshot(
            id=row["id"],
            last_login_at=_parse_ts(row["last_login_at"]),
            is_premium=bool(row["subscription_purchased"]),
        )
        for row in rows
    }


def get_accepted_interest_pairs(
    conn: sqlite3.Connection,
    referrer_ids: Collection[str],
    candidate_ids: Collection[str],
    since: datetime,
) -> set[tuple[str, str]]:
    """(referrer_id, candidate_id) pairs with an accepted interest created at or
    after ``since``."""
    if not referrer_ids or not candidate_ids:
        return set()
    refs = list(referrer_ids)
    cands = list(candidate_ids)
    rows = conn.execute(
        f"""
        SELECT DISTINCT referrer_id, candidate_id
        FROM candidate_interest
        WHERE status = ?
          AND created_at >= ?
          AND referrer_id IN ({_placeholders(refs)})
          AND candidate_id IN ({_placeholders(cands)})
        """,
        [InterestStatus.ACCEPTED.value, _ts(since), *refs, *cands],
    ).fetchall()
    return {(row["referrer_id"], row["candidate_id"]) for row in rows}


def get_direct_circle(
    conn: sqlite3.Connection,
    viewer_id: str,
    referrer_ids: Collection[str],
) -> set[str]:
    """Referrers with an accepted circle link to the viewer, in either direction."""
    if not referrer_ids:
        return set()
    ids = list(referrer_ids)
    marks = _placeholders(ids)
    rows = conn.execute(
        f"""
        SELECT CASE WHEN inviter_id = ? THEN accepter_id ELSE inviter_id END AS member_id
        FROM referrer_circle
        WHERE status = ?
          AND ((inviter_id = ? AND accepter_id IN ({marks}))
               OR (accepter_id = ? AND inviter_id IN ({marks})))
        """,
        [viewer_id, CircleStatus.ACCEPTED.value, viewer_id, *ids, viewer_id, *ids],
    ).fetchall()
    return {row["member_id"] for row in rows}


def get_circle_neighbors(conn: sqlite3.Connection, viewer_id: str) -> set[str]:
    """Everyone one accepted circle link away from the viewer, viewer excluded."""
    rows = conn.execute(
        """
        SELECT inviter_id, accepter_id
        FROM referrer_circle
        WHERE status = ? AND (inviter_id = ? OR accepter_id = ?)
        """,
        (CircleStatus.ACCEPTED.value, viewer_id, viewer_id),
    ).fetchall()
    neighbors = {row["accepter_id"] if row["inviter_id"] == viewer_id else row["inviter_id"] for row in rows}
    neighbors.discard(viewer_id)
    return neighbors


def get_indirect_circle(
    conn: sqlite3.Connection,
    neighbor_ids: Collection[str],
    referrer_ids: Collection[str],
) -> set[str]:
    """Referrers with an accepted circle link to any of the given neighbors."""
    if not neighbor_ids or not referrer_ids:
        return set()
    neighbors = list(neighbor_ids)
    refs = list(referrer_ids)
    rows = conn.execute(
        f"""
        SELECT inviter_id, accepter_id
        FROM referrer_circle
        WHERE status = ?
          AND ((inviter_id IN ({_placeholders(neighbors)}) AND accepter_id IN ({_placeholders(refs)}))
               OR (accepter_id IN ({_placeholders(neighbors)}) AND inviter_id IN ({_placeholders(refs)})))
        """,
        [CircleStatus.ACCEPTED.value, *neighbors, *refs, *neighbors, *refs],
    ).fetchall()
    hops = set(neighbors)
    wanted = set(refs)
    reached: set[str] = set()
    for row in rows:
        inviter, accepter = row["inviter_id"], row["accepter_id"]
        if inviter in hops and accepter in wanted:
            reached.add(accepter)
        if accepter in hops and inviter in wanted:
            reached.add(inviter)
    return reached
