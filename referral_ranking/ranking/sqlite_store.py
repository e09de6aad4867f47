"""SQLite-backed ResponseStore.

Each call opens its own connection and runs the query in a worker thread, so
collector queries gathered together overlap without sharing a connection.
"""

import asyncio
import logging
import sqlite3
from collections.abc import Callable, Set
from datetime import datetime, timedelta
from pathlib import Path
from typing import TypeVar

from referral_ranking.core import db
from referral_ranking.core.schemas import (
    CandidateSnapshot,
    Requirement,
    Response,
    ResponseStatus,
    SuccessCounts,
    as_utc,
    utc_now,
)
from referral_ranking.ranking.store import ResponseStore, interest_key

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SqliteResponseStore(ResponseStore):
    """Read-only ranking queries against a database created by ``db.init_db``."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    async def _run(self, query: Callable[[sqlite3.Connection], T]) -> T:
        return await asyncio.to_thread(self._run_sync, query)

    def _run_sync(self, query: Callable[[sqlite3.Connection], T]) -> T:
        conn = db.connect(self._path)
        try:
            return query(conn)
        finally:
            conn.close()

    async def find_owned_requirement(
        self, requirement_id: str, viewer_id: str,
    ) -> Requirement | None:
        return await self._run(
            lambda conn: db.get_owned_requirement(conn, requirement_id, viewer_id),
        )

    async def list_responses(
        self, requirement_id: str, status: ResponseStatus | None = None,
    ) -> list[Response]:
        return await self._run(lambda conn: db.list_responses(conn, requirement_id, status))

    async def get_success_rates(self, referrer_ids: Set[str]) -> dict[str, SuccessCounts]:
        if not referrer_ids:
            return {}
        return await self._run(lambda conn: db.get_success_counts(conn, referrer_ids))

    async def get_candidate_snapshots(
        self, candidate_ids: Set[str],
    ) -> dict[str, CandidateSnapshot]:
        if not candidate_ids:
            return {}
        return await self._run(lambda conn: db.get_candidate_snapshots(conn, candidate_ids))

    async def get_accepted_interests(
        self,
        referrer_ids: Set[str],
        candidate_ids: Set[str],
        since_days: int,
        now: datetime | None = None,
    ) -> set[str]:
        if not referrer_ids or not candidate_ids:
            return set()
        now = as_utc(now) if now is not None else utc_now()
        since = now - timedelta(days=since_days)
        pairs = await self._run(
            lambda conn: db.get_accepted_interest_pairs(conn, referrer_ids, candidate_ids, since),
        )
        logger.debug("Accepted interests since %s: %d pairs", since.isoformat(), len(pairs))
        return {interest_key(referrer_id, candidate_id) for referrer_id, candidate_id in pairs}

    async def get_direct_circle(self, viewer_id: str, referrer_ids: Set[str]) -> set[str]:
        if not referrer_ids:
            return set()
        return await self._run(lambda conn: db.get_direct_circle(conn, viewer_id, referrer_ids))

    async def get_circle_neighbors(self, viewer_id: str) -> set[str]:
        return await self._run(lambda conn: db.get_circle_neighbors(conn, viewer_id))

    async def get_indirect_circle(
        self, neighbor_ids: Set[str], referrer_ids: Set[str],
    ) -> set[str]:
        if not neighbor_ids or not referrer_ids:
            return set()
        return await self._run(
            lambda conn: db.get_indirect_circle(conn, neighbor_ids, referrer_ids),
        )
