"""Signal collectors: bulk-fetch every scoring input for a batch of responses.

Four independent signals feed the scorer:
  1. Referrer success rate:    approved / acted across all requirements
  2. Candidate recency:        last login within the active window
  3. Recent accepted interest: (referrer, candidate) pairs in the interest window
  4. Circle relation:          direct or 2-hop link between viewer and referrer

Queries that do not depend on each other are awaited together. The only
dependent pair is neighbors -> indirect circle.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from referral_ranking.core.config import ScoringConfig
from referral_ranking.core.schemas import (
    CandidateSnapshot,
    CircleRelation,
    Response,
    SuccessCounts,
    as_utc,
)
from referral_ranking.ranking.store import ResponseStore, interest_key

logger = logging.getLogger(__name__)

_NO_COUNTS = SuccessCounts()


@dataclass(frozen=True)
class SignalBundle:
    """Precomputed signal maps for one ranking request."""

    success: dict[str, SuccessCounts] = field(default_factory=dict)
    snapshots: dict[str, CandidateSnapshot] = field(default_factory=dict)
    interest_keys: frozenset[str] = frozenset()
    direct_circle: frozenset[str] = frozenset()
    indirect_circle: frozenset[str] = frozenset()

    def success_for(self, referrer_id: str) -> SuccessCounts:
        return self.success.get(referrer_id, _NO_COUNTS)

    def snapshot_for(self, candidate_id: str) -> CandidateSnapshot:
        return self.snapshots.get(candidate_id) or CandidateSnapshot(id=candidate_id)

    def has_recent_interest(self, referrer_id: str, candidate_id: str) -> bool:
        return interest_key(referrer_id, candidate_id) in self.interest_keys

    def circle_relation_for(self, referrer_id: str) -> CircleRelation:
        # Direct wins when a referrer shows up in both sets.
        if referrer_id in self.direct_circle:
            return CircleRelation.DIRECT
        if referrer_id in self.indirect_circle:
            return CircleRelation.INDIRECT
        return CircleRelation.NONE


def is_recently_active(
    last_login_at: datetime | None,
    now: datetime,
    window_days: int,
) -> bool:
    """True if the last login falls within ``window_days`` of ``now``."""
    if last_login_at is None:
        return False
    return as_utc(now) - as_utc(last_login_at) <= timedelta(days=window_days)


async def collect_signals(
    store: ResponseStore,
    responses: Sequence[Response],
    viewer_id: str,
    config: ScoringConfig,
    now: datetime | None = None,
) -> SignalBundle:
    """Fetch every signal for the distinct referrers and candidates in a batch.

    Any store failure propagates; a partial bundle is never returned.
    """
    referrer_ids = frozenset(r.referrer_id for r in responses)
    candidate_ids = frozenset(r.candidate_id for r in responses)
    if not referrer_ids:
        return SignalBundle()

    logger.debug(
        "Collecting signals for %d responses (%d referrers, %d candidates)",
        len(responses), len(referrer_ids), len(candidate_ids),
    )

    success, snapshots, interests, direct, indirect = await asyncio.gather(
        store.get_success_rates(referrer_ids),
        store.get_candidate_snapshots(candidate_ids),
        store.get_accepted_interests(
            referrer_ids, candidate_ids, config.interest_window_days, now=now,
        ),
        store.get_direct_circle(viewer_id, referrer_ids),
        _collect_indirect_circle(store, viewer_id, referrer_ids),
    )

    return SignalBundle(
        success=dict(success),
        snapshots=dict(snapshots),
        interest_keys=frozenset(interests),
        direct_circle=frozenset(direct),
        indirect_circle=frozenset(indirect),
    )


async def _collect_indirect_circle(
    store: ResponseStore,
    viewer_id: str,
    referrer_ids: frozenset[str],
) -> set[str]:
    """Referrers exactly two accepted circle hops from the viewer."""
    neighbors = await store.get_circle_neighbors(viewer_id)
    neighbors = set(neighbors) - {viewer_id}
    if not neighbors:
        return set()
    return await store.get_indirect_circle(frozenset(neighbors), referrer_ids)
