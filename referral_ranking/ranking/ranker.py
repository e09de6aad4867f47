"""Ranker: wires access check, response load, signal collection, scoring,
sort and pagination.

Data flow:
  1. Ownership gate (before any response is loaded)
  2. Load every response for the requirement under the status filter
  3. Collect signals for the whole batch
  4. Score
  5. Sort by score desc, then created_at desc
  6. Slice the requested page

The whole filtered batch is scored in memory before paging. A bounded heap
(top-k) would avoid that for very large batches.
"""

import logging
from collections.abc import Sequence
from datetime import datetime

from referral_ranking.core.config import PaginationConfig, ScoringConfig
from referral_ranking.core.errors import InvalidPageError, RequirementNotFoundError
from referral_ranking.core.schemas import (
    RankedPage,
    ResponseStatus,
    ScoredResponse,
    as_utc,
    utc_now,
)
from referral_ranking.ranking.scorer import score_responses
from referral_ranking.ranking.signals import collect_signals
from referral_ranking.ranking.store import ResponseStore

logger = logging.getLogger(__name__)


def sort_scored(items: Sequence[ScoredResponse]) -> list[ScoredResponse]:
    """Order by score descending; equal scores put the newest response first."""
    return sorted(items, key=lambda s: (s.score, s.created_at), reverse=True)


def check_page(page: int, limit: int, max_limit: int | None = None) -> None:
    if page < 1:
        msg = f"page must be >= 1, got {page}"
        raise InvalidPageError(msg)
    if limit < 1:
        msg = f"limit must be >= 1, got {limit}"
        raise InvalidPageError(msg)
    if max_limit is not None and limit > max_limit:
        msg = f"limit must be <= {max_limit}, got {limit}"
        raise InvalidPageError(msg)


def paginate(items: Sequence[ScoredResponse], page: int, limit: int) -> list[ScoredResponse]:
    """Return the 1-indexed ``page`` of size ``limit``."""
    check_page(page, limit)
    start = (page - 1) * limit
    return list(items[start:start + limit])


async def rank(
    store: ResponseStore,
    requirement_id: str,
    viewer_id: str,
    page: int = 1,
    limit: int | None = None,
    status: ResponseStatus | None = ResponseStatus.PENDING,
    scoring: ScoringConfig | None = None,
    pagination: PaginationConfig | None = None,
    now: datetime | None = None,
) -> RankedPage:
    """Rank the responses to a requirement for its owner.

    Args:
        store: Read-only data source.
        requirement_id: Requirement whose responses are ranked.
        viewer_id: Referrer requesting the view; must own the requirement.
        page: 1-indexed page number.
        limit: Page size (default: pagination.default_limit).
        status: Status filter; None ranks responses of every status.
        scoring: Weights and windows (default: ScoringConfig()).
        pagination: Page size bounds (default: PaginationConfig()).
        now: Reference time for recency windows (default: now).

    Returns:
        RankedPage holding the requested slice and the size of the full batch.

    Raises:
        RequirementNotFoundError: the requirement is missing or not the viewer's.
        InvalidPageError: page or limit out of range.
    """
    scoring = scoring or ScoringConfig()
    pagination = pagination or PaginationConfig()
    limit = pagination.default_limit if limit is None else limit
    check_page(page, limit, pagination.max_limit)
    now = as_utc(now) if now is not None else utc_now()

    # Step 1: Ownership gate
    requirement = await store.find_owned_requirement(requirement_id, viewer_id)
    if requirement is None:
        raise RequirementNotFoundError(requirement_id)

    # Step 2: Load batch
    responses = await store.list_responses(requirement_id, status)
    if not responses:
        logger.info("No responses for requirement %s (status=%s)", requirement_id, status)
        return RankedPage(items=[], page=page, limit=limit, total=0)

    # Step 3: Signals
    signals = await collect_signals(store, responses, viewer_id, scoring, now)

    # Step 4-5: Score, then sort
    ranked = sort_scored(score_responses(responses, signals, scoring, now))

    # Step 6: Page
    items = paginate(ranked, page, limit)

    logger.info(
        "Ranked %d responses for requirement %s (page %d, %d items)",
        len(ranked), requirement_id, page, len(items),
    )
    return RankedPage(items=items, page=page, limit=limit, total=len(ranked))
