"""Weighted scoring for requirement responses.

Score range: 0-100 (capped). Components are additive, weights from
ScoringConfig. Sub-scores are rounded to 2 decimals, the success rate to 4.
"""

import logging
from collections.abc import Sequence
from datetime import datetime

from referral_ranking.core.config import ScoringConfig
from referral_ranking.core.schemas import (
    CandidateActiveDetail,
    CircleDetail,
    CircleRelation,
    PremiumDetail,
    RecentInterestDetail,
    Response,
    ScoreDetails,
    ScoredResponse,
    SuccessRateDetail,
    User,
    UserSummary,
    as_utc,
    utc_now,
)
from referral_ranking.ranking.signals import SignalBundle, is_recently_active

logger = logging.getLogger(__name__)


def score_response(
    response: Response,
    signals: SignalBundle,
    config: ScoringConfig,
    now: datetime | None = None,
) -> ScoredResponse:
    """Score a single response from precomputed signals.

    Args:
        response: The response to score. Not modified.
        signals: Signal maps collected for the whole batch.
        config: Scoring weights and windows.
        now: Reference time for the recency check (default: now).

    Returns:
        ScoredResponse with redacted parties, a capped score and its breakdown.
    """
    now = as_utc(now) if now is not None else utc_now()

    counts = signals.success_for(response.referrer_id)
    success_score = round(counts.rate * config.success_rate_weight, 2)

    snapshot = signals.snapshot_for(response.candidate_id)
    is_recent = is_recently_active(snapshot.last_login_at, now, config.active_window_days)
    active_score = round(config.candidate_active_bonus if is_recent else 0.0, 2)

    has_interest = signals.has_recent_interest(response.referrer_id, response.candidate_id)
    interest_score = round(config.recent_interest_bonus if has_interest else 0.0, 2)

    relation = signals.circle_relation_for(response.referrer_id)
    circle_score = round(_circle_bonus(relation, config), 2)

    premium_score = round(config.premium_bonus if snapshot.is_premium else 0.0, 2)

    # No review or invitation-origin data exists yet; the slots stay at zero.
    review_score = 0.0
    invited_score = 0.0

    total = round(
        success_score
        + review_score
        + invited_score
        + active_score
        + interest_score
        + circle_score
        + premium_score,
        2,
    )
    capped = round(min(total, config.score_cap), 2)

    details = ScoreDetails(
        success_rate=SuccessRateDetail(
            rate=round(counts.rate, 4),
            approved=counts.approved,
            acted=counts.acted,
            score=success_score,
        ),
        review_score=review_score,
        invited_score=invited_score,
        candidate_active=CandidateActiveDetail(
            is_recent=is_recent,
            last_login_at=snapshot.last_login_at,
            window_days=config.active_window_days,
            score=active_score,
        ),
        recent_interest=RecentInterestDetail(
            has_recent_accepted=has_interest,
            window_days=config.interest_window_days,
            score=interest_score,
        ),
        circle=CircleDetail(relation=relation, score=circle_score),
        premium=PremiumDetail(is_premium=snapshot.is_premium, score=premium_score),
        total=total,
        capped_total=capped,
    )

    return ScoredResponse(
        response=response.model_copy(update={"candidate": None, "referrer": None}),
        candidate=_summary(response.candidate, response.candidate_id),
        referrer=_summary(response.referrer, response.referrer_id),
        score=max(0.0, capped),
        score_details=details,
    )


def score_responses(
    responses: Sequence[Response],
    signals: SignalBundle,
    config: ScoringConfig,
    now: datetime | None = None,
) -> list[ScoredResponse]:
    """Score a batch of responses against one shared reference time."""
    now = as_utc(now) if now is not None else utc_now()
    scored = [score_response(r, signals, config, now) for r in responses]
    logger.debug("Scored %d responses", len(scored))
    return scored


def _circle_bonus(relation: CircleRelation, config: ScoringConfig) -> float:
    if relation is CircleRelation.DIRECT:
        return config.direct_circle_bonus
    if relation is CircleRelation.INDIRECT:
        return config.indirect_circle_bonus
    return 0.0


def _summary(user: User | None, user_id: str) -> UserSummary:
    """Redact a loaded user to id and name. Missing rows keep the id only."""
    if user is None:
        return UserSummary(id=user_id, first_name="", last_name="")
    return UserSummary.from_user(user)
