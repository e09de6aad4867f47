"""Tests for the weighted response scorer."""

from datetime import UTC, datetime, timedelta

from referral_ranking.core.config import ScoringConfig
from referral_ranking.core.schemas import (
    CandidateSnapshot,
    CircleRelation,
    Response,
    SuccessCounts,
    User,
    UserRole,
)
from referral_ranking.ranking.scorer import score_response, score_responses
from referral_ranking.ranking.signals import SignalBundle
from referral_ranking.ranking.store import interest_key

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


def _user(user_id: str, role: UserRole) -> User:
    return User(
        id=user_id,
        email=f"{user_id}@example.com",
        first_name=user_id.upper(),
        last_name="Tester",
        role=role,
        balance=12_345,
        password_hash="secret-hash",
    )


def _response(
    *,
    response_id: str = "resp-1",
    referrer_id: str = "ref-1",
    candidate_id: str = "cand-1",
    created_at: datetime = NOW - timedelta(hours=1),
) -> Response:
    return Response(
        id=response_id,
        requirement_id="req-1",
        candidate_id=candidate_id,
        referrer_id=referrer_id,
        candidate_overview="Backend engineer",
        why_this_candidate="Shipped the thing",
        purchase_price=5000,
        created_at=created_at,
        candidate=_user(candidate_id, UserRole.CANDIDATE),
        referrer=_user(referrer_id, UserRole.REFERRER),
    )


def _bundle(
    *,
    approved: int = 0,
    acted: int = 0,
    last_login_at: datetime | None = None,
    is_premium: bool = False,
    interest: bool = False,
    direct: bool = False,
    indirect: bool = False,
) -> SignalBundle:
    return SignalBundle(
        success={"ref-1": SuccessCounts(approved=approved, acted=acted)},
        snapshots={
            "cand-1": CandidateSnapshot(
                id="cand-1", last_login_at=last_login_at, is_premium=is_premium,
            ),
        },
        interest_keys=frozenset({interest_key("ref-1", "cand-1")}) if interest else frozenset(),
        direct_circle=frozenset({"ref-1"}) if direct else frozenset(),
        indirect_circle=frozenset({"ref-1"}) if indirect else frozenset(),
    )


# ---------------------------------------------------------------------------
# Individual components
# ---------------------------------------------------------------------------


class TestScoreComponents:
    def test_no_signals_scores_zero(self) -> None:
        result = score_response(_response(), _bundle(), ScoringConfig(), NOW)
        assert result.score == 0.0
        assert result.score_details.total == 0.0
        assert result.score_details.circle.relation == CircleRelation.NONE

    def test_success_rate_weighted(self) -> None:
        result = score_response(_response(), _bundle(approved=1, acted=4), ScoringConfig(), NOW)
        assert result.score_details.success_rate.rate == 0.25
        assert result.score_details.success_rate.score == 7.5

    def test_zero_acted_is_zero_rate(self) -> None:
        result = score_response(_response(), _bundle(approved=0, acted=0), ScoringConfig(), NOW)
        assert result.score_details.success_rate.rate == 0.0
        assert result.score_details.success_rate.score == 0.0

    def test_unknown_referrer_is_zero_rate(self) -> None:
        result = score_response(
            _response(referrer_id="ref-unknown"), _bundle(approved=3, acted=3), ScoringConfig(), NOW,
        )
        assert result.score_details.success_rate.acted == 0
        assert result.score_details.success_rate.score == 0.0

    def test_success_rate_rounded_to_four_places(self) -> None:
        result = score_response(_response(), _bundle(approved=1, acted=3), ScoringConfig(), NOW)
        assert result.score_details.success_rate.rate == 0.3333
        assert result.score_details.success_rate.score == 10.0

    def test_candidate_active_within_window(self) -> None:
        login = NOW - timedelta(days=2)
        result = score_response(_response(), _bundle(last_login_at=login), ScoringConfig(), NOW)
        details = result.score_details.candidate_active
        assert details.is_recent is True
        assert details.last_login_at == login
        assert details.window_days == 7
        assert details.score == 5.0

    def test_candidate_active_boundary_is_inclusive(self) -> None:
        login = NOW - timedelta(days=7)
        result = score_response(_response(), _bundle(last_login_at=login), ScoringConfig(), NOW)
        assert result.score_details.candidate_active.is_recent is True

    def test_candidate_inactive_outside_window(self) -> None:
        login = NOW - timedelta(days=7, seconds=1)
        result = score_response(_response(), _bundle(last_login_at=login), ScoringConfig(), NOW)
        assert result.score_details.candidate_active.is_recent is False
        assert result.score_details.candidate_active.score == 0.0

    def test_missing_last_login_not_recent(self) -> None:
        result = score_response(_response(), _bundle(last_login_at=None), ScoringConfig(), NOW)
        assert result.score_details.candidate_active.is_recent is False
        assert result.score_details.candidate_active.last_login_at is None

    def test_recent_interest_bonus(self) -> None:
        result = score_response(_response(), _bundle(interest=True), ScoringConfig(), NOW)
        details = result.score_details.recent_interest
        assert details.has_recent_accepted is True
        assert details.window_days == 14
        assert details.score == 10.0

    def test_interest_for_other_pair_ignored(self) -> None:
        result = score_response(
            _response(candidate_id="cand-2"), _bundle(interest=True), ScoringConfig(), NOW,
        )
        assert result.score_details.recent_interest.has_recent_accepted is False

    def test_direct_circle_bonus(self) -> None:
        result = score_response(_response(), _bundle(direct=True), ScoringConfig(), NOW)
        assert result.score_details.circle.relation == CircleRelation.DIRECT
        assert result.score_details.circle.score == 10.0

    def test_indirect_circle_bonus(self) -> None:
        result = score_response(_response(), _bundle(indirect=True), ScoringConfig(), NOW)
        assert result.score_details.circle.relation == CircleRelation.INDIRECT
        assert result.score_details.circle.score == 5.0

    def test_direct_wins_over_indirect(self) -> None:
        result = score_response(
            _response(), _bundle(direct=True, indirect=True), ScoringConfig(), NOW,
        )
        assert result.score_details.circle.relation == CircleRelation.DIRECT
        assert result.score_details.circle.score == 10.0

    def test_premium_bonus(self) -> None:
        result = score_response(_response(), _bundle(is_premium=True), ScoringConfig(), NOW)
        assert result.score_details.premium.is_premium is True
        assert result.score_details.premium.score == 5.0

    def test_placeholder_slots_are_zero(self) -> None:
        result = score_response(
            _response(),
            _bundle(approved=5, acted=5, interest=True, direct=True, is_premium=True),
            ScoringConfig(),
            NOW,
        )
        assert result.score_details.review_score == 0.0
        assert result.score_details.invited_score == 0.0


# ---------------------------------------------------------------------------
# Totals and cap
# ---------------------------------------------------------------------------


class TestTotals:
    def test_worked_example(self) -> None:
        """2 of 3 approved, active 2 days ago, interest 5 days ago, direct circle."""
        bundle = _bundle(
            approved=2,
            acted=3,
            last_login_at=NOW - timedelta(days=2),
            interest=True,
            direct=True,
        )
        result = score_response(_response(), bundle, ScoringConfig(), NOW)
        details = result.score_details
        assert details.success_rate.rate == 0.6667
        assert details.success_rate.score == 20.0
        assert details.candidate_active.score == 5.0
        assert details.recent_interest.score == 10.0
        assert details.circle.score == 10.0
        assert details.premium.score == 0.0
        assert details.total == 45.0
        assert details.capped_total == 45.0
        assert result.score == 45.0

    def test_all_defaults_max_at_sixty(self) -> None:
        bundle = _bundle(
            approved=4,
            acted=4,
            last_login_at=NOW,
            is_premium=True,
            interest=True,
            direct=True,
        )
        result = score_response(_response(), bundle, ScoringConfig(), NOW)
        assert result.score == 60.0

    def test_total_capped(self) -> None:
        config = ScoringConfig(success_rate_weight=90.0, direct_circle_bonus=40.0)
        bundle = _bundle(approved=1, acted=1, direct=True)
        result = score_response(_response(), bundle, config, NOW)
        assert result.score_details.total == 130.0
        assert result.score_details.capped_total == 100.0
        assert result.score == 100.0

    def test_custom_cap(self) -> None:
        config = ScoringConfig(score_cap=25.0)
        bundle = _bundle(approved=1, acted=1)
        result = score_response(_response(), bundle, config, NOW)
        assert result.score_details.total == 30.0
        assert result.score == 25.0


# ---------------------------------------------------------------------------
# Redaction and immutability
# ---------------------------------------------------------------------------


class TestRedaction:
    def test_parties_reduced_to_id_and_name(self) -> None:
        result = score_response(_response(), _bundle(), ScoringConfig(), NOW)
        assert result.candidate.model_dump() == {
            "id": "cand-1", "first_name": "CAND-1", "last_name": "Tester",
        }
        assert result.referrer.model_dump() == {
            "id": "ref-1", "first_name": "REF-1", "last_name": "Tester",
        }

    def test_wrapped_response_drops_full_users(self) -> None:
        result = score_response(_response(), _bundle(), ScoringConfig(), NOW)
        assert result.response.candidate is None
        assert result.response.referrer is None

    def test_serialized_view_has_no_private_fields(self) -> None:
        result = score_response(_response(), _bundle(), ScoringConfig(), NOW)
        data = result.to_dict()
        assert set(data["candidate"]) == {"id", "first_name", "last_name"}
        assert set(data["referrer"]) == {"id", "first_name", "last_name"}
        flat = repr(data)
        assert "secret-hash" not in flat
        assert "@example.com" not in flat
        assert "12345" not in flat

    def test_input_response_not_mutated(self) -> None:
        response = _response()
        score_response(response, _bundle(direct=True), ScoringConfig(), NOW)
        assert response.candidate is not None
        assert response.referrer is not None
        assert not hasattr(response, "score")

    def test_missing_user_rows_keep_ids(self) -> None:
        response = _response().model_copy(update={"candidate": None, "referrer": None})
        result = score_response(response, _bundle(), ScoringConfig(), NOW)
        assert result.candidate.id == "cand-1"
        assert result.candidate.first_name == ""


# ---------------------------------------------------------------------------
# Batch scoring
# ---------------------------------------------------------------------------


class TestScoreResponses:
    def test_empty(self) -> None:
        assert score_responses([], SignalBundle(), ScoringConfig(), NOW) == []

    def test_preserves_input_order(self) -> None:
        responses = [_response(response_id="a"), _response(response_id="b")]
        scored = score_responses(responses, _bundle(direct=True), ScoringConfig(), NOW)
        assert [s.response.id for s in scored] == ["a", "b"]

    def test_deterministic(self) -> None:
        bundle = _bundle(approved=2, acted=3, interest=True, indirect=True)
        first = score_responses([_response()], bundle, ScoringConfig(), NOW)
        second = score_responses([_response()], bundle, ScoringConfig(), NOW)
        assert first == second
