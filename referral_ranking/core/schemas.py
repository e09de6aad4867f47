"""Core data models for the referral ranking engine."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Convert to an aware UTC datetime. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _utc_or_none(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


class ResponseStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PURCHASED = "purchased"


class InterestStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class CircleStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class CircleRelation(StrEnum):
    """Social-graph distance between the viewer and a response's referrer."""

    DIRECT = "direct"
    INDIRECT = "indirect"
    NONE = "none"


class UserRole(StrEnum):
    REFERRER = "referrer"
    CANDIDATE = "candidate"


class UserStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class User(BaseModel):
    """A full user row. Never leaves the engine unredacted."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole
    status: UserStatus = UserStatus.ACTIVE
    last_login_at: datetime | None = None
    subscription_purchased: bool = False
    balance: int = 0
    password_hash: str | None = None

    @field_validator("last_login_at")
    @classmethod
    def last_login_utc(cls, v: datetime | None) -> datetime | None:
        return _utc_or_none(v)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE


class UserSummary(BaseModel):
    """Public projection of a user: identity and display name only."""

    model_config = ConfigDict(frozen=True)

    id: str
    first_name: str
    last_name: str

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(id=user.id, first_name=user.first_name, last_name=user.last_name)


class Requirement(BaseModel):
    """A job posting owned by a referrer."""

    model_config = ConfigDict(frozen=True)

    id: str
    referrer_id: str
    title: str
    overview: str = ""
    status: str = "open"
    visibility: str = "public"
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class Response(BaseModel):
    """A referrer's proposal of one candidate for one requirement.

    Frozen: scoring wraps it in a ScoredResponse instead of attaching fields.
    ``candidate`` and ``referrer`` hold the loaded user rows when the store
    joins them in.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    requirement_id: str
    candidate_id: str
    referrer_id: str
    candidate_overview: str = Field(default="", max_length=100)
    why_this_candidate: str = Field(default="", max_length=1000)
    purchase_price: int = Field(default=0, ge=0)
    status: ResponseStatus = ResponseStatus.PENDING
    deck_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    candidate: User | None = None
    referrer: User | None = None

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class CandidateSnapshot(BaseModel):
    """Read-only projection of a candidate used for scoring."""

    model_config = ConfigDict(frozen=True)

    id: str
    last_login_at: datetime | None = None
    is_premium: bool = False

    @field_validator("last_login_at")
    @classmethod
    def last_login_utc(cls, v: datetime | None) -> datetime | None:
        return _utc_or_none(v)


class SuccessCounts(BaseModel):
    """Historical approved / acted-upon response counts for one referrer."""

    model_config = ConfigDict(frozen=True)

    approved: int = Field(default=0, ge=0)
    acted: int = Field(default=0, ge=0)

    @property
    def rate(self) -> float:
        if self.acted == 0:
            return 0.0
        return self.approved / self.acted


class InterestRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    referrer_id: str
    candidate_id: str
    position_title: str = ""
    company: str = ""
    status: InterestStatus = InterestStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class CircleLink(BaseModel):
    """One inviter/accepter row of the referrer circle graph."""

    model_config = ConfigDict(frozen=True)

    id: str
    inviter_id: str
    accepter_id: str
    status: CircleStatus = CircleStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


# ---------------------------------------------------------------------------
# Score breakdown
# ---------------------------------------------------------------------------


class SuccessRateDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    rate: float
    approved: int
    acted: int
    score: float


class CandidateActiveDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_recent: bool
    last_login_at: datetime | None
    window_days: int
    score: float

    @field_validator("last_login_at")
    @classmethod
    def last_login_utc(cls, v: datetime | None) -> datetime | None:
        return _utc_or_none(v)


class RecentInterestDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_recent_accepted: bool
    window_days: int
    score: float


class CircleDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    relation: CircleRelation
    score: float


class PremiumDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_premium: bool
    score: float


class ScoreDetails(BaseModel):
    """Per-component breakdown of a response score.

    ``review_score`` and ``invited_score`` are held at zero until the
    subsystems that feed them exist.
    """

    model_config = ConfigDict(frozen=True)

    success_rate: SuccessRateDetail
    review_score: float = 0.0
    invited_score: float = 0.0
    candidate_active: CandidateActiveDetail
    recent_interest: RecentInterestDetail
    circle: CircleDetail
    premium: PremiumDetail
    total: float
    capped_total: float


class ScoredResponse(BaseModel):
    """Wrapper that pairs a redacted Response with its score and breakdown."""

    model_config = ConfigDict(frozen=True)

    response: Response
    candidate: UserSummary
    referrer: UserSummary
    score: float = Field(ge=0.0, le=100.0)
    score_details: ScoreDetails

    @property
    def created_at(self) -> datetime:
        return self.response.created_at

    def to_dict(self) -> dict[str, Any]:
        """Flat, JSON-ready view of the scored response."""
        data = self.response.model_dump(
            mode="json", exclude={"candidate", "referrer"},
        )
        data["candidate"] = self.candidate.model_dump(mode="json")
        data["referrer"] = self.referrer.model_dump(mode="json")
        data["score"] = self.score
        data["score_details"] = self.score_details.model_dump(mode="json")
        return data


class RankedPage(BaseModel):
    """One page of ranked responses."""

    items: list[ScoredResponse] = Field(default_factory=list)
    page: int = 1
    limit: int = 10
    total: int = 0
