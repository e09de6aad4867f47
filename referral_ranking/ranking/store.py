"""Abstract read contract the ranking engine consumes.

Implementations must be read-only: nothing reached through this interface
may write Response, Interest or Circle state.
"""

from abc import ABC, abstractmethod
from collections.abc import Set
from datetime import datetime

from referral_ranking.core.schemas import (
    CandidateSnapshot,
    Requirement,
    Response,
    ResponseStatus,
    SuccessCounts,
)

INTEREST_KEY_SEPARATOR = "::"


def interest_key(referrer_id: str, candidate_id: str) -> str:
    """Membership key for the accepted-interest set."""
    return f"{referrer_id}{INTEREST_KEY_SEPARATOR}{candidate_id}"


class ResponseStore(ABC):
    """Base class that every ranking data source must implement."""

    @abstractmethod
    async def find_owned_requirement(
        self, requirement_id: str, viewer_id: str,
    ) -> Requirement | None:
        """Return the requirement if ``viewer_id`` owns it, else None."""

    @abstractmethod
    async def list_responses(
        self, requirement_id: str, status: ResponseStatus | None = None,
    ) -> list[Response]:
        """All responses for a requirement, optionally filtered by status."""

    @abstractmethod
    async def get_success_rates(self, referrer_ids: Set[str]) -> dict[str, SuccessCounts]:
        """Historical approved/acted counts per referrer across all requirements."""

    @abstractmethod
    async def get_candidate_snapshots(
        self, candidate_ids: Set[str],
    ) -> dict[str, CandidateSnapshot]:
        """Last-login and premium flags per candidate."""

    @abstractmethod
    async def get_accepted_interests(
        self,
        referrer_ids: Set[str],
        candidate_ids: Set[str],
        since_days: int,
        now: datetime | None = None,
    ) -> set[str]:
        """``interest_key`` strings for accepted interests created within
        ``since_days`` of ``now`` (default: the current time)."""

    @abstractmethod
    async def get_direct_circle(self, viewer_id: str, referrer_ids: Set[str]) -> set[str]:
        """Referrers with an accepted circle link to the viewer, either direction."""

    @abstractmethod
    async def get_circle_neighbors(self, viewer_id: str) -> set[str]:
        """The viewer's 1-hop accepted circle, viewer excluded."""

    @abstractmethod
    async def get_indirect_circle(
        self, neighbor_ids: Set[str], referrer_ids: Set[str],
    ) -> set[str]:
        """Referrers with an accepted circle link to any neighbor, either direction."""
