"""Exception taxonomy for ranking and response workflow operations.

Data-access failures (``sqlite3.Error`` and friends) are not part of this
hierarchy; they reach the caller as raised.
"""


class RankingError(Exception):
    """Base class for domain errors raised by this package."""


class RequirementNotFoundError(RankingError):
    """The requirement does not exist or is not owned by the caller."""

    def __init__(self, requirement_id: str) -> None:
        super().__init__(f"Requirement not found or access denied: {requirement_id}")
        self.requirement_id = requirement_id


class ResponseNotFoundError(RankingError):
    def __init__(self, response_id: str) -> None:
        super().__init__(f"Response not found: {response_id}")
        self.response_id = response_id


class CandidateNotFoundError(RankingError):
    def __init__(self, candidate_id: str) -> None:
        super().__init__(f"Candidate with ID {candidate_id} not found")
        self.candidate_id = candidate_id


class InvalidResponseError(RankingError):
    """A response was rejected by a business rule on creation."""


class InvalidTransitionError(RankingError):
    """A response status change is not allowed by the state machine."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move response from '{current}' to '{target}'")
        self.current = current
        self.target = target


class InvalidPageError(RankingError, ValueError):
    """Page number or page size outside the accepted range."""
