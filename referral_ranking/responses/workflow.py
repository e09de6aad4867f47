"""Response workflow: create, approve, reject and count requirement responses.

Status transitions:
  pending  -> approved | rejected
  approved -> purchased
Nothing moves back to pending; rejected and purchased are terminal.

Balance deduction and deck linking on approval live with the payment layer
and are not performed here.
"""

import logging
import sqlite3
import uuid

from referral_ranking.core.db import (
    count_responses,
    find_response_triple,
    get_owned_requirement,
    get_requirement,
    get_response,
    get_user,
    insert_response,
    update_response_status,
)
from referral_ranking.core.errors import (
    CandidateNotFoundError,
    InvalidResponseError,
    InvalidTransitionError,
    RequirementNotFoundError,
    ResponseNotFoundError,
)
from referral_ranking.core.schemas import Response, ResponseStatus, utc_now

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[ResponseStatus, frozenset[ResponseStatus]] = {
    ResponseStatus.PENDING: frozenset({ResponseStatus.APPROVED, ResponseStatus.REJECTED}),
    ResponseStatus.APPROVED: frozenset({ResponseStatus.PURCHASED}),
    ResponseStatus.REJECTED: frozenset(),
    ResponseStatus.PURCHASED: frozenset(),
}


def can_transition(current: ResponseStatus, target: ResponseStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class ResponseWorkflow:
    """Write-side operations on requirement responses.

    Usage::

        wf = ResponseWorkflow(conn)
        response = wf.create(req_id, referrer_id, candidate_id, "overview", "why", 5000)
        wf.approve(req_id, response.id, owner_id)
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def create(
        self,
        requirement_id: str,
        referrer_id: str,
        candidate_id: str,
        candidate_overview: str,
        why_this_candidate: str,
        purchase_price: int,
    ) -> Response:
        """Propose a candidate for someone else's requirement."""
        requirement = get_requirement(self._conn, requirement_id)
        if requirement is None:
            raise RequirementNotFoundError(requirement_id)

        if requirement.referrer_id == referrer_id:
            msg = "Cannot respond to your own requirement"
            raise InvalidResponseError(msg)

        candidate = get_user(self._conn, candidate_id)
        if candidate is None:
            raise CandidateNotFoundError(candidate_id)
        if not candidate.is_active:
            msg = "Candidate is not active"
            raise InvalidResponseError(msg)

        if find_response_triple(self._conn, requirement_id, candidate_id, referrer_id):
            msg = "Already responded with this candidate"
            raise InvalidResponseError(msg)

        response = Response(
            id=str(uuid.uuid4()),
            requirement_id=requirement_id,
            candidate_id=candidate_id,
            referrer_id=referrer_id,
            candidate_overview=candidate_overview,
            why_this_candidate=why_this_candidate,
            purchase_price=purchase_price,
            status=ResponseStatus.PENDING,
            created_at=utc_now(),
        )
        if not insert_response(self._conn, response):
            msg = "Already responded with this candidate"
            raise InvalidResponseError(msg)

        logger.info(
            "Referrer %s responded to requirement %s with candidate %s",
            referrer_id, requirement_id, candidate_id,
        )
        return response

    def approve(self, requirement_id: str, response_id: str, owner_id: str) -> Response:
        return self._move(requirement_id, response_id, owner_id, ResponseStatus.APPROVED)

    def reject(self, requirement_id: str, response_id: str, owner_id: str) -> Response:
        return self._move(requirement_id, response_id, owner_id, ResponseStatus.REJECTED)

    def mark_purchased(self, requirement_id: str, response_id: str, owner_id: str) -> Response:
        return self._move(requirement_id, response_id, owner_id, ResponseStatus.PURCHASED)

    def count(self, requirement_id: str) -> int:
        return count_responses(self._conn, requirement_id)

    def _move(
        self,
        requirement_id: str,
        response_id: str,
        owner_id: str,
        target: ResponseStatus,
    ) -> Response:
        """Apply a status change on behalf of the requirement's owner."""
        if get_owned_requirement(self._conn, requirement_id, owner_id) is None:
            raise RequirementNotFoundError(requirement_id)

        response = get_response(self._conn, response_id, requirement_id)
        if response is None:
            raise ResponseNotFoundError(response_id)

        if not can_transition(response.status, target):
            raise InvalidTransitionError(response.status.value, target.value)

        update_response_status(self._conn, response_id, target)
        logger.info(
            "Response %s: %s -> %s", response_id, response.status.value, target.value,
        )
        return response.model_copy(update={"status": target})
