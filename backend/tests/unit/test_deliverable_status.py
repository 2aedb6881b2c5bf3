"""Unit tests for the deliverable status state machine"""

from types import SimpleNamespace

import pytest

from portal.deliverables.status import (
    ALLOWED_TRANSITIONS,
    DeliverableStatus,
    can_transition,
    check_transition,
    get_allowed_sources,
    get_allowed_transitions,
    is_terminal,
    validate_complete,
    validate_send_to_review,
)

S = DeliverableStatus


def deliverable(status, progress=0, proof=False, optional_assets=0):
    assets = [SimpleNamespace(is_required_proof=False) for _ in range(optional_assets)]
    if proof:
        assets.append(SimpleNamespace(is_required_proof=True))
    value = status.value if isinstance(status, DeliverableStatus) else status
    return SimpleNamespace(status=value, progress=progress, assets=assets)


class TestTransitionTable:
    """The table lists exactly the legal one-step moves"""

    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(DeliverableStatus)

    @pytest.mark.parametrize("current,target", [
        (S.PLANNED, S.IN_PROGRESS),
        (S.PLANNED, S.BLOCKED),
        (S.IN_PROGRESS, S.IN_REVIEW),
        (S.IN_PROGRESS, S.BLOCKED),
        (S.IN_PROGRESS, S.PLANNED),
        (S.IN_REVIEW, S.APPROVED),
        (S.IN_REVIEW, S.REVISIONS_REQUESTED),
        (S.IN_REVIEW, S.BLOCKED),
        (S.APPROVED, S.COMPLETE),
        (S.APPROVED, S.IN_REVIEW),
        (S.BLOCKED, S.PLANNED),
        (S.BLOCKED, S.IN_PROGRESS),
        (S.REVISIONS_REQUESTED, S.IN_PROGRESS),
        (S.REVISIONS_REQUESTED, S.BLOCKED),
    ])
    def test_legal_transitions(self, current, target):
        assert can_transition(target, deliverable(current)).allowed is True

    @pytest.mark.parametrize("current,target", [
        (S.PLANNED, S.COMPLETE),
        (S.PLANNED, S.IN_REVIEW),
        (S.IN_PROGRESS, S.COMPLETE),
        (S.IN_REVIEW, S.COMPLETE),
        (S.APPROVED, S.BLOCKED),
        (S.BLOCKED, S.COMPLETE),
        (S.PLANNED, S.PLANNED),
    ])
    def test_illegal_transitions(self, current, target):
        result = can_transition(target, deliverable(current))
        assert result.allowed is False
        assert result.reason == f"Cannot transition from {current.value} to {target.value}"

    @pytest.mark.parametrize("target", list(DeliverableStatus))
    def test_complete_is_terminal(self, target):
        assert can_transition(target, deliverable(S.COMPLETE)).allowed is False

    def test_unknown_target_is_illegal(self):
        result = can_transition("archived", deliverable(S.PLANNED))
        assert result.allowed is False
        assert result.reason == "Cannot transition from planned to archived"

    def test_unknown_current_status_is_illegal(self):
        assert can_transition(S.IN_PROGRESS, deliverable("draft")).allowed is False

    def test_accepts_plain_string_target(self):
        assert can_transition("in_progress", deliverable(S.PLANNED)).allowed is True


class TestSendToReview:

    def test_requires_progress_threshold(self):
        result = validate_send_to_review(deliverable(S.IN_PROGRESS, progress=79, proof=True))
        assert result.allowed is False
        assert result.reason == "Progress must be at least 80% (currently 79%)"

    def test_requires_required_proof(self):
        result = validate_send_to_review(deliverable(S.IN_PROGRESS, progress=80, optional_assets=2))
        assert result.allowed is False
        assert result.reason == "Required proof must be attached before sending to review"

    def test_allowed_at_threshold_with_proof(self):
        assert validate_send_to_review(deliverable(S.IN_PROGRESS, progress=80, proof=True)).allowed is True

    def test_progress_checked_before_proof(self):
        result = validate_send_to_review(deliverable(S.IN_PROGRESS, progress=10))
        assert "Progress" in result.reason


class TestComplete:

    def test_requires_required_proof(self):
        result = validate_complete(deliverable(S.APPROVED))
        assert result.allowed is False
        assert result.reason == "Required proof must be attached before marking complete"

    def test_requires_approved_status(self):
        result = validate_complete(deliverable(S.IN_REVIEW, proof=True))
        assert result.allowed is False
        assert result.reason == "Deliverable must be approved before marking complete"

    def test_allowed_from_approved_with_proof(self):
        assert validate_complete(deliverable(S.APPROVED, proof=True)).allowed is True


class TestCheckTransition:
    """Table first, then the target's precondition"""

    def test_table_rejection_wins_over_precondition(self):
        result = check_transition(S.COMPLETE, deliverable(S.IN_PROGRESS, progress=100, proof=True))
        assert result.reason == "Cannot transition from in_progress to complete"

    def test_review_precondition_applied(self):
        result = check_transition(S.IN_REVIEW, deliverable(S.IN_PROGRESS, progress=50, proof=True))
        assert result.allowed is False
        assert result.reason == "Progress must be at least 80% (currently 50%)"

    def test_review_from_approved_still_needs_preconditions(self):
        result = check_transition(S.IN_REVIEW, deliverable(S.APPROVED, progress=100))
        assert result.reason == "Required proof must be attached before sending to review"

    def test_complete_precondition_applied(self):
        result = check_transition(S.COMPLETE, deliverable(S.APPROVED))
        assert result.reason == "Required proof must be attached before marking complete"

    def test_transition_without_precondition(self):
        assert check_transition(S.BLOCKED, deliverable(S.PLANNED)).allowed is True

    def test_does_not_mutate_deliverable(self):
        d = deliverable(S.APPROVED, progress=90, proof=True)
        check_transition(S.COMPLETE, d)
        assert d.status == "approved"
        assert d.progress == 90


class TestHelpers:

    def test_allowed_transitions(self):
        assert get_allowed_transitions(S.IN_REVIEW) == [S.APPROVED, S.REVISIONS_REQUESTED, S.BLOCKED]
        assert get_allowed_transitions("unknown") == []

    def test_allowed_sources_of_complete(self):
        assert get_allowed_sources(S.COMPLETE) == [S.APPROVED]

    def test_is_terminal(self):
        assert is_terminal(S.COMPLETE) is True
        assert is_terminal(S.BLOCKED) is False
