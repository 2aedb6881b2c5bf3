"""Deliverable status state machine.

State Flow:
    planned → in_progress → in_review → approved → complete
                  ↑              │
                  └── revisions_requested

    Any non-terminal status except approved can move to blocked; blocked
    returns to planned or in_progress.

Terminal State: complete

ALLOWED_TRANSITIONS is the single source of truth for legality. Target
statuses with extra requirements (in_review, complete) carry a
precondition that ``check_transition`` applies after the table.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, Sequence


class DeliverableStatus(str, Enum):
    """Deliverable status. Values are stored as TEXT in deliverables.status."""
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    COMPLETE = "complete"
    BLOCKED = "blocked"
    REVISIONS_REQUESTED = "revisions_requested"


ALLOWED_TRANSITIONS = {
    DeliverableStatus.PLANNED: [
        DeliverableStatus.IN_PROGRESS,
        DeliverableStatus.BLOCKED
    ],
    DeliverableStatus.IN_PROGRESS: [
        DeliverableStatus.IN_REVIEW,
        DeliverableStatus.BLOCKED,
        DeliverableStatus.PLANNED
    ],
    DeliverableStatus.IN_REVIEW: [
        DeliverableStatus.APPROVED,
        DeliverableStatus.REVISIONS_REQUESTED,
        DeliverableStatus.BLOCKED
    ],
    DeliverableStatus.APPROVED: [
        DeliverableStatus.COMPLETE,
        DeliverableStatus.IN_REVIEW
    ],
    DeliverableStatus.COMPLETE: [],  # Terminal state
    DeliverableStatus.BLOCKED: [
        DeliverableStatus.PLANNED,
        DeliverableStatus.IN_PROGRESS
    ],
    DeliverableStatus.REVISIONS_REQUESTED: [
        DeliverableStatus.IN_PROGRESS,
        DeliverableStatus.BLOCKED
    ],
}

REVIEW_PROGRESS_THRESHOLD = 80


class ProofAsset(Protocol):
    is_required_proof: bool


class DeliverableLike(Protocol):
    """What the state machine reads from a deliverable. Never mutated here."""
    status: str
    progress: int
    assets: Sequence[ProofAsset]


@dataclass(frozen=True)
class TransitionCheck:
    allowed: bool
    reason: Optional[str] = None


ALLOWED = TransitionCheck(allowed=True)


def _status_value(status) -> str:
    return status.value if isinstance(status, DeliverableStatus) else str(status)


def _has_required_proof(deliverable: DeliverableLike) -> bool:
    return any(asset.is_required_proof for asset in (deliverable.assets or []))


def can_transition(new_status, deliverable: DeliverableLike) -> TransitionCheck:
    """Check the transition table only.

    Unknown status values (current or requested) are never legal.
    """
    current = _status_value(deliverable.status)
    target = _status_value(new_status)
    try:
        allowed = ALLOWED_TRANSITIONS[DeliverableStatus(current)]
        legal = DeliverableStatus(target) in allowed
    except ValueError:
        legal = False

    if not legal:
        return TransitionCheck(allowed=False, reason=f"Cannot transition from {current} to {target}")
    return ALLOWED


def validate_send_to_review(deliverable: DeliverableLike) -> TransitionCheck:
    """Preconditions for entering in_review: progress >= 80 and required proof attached."""
    if (deliverable.progress or 0) < REVIEW_PROGRESS_THRESHOLD:
        return TransitionCheck(
            allowed=False,
            reason=f"Progress must be at least {REVIEW_PROGRESS_THRESHOLD}% "
                   f"(currently {deliverable.progress or 0}%)",
        )
    if not _has_required_proof(deliverable):
        return TransitionCheck(
            allowed=False,
            reason="Required proof must be attached before sending to review",
        )
    return ALLOWED


def validate_complete(deliverable: DeliverableLike) -> TransitionCheck:
    """Preconditions for complete: required proof attached, current status a legal source.

    The legal sources are read from ALLOWED_TRANSITIONS, so this check and
    the table cannot drift apart.
    """
    if not _has_required_proof(deliverable):
        return TransitionCheck(
            allowed=False,
            reason="Required proof must be attached before marking complete",
        )
    sources = get_allowed_sources(DeliverableStatus.COMPLETE)
    if _status_value(deliverable.status) not in {s.value for s in sources}:
        names = " or ".join(s.value for s in sources)
        return TransitionCheck(
            allowed=False,
            reason=f"Deliverable must be {names} before marking complete",
        )
    return ALLOWED


PRECONDITIONS: Dict[DeliverableStatus, Callable[[DeliverableLike], TransitionCheck]] = {
    DeliverableStatus.IN_REVIEW: validate_send_to_review,
    DeliverableStatus.COMPLETE: validate_complete,
}


def check_transition(new_status, deliverable: DeliverableLike) -> TransitionCheck:
    """Full check: the transition table, then the target's precondition if any."""
    result = can_transition(new_status, deliverable)
    if not result.allowed:
        return result

    precondition = PRECONDITIONS.get(DeliverableStatus(_status_value(new_status)))
    if precondition is not None:
        return precondition(deliverable)
    return ALLOWED


def get_allowed_transitions(status) -> List[DeliverableStatus]:
    try:
        return list(ALLOWED_TRANSITIONS.get(DeliverableStatus(_status_value(status)), []))
    except ValueError:
        return []


def get_allowed_sources(target: DeliverableStatus) -> List[DeliverableStatus]:
    """Statuses from which ``target`` can be reached in one step."""
    return [source for source, targets in ALLOWED_TRANSITIONS.items() if target in targets]


def is_terminal(status) -> bool:
    return not get_allowed_transitions(status)
