"""Checklist-derived deliverable progress."""

from typing import Iterable, Protocol

FINISHING_TOUCHES_THRESHOLD = 80


class ChecklistEntry(Protocol):
    is_done: bool


def calculate_progress(items: Iterable[ChecklistEntry]) -> int:
    """Percent of checklist items done, rounded half up. 0 for an empty list.

    Examples:
        >>> calculate_progress([])
        0
    """
    items = list(items)
    if not items:
        return 0
    done = sum(1 for item in items if item.is_done)
    # Integer half-up rounding; round() would use banker's rounding
    return (200 * done + len(items)) // (2 * len(items))


def is_ready_for_finishing_touches(progress: int) -> bool:
    return progress >= FINISHING_TOUCHES_THRESHOLD
