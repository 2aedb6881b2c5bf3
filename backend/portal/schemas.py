"""Shared API envelope and field types.

Successful responses are ``{"data": ...}``; failures are ``{"error": ...}``
and are produced by the exception handlers in main.py.
"""

from typing import Annotated, Any, Generic, List, Optional, TypeVar

from pydantic import AfterValidator, BaseModel

T = TypeVar("T")


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


def _strip_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


# Text trimmed of surrounding whitespace; empty after trimming is rejected
RequiredText = Annotated[str, AfterValidator(_strip_required)]
OptionalText = Annotated[Optional[str], AfterValidator(_strip_optional)]


class DataEnvelope(BaseModel, Generic[T]):
    data: T


class ErrorEnvelope(BaseModel):
    error: str
    details: Optional[List[Any]] = None
