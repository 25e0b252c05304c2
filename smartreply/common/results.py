"""
Tagged outcomes used at the service seams.

ServiceResult describes one downstream HTTP call (Success / Unavailable /
Timeout). Validation describes one untrusted payload checked against a
pydantic schema (Valid / Invalid).
"""
from dataclasses import dataclass
from typing import Any, Generic, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class Success(Generic[T]):
    """Downstream call returned a usable payload."""
    value: T


@dataclass(frozen=True)
class Unavailable:
    """Non-2xx status, network failure or malformed payload."""
    reason: str


@dataclass(frozen=True)
class Timeout:
    """Per-call deadline exceeded; the request was abandoned."""
    seconds: float


ServiceResult = Union[Success[T], Unavailable, Timeout]


def present(result: "ServiceResult[T]") -> Optional[T]:
    """Collapse a ServiceResult to its value, or None when absent.

    Unavailable and Timeout are deliberately indistinguishable here.
    """
    if isinstance(result, Success):
        return result.value
    return None


@dataclass(frozen=True)
class Valid(Generic[T]):
    value: T


@dataclass(frozen=True)
class Invalid:
    reason: str


Validation = Union[Valid[T], Invalid]


def validate(model: Type[M], payload: Any) -> "Validation[M]":
    """Check an untrusted payload against a schema."""
    try:
        return Valid(model.model_validate(payload))
    except ValidationError as e:
        return Invalid(f"{model.__name__}: {e.error_count()} validation error(s): {e.errors()[0]['msg']}")
