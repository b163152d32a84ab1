"""
Error taxonomy and tagged results.

- RepositoryError: upstream I/O failure, always raised to the caller.
- ValidationError: malformed input, raised before any computation.
- DomainError: the expected "no answer" outcomes of generation and
  substitution, returned inside ``Err`` rather than raised.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar('T')


class IronloadError(Exception):
    """Base class for engine exceptions."""


class RepositoryError(IronloadError):
    """A persistence collaborator failed to read or write."""

    def __init__(self, operation: str, message: str = ""):
        self.operation = operation
        super().__init__(f"{operation}: {message}" if message else operation)


class ValidationError(IronloadError, ValueError):
    """Input rejected at the boundary."""


class DomainError(Enum):
    NO_AVAILABLE_EQUIPMENT = "no_available_equipment"
    INSUFFICIENT_EXERCISES = "insufficient_exercises"
    NO_SUITABLE_SUBSTITUTES = "no_suitable_substitutes"
    EQUIPMENT_UNAVAILABLE = "equipment_unavailable"

    @property
    def message(self) -> str:
        return DOMAIN_ERROR_MESSAGES[self]


DOMAIN_ERROR_MESSAGES = {
    DomainError.NO_AVAILABLE_EQUIPMENT: "No exercises available with selected equipment",
    DomainError.INSUFFICIENT_EXERCISES: "Not enough exercises found to create a complete workout",
    DomainError.NO_SUITABLE_SUBSTITUTES: "No suitable substitute exercises found",
    DomainError.EQUIPMENT_UNAVAILABLE: "No substitutes available with selected equipment",
}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False


@dataclass(frozen=True)
class Err:
    error: DomainError

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True


Result = Union[Ok[T], Err]
