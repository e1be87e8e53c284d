from __future__ import annotations

from typing import NamedTuple


class FieldError(NamedTuple):
    """One rejected input field."""

    field: str
    message: str


class StellarSimError(Exception):
    """Base class for errors raised by stellarsim."""


class ValidationError(StellarSimError, ValueError):
    """Cloud parameters failed validation.

    Args:
        errors (list of FieldError):
            One entry per offending field
    """

    def __init__(self, errors):
        self.errors = list(errors)
        details = "; ".join(f"{err.field}: {err.message}" for err in self.errors)
        super().__init__(f"Invalid cloud parameters ({details})")


class SequencingError(StellarSimError, RuntimeError):
    """A controller operation was called out of order or with a bad argument."""


class RecordError(StellarSimError, ValueError):
    """A persisted record could not be turned back into simulation state."""
