"""Exception types shared across the scanner."""

from __future__ import annotations


class ATSScannerError(Exception):
    """Base class for scanner errors."""


class InputValidationError(ATSScannerError):
    """Raised when required request text is missing or empty."""


class GatewayError(ATSScannerError):
    """The language model call failed, timed out, or returned unusable content."""


class StageError(ATSScannerError):
    """A pipeline stage could not satisfy its own invariants."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage
