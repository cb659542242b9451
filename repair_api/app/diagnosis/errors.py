"""Pre-flight errors raised by the diagnosis pipeline.

These are the only exceptions ``DiagnosisService.diagnose_problem`` lets
escape; both are raised before any external side effect.
"""

from __future__ import annotations

from typing import List


class DiagnosisError(Exception):
    """Base class for errors surfaced to the caller."""


class InputValidationError(DiagnosisError):
    """One or more request fields failed format or length checks."""

    def __init__(self, errors: List[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid input")


class RateLimitExceededError(DiagnosisError):
    """The identity has used up its diagnosis allowance for this window."""

    def __init__(self, retry_after: float) -> None:
        self.retry_after = max(0.0, retry_after)
        minutes = max(1, int(round(self.retry_after / 60)))
        super().__init__(
            f"Too many diagnosis requests. Please try again in {minutes} minute(s)."
        )
