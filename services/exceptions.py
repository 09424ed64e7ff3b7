"""
Error taxonomy for the budget/advice pipeline.

Only BadRequestError, NotFoundError and AllModelsExhaustedError ever reach the
HTTP layer; everything else is retried or turned into a fallback response.
"""
from dataclasses import dataclass
from typing import List, Optional


class FinanceAdvisorError(Exception):
    """Base exception for the advisor backend."""
    pass


class ConfigError(FinanceAdvisorError):
    """Configuration-related errors."""
    pass


class BadRequestError(FinanceAdvisorError):
    """Malformed caller input (month, year, e-mail)."""
    pass


class NotFoundError(FinanceAdvisorError):
    """No transactions exist for the requested owner and period."""

    def __init__(self, message: str, suggestion: str = "Try a different month or add transactions first"):
        super().__init__(message)
        self.suggestion = suggestion


class UpstreamError(FinanceAdvisorError):
    """Non-transient failure from the text-completion backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamTransientError(UpstreamError):
    """429, 5xx or network failure; safe to retry."""
    pass


@dataclass(frozen=True)
class ModelFailure:
    """One failed call path for one candidate model."""
    model: str
    mode: str
    reason: str

    def to_dict(self) -> dict:
        return {"model": self.model, "mode": self.mode, "reason": self.reason}


class AllModelsExhaustedError(UpstreamError):
    """Every candidate model failed both the structured and the REST call."""

    def __init__(self, failures: List[ModelFailure]):
        super().__init__(f"All model attempts failed ({len(failures)} failures)")
        self.failures = list(failures)


class RecoveryError(FinanceAdvisorError):
    """Model text could not be turned into a valid plan."""
    pass
