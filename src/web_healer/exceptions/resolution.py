"""
Resolution-related exceptions.

Every resolution error carries the structured ResolutionFailure so callers
can render which selectors were tried and why each one was rejected.
"""

from typing import TYPE_CHECKING, Optional

from web_healer.exceptions.base import WebHealerError

if TYPE_CHECKING:
    from web_healer.engine.models import ResolutionFailure


class ResolutionError(WebHealerError):
    """Base exception for element resolution failures."""

    def __init__(
        self,
        message: str,
        selector: str,
        failure: Optional["ResolutionFailure"] = None,
    ):
        details = {"selector": selector}
        if failure is not None:
            details["candidates_tried"] = [c.expression for c in failure.candidates]
            details["attempts"] = failure.attempts_made
        super().__init__(message, details)
        self.selector = selector
        self.failure = failure


class ElementNotFoundError(ResolutionError):
    """
    No candidate was ever located within the time budget.

    Not retried by the engine itself; the caller may retry the whole resolve().
    """
    pass


class InteractabilityTimeoutError(ResolutionError):
    """
    Candidates were located but none became interactable after remediation.

    Usually points at a real obstruction, such as a modal the user must close.
    """
    pass


class ResolutionTimeoutError(ResolutionError):
    """The caller's outer deadline expired before resolution finished."""
    pass


class StaleElementError(WebHealerError):
    """
    A previously valid handle was invalidated by a DOM mutation.

    Recovered internally by StaleHandleGuard once; only surfaced when
    the retry goes stale as well.
    """

    def __init__(self, message: str, selector: str | None = None):
        super().__init__(message, {"selector": selector} if selector else None)
        self.selector = selector


class EnvironmentRemediationError(WebHealerError):
    """
    A remediation step (overlay dismissal, scroll, stability wait) failed.

    Logged and treated as "remediation had no effect"; never propagated.
    """

    def __init__(self, message: str, operation: str):
        super().__init__(message, {"operation": operation})
        self.operation = operation
