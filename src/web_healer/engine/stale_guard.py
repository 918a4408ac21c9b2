"""
Stale Handle Guard - transparent re-resolution for invalidated handles.

Wraps a caller action: resolve, act, and if the action fails because the
handle went stale, resolve once more and retry. Exactly one retry keeps a
persistently unstable page from looping forever.

Usage:
    guard = StaleHandleGuard(orchestrator)
    outcome = await guard.with_healing(orchestrator.driver.click, ref)
    outcome.raise_for_error()
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from web_healer.engine.models import (
    ElementReference,
    ResolutionFailure,
    ResolutionResult,
    ResolveOptions,
)
from web_healer.engine.orchestrator import ResolutionOrchestrator
from web_healer.exceptions import StaleElementError, WebHealerError

logger = logging.getLogger(__name__)

Action = Callable[[Any], Awaitable[Any]]


@dataclass
class ActionOutcome:
    """
    Result of running an action through the guard.

    Attributes:
        success: The action completed
        value: The action's return value
        result: The resolution the action ran against (last one)
        resolutions: Number of resolve() calls made (1 or 2)
        error: Surfaced error (StaleElementError after a second staleness)
        failure: Resolution failure, when no handle could be obtained
    """
    success: bool
    value: Any = None
    result: Optional[ResolutionResult] = None
    resolutions: int = 0
    error: Optional[WebHealerError] = None
    failure: Optional[ResolutionFailure] = None

    @property
    def healed(self) -> bool:
        return bool(self.result and self.result.healed)

    def raise_for_error(self) -> None:
        if self.failure is not None:
            raise self.failure.to_exception()
        if self.error is not None:
            raise self.error


class StaleHandleGuard:
    """Owns staleness only; any other action error propagates unchanged."""

    def __init__(self, orchestrator: ResolutionOrchestrator, retry_on_stale: Optional[bool] = None):
        self.orchestrator = orchestrator
        if retry_on_stale is None:
            retry_on_stale = orchestrator.settings.stale_element_retry
        self.retry_on_stale = retry_on_stale

    def is_stale(self, error: BaseException) -> bool:
        return self.orchestrator.driver.is_stale_error(error)

    async def with_healing(
        self,
        action: Action,
        ref: Union[ElementReference, str],
        options: Optional[ResolveOptions] = None,
    ) -> ActionOutcome:
        """
        Resolve ref and run action(handle), re-resolving once on staleness.

        Args:
            action: Async callable receiving the resolved handle
            ref: Element reference
            options: Resolve options used for both resolutions

        Returns:
            ActionOutcome
        """
        if isinstance(ref, str):
            ref = ElementReference(ref)

        max_resolutions = 2 if self.retry_on_stale else 1
        resolutions = 0
        last_stale: Optional[BaseException] = None
        result: Optional[ResolutionResult] = None

        while resolutions < max_resolutions:
            result = await self.orchestrator.resolve(ref, options)
            resolutions += 1
            if not result.succeeded:
                return ActionOutcome(
                    success=False,
                    result=result,
                    resolutions=resolutions,
                    failure=result.failure,
                )

            try:
                value = await action(result.handle)
            except Exception as e:
                if not self.is_stale(e):
                    raise
                last_stale = e
                logger.info(
                    f"Stale handle for {ref.original_selector!r} "
                    f"(resolution {resolutions}/{max_resolutions}): {e}"
                )
                continue

            if resolutions > 1:
                self.orchestrator.stats.stale_recoveries += 1
            return ActionOutcome(success=True, value=value, result=result, resolutions=resolutions)

        error = StaleElementError(
            f"Element went stale {resolutions} time(s): {last_stale}",
            selector=ref.original_selector,
        )
        logger.warning(str(error))
        return ActionOutcome(success=False, result=result, resolutions=resolutions, error=error)
