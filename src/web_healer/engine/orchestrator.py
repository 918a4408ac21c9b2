"""
Resolution Orchestrator - drives candidates, attempts and time budgets.

State machine:
    IDLE -> SEARCHING -> VERIFYING -> REMEDIATING -> SUCCEEDED | EXHAUSTED

Algorithm per resolve() call:
1. Generate candidates once (original -> learned -> derived).
2. For each attempt, compute the per-candidate locate timeout:
       attempt_timeout = base * (1 + growth * attempt)   (adaptive)
       per_candidate   = max(floor, attempt_timeout / min(len(candidates), split))
3. Attempts after the first resynchronize first: DOM-stable wait, optional
   network-idle wait, overlay dismissal.
4. Candidates are tried strictly in order: locate -> check -> (scroll /
   dismiss overlays -> re-check once) -> next candidate.
5. The first interactable candidate wins; a healed selector is remembered.
6. Exhaustion (or an expired outer deadline) returns a ResolutionFailure
   with the full trail.

Usage:
    orchestrator = ResolutionOrchestrator(PlaywrightDriver(page))
    result = await orchestrator.resolve(
        ElementReference("#submit-btn", ElementMetadata(visible_text="Submit"))
    )
    if result.succeeded:
        await orchestrator.driver.click(result.handle)
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, List, Optional, Union
from urllib.parse import urlparse

from web_healer.config.settings import HealingSettings, Settings
from web_healer.engine.candidates import CandidateGenerator
from web_healer.engine.events import DiagnosticsEmitter, HealedEvent, ResolutionFailedEvent
from web_healer.engine.knowledge_store import JsonKnowledgeBase
from web_healer.engine.memory import SelectorMemory
from web_healer.engine.models import (
    CandidateSelector,
    CandidateTrial,
    ElementReference,
    FailureKind,
    ResolutionAttempt,
    ResolutionFailure,
    ResolutionResult,
    ResolutionState,
    ResolveOptions,
)
from web_healer.engine.remediation import EnvironmentRemediator
from web_healer.engine.verifier import InteractabilityVerifier
from web_healer.interfaces.driver import IDriverAdapter
from web_healer.interfaces.knowledge import IKnowledgeBase

logger = logging.getLogger(__name__)


@dataclass
class HealingStats:
    """Counters across every resolve() call of one orchestrator."""
    resolutions: int = 0
    healed: int = 0
    failures: int = 0
    candidates_tried: int = 0
    remediations: int = 0
    stale_recoveries: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class _ResolutionRun:
    """Mutable bookkeeping of one resolve() call."""
    ref: ElementReference
    domain_scope: str
    candidates: List[CandidateSelector]
    trail: List[CandidateTrial] = field(default_factory=list)
    attempts_made: int = 0
    located_any: bool = False


class ResolutionOrchestrator:
    """
    Resolves element references into interactable handles on one page.

    Collaborators are injected; anything not given is built from the
    healing settings. Several orchestrators may share one SelectorMemory.
    """

    def __init__(
        self,
        driver: IDriverAdapter,
        settings: Optional[HealingSettings] = None,
        memory: Optional[SelectorMemory] = None,
        knowledge_base: Optional[IKnowledgeBase] = None,
        events: Optional[DiagnosticsEmitter] = None,
        generator: Optional[CandidateGenerator] = None,
        verifier: Optional[InteractabilityVerifier] = None,
        remediator: Optional[EnvironmentRemediator] = None,
        cleanup_interval: int = 25,
    ):
        self.driver = driver
        self.settings = settings or HealingSettings()
        self.memory = memory if memory is not None else SelectorMemory()
        self.knowledge_base = knowledge_base
        self.events = events or DiagnosticsEmitter()
        self.generator = generator or CandidateGenerator(
            memory=self.memory,
            knowledge_base=knowledge_base,
            max_candidates=self.settings.max_candidates,
        )
        self.verifier = verifier or InteractabilityVerifier(driver)
        self.remediator = remediator or EnvironmentRemediator(
            driver,
            events=self.events,
            auto_dismiss_overlays=self.settings.auto_dismiss_overlays,
            auto_scroll=self.settings.auto_scroll,
            overlay_settle_ms=self.settings.overlay_settle_ms,
            scroll_settle_ms=self.settings.scroll_settle_ms,
        )
        self.cleanup_interval = max(1, cleanup_interval)
        self.state = ResolutionState.IDLE
        self.stats = HealingStats()
        self._calls_since_cleanup = 0

    @classmethod
    def from_settings(
        cls,
        driver: IDriverAdapter,
        settings: Settings,
        memory: Optional[SelectorMemory] = None,
        knowledge_base: Optional[IKnowledgeBase] = None,
        events: Optional[DiagnosticsEmitter] = None,
    ) -> "ResolutionOrchestrator":
        """Build an orchestrator from the root settings object."""
        if memory is None:
            memory = SelectorMemory(capacity=settings.memory.capacity)
        if knowledge_base is None and settings.memory.knowledge_base_path:
            knowledge_base = JsonKnowledgeBase(settings.memory.knowledge_base_path)
        return cls(
            driver,
            settings=settings.healing,
            memory=memory,
            knowledge_base=knowledge_base,
            events=events,
            cleanup_interval=settings.memory.cleanup_interval,
        )

    # ==================== Public API ====================

    def plan_attempt(
        self,
        attempt_index: int,
        candidate_count: int,
        base_timeout_ms: float,
        adaptive: bool,
    ) -> ResolutionAttempt:
        """Time budget for one attempt and for each candidate inside it."""
        growth = self.settings.timeout_growth if adaptive else 0.0
        attempt_timeout = base_timeout_ms * (1 + growth * attempt_index)
        split = max(1, min(candidate_count, self.settings.candidate_split))
        per_candidate = max(self.settings.min_candidate_timeout_ms, attempt_timeout / split)
        return ResolutionAttempt(
            attempt_index=attempt_index,
            per_candidate_timeout_ms=per_candidate,
            attempt_timeout_ms=attempt_timeout,
        )

    async def resolve(
        self,
        ref: Union[ElementReference, str],
        options: Optional[ResolveOptions] = None,
    ) -> ResolutionResult:
        """
        Resolve a reference into an interactable handle.

        Args:
            ref: Element reference (a bare selector string is accepted)
            options: Per-call overrides

        Returns:
            ResolutionResult with either a handle or a failure
        """
        if isinstance(ref, str):
            ref = ElementReference(ref)
        options = options or ResolveOptions()

        max_attempts = options.max_attempts or self.settings.max_attempts
        base_timeout_ms = options.base_timeout_ms or self.settings.base_timeout_ms
        adaptive = (
            self.settings.adaptive_timeout if options.adaptive_timeout is None
            else options.adaptive_timeout
        )
        domain_scope = options.domain_scope or await self._current_domain()

        run = _ResolutionRun(
            ref=ref,
            domain_scope=domain_scope,
            candidates=self.generator.generate(ref, domain_scope),
        )
        self.stats.resolutions += 1
        logger.debug(
            f"Resolving {ref.original_selector!r} on {domain_scope or '<unknown>'} "
            f"with {len(run.candidates)} candidate(s)"
        )

        try:
            coro = self._run_attempts(run, max_attempts, base_timeout_ms, adaptive)
            if options.deadline_ms is not None:
                result = await asyncio.wait_for(coro, timeout=options.deadline_ms / 1000)
            else:
                result = await coro
        except asyncio.TimeoutError:
            result = self._fail(
                run,
                FailureKind.TIMEOUT,
                f"Deadline of {options.deadline_ms}ms expired while resolving {ref.original_selector!r}",
            )
        finally:
            self._maybe_cleanup()

        return result

    async def resolve_or_raise(
        self,
        ref: Union[ElementReference, str],
        options: Optional[ResolveOptions] = None,
    ) -> ResolutionResult:
        """Like resolve(), but raises the failure's typed error."""
        result = await self.resolve(ref, options)
        result.raise_for_failure()
        return result

    # ==================== Internals ====================

    async def _current_domain(self) -> str:
        try:
            url = await self.driver.current_url()
        except Exception as e:
            logger.debug(f"Could not read page URL: {e}")
            return ""
        return urlparse(url or "").hostname or ""

    def _set_state(self, state: ResolutionState) -> None:
        if state != self.state:
            logger.debug(f"State {self.state.value} -> {state.value}")
            self.state = state

    async def _run_attempts(
        self,
        run: _ResolutionRun,
        max_attempts: int,
        base_timeout_ms: float,
        adaptive: bool,
    ) -> ResolutionResult:
        original = run.ref.original_selector

        for attempt_index in range(max_attempts):
            attempt = self.plan_attempt(attempt_index, len(run.candidates), base_timeout_ms, adaptive)
            run.attempts_made = attempt_index + 1

            if attempt_index > 0:
                # The page has likely changed since the last failure
                await self._resynchronize()

            for candidate in run.candidates:
                handle = await self._try_candidate(run, candidate, attempt)
                if handle is not None:
                    return self._succeed(run, handle, candidate, attempt_index)

            logger.info(f"Attempt {attempt_index + 1}/{max_attempts} failed for {original!r}")

        kind = FailureKind.NOT_INTERACTABLE if run.located_any else FailureKind.NOT_FOUND
        reason = (
            "located but never interactable" if run.located_any
            else "no candidate matched"
        )
        return self._fail(
            run,
            kind,
            f"Self-healing exhausted for {original!r} after {run.attempts_made} attempt(s): "
            f"{reason} ({len(run.candidates)} candidate(s) tried)",
        )

    async def _try_candidate(
        self,
        run: _ResolutionRun,
        candidate: CandidateSelector,
        attempt: ResolutionAttempt,
    ) -> Optional[Any]:
        """Locate, verify and remediate one candidate. Returns the handle on success."""
        self._set_state(ResolutionState.SEARCHING)
        trial = CandidateTrial(attempt_index=attempt.attempt_index, candidate=candidate)
        run.trail.append(trial)
        self.stats.candidates_tried += 1

        try:
            handle = await self.driver.locate(candidate, attempt.per_candidate_timeout_ms)
        except Exception as e:
            trial.error = str(e)
            logger.debug(f"Locate failed for {candidate.expression!r}: {e}")
            return None

        if handle is None:
            logger.debug(f"No match for {candidate.expression!r}")
            return None

        trial.located = True
        run.located_any = True

        self._set_state(ResolutionState.VERIFYING)
        report = await self.verifier.check(handle)

        if not report.is_interactable and report.error is None:
            self._set_state(ResolutionState.REMEDIATING)
            self.stats.remediations += 1
            if not report.in_viewport:
                await self.remediator.scroll_into_view(handle)
            if not report.not_covered:
                if await self.remediator.dismiss_overlays():
                    await self.remediator.settle()

            self._set_state(ResolutionState.VERIFYING)
            report = await self.verifier.check(handle)

        trial.report = report
        if report.is_interactable:
            return handle

        logger.debug(f"Candidate {candidate.expression!r} rejected: {', '.join(report.reasons())}")
        return None

    async def _resynchronize(self) -> None:
        await self.remediator.wait_for_dom_stable(
            self.settings.dom_stable_timeout_ms,
            self.settings.dom_quiet_ms,
        )
        if self.settings.network_idle_on_retry:
            await self.remediator.wait_for_network_idle(
                self.settings.network_idle_timeout_ms,
                self.settings.network_idle_quiet_ms,
            )
        if await self.remediator.dismiss_overlays():
            await self.remediator.settle()

    def _succeed(
        self,
        run: _ResolutionRun,
        handle: Any,
        candidate: CandidateSelector,
        attempt_index: int,
    ) -> ResolutionResult:
        self._set_state(ResolutionState.SUCCEEDED)
        original = run.ref.original_selector
        result = ResolutionResult.success(handle, candidate, original, attempt_index)

        if result.healed:
            self.stats.healed += 1
            self._learn(run.domain_scope, original, candidate.expression)
            logger.info(f"Healed: {original!r} -> {candidate.expression!r}")
            self.events.emit(HealedEvent(
                original_selector=original,
                used_selector=candidate,
                attempt_index=attempt_index,
            ))
        return result

    def _learn(self, domain_scope: str, original: str, healed: str) -> None:
        self.memory.record(domain_scope, original, healed)
        if self.knowledge_base is None:
            return
        try:
            self.knowledge_base.record_success(domain_scope, original, healed)
        except Exception as e:
            logger.warning(f"Knowledge base update failed for {original!r}: {e}")

    def _fail(self, run: _ResolutionRun, kind: FailureKind, message: str) -> ResolutionResult:
        self._set_state(ResolutionState.EXHAUSTED)
        self.stats.failures += 1

        failure = ResolutionFailure(
            original_selector=run.ref.original_selector,
            kind=kind,
            candidates=list(run.candidates),
            trail=list(run.trail),
            attempts_made=run.attempts_made,
            message=message,
        )
        logger.warning(message)
        self.events.emit(ResolutionFailedEvent(
            original_selector=failure.original_selector,
            candidates_tried=failure.candidates_tried,
            reports=list(failure.last_reports().values()),
        ))
        return ResolutionResult.from_failure(failure)

    def _maybe_cleanup(self) -> None:
        self._calls_since_cleanup += 1
        if self._calls_since_cleanup >= self.cleanup_interval:
            self._calls_since_cleanup = 0
            self.memory.evict_if_over_capacity()
