"""
Resolution data model.

Immutable inputs (ElementReference, ElementMetadata), generated candidates,
per-check reports and the result/failure objects handed back to callers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from web_healer.exceptions import ResolutionError


XPATH_PREFIXES = ("/", "(/", "./", "(./")


class SelectorKind(Enum):
    """Locator language of a candidate expression."""
    CSS = "css"
    XPATH = "xpath"

    @classmethod
    def detect(cls, expression: str) -> "SelectorKind":
        """Classify an expression once, at generation time."""
        if expression.strip().startswith(XPATH_PREFIXES):
            return cls.XPATH
        return cls.CSS


class SelectorOrigin(Enum):
    """Where a candidate came from. Lower priority value is tried first."""
    ORIGINAL = "original"
    LEARNED = "learned"
    DERIVED = "derived"

    @property
    def priority(self) -> int:
        return _ORIGIN_PRIORITY[self]


_ORIGIN_PRIORITY = {
    SelectorOrigin.ORIGINAL: 0,
    SelectorOrigin.LEARNED: 1,
    SelectorOrigin.DERIVED: 2,
}


class ResolutionState(Enum):
    """States of the resolution state machine."""
    IDLE = "idle"
    SEARCHING = "searching"
    VERIFYING = "verifying"
    REMEDIATING = "remediating"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class FailureKind(Enum):
    """Why a resolution gave up."""
    NOT_FOUND = "not_found"
    NOT_INTERACTABLE = "not_interactable"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class ElementMetadata:
    """
    Descriptive hints about the element.

    Only used to broaden candidate generation, never mutated.

    Attributes:
        id: Element id attribute
        name: Element name attribute
        class_names: Class tokens
        visible_text: Text the user sees
        aria_label: aria-label attribute
        placeholder: Placeholder attribute
        test_id: Test hook (data-testid / data-test / data-cy)
    """
    id: Optional[str] = None
    name: Optional[str] = None
    class_names: Tuple[str, ...] = ()
    visible_text: Optional[str] = None
    aria_label: Optional[str] = None
    placeholder: Optional[str] = None
    test_id: Optional[str] = None

    def __post_init__(self) -> None:
        # Accept lists or a space separated string for convenience
        if isinstance(self.class_names, str):
            object.__setattr__(self, "class_names", tuple(self.class_names.split()))
        elif not isinstance(self.class_names, tuple):
            object.__setattr__(self, "class_names", tuple(self.class_names))

    def is_empty(self) -> bool:
        return not any([
            self.id, self.name, self.class_names, self.visible_text,
            self.aria_label, self.placeholder, self.test_id,
        ])


@dataclass(frozen=True)
class ElementReference:
    """A logical reference to a UI element."""
    original_selector: str
    metadata: Optional[ElementMetadata] = None

    def __post_init__(self) -> None:
        if not self.original_selector or not self.original_selector.strip():
            raise ValueError("original_selector must be a non-empty string")


@dataclass(frozen=True)
class CandidateSelector:
    """One concrete locator expression considered during resolution."""
    expression: str
    kind: SelectorKind
    origin: SelectorOrigin

    @classmethod
    def create(cls, expression: str, origin: SelectorOrigin) -> "CandidateSelector":
        return cls(expression=expression, kind=SelectorKind.detect(expression), origin=origin)

    def __str__(self) -> str:
        return f"{self.expression} ({self.kind.value}, {self.origin.value})"


@dataclass
class InteractabilityReport:
    """
    Outcome of one interactability check.

    Attributes:
        visible: Positive box and not hidden by display/visibility/opacity
        in_viewport: Box intersects the viewport
        not_covered: Hit-test at the box centre lands on the element or its family
        not_disabled: No disabled property and no aria-disabled attribute
        is_interactable: AND of the four checks
        occluding_descriptor: tag.class of the blocking element, if any
        error: Evaluation error, set when the check itself failed
        is_stale: The evaluation failed because the handle went stale
    """
    visible: bool = False
    in_viewport: bool = False
    not_covered: bool = False
    not_disabled: bool = False
    is_interactable: bool = False
    occluding_descriptor: Optional[str] = None
    error: Optional[str] = None
    is_stale: bool = False

    @classmethod
    def from_script(cls, data: Dict[str, Any]) -> "InteractabilityReport":
        """Build a report from the in-page check's return value."""
        visible = bool(data.get("visible"))
        in_viewport = bool(data.get("inViewport"))
        not_covered = bool(data.get("notCovered"))
        not_disabled = bool(data.get("notDisabled"))
        return cls(
            visible=visible,
            in_viewport=in_viewport,
            not_covered=not_covered,
            not_disabled=not_disabled,
            # Recomputed here so a partial payload can never claim success
            is_interactable=visible and in_viewport and not_covered and not_disabled,
            occluding_descriptor=data.get("occludingDescriptor") if not not_covered else None,
        )

    @classmethod
    def failed(cls, error: str, is_stale: bool = False) -> "InteractabilityReport":
        return cls(error=error, is_stale=is_stale)

    def reasons(self) -> List[str]:
        """Human readable list of the checks that failed."""
        if self.error:
            return [f"check failed: {self.error}"]
        reasons = []
        if not self.visible:
            reasons.append("not visible")
        if not self.in_viewport:
            reasons.append("outside viewport")
        if not self.not_covered:
            blocker = f" by {self.occluding_descriptor}" if self.occluding_descriptor else ""
            reasons.append(f"covered{blocker}")
        if not self.not_disabled:
            reasons.append("disabled")
        return reasons


@dataclass
class ResolutionAttempt:
    """Timing budget of one pass over the candidate list."""
    attempt_index: int
    per_candidate_timeout_ms: float
    attempt_timeout_ms: float = 0.0


@dataclass
class CandidateTrial:
    """Diagnostic record of one candidate tried in one attempt."""
    attempt_index: int
    candidate: CandidateSelector
    located: bool = False
    report: Optional[InteractabilityReport] = None
    error: Optional[str] = None

    def describe(self) -> str:
        if not self.located:
            suffix = f": {self.error}" if self.error else ""
            return f"not found{suffix}"
        if self.report is None:
            return "located"
        if self.report.is_interactable:
            return "interactable"
        return ", ".join(self.report.reasons())


@dataclass
class ResolutionFailure:
    """Structured failure with the full candidate-and-report trail."""
    original_selector: str
    kind: FailureKind
    candidates: List[CandidateSelector] = field(default_factory=list)
    trail: List[CandidateTrial] = field(default_factory=list)
    attempts_made: int = 0
    message: str = ""

    @property
    def candidates_tried(self) -> List[CandidateSelector]:
        """Distinct candidates that appear in the trail, in first-tried order."""
        seen = []
        for trial in self.trail:
            if trial.candidate not in seen:
                seen.append(trial.candidate)
        return seen

    def last_reports(self) -> Dict[str, Optional[InteractabilityReport]]:
        """Last interactability report per candidate expression."""
        reports: Dict[str, Optional[InteractabilityReport]] = {}
        for trial in self.trail:
            reports[trial.candidate.expression] = trial.report
        return reports

    def to_exception(self) -> "ResolutionError":
        from web_healer.exceptions import (
            ElementNotFoundError,
            InteractabilityTimeoutError,
            ResolutionTimeoutError,
        )

        error_types = {
            FailureKind.NOT_FOUND: ElementNotFoundError,
            FailureKind.NOT_INTERACTABLE: InteractabilityTimeoutError,
            FailureKind.TIMEOUT: ResolutionTimeoutError,
        }
        return error_types[self.kind](self.message, selector=self.original_selector, failure=self)


@dataclass
class ResolutionResult:
    """
    Outcome of ResolutionOrchestrator.resolve().

    Either handle/used_selector are set (success) or failure is.
    """
    handle: Any = None
    used_selector: Optional[CandidateSelector] = None
    healed: bool = False
    attempt_index: int = 0
    failure: Optional[ResolutionFailure] = None

    @classmethod
    def success(
        cls,
        handle: Any,
        used_selector: CandidateSelector,
        original_selector: str,
        attempt_index: int = 0,
    ) -> "ResolutionResult":
        return cls(
            handle=handle,
            used_selector=used_selector,
            healed=used_selector.expression != original_selector,
            attempt_index=attempt_index,
        )

    @classmethod
    def from_failure(cls, failure: ResolutionFailure) -> "ResolutionResult":
        return cls(failure=failure)

    @property
    def succeeded(self) -> bool:
        return self.failure is None and self.used_selector is not None

    def raise_for_failure(self) -> None:
        if self.failure is not None:
            raise self.failure.to_exception()


@dataclass
class SelectorMemoryEntry:
    """A remembered original -> healed mapping for one domain."""
    original_selector: str
    healed_selector: str
    domain_scope: str
    last_used_at: datetime = field(default_factory=datetime.now)
    hits: int = 1


@dataclass
class ResolveOptions:
    """
    Per-call overrides for resolve(). None means "use the settings value".

    Attributes:
        max_attempts: Passes over the candidate list
        base_timeout_ms: First attempt's time budget
        adaptive_timeout: Grow the budget with each attempt
        deadline_ms: Outer deadline for the whole call
        domain_scope: Scope for learned selectors (defaults to the page host)
    """
    max_attempts: Optional[int] = None
    base_timeout_ms: Optional[int] = None
    adaptive_timeout: Optional[bool] = None
    deadline_ms: Optional[int] = None
    domain_scope: Optional[str] = None
