"""
Engine module - self-healing element resolution.

Components:
- CandidateGenerator: ranked locator alternatives
- InteractabilityVerifier: is a located node actionable?
- EnvironmentRemediator: overlays, scrolling, stability waits
- ResolutionOrchestrator: attempts, budgets, diagnostics
- StaleHandleGuard: one-shot re-resolution on stale handles
- SelectorMemory: bounded cache of healed selectors
"""

from web_healer.engine.models import (
    ElementMetadata,
    ElementReference,
    CandidateSelector,
    SelectorKind,
    SelectorOrigin,
    InteractabilityReport,
    ResolutionAttempt,
    CandidateTrial,
    FailureKind,
    ResolutionFailure,
    ResolutionResult,
    ResolutionState,
    ResolveOptions,
    SelectorMemoryEntry,
)
from web_healer.engine.candidates import CandidateGenerator
from web_healer.engine.verifier import InteractabilityVerifier
from web_healer.engine.remediation import EnvironmentRemediator
from web_healer.engine.memory import SelectorMemory
from web_healer.engine.knowledge_store import JsonKnowledgeBase
from web_healer.engine.events import (
    DiagnosticsEmitter,
    HealedEvent,
    ResolutionFailedEvent,
    OverlaysDismissedEvent,
)
from web_healer.engine.orchestrator import ResolutionOrchestrator, HealingStats
from web_healer.engine.stale_guard import StaleHandleGuard, ActionOutcome

__all__ = [
    # Models
    "ElementMetadata",
    "ElementReference",
    "CandidateSelector",
    "SelectorKind",
    "SelectorOrigin",
    "InteractabilityReport",
    "ResolutionAttempt",
    "CandidateTrial",
    "FailureKind",
    "ResolutionFailure",
    "ResolutionResult",
    "ResolutionState",
    "ResolveOptions",
    "SelectorMemoryEntry",
    # Components
    "CandidateGenerator",
    "InteractabilityVerifier",
    "EnvironmentRemediator",
    "SelectorMemory",
    "JsonKnowledgeBase",
    "ResolutionOrchestrator",
    "HealingStats",
    "StaleHandleGuard",
    "ActionOutcome",
    # Diagnostics
    "DiagnosticsEmitter",
    "HealedEvent",
    "ResolutionFailedEvent",
    "OverlaysDismissedEvent",
]
