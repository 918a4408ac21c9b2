"""
Web Healer - self-healing element resolution for browser automation.

Turns a selector (plus optional hints about the element) into a live,
interactable handle even when the page's DOM has drifted since the
selector was written.

Example:
    >>> from web_healer import ResolutionOrchestrator, ElementReference, ElementMetadata
    >>> from web_healer.drivers import PlaywrightDriver
    >>> orchestrator = ResolutionOrchestrator(PlaywrightDriver(page))
    >>> result = await orchestrator.resolve(
    ...     ElementReference("#submit-btn", ElementMetadata(visible_text="Submit"))
    ... )
"""

__version__ = "0.1.0"

# Public API exports
from web_healer.config.settings import Settings
from web_healer.engine.models import (
    ElementMetadata,
    ElementReference,
    ResolutionResult,
    ResolveOptions,
)
from web_healer.engine.memory import SelectorMemory
from web_healer.engine.orchestrator import ResolutionOrchestrator
from web_healer.engine.stale_guard import StaleHandleGuard

__all__ = [
    "ResolutionOrchestrator",
    "StaleHandleGuard",
    "SelectorMemory",
    "ElementMetadata",
    "ElementReference",
    "ResolutionResult",
    "ResolveOptions",
    "Settings",
    "__version__",
]
