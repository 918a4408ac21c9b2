"""
Diagnostics - events emitted while resolving elements.

Reporters subscribe by event name:

    emitter = DiagnosticsEmitter()
    emitter.on("healed", lambda event: print(event.used_selector))
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, ClassVar, Dict, List, Optional

from web_healer.engine.models import CandidateSelector, InteractabilityReport

logger = logging.getLogger(__name__)


@dataclass
class HealedEvent:
    """An element was resolved through a selector other than the original."""
    name: ClassVar[str] = "healed"
    original_selector: str
    used_selector: CandidateSelector
    attempt_index: int


@dataclass
class ResolutionFailedEvent:
    """Every attempt was exhausted (or the deadline expired)."""
    name: ClassVar[str] = "resolution_failed"
    original_selector: str
    candidates_tried: List[CandidateSelector] = field(default_factory=list)
    reports: List[Optional[InteractabilityReport]] = field(default_factory=list)


@dataclass
class OverlaysDismissedEvent:
    """The remediator dismissed or hid at least one overlay."""
    name: ClassVar[str] = "overlays_dismissed"
    count: int


EVENT_NAMES = (HealedEvent.name, ResolutionFailedEvent.name, OverlaysDismissedEvent.name)


class DiagnosticsEmitter:
    """Synchronous listener registry. Listener errors never reach the engine."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Callable]] = defaultdict(list)

    def on(self, event_name: str, callback: Callable) -> None:
        """Register a callback for an event name."""
        if event_name not in EVENT_NAMES:
            raise ValueError(f"Unknown event: '{event_name}'. Available events: {list(EVENT_NAMES)}")
        self._listeners[event_name].append(callback)

    def off(self, event_name: str, callback: Callable) -> None:
        if callback in self._listeners.get(event_name, []):
            self._listeners[event_name].remove(callback)

    def emit(self, event) -> None:
        for callback in list(self._listeners.get(event.name, [])):
            try:
                callback(event)
            except Exception as e:
                logger.warning(f"Diagnostics listener error for '{event.name}': {e}")
