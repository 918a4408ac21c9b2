"""
Interfaces module - Abstract contracts for external collaborators.

The resolution engine depends only on these interfaces, so any browser
binding or knowledge store can be plugged in.
"""

from web_healer.interfaces.driver import IDriverAdapter, STALE_ERROR_PATTERNS
from web_healer.interfaces.knowledge import IKnowledgeBase, RankedSelector

__all__ = [
    "IDriverAdapter",
    "STALE_ERROR_PATTERNS",
    "IKnowledgeBase",
    "RankedSelector",
]
