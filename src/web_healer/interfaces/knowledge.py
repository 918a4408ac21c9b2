"""
Knowledge Base Interface - durable, cross-session selector learning.

The engine treats the knowledge base as an optional collaborator: when none
is configured, lookups simply return nothing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class RankedSelector:
    """
    A previously successful healed selector.

    Attributes:
        selector: The healed selector expression
        score: Ranking score, higher is better
        success_count: Number of recorded successes
        last_success: ISO timestamp of the last success
    """
    selector: str
    score: float = 0.0
    success_count: int = 0
    last_success: Optional[str] = None


class IKnowledgeBase(ABC):
    """Abstract interface for durable selector knowledge."""

    @abstractmethod
    def get_best_selectors(self, domain_scope: str, original_selector: str) -> List[RankedSelector]:
        """
        Get healed selectors that worked before, best first.

        Args:
            domain_scope: Domain the selector belongs to
            original_selector: The selector as originally authored

        Returns:
            Ranked list, possibly empty
        """
        ...

    @abstractmethod
    def record_success(self, domain_scope: str, original_selector: str, healed_selector: str) -> None:
        """
        Record that healed_selector resolved original_selector.

        Args:
            domain_scope: Domain the selector belongs to
            original_selector: The selector as originally authored
            healed_selector: The selector that actually worked
        """
        ...
