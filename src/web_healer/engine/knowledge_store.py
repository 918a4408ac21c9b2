"""
JSON Knowledge Base - durable selector learning across sessions.

Keeps, per domain, every original selector's healed alternatives with
success counts and last-success timestamps. Ranking favours selectors that
worked more often, then more recently.

File layout:
    {
      "app.example.com": {
        "#old-id": {
          "[data-testid='new-id']": {"success_count": 3, "last_success": "..."}
        }
      }
    }
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Union

from web_healer.interfaces.knowledge import IKnowledgeBase, RankedSelector

logger = logging.getLogger(__name__)


class JsonKnowledgeBase(IKnowledgeBase):
    """
    Knowledge base persisted as a single JSON file.

    Writes are buffered in memory until flush() (or autosave) is called.

    Usage:
        kb = JsonKnowledgeBase("~/.web-healer/knowledge.json")
        kb.record_success("app.example.com", "#old-id", "[data-testid='new-id']")
        kb.flush()
    """

    def __init__(self, path: Union[str, Path], autosave: bool = False):
        self.path = Path(path).expanduser()
        self.autosave = autosave
        self._data: Dict[str, Dict[str, Dict[str, Dict]]] = {}
        self._dirty = False
        self._load()

    def _load(self) -> None:
        """Load stored knowledge from disk."""
        if not self.path.exists():
            return

        try:
            data = json.loads(self.path.read_text())
            if isinstance(data, dict):
                self._data = data
            logger.debug(f"Loaded selector knowledge for {len(self._data)} domains")
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load knowledge base {self.path}: {e}")

    def flush(self) -> None:
        """Persist knowledge to disk if anything changed."""
        if not self._dirty:
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._data, indent=2, sort_keys=True))
            self._dirty = False
            logger.debug(f"Saved selector knowledge for {len(self._data)} domains")
        except OSError as e:
            logger.warning(f"Failed to save knowledge base {self.path}: {e}")

    def get_best_selectors(self, domain_scope: str, original_selector: str) -> List[RankedSelector]:
        healed = self._data.get(domain_scope, {}).get(original_selector, {})
        ranked = [
            RankedSelector(
                selector=selector,
                score=float(stats.get("success_count", 0)),
                success_count=int(stats.get("success_count", 0)),
                last_success=stats.get("last_success"),
            )
            for selector, stats in healed.items()
        ]
        # ISO timestamps sort chronologically as strings
        ranked.sort(key=lambda r: (r.success_count, r.last_success or ""), reverse=True)
        return ranked

    def record_success(self, domain_scope: str, original_selector: str, healed_selector: str) -> None:
        selectors = self._data.setdefault(domain_scope, {}).setdefault(original_selector, {})
        stats = selectors.setdefault(healed_selector, {"success_count": 0, "last_success": None})
        stats["success_count"] = stats.get("success_count", 0) + 1
        stats["last_success"] = datetime.now().isoformat()
        self._dirty = True

        if self.autosave:
            self.flush()

    def domains(self) -> List[str]:
        return sorted(self._data.keys())
