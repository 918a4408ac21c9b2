"""
In-memory page used by the engine tests.

FakeDriver answers the in-page scripts by identity, so the engine can be
driven through every branch without a browser.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from web_healer.engine.remediation import (
    DISMISS_OVERLAYS_JS,
    DOM_STABLE_JS,
    NETWORK_IDLE_JS,
    SCROLL_INTO_VIEW_JS,
)
from web_healer.engine.verifier import INTERACTABILITY_JS
from web_healer.interfaces.driver import IDriverAdapter


@dataclass(eq=False)
class FakeNode:
    """A located element and the state the interactability check reads."""
    label: str = "node"
    visible: bool = True
    in_viewport: bool = True
    covered_by: Optional[str] = None
    disabled: bool = False
    stale: bool = False


class FakeDriver(IDriverAdapter):
    """
    Page model: a dict of expression -> FakeNode.

    Overlays listed in ``dismissible`` are removed by the overlay script;
    any other ``covered_by`` value survives dismissal.
    """

    def __init__(
        self,
        nodes: Optional[Dict[str, FakeNode]] = None,
        url: str = "https://app.example.com/login",
    ):
        self.nodes: Dict[str, FakeNode] = dict(nodes or {})
        self._url = url
        self.dismissible: List[str] = []
        self.locate_errors: Dict[str, Exception] = {}
        self.evaluate_errors: Dict[str, Exception] = {}
        self.dom_stable_result: Any = True
        self.network_idle_result: Any = True
        self.on_dom_stable: Optional[Callable[[], None]] = None
        self.locate_delay: float = 0.0

        self.locate_calls: List[tuple] = []
        self.scripts: List[str] = []
        self.clicked: List[FakeNode] = []

    @property
    def url(self) -> str:
        return self._url

    async def locate_by_css(self, expression: str, timeout_ms: float) -> Optional[Any]:
        return await self._locate("css", expression, timeout_ms)

    async def locate_by_xpath(self, expression: str, timeout_ms: float) -> Optional[Any]:
        return await self._locate("xpath", expression, timeout_ms)

    async def _locate(self, kind: str, expression: str, timeout_ms: float) -> Optional[Any]:
        self.locate_calls.append((kind, expression, timeout_ms))
        if self.locate_delay:
            await asyncio.sleep(self.locate_delay)
        if expression in self.locate_errors:
            raise self.locate_errors[expression]
        return self.nodes.get(expression)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        name = self._script_name(script)
        self.scripts.append(name)
        if name in self.evaluate_errors:
            raise self.evaluate_errors[name]

        if name == "interactability":
            return self._check(arg)
        if name == "dismiss_overlays":
            return self._dismiss()
        if name == "scroll_into_view":
            if arg.in_viewport:
                return False
            arg.in_viewport = True
            return True
        if name == "dom_stable":
            if self.on_dom_stable is not None:
                self.on_dom_stable()
            return self.dom_stable_result
        if name == "network_idle":
            return self.network_idle_result
        raise AssertionError(f"unexpected script: {script[:40]!r}")

    async def click(self, handle: Any) -> None:
        if handle.stale:
            raise RuntimeError("Element is not attached to the DOM")
        self.clicked.append(handle)

    async def type(self, handle: Any, text: str) -> None:
        if handle.stale:
            raise RuntimeError("Element is not attached to the DOM")

    async def hover(self, handle: Any) -> None:
        if handle.stale:
            raise RuntimeError("Element is not attached to the DOM")

    # ==================== Helpers ====================

    @staticmethod
    def _script_name(script: str) -> str:
        names = {
            INTERACTABILITY_JS: "interactability",
            DISMISS_OVERLAYS_JS: "dismiss_overlays",
            SCROLL_INTO_VIEW_JS: "scroll_into_view",
            DOM_STABLE_JS: "dom_stable",
            NETWORK_IDLE_JS: "network_idle",
        }
        return names.get(script, "unknown")

    def _check(self, node: FakeNode) -> Dict[str, Any]:
        if node.stale:
            raise RuntimeError("Element is not attached to the DOM")
        return {
            "visible": node.visible,
            "inViewport": node.in_viewport,
            "notCovered": node.covered_by is None,
            "notDisabled": not node.disabled,
            "isInteractable": (
                node.visible and node.in_viewport
                and node.covered_by is None and not node.disabled
            ),
            "occludingDescriptor": node.covered_by,
        }

    def _dismiss(self) -> int:
        removed = 0
        for overlay in list(self.dismissible):
            self.dismissible.remove(overlay)
            removed += 1
            for node in self.nodes.values():
                if node.covered_by == overlay:
                    node.covered_by = None
        return removed

    def located(self) -> List[str]:
        """Expressions passed to locate, in call order."""
        return [expression for _, expression, _ in self.locate_calls]
