"""
Candidate Generator - ranked locator alternatives for an element reference.

Order of the generated list (strict, stable within each group):
1. ORIGINAL - the selector exactly as authored
2. LEARNED  - healed selectors from SelectorMemory, then the knowledge base
3. DERIVED  - heuristics from metadata, then from the original selector's shape

Example:
    >>> gen = CandidateGenerator(max_candidates=8)
    >>> ref = ElementReference("#submit-btn", ElementMetadata(visible_text="Submit"))
    >>> [c.expression for c in gen.generate(ref, "app.example.com")][:2]
    ['#submit-btn', '//*[contains(text(),"Submit")]']
"""

import logging
import re
from typing import Iterable, List, Optional

from web_healer.engine.memory import SelectorMemory
from web_healer.engine.models import (
    CandidateSelector,
    ElementMetadata,
    ElementReference,
    SelectorOrigin,
)
from web_healer.interfaces.knowledge import IKnowledgeBase

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 50

_SIMPLE_ID = re.compile(r"^#([A-Za-z_][\w-]*)$")
_SIMPLE_CLASS = re.compile(r"^\.([A-Za-z_-][\w-]*)$")
_CSS_IDENT = re.compile(r"^-?[A-Za-z_][\w-]*$")
_WHITESPACE = re.compile(r"\s+")


def xpath_literal(value: str) -> str:
    """Quote a string for use inside an XPath expression."""
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    parts = value.split('"')
    return "concat(" + ", '\"', ".join(f'"{part}"' for part in parts) + ")"


def css_string(value: str) -> str:
    """Quote a string for use as a CSS attribute value."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def normalize_expression(expression: str) -> str:
    """Dedupe key: collapsed whitespace and a single quote style."""
    return _WHITESPACE.sub(" ", expression.strip()).replace("'", '"')


def is_bare_text(selector: str) -> bool:
    """A selector that reads like visible text rather than a locator."""
    stripped = selector.strip()
    return not stripped.startswith(("#", ".", "[", "/", "(")) and ">" not in stripped


class CandidateGenerator:
    """
    Produces the ordered, deduplicated candidate list for one resolve() call.

    Pure apart from read-only lookups in the memory and knowledge base.
    """

    def __init__(
        self,
        memory: Optional[SelectorMemory] = None,
        knowledge_base: Optional[IKnowledgeBase] = None,
        max_candidates: int = 8,
    ):
        if max_candidates < 1:
            raise ValueError("max_candidates must be at least 1")
        self.memory = memory
        self.knowledge_base = knowledge_base
        self.max_candidates = max_candidates

    def generate(self, ref: ElementReference, domain_scope: str) -> List[CandidateSelector]:
        original = ref.original_selector
        candidates: List[CandidateSelector] = []
        seen = set()

        def add(expressions: Iterable[str], origin: SelectorOrigin) -> None:
            for expression in expressions:
                if not expression or not expression.strip():
                    continue
                key = normalize_expression(expression)
                if key in seen:
                    continue
                seen.add(key)
                candidates.append(CandidateSelector.create(expression, origin))

        add([original], SelectorOrigin.ORIGINAL)
        add(self._learned(domain_scope, original), SelectorOrigin.LEARNED)
        if ref.metadata is not None:
            add(self._from_metadata(ref.metadata), SelectorOrigin.DERIVED)
        add(self._from_selector(original), SelectorOrigin.DERIVED)

        if len(candidates) > self.max_candidates:
            logger.debug(
                f"Truncating {len(candidates)} candidates to {self.max_candidates} for {original!r}"
            )
        return candidates[: self.max_candidates]

    def _learned(self, domain_scope: str, original: str) -> List[str]:
        learned: List[str] = []
        if self.memory is not None:
            learned.extend(c.expression for c in self.memory.query(domain_scope, original))

        if self.knowledge_base is not None:
            try:
                ranked = self.knowledge_base.get_best_selectors(domain_scope, original)
                learned.extend(r.selector for r in ranked or [])
            except Exception as e:
                # An unavailable knowledge base is the same as an empty one
                logger.warning(f"Knowledge base lookup failed for {original!r}: {e}")
        return learned

    def _from_metadata(self, meta: ElementMetadata) -> List[str]:
        out: List[str] = []

        if meta.id:
            if _CSS_IDENT.match(meta.id):
                out.append(f"#{meta.id}")
            out.append(f"[id={css_string(meta.id)}]")
            out.append(f"//*[@id={xpath_literal(meta.id)}]")

        if meta.name:
            out.append(f"[name={css_string(meta.name)}]")
            out.append(f"//*[@name={xpath_literal(meta.name)}]")

        for cls in meta.class_names:
            if _CSS_IDENT.match(cls):
                out.append(f".{cls}")
            out.append(f"[class*={css_string(cls)}]")

        if meta.visible_text and meta.visible_text.strip():
            text = xpath_literal(meta.visible_text.strip()[:MAX_TEXT_LENGTH])
            out.extend([
                f"//*[contains(text(),{text})]",
                f"//*[normalize-space()={text}]",
                f"//button[contains(.,{text})]",
                f"//a[contains(.,{text})]",
                f"//span[contains(text(),{text})]",
                f"//label[contains(text(),{text})]",
            ])

        if meta.aria_label:
            out.append(f"[aria-label={css_string(meta.aria_label)}]")
            out.append(f"//*[@aria-label={xpath_literal(meta.aria_label)}]")

        if meta.placeholder:
            out.append(f"[placeholder={css_string(meta.placeholder)}]")
            out.append(f"[placeholder*={css_string(meta.placeholder)}]")

        if meta.test_id:
            value = css_string(meta.test_id)
            out.extend([
                f"[data-testid={value}]",
                f"[data-test={value}]",
                f"[data-cy={value}]",
            ])

        return out

    def _from_selector(self, selector: str) -> List[str]:
        selector = selector.strip()

        id_match = _SIMPLE_ID.match(selector)
        if id_match:
            value = id_match.group(1)
            return [
                f"[id={css_string(value)}]",
                f"[id*={css_string(value)}]",
                f"//*[@id={xpath_literal(value)}]",
                f"//*[contains(@id,{xpath_literal(value)})]",
            ]

        class_match = _SIMPLE_CLASS.match(selector)
        if class_match:
            value = class_match.group(1)
            return [
                f"[class*={css_string(value)}]",
                f"//*[contains(@class,{xpath_literal(value)})]",
            ]

        if is_bare_text(selector):
            text = selector[:MAX_TEXT_LENGTH]
            literal = xpath_literal(text)
            return [
                f"//*[contains(text(),{literal})]",
                f"//button[contains(text(),{literal})]",
                f"//a[contains(text(),{literal})]",
                f"//span[contains(text(),{literal})]",
                f"//label[contains(text(),{literal})]",
                f"//*[contains(@value,{literal})]",
                f"[placeholder*={css_string(text)}]",
                f"[aria-label*={css_string(text)}]",
                f"[title*={css_string(text)}]",
            ]

        return []
