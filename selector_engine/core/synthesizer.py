from __future__ import annotations

import logging
from typing import Iterator

import soupsieve

from selector_engine.config.schema import EngineConfig
from selector_engine.core.document import is_parseable
from selector_engine.core.metadata import ElementCandidate, SelectorCandidate, StrategyTier
from selector_engine.utils.scoring import shape_rule
from selector_engine.utils.stability import is_generated_identifier, rank_stable_classes

logger = logging.getLogger(__name__)

_TIER_BY_SHAPE = {
    "test-id": StrategyTier.DATA_ATTRIBUTE,
    "aria": StrategyTier.ARIA_ROLE,
    "clean-id": StrategyTier.CLEAN_ID,
    "tag-class": StrategyTier.SEMANTIC_CLASS,
    "text-content": StrategyTier.TEXT_CONTENT,
}


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _classes(tag: str, classes: list[str]) -> str:
    return tag + "".join(f".{soupsieve.escape(name)}" for name in classes)


def infer_tier(selector: str, config: EngineConfig | None = None) -> StrategyTier:
    """Best-effort tier for a selector that was not produced by the synthesizer."""

    rule = shape_rule(selector, config)
    if rule is not None and rule.name in _TIER_BY_SHAPE:
        return _TIER_BY_SHAPE[rule.name]
    stripped = selector.strip()
    if " " in stripped or ">" in stripped:
        return StrategyTier.PARENT_RELATION
    if "." in stripped:
        return StrategyTier.SEMANTIC_CLASS
    if stripped.replace("-", "").isalnum():
        return StrategyTier.TAG_FALLBACK
    return StrategyTier.EXTERNAL


class SelectorSynthesizer:
    """Enumerates alternative selectors for one resolved element, most robust first."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()

    def synthesize(self, element: ElementCandidate) -> list[SelectorCandidate]:
        candidates: list[SelectorCandidate] = []
        seen: set[str] = set()
        for candidate in self._strategies(element):
            if candidate.selector in seen:
                continue
            if not is_parseable(candidate.selector):
                logger.debug("Dropping unparseable synthesized selector %r", candidate.selector)
                continue
            seen.add(candidate.selector)
            candidates.append(candidate)
            if len(candidates) >= self.config.max_candidates:
                break
        return candidates

    def _strategies(self, element: ElementCandidate) -> Iterator[SelectorCandidate]:
        tag = element.tag
        own_classes = rank_stable_classes(element.classes)

        if element.test_id:
            yield SelectorCandidate(
                f"[{element.test_id_attribute}={_quote(element.test_id)}]", StrategyTier.DATA_ATTRIBUTE
            )
        if element.role:
            yield SelectorCandidate(f"{tag}[role={_quote(element.role)}]", StrategyTier.ARIA_ROLE)
        if element.aria_label:
            yield SelectorCandidate(f"{tag}[aria-label={_quote(element.aria_label)}]", StrategyTier.ARIA_ROLE)
        if element.element_id and not is_generated_identifier(element.element_id):
            yield SelectorCandidate(f"#{soupsieve.escape(element.element_id)}", StrategyTier.CLEAN_ID)

        yield from self._class_combinations(tag, own_classes)

        text_length = len(element.text)
        if self.config.text_min_length < text_length < self.config.text_max_length:
            yield SelectorCandidate(f"{tag}:contains({_quote(element.text)})", StrategyTier.TEXT_CONTENT)

        parent_classes = rank_stable_classes(element.parent_classes)
        if parent_classes:
            parent = f".{soupsieve.escape(parent_classes[0])}"
            yield SelectorCandidate(f"{parent} {tag}", StrategyTier.PARENT_RELATION)
            yield SelectorCandidate(f"{parent} > {tag}", StrategyTier.PARENT_RELATION)
            if own_classes:
                yield SelectorCandidate(f"{parent} {_classes(tag, own_classes[:1])}", StrategyTier.PARENT_RELATION)

        grandparent_classes = rank_stable_classes(element.grandparent_classes)
        if grandparent_classes:
            yield SelectorCandidate(
                f".{soupsieve.escape(grandparent_classes[0])} {tag}", StrategyTier.PARENT_RELATION
            )

        if element.same_tag_siblings == 0:
            yield SelectorCandidate(tag, StrategyTier.TAG_FALLBACK)

    def _class_combinations(self, tag: str, classes: list[str]) -> Iterator[SelectorCandidate]:
        if not classes:
            return
        yield SelectorCandidate(_classes(tag, classes[:1]), StrategyTier.SEMANTIC_CLASS)
        if len(classes) >= 2:
            yield SelectorCandidate(_classes(tag, classes[:2]), StrategyTier.SEMANTIC_CLASS)
        if 2 < len(classes) <= self.config.max_class_combination:
            yield SelectorCandidate(_classes(tag, classes), StrategyTier.SEMANTIC_CLASS)


def synthesize(element: ElementCandidate, config: EngineConfig | None = None) -> list[str]:
    return [candidate.selector for candidate in SelectorSynthesizer(config).synthesize(element)]
