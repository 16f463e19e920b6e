from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from selector_engine.config.schema import EngineConfig
from selector_engine.core.document import ParsedDocument
from selector_engine.core.metadata import Outcome, ReliabilityVerdict
from selector_engine.core.validator import resolve
from selector_engine.utils.stability import is_generated_identifier

DEFAULT_CONFIG = EngineConfig()
DEFAULT_CONFIDENCE = 0.8
LOW_CONFIDENCE_THRESHOLD = 0.6

_QUOTED = re.compile(r"\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*'")
_ATTRIBUTE_BLOCK = re.compile(r"\[[^\]]*\]")
_ID_FRAGMENT = re.compile(r"#((?:[\w-]|\\.)+)")
_CLASS_FRAGMENT = re.compile(r"\.((?:[\w-]|\\.)+)")
_IDENTIFIER_ATTRIBUTE = re.compile(r"\[\s*(?:id|class)\s*[~|^$*]?=\s*[\"']?([^\"'\]\s]+)")
_POSITION_PSEUDO = re.compile(r":nth-(?:last-)?(?:child|of-type)\b")
_TEXT_PSEUDO = re.compile(r":(?:-soup-)?contains\(|:has-text\(")
_ARIA_ATTRIBUTE = re.compile(r"\[\s*(?:role|aria-label)\s*[~|^$*]?=")
_TAG_CLASS = re.compile(r"(?:^|[\s>+~])[a-zA-Z][\w-]*\.[\w\\-]")


@dataclass(frozen=True, slots=True)
class ShapeRule:
    name: str
    applies: Callable[[str, EngineConfig], bool]
    confidence: float
    reason: str


def _bare(selector: str) -> str:
    return _QUOTED.sub('""', selector)


def _position_based(selector: str, _config: EngineConfig) -> bool:
    return _POSITION_PSEUDO.search(selector) is not None


def _fragile_chain(selector: str, _config: EngineConfig) -> bool:
    bare = _ATTRIBUTE_BLOCK.sub("", _bare(selector))
    return len(_CLASS_FRAGMENT.findall(bare)) > 3 or len(bare.split()) > 4


def _text_match(selector: str, _config: EngineConfig) -> bool:
    return _TEXT_PSEUDO.search(selector) is not None


def _test_id(selector: str, config: EngineConfig) -> bool:
    names = "|".join(re.escape(name) for name in config.test_id_attributes)
    return re.search(rf"\[\s*(?:{names})\s*[~|^$*]?=", selector) is not None


def _aria(selector: str, _config: EngineConfig) -> bool:
    return _ARIA_ATTRIBUTE.search(selector) is not None


def _clean_id(selector: str, _config: EngineConfig) -> bool:
    return bool(_ID_FRAGMENT.search(_ATTRIBUTE_BLOCK.sub("", _bare(selector))))


def _tag_class(selector: str, _config: EngineConfig) -> bool:
    return _TAG_CLASS.search(_ATTRIBUTE_BLOCK.sub("", _bare(selector))) is not None


# First match wins. Penalties come before the attribute shapes they would otherwise hide.
SHAPE_RULES: tuple[ShapeRule, ...] = (
    ShapeRule("position", _position_based, 0.3, "position-based, very fragile"),
    ShapeRule("fragile-chain", _fragile_chain, 0.4, "fragile chain"),
    ShapeRule("text-content", _text_match, 0.6, "text-content match"),
    ShapeRule("test-id", _test_id, 0.95, "test id attribute"),
    ShapeRule("aria", _aria, 0.9, "role/aria attribute"),
    ShapeRule("clean-id", _clean_id, 0.85, "stable id"),
    ShapeRule("tag-class", _tag_class, 0.8, "semantic class"),
)


def shape_rule(selector: str, config: EngineConfig | None = None) -> ShapeRule | None:
    settings = config or DEFAULT_CONFIG
    for rule in SHAPE_RULES:
        if rule.applies(selector, settings):
            return rule
    return None


def shape_confidence(selector: str, config: EngineConfig | None = None) -> tuple[float, str]:
    rule = shape_rule(selector, config)
    if rule is None:
        return DEFAULT_CONFIDENCE, "unique match"
    return rule.confidence, rule.reason


def generated_fragments(selector: str) -> list[str]:
    """Identifier fragments of ``selector`` that look machine-generated."""

    if not isinstance(selector, str):
        return []
    unquoted = _bare(selector)
    identifiers = [value.strip("\"'") for value in _IDENTIFIER_ATTRIBUTE.findall(selector)]
    structural = _ATTRIBUTE_BLOCK.sub("", unquoted)
    identifiers.extend(_ID_FRAGMENT.findall(structural))
    identifiers.extend(_CLASS_FRAGMENT.findall(structural))
    fragments: list[str] = []
    for identifier in identifiers:
        value = identifier.replace("\\", "")
        if is_generated_identifier(value) and value not in fragments:
            fragments.append(value)
    return fragments


def score(
    selector: str,
    html: str | ParsedDocument,
    config: EngineConfig | None = None,
) -> ReliabilityVerdict:
    settings = config or DEFAULT_CONFIG
    resolution = resolve(selector, html, settings)
    if resolution.count == 0:
        return ReliabilityVerdict(matches=False, match_count=0, confidence=0.0, works=False, reason="no match")

    observed, shape_reason = shape_confidence(selector, settings)
    if resolution.count > 1:
        return ReliabilityVerdict(
            matches=True,
            match_count=resolution.count,
            confidence=min(observed, settings.ambiguous_confidence_cap),
            works=False,
            reason=f"ambiguous: {resolution.count} matches",
        )

    fragments = generated_fragments(selector)
    if fragments:
        return ReliabilityVerdict(
            matches=True,
            match_count=1,
            confidence=min(observed, settings.generated_confidence_cap),
            works=False,
            reason=f"generated/unstable pattern: {', '.join(fragments)}",
        )

    return ReliabilityVerdict(matches=True, match_count=1, confidence=observed, works=True, reason=shape_reason)


def classify_outcome(verdict: ReliabilityVerdict) -> Outcome | None:
    if verdict.match_count == 0:
        return Outcome.NOT_FOUND
    if verdict.match_count > 1:
        return Outcome.AMBIGUOUS
    if verdict.confidence <= LOW_CONFIDENCE_THRESHOLD:
        return Outcome.LOW_CONFIDENCE
    return None


def selector_warnings(selector: str) -> list[str]:
    warnings: list[str] = []
    if _POSITION_PSEUDO.search(selector):
        warnings.append("Selector uses :nth-child which may be brittle. Consider using attributes or classes.")
    if len(_ATTRIBUTE_BLOCK.sub("", _bare(selector)).split()) > 5:
        warnings.append("Selector is very specific and may be brittle. Consider simplifying.")
    if not any(marker in selector for marker in ("[", "#", ".")):
        warnings.append("Consider using more specific selectors with classes, IDs, or attributes.")
    return warnings
