"""Identifier stability heuristics.

Every heuristic is a named rule so that it can be audited and tested on its
own. Generated rules describe identifiers produced by templating or build
systems; shape rules describe identifiers that look hand-authored. A class name
is stable only when a shape rule matches and no generated rule does.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

GENERATED = "generated"
STABLE = "stable"


@dataclass(frozen=True, slots=True)
class StabilityRule:
    name: str
    pattern: re.Pattern[str]
    verdict: str
    rationale: str
    rank: int = 0

    def matches(self, value: str) -> bool:
        return self.pattern.search(value) is not None


def _rule(name: str, pattern: str, verdict: str, rationale: str, rank: int = 0, flags: int = 0) -> StabilityRule:
    return StabilityRule(name, re.compile(pattern, flags), verdict, rationale, rank)


GENERATED_RULES: tuple[StabilityRule, ...] = (
    _rule("numeric", r"^\d+$", GENERATED, "purely numeric identifier"),
    _rule("hex-run", r"^[a-f0-9]{8,}$", GENERATED, "long hexadecimal run", flags=re.IGNORECASE),
    _rule("alphanumeric-run", r"^[a-z0-9]{20,}$", GENERATED, "long alphanumeric run", flags=re.IGNORECASE),
    _rule("timestamp-suffix", r"-{1,2}\d{10,}", GENERATED, "ten or more digits after a dash"),
    _rule("template-token", r"[A-Za-z]--\d+(?:$|[-_])", GENERATED, "word--digits template token"),
    _rule("numbered-segments", r"^[a-z]+-\d+-\d+", GENERATED, "word followed by numbered segments"),
    _rule("hashed-suffix", r"[-_](?=[a-z]*\d)[a-z0-9]{6,}$", GENERATED, "hash-like suffix", flags=re.IGNORECASE),
    _rule("mixed-case-hash", r"(?=[A-Za-z0-9]*[A-Z])(?=[A-Za-z0-9]*[a-z])(?=[A-Za-z0-9]*\d)[A-Za-z0-9]{10,}",
          GENERATED, "mixed-case hash segment"),
    _rule("shopify-template", r"template--", GENERATED, "theme template section identifier"),
    _rule("shopify-section", r"shopify-section-", GENERATED, "theme section wrapper identifier"),
    _rule("numbered-slide", r"slide-\d+", GENERATED, "numbered carousel slide"),
    _rule("numbered-section", r"section-\d+", GENERATED, "numbered section"),
    _rule("numbered-block", r"block-\d+", GENERATED, "numbered block"),
    _rule("embedded-section", r"-section-[\w-]*\d", GENERATED, "section identifier with embedded number"),
)

STABLE_SHAPE_RULES: tuple[StabilityRule, ...] = (
    _rule("bem-element", r"^[a-z]+(?:-[a-z]+)*__[a-z]+(?:-[a-z]+)*$", STABLE, "BEM block__element", rank=0),
    _rule("kebab-case", r"^[a-z]+-[a-z]+$", STABLE, "two-word kebab-case", rank=1),
    _rule("triple-kebab", r"^[a-z]+-[a-z]+-[a-z]+$", STABLE, "three-word kebab-case", rank=1),
    _rule(
        "bem-modifier",
        r"^[a-z]+(?:-[a-z]+)*(?:__[a-z]+(?:-[a-z]+)*)?--[a-z]+(?:-[a-z]+)*$",
        STABLE,
        "BEM block--modifier",
        rank=2,
    ),
    _rule("single-word", r"^[a-z]+$", STABLE, "single lowercase word", rank=3),
)


def explain_identifier(value: object) -> list[StabilityRule]:
    """Returns every rule that matches ``value``, generated rules first."""

    if not isinstance(value, str) or not value:
        return []
    return [rule for rule in (*GENERATED_RULES, *STABLE_SHAPE_RULES) if rule.matches(value)]


def is_generated_identifier(value: object) -> bool:
    if not isinstance(value, str) or not value:
        return False
    return any(rule.matches(value) for rule in GENERATED_RULES)


def is_stable_class_name(value: object) -> bool:
    return stability_rank(value) is not None


def stability_rank(value: object) -> int | None:
    """Lower is more stable. ``None`` means the identifier is treated as unstable."""

    if not isinstance(value, str) or not value or is_generated_identifier(value):
        return None
    ranks = [rule.rank for rule in STABLE_SHAPE_RULES if rule.matches(value)]
    return min(ranks) if ranks else None


def rank_stable_classes(classes: Iterable[str]) -> list[str]:
    ranked: list[tuple[int, int, str]] = []
    seen: set[str] = set()
    for index, name in enumerate(classes):
        if name in seen:
            continue
        seen.add(name)
        rank = stability_rank(name)
        if rank is not None:
            ranked.append((rank, index, name))
    ranked.sort()
    return [name for _, _, name in ranked]
