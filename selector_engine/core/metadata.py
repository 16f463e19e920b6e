from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any


class StrategyTier(IntEnum):
    """Robustness order of selector strategies. Higher wins ties."""

    EXTERNAL = 0
    TAG_FALLBACK = 1
    TEXT_CONTENT = 2
    PARENT_RELATION = 3
    SEMANTIC_CLASS = 4
    CLEAN_ID = 5
    ARIA_ROLE = 6
    DATA_ATTRIBUTE = 7


class ResolutionState(str, Enum):
    UNRESOLVED = "UNRESOLVED"
    RESOLVED_UNIQUE = "RESOLVED_UNIQUE"
    RESOLVED_AMBIGUOUS = "RESOLVED_AMBIGUOUS"
    NOT_FOUND = "NOT_FOUND"

    @property
    def terminal(self) -> bool:
        return self is not ResolutionState.UNRESOLVED


class Outcome(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    AMBIGUOUS = "AMBIGUOUS"
    INVALID_SELECTOR = "INVALID_SELECTOR"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"


@dataclass(slots=True)
class ElementCandidate:
    tag: str
    element_id: str
    classes: list[str]
    role: str
    aria_label: str
    test_id_attribute: str
    test_id: str
    text: str
    parent_classes: list[str] = field(default_factory=list)
    grandparent_classes: list[str] = field(default_factory=list)
    same_tag_siblings: int = 0

    @property
    def descriptor(self) -> str:
        summary = self.tag
        if self.element_id:
            summary += f"#{self.element_id}"
        if self.classes:
            summary += "." + ".".join(self.classes[:3])
        return summary


@dataclass(frozen=True, slots=True)
class SelectorCandidate:
    selector: str
    strategy_tier: StrategyTier


@dataclass(frozen=True, slots=True)
class SelectorResolution:
    found: bool
    count: int
    descriptors: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ReliabilityVerdict:
    matches: bool
    match_count: int
    confidence: float
    works: bool
    reason: str


@dataclass(slots=True)
class RankedCandidate:
    candidate: SelectorCandidate
    verdict: ReliabilityVerdict
    order: int

    @property
    def selector(self) -> str:
        return self.candidate.selector

    def sort_key(self) -> tuple[int, float, int, int]:
        return (
            0 if self.verdict.works else 1,
            -self.verdict.confidence,
            -int(self.candidate.strategy_tier),
            self.order,
        )


@dataclass(slots=True)
class ResolutionAttempt:
    key: str
    hint_selector: str
    text_hint: str
    state: str
    selector: str
    confidence: float
    candidate_count: int
    reasoning: str
    success: bool = False
    outcomes: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)
