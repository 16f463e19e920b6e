from __future__ import annotations

import logging
from dataclasses import dataclass, field

from bs4 import Tag

from selector_engine.config.schema import (
    EngineConfig,
    InjectionPoint,
    NotFoundHint,
    NotFoundResult,
    SelectorHint,
)
from selector_engine.core.document import ParsedDocument
from selector_engine.core.exceptions import InvalidSelectorError
from selector_engine.core.metadata import (
    ElementCandidate,
    Outcome,
    RankedCandidate,
    ResolutionAttempt,
    ResolutionState,
    SelectorCandidate,
    StrategyTier,
)
from selector_engine.core.synthesizer import SelectorSynthesizer, infer_tier
from selector_engine.logging.audit import ResolutionAuditLogger
from selector_engine.utils.cleaner import clean_selector
from selector_engine.utils.dom_extract import describe_element, find_by_text
from selector_engine.utils.scoring import classify_outcome, score, selector_warnings

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTIONS = (
    "Try adding data-testid attributes to elements for more reliable targeting",
    "Consider using more specific text content in the element description",
    "Check if the element exists on the current page",
)


@dataclass(slots=True)
class AnalysisContext:
    """Request-scoped input for one analysis call."""

    html: str | None
    hint: SelectorHint | NotFoundHint | None
    key: str = ""


@dataclass(slots=True)
class _Located:
    state: ResolutionState
    element: Tag | None = None
    origin: str = ""
    match_count: int = 0
    outcomes: list[Outcome] = field(default_factory=list)


class SelectorResolver:
    """Resolves an oracle hint to one element and picks the most reliable selector for it."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        audit_logger: ResolutionAuditLogger | None = None,
        synthesizer: SelectorSynthesizer | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.audit_logger = audit_logger
        self.synthesizer = synthesizer or SelectorSynthesizer(self.config)

    def analyze(self, context: AnalysisContext) -> InjectionPoint | NotFoundResult:
        located = _Located(state=ResolutionState.UNRESOLVED)
        ranked: list[RankedCandidate] = []
        try:
            result = self._analyze(context, located, ranked)
        except Exception:
            try:
                self._audit(context, located, ranked, None)
            except (OSError, TypeError, ValueError):
                logger.exception("Could not record the failed resolution attempt for %r", context.key)
            raise
        self._audit(context, located, ranked, result)
        return result

    def _analyze(
        self,
        context: AnalysisContext,
        located: _Located,
        ranked: list[RankedCandidate],
    ) -> InjectionPoint | NotFoundResult:
        hint = context.hint
        if isinstance(hint, NotFoundHint):
            located.state = ResolutionState.NOT_FOUND
            return NotFoundResult(reason=hint.reason, suggestions=list(hint.suggestions))
        if hint is None or not (hint.supplied_selectors or hint.text_hint):
            return self._not_found(located, "No selector or text hint was supplied")
        if not context.html:
            return self._not_found(located, "The supplied HTML document is empty")

        document = ParsedDocument.parse(context.html, max_chars=self.config.max_document_chars)
        if document.empty:
            return self._not_found(located, "The supplied HTML document has no elements")

        self._locate(document, hint, located)
        if located.element is None:
            return self._not_found(located, self._missing_reason(hint))

        element = describe_element(located.element, self.config.test_id_attributes)
        ranked.extend(self._rank(document, located, element, hint))
        if not ranked:
            return self._not_found(located, f"No selector could address the matched {element.descriptor}")
        return self._injection_point(located, element, ranked)

    def _locate(self, document: ParsedDocument, hint: SelectorHint, located: _Located) -> _Located:
        for selector in hint.supplied_selectors[: self.config.max_supplied_selectors]:
            try:
                matches = document.select(selector)
            except InvalidSelectorError as exc:
                logger.debug("Skipping supplied selector: %s", exc)
                located.outcomes.append(Outcome.INVALID_SELECTOR)
                continue
            if matches:
                return self._settle(located, matches, origin=selector)
            logger.debug("Supplied selector %r matched no elements", selector)

        if hint.text_hint:
            matches = find_by_text(document, hint.text_hint)
            if matches:
                return self._settle(located, matches, origin="")
            logger.debug("Text hint %r matched no elements", hint.text_hint)

        located.state = ResolutionState.NOT_FOUND
        located.outcomes.append(Outcome.NOT_FOUND)
        return located

    @staticmethod
    def _settle(located: _Located, matches: list[Tag], origin: str) -> _Located:
        located.element = matches[0]
        located.origin = origin
        located.match_count = len(matches)
        if len(matches) == 1:
            located.state = ResolutionState.RESOLVED_UNIQUE
        else:
            located.state = ResolutionState.RESOLVED_AMBIGUOUS
            located.outcomes.append(Outcome.AMBIGUOUS)
        return located

    def _rank(
        self,
        document: ParsedDocument,
        located: _Located,
        element: ElementCandidate,
        hint: SelectorHint,
    ) -> list[RankedCandidate]:
        candidates: list[SelectorCandidate] = []
        if located.origin:
            candidates.append(SelectorCandidate(located.origin, infer_tier(located.origin, self.config)))
        candidates.extend(
            SelectorCandidate(selector, infer_tier(selector, self.config))
            for selector in hint.supplied_selectors[: self.config.max_supplied_selectors]
            if selector != located.origin
        )
        candidates.extend(self.synthesizer.synthesize(element))
        candidates.append(SelectorCandidate(element.tag, StrategyTier.TAG_FALLBACK))

        ranked: list[RankedCandidate] = []
        seen: set[str] = set()
        for order, candidate in enumerate(candidates):
            selector = clean_selector(candidate.selector)
            if not selector or selector in seen:
                continue
            try:
                matches = document.select(selector)
            except InvalidSelectorError:
                located.outcomes.append(Outcome.INVALID_SELECTOR)
                continue
            if not any(match is located.element for match in matches):
                continue
            seen.add(selector)
            verdict = score(selector, document, self.config)
            ranked.append(RankedCandidate(SelectorCandidate(selector, candidate.strategy_tier), verdict, order))
        ranked.sort(key=RankedCandidate.sort_key)
        return ranked

    def _injection_point(
        self,
        located: _Located,
        element: ElementCandidate,
        ranked: list[RankedCandidate],
    ) -> InjectionPoint:
        primary = ranked[0]
        if not primary.verdict.works and located.origin:
            origin = clean_selector(located.origin)
            primary = next((item for item in ranked if item.selector == origin), primary)

        confidence = primary.verdict.confidence
        reasoning = [self._source(located)]
        if located.state is ResolutionState.RESOLVED_AMBIGUOUS:
            confidence = min(confidence, self.config.ambiguous_confidence_cap)
            reasoning.append(
                f"ambiguous: {located.match_count} elements matched, using the first in document order"
            )
        reasoning.append(
            f'chose "{primary.selector}" ({primary.verdict.reason}, confidence {confidence:.2f})'
        )
        if not primary.verdict.works:
            reasoning.append("no candidate matched uniquely, keeping the best-effort selector")
        outcome = classify_outcome(primary.verdict)
        if outcome is not None and outcome not in located.outcomes:
            located.outcomes.append(outcome)
        reasoning.extend(selector_warnings(primary.selector))

        alternatives = [item.selector for item in ranked if item is not primary]
        point = InjectionPoint(
            selector=primary.selector,
            confidence=round(confidence, 4),
            alternative_selectors=alternatives[: self.config.max_alternatives],
            reasoning="; ".join(reasoning),
            original_text=element.text[:100] or None,
        )
        logger.info(
            "Resolved %s to %r with confidence %.2f (%d alternatives)",
            element.descriptor,
            point.selector,
            point.confidence,
            len(point.alternative_selectors),
        )
        return point

    @staticmethod
    def _source(located: _Located) -> str:
        if located.origin:
            return f'resolved via supplied selector "{located.origin}"'
        return "resolved via text search"

    @staticmethod
    def _missing_reason(hint: SelectorHint) -> str:
        parts = []
        if hint.supplied_selectors:
            parts.append(f"selectors {', '.join(hint.supplied_selectors)}")
        if hint.text_hint:
            parts.append(f'text "{hint.text_hint}"')
        return f"No element matched {' or '.join(parts)}"

    @staticmethod
    def _not_found(located: _Located, reason: str) -> NotFoundResult:
        located.state = ResolutionState.NOT_FOUND
        if Outcome.NOT_FOUND not in located.outcomes:
            located.outcomes.append(Outcome.NOT_FOUND)
        logger.info("Target element not found: %s", reason)
        return NotFoundResult(reason=reason, suggestions=list(DEFAULT_SUGGESTIONS))

    def _audit(
        self,
        context: AnalysisContext,
        located: _Located,
        ranked: list[RankedCandidate],
        result: InjectionPoint | NotFoundResult | None,
    ) -> None:
        if self.audit_logger is None:
            return
        hint = context.hint
        is_point = isinstance(result, InjectionPoint)
        primary = next((item for item in ranked if is_point and item.selector == result.selector), None)
        attempt = ResolutionAttempt(
            key=context.key,
            hint_selector=hint.primary_selector if isinstance(hint, SelectorHint) else "",
            text_hint=hint.text_hint if isinstance(hint, SelectorHint) else "",
            state=located.state.value,
            selector=result.selector if is_point else "",
            confidence=result.confidence if is_point else 0.0,
            candidate_count=len(ranked),
            reasoning=result.reasoning if is_point else (result.reason if result is not None else ""),
            success=primary is not None and primary.verdict.works,
            outcomes=[outcome.value for outcome in located.outcomes],
            details={
                "candidates": [
                    {
                        "selector": item.selector,
                        "tier": item.candidate.strategy_tier.name,
                        "confidence": item.verdict.confidence,
                        "works": item.verdict.works,
                        "reason": item.verdict.reason,
                    }
                    for item in ranked[:10]
                ],
            },
        )
        self.audit_logger.write(attempt)


def analyze(
    html: str | None,
    hint: SelectorHint | NotFoundHint | None,
    config: EngineConfig | None = None,
) -> InjectionPoint | NotFoundResult:
    return SelectorResolver(config).analyze(AnalysisContext(html=html, hint=hint))
