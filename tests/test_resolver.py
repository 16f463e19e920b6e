from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from selector_engine.config.schema import InjectionPoint, NotFoundHint, NotFoundResult, SelectorHint
from selector_engine.core.exceptions import InvalidDocumentError
from selector_engine.core.resolver import AnalysisContext, SelectorResolver, analyze
from selector_engine.core.validator import exists_uniquely
from selector_engine.logging.audit import ResolutionAuditLogger
from tests.helpers import CARD_GRID_HTML, FEATURED_TILES_HTML, THREE_BUY_BUTTONS_HTML


def _assert_well_formed(point: InjectionPoint) -> None:
    assert point.selector not in point.alternative_selectors
    assert len(set(point.alternative_selectors)) == len(point.alternative_selectors)
    assert len(point.alternative_selectors) <= 5
    assert not any(":contains(" in item for item in [point.selector, *point.alternative_selectors])


def test_test_id_hint_is_kept_as_primary(storefront_html):
    point = analyze(storefront_html, SelectorHint(primary_selector='[data-testid="cta"]'))
    assert isinstance(point, InjectionPoint)
    assert point.selector == '[data-testid="cta"]'
    assert point.confidence >= 0.9
    assert point.original_text == "Add to cart"
    assert "button.btn-primary" in point.alternative_selectors
    _assert_well_formed(point)


def test_stored_selector_revalidates_against_same_markup(storefront_html):
    point = analyze(storefront_html, SelectorHint(primary_selector="button.btn-primary"))
    snapshot = str(storefront_html)
    assert exists_uniquely(point.selector, snapshot)


def test_generated_hint_is_replaced_by_stable_alternative(storefront_html):
    point = analyze(storefront_html, SelectorHint(primary_selector="#template--25767798276440"))
    assert isinstance(point, InjectionPoint)
    assert point.selector == 'button[aria-label="Buy it now"]'
    assert point.confidence == pytest.approx(0.9)
    assert "template--" not in point.selector
    _assert_well_formed(point)


def test_ambiguous_hint_degrades_confidence():
    point = analyze(THREE_BUY_BUTTONS_HTML, SelectorHint(primary_selector=".buy"))
    assert isinstance(point, InjectionPoint)
    assert point.selector == ".buy"
    assert point.confidence <= 0.3
    assert "ambiguous" in point.reasoning
    assert "best-effort" in point.reasoning


def test_ambiguous_hint_pins_first_match_with_unique_alternative():
    point = analyze(FEATURED_TILES_HTML, SelectorHint(primary_selector=".tile"))
    assert point.selector == "#featured"
    assert point.confidence <= 0.3
    assert "ambiguous: 2 elements matched" in point.reasoning
    assert exists_uniquely(point.selector, FEATURED_TILES_HTML)


def test_text_fallback_when_selector_misses(storefront_html):
    hint = SelectorHint(primary_selector=".does-not-exist", element_identifier="  trail runner JACKET ")
    point = analyze(storefront_html, hint)
    assert isinstance(point, InjectionPoint)
    assert point.selector == "h1.product__title"
    assert point.confidence == pytest.approx(0.8)
    assert point.original_text == "Trail Runner Jacket"
    assert "text search" in point.reasoning


def test_card_heading_found_by_text():
    point = analyze(CARD_GRID_HTML, SelectorHint(element_identifier="Title"))
    assert point.selector == "h3.card__heading"
    assert exists_uniquely(point.selector, CARD_GRID_HTML)


def test_invalid_supplied_selector_is_skipped(storefront_html):
    hint = SelectorHint(primary_selector="div[", alternative_selectors=['[data-testid="cta"]'])
    point = analyze(storefront_html, hint)
    assert point.selector == '[data-testid="cta"]'


def test_unmatched_hint_is_not_found(storefront_html):
    result = analyze(storefront_html, SelectorHint(primary_selector=".nope", element_identifier="Nonexistent"))
    assert isinstance(result, NotFoundResult)
    assert ".nope" in result.reason
    assert "Nonexistent" in result.reason
    assert result.suggestions


def test_oracle_not_found_passes_through_unchanged(storefront_html):
    hint = NotFoundHint(reason="No checkout button on this page", suggestions=["Try the cart page"])
    result = analyze(storefront_html, hint)
    assert isinstance(result, NotFoundResult)
    assert result.reason == "No checkout button on this page"
    assert result.suggestions == ["Try the cart page"]
    assert result.model_dump(by_alias=True)["NOT_FOUND"] is True


@pytest.mark.parametrize(
    ("html", "hint"),
    [
        ("", SelectorHint(primary_selector="div")),
        (None, SelectorHint(primary_selector="div")),
        ("<!-- nothing here -->", SelectorHint(primary_selector="div")),
        ("<div>content</div>", None),
        ("<div>content</div>", SelectorHint()),
    ],
)
def test_empty_input_is_not_found(html, hint):
    assert isinstance(analyze(html, hint), NotFoundResult)


def test_non_string_document_is_a_hard_error():
    with pytest.raises(InvalidDocumentError):
        analyze(12345, SelectorHint(primary_selector="div"))


@pytest.mark.parametrize(
    "hint",
    [
        SelectorHint(primary_selector='[data-testid="cta"]'),
        SelectorHint(primary_selector=".btn"),
        SelectorHint(primary_selector="section button"),
        SelectorHint(primary_selector=".card"),
        SelectorHint(element_identifier="Second card"),
        SelectorHint(element_identifier="Shop"),
    ],
)
def test_confident_selectors_are_unique(hint, storefront_html):
    point = analyze(storefront_html, hint)
    assert isinstance(point, InjectionPoint)
    _assert_well_formed(point)
    if point.confidence > 0.3:
        assert exists_uniquely(point.selector, storefront_html)


def test_analysis_is_deterministic(storefront_html):
    hint = SelectorHint(primary_selector=".btn")
    first = analyze(storefront_html, hint).model_dump(exclude={"timestamp"})
    second = analyze(storefront_html, hint).model_dump(exclude={"timestamp"})
    assert first == second


def test_concurrent_calls_do_not_interfere(storefront_html):
    jobs = [
        (storefront_html, SelectorHint(primary_selector='[data-testid="cta"]')),
        (THREE_BUY_BUTTONS_HTML, SelectorHint(primary_selector=".buy")),
        (CARD_GRID_HTML, SelectorHint(element_identifier="Title")),
    ] * 4
    expected = [analyze(html, hint).model_dump(exclude={"timestamp"}) for html, hint in jobs]
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda job: analyze(*job).model_dump(exclude={"timestamp"}), jobs))
    assert results == expected


def test_resolution_attempts_are_audited(tmp_path, storefront_html):
    audit_logger = ResolutionAuditLogger(tmp_path)
    resolver = SelectorResolver(audit_logger=audit_logger)

    point = resolver.analyze(
        AnalysisContext(storefront_html, SelectorHint(primary_selector='[data-testid="cta"]'), key="add_to_cart")
    )
    resolver.analyze(AnalysisContext(storefront_html, SelectorHint(primary_selector=".nope"), key="missing"))
    resolver.analyze(AnalysisContext(THREE_BUY_BUTTONS_HTML, SelectorHint(primary_selector=".buy"), key="buy"))

    attempts = audit_logger.read_attempts()
    assert [item["state"] for item in attempts] == ["RESOLVED_UNIQUE", "NOT_FOUND", "RESOLVED_AMBIGUOUS"]
    assert attempts[0]["selector"] == point.selector
    assert attempts[0]["candidate_count"] > 1
    assert attempts[0]["details"]["candidates"][0]["tier"] == "DATA_ATTRIBUTE"
    assert [item["success"] for item in attempts] == [True, False, False]
    assert attempts[1]["outcomes"] == ["NOT_FOUND"]
    assert attempts[2]["selector"] == ".buy"
    assert audit_logger.read_overrides() == {"add_to_cart": '[data-testid="cta"]'}


def test_failed_analysis_is_still_audited(tmp_path):
    audit_logger = ResolutionAuditLogger(tmp_path)
    resolver = SelectorResolver(audit_logger=audit_logger)
    with pytest.raises(InvalidDocumentError):
        resolver.analyze(AnalysisContext(["<div>"], SelectorHint(primary_selector="div"), key="broken"))
    attempts = audit_logger.read_attempts()
    assert attempts[0]["state"] == "UNRESOLVED"
    assert attempts[0]["selector"] == ""


def test_audit_failure_does_not_mask_document_error(tmp_path):
    class FullDiskAuditLogger(ResolutionAuditLogger):
        def write(self, attempt):
            raise OSError("No space left on device")

    resolver = SelectorResolver(audit_logger=FullDiskAuditLogger(tmp_path))
    with pytest.raises(InvalidDocumentError):
        resolver.analyze(AnalysisContext(12345, SelectorHint(primary_selector="div"), key="broken"))


def test_audit_failure_surfaces_on_completed_analysis(tmp_path, storefront_html):
    class FullDiskAuditLogger(ResolutionAuditLogger):
        def write(self, attempt):
            raise OSError("No space left on device")

    resolver = SelectorResolver(audit_logger=FullDiskAuditLogger(tmp_path))
    with pytest.raises(OSError, match="No space left"):
        resolver.analyze(AnalysisContext(storefront_html, SelectorHint(primary_selector=".btn-primary"), key="cta"))


def test_multi_word_aria_label_keeps_its_confidence():
    html = '<div class="actions"><button aria-label="Add this item to your cart">Add</button><button>Save</button></div>'
    point = analyze(html, SelectorHint(primary_selector='button[aria-label="Add this item to your cart"]'))
    assert point.selector == 'button[aria-label="Add this item to your cart"]'
    assert point.confidence == pytest.approx(0.9)
