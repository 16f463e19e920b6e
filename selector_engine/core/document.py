from __future__ import annotations

import re
from typing import Iterator

import soupsieve
from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup
from soupsieve import SelectorSyntaxError

from selector_engine.core.exceptions import InvalidDocumentError, InvalidSelectorError

_CONTAINS_PSEUDO = re.compile(r":(?:contains|has-text)\(")


def to_soup_syntax(selector: str) -> str:
    """Rewrites ``:contains()`` and Playwright's ``:has-text()`` to soupsieve's spelling."""

    return _CONTAINS_PSEUDO.sub(":-soup-contains(", selector)


def compile_selector(selector: str) -> soupsieve.SoupSieve:
    if not isinstance(selector, str) or not selector.strip():
        raise InvalidSelectorError("selector must be a non-empty string")
    try:
        return soupsieve.compile(to_soup_syntax(selector.strip()))
    except (SelectorSyntaxError, ValueError, NotImplementedError) as exc:
        raise InvalidSelectorError(f"Invalid selector {selector!r}: {exc}") from exc


def is_parseable(selector: str) -> bool:
    try:
        compile_selector(selector)
    except InvalidSelectorError:
        return False
    return True


class ParsedDocument:
    """Read-only parse of one HTML snapshot, scoped to a single engine call."""

    __slots__ = ("soup", "size")

    def __init__(self, soup: BeautifulSoup, size: int) -> None:
        self.soup = soup
        self.size = size

    @classmethod
    def parse(cls, html: str, max_chars: int | None = None) -> ParsedDocument:
        if not isinstance(html, str):
            raise InvalidDocumentError(f"HTML must be a string, got {type(html).__name__}")
        if max_chars is not None and len(html) > max_chars:
            raise InvalidDocumentError(f"HTML is {len(html)} characters, limit is {max_chars}")
        try:
            soup = BeautifulSoup(html, "html.parser")
        except ParserRejectedMarkup as exc:
            raise InvalidDocumentError(f"HTML could not be parsed: {exc}") from exc
        return cls(soup, len(html))

    @property
    def empty(self) -> bool:
        return self.soup.find(True) is None

    def select(self, selector: str) -> list[Tag]:
        return compile_selector(selector).select(self.soup)

    def elements(self) -> Iterator[Tag]:
        yield from self.soup.find_all(True)


def ensure_document(html: str | ParsedDocument, max_chars: int | None = None) -> ParsedDocument:
    if isinstance(html, ParsedDocument):
        return html
    return ParsedDocument.parse(html, max_chars=max_chars)
