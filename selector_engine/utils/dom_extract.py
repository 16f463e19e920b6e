from __future__ import annotations

from typing import Iterable

from bs4 import BeautifulSoup, Tag

from selector_engine.core.document import ParsedDocument
from selector_engine.core.metadata import ElementCandidate

DEFAULT_TEST_ID_ATTRIBUTES = ("data-testid", "data-test", "data-cy", "data-qa")


def normalized_text(tag: Tag) -> str:
    return " ".join(tag.get_text(" ", strip=True).split())


def class_list(tag: Tag | None) -> list[str]:
    if tag is None or isinstance(tag, BeautifulSoup):
        return []
    value = tag.get("class") or []
    if isinstance(value, str):
        value = value.split()
    return [item for item in value if item]


def tag_descriptor(tag: Tag) -> str:
    summary = tag.name
    element_id = tag.get("id")
    if element_id:
        summary += f"#{element_id}"
    classes = class_list(tag)
    if classes:
        summary += "." + ".".join(classes[:3])
    return summary


def describe_element(
    tag: Tag,
    test_id_attributes: Iterable[str] = DEFAULT_TEST_ID_ATTRIBUTES,
) -> ElementCandidate:
    test_id_attribute = ""
    test_id = ""
    for attribute in test_id_attributes:
        value = tag.get(attribute)
        if isinstance(value, str) and value.strip():
            test_id_attribute, test_id = attribute, value.strip()
            break

    parent = tag.parent if isinstance(tag.parent, Tag) else None
    grandparent = parent.parent if parent is not None and isinstance(parent.parent, Tag) else None
    siblings = 0
    if parent is not None:
        siblings = sum(1 for item in parent.find_all(tag.name, recursive=False) if item is not tag)

    return ElementCandidate(
        tag=tag.name,
        element_id=(tag.get("id") or "").strip(),
        classes=class_list(tag),
        role=(tag.get("role") or "").strip(),
        aria_label=(tag.get("aria-label") or "").strip(),
        test_id_attribute=test_id_attribute,
        test_id=test_id,
        text=normalized_text(tag),
        parent_classes=class_list(parent),
        grandparent_classes=class_list(grandparent),
        same_tag_siblings=siblings,
    )


def find_by_text(document: ParsedDocument, text: str) -> list[Tag]:
    """Innermost elements whose whitespace-normalized text equals ``text``, ignoring case."""

    target = " ".join(text.split()).lower()
    if not target:
        return []
    matched = [tag for tag in document.elements() if normalized_text(tag).lower() == target]
    ancestors: set[int] = set()
    for tag in matched:
        ancestors.update(id(parent) for parent in tag.parents)
    return [tag for tag in matched if id(tag) not in ancestors]
