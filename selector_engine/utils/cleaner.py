from __future__ import annotations

import re

_TEXT_PSEUDO = re.compile(
    r":(?:-soup-contains|contains|has-text)\(\s*(?:\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*'|[^)]*)\s*\)"
)
_WHITESPACE = re.compile(r"\s+")


def clean_selector(selector: str) -> str:
    """Strips text pseudo-classes that browsers do not implement and normalizes spacing.

    Removal repeats until nothing changes, so ``clean_selector`` is idempotent even
    when a removal splices two fragments into a new pseudo-class.
    """

    cleaned = selector or ""
    while True:
        stripped = _TEXT_PSEUDO.sub("", cleaned)
        if stripped == cleaned:
            break
        cleaned = stripped
    return _WHITESPACE.sub(" ", cleaned).strip()
