from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from selector_engine.config.schema import NotFoundHint, SelectorHint
from selector_engine.core.exceptions import SelectorValidationError


def check_selector(selector: str) -> str:
    candidate = selector.strip()
    if not candidate:
        raise SelectorValidationError("Oracle returned an empty selector")
    if "\n" in candidate or "\r" in candidate:
        raise SelectorValidationError("Oracle returned a multiline selector")
    if "```" in candidate:
        raise SelectorValidationError("Oracle returned markdown instead of a selector")
    return candidate


def _usable(selector: str) -> bool:
    try:
        check_selector(selector)
    except SelectorValidationError:
        return False
    return True


def parse_oracle_response(payload: str | dict[str, Any]) -> SelectorHint | NotFoundHint:
    """Turns a raw oracle answer into a typed hint.

    Alternative selectors that fail the sanity checks are dropped; a bad primary
    selector is an error because nothing else in the answer can stand in for it.
    """

    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise SelectorValidationError("Oracle response is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise SelectorValidationError("Oracle response must be a JSON object")

    try:
        if payload.get("NOT_FOUND"):
            return NotFoundHint.model_validate(payload)
        hint = SelectorHint.model_validate(payload)
    except ValidationError as exc:
        raise SelectorValidationError(str(exc)) from exc

    primary = check_selector(hint.primary_selector) if hint.primary_selector.strip() else ""
    if not primary and not hint.text_hint:
        raise SelectorValidationError("Oracle response has neither a selector nor an element identifier")
    return hint.model_copy(
        update={
            "primary_selector": primary,
            "alternative_selectors": [item.strip() for item in hint.alternative_selectors if _usable(item)],
        }
    )
