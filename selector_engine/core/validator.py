from __future__ import annotations

import logging

from selector_engine.config.schema import EngineConfig
from selector_engine.core.document import ParsedDocument, ensure_document
from selector_engine.core.exceptions import InvalidSelectorError
from selector_engine.core.metadata import SelectorResolution
from selector_engine.utils.dom_extract import tag_descriptor

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = EngineConfig()


def resolve(
    selector: str,
    html: str | ParsedDocument,
    config: EngineConfig | None = None,
) -> SelectorResolution:
    """Counts the elements ``selector`` matches in ``html``.

    A selector that cannot be parsed is reported as matching nothing. Only a
    document that cannot be used at all raises.
    """

    settings = config or DEFAULT_CONFIG
    document = ensure_document(html, max_chars=settings.max_document_chars)
    try:
        matches = document.select(selector)
    except InvalidSelectorError as exc:
        logger.debug("Selector rejected during resolution: %s", exc)
        return SelectorResolution(found=False, count=0)
    descriptors = tuple(tag_descriptor(tag) for tag in matches[: settings.max_descriptors])
    logger.debug("Selector %r matched %d element(s): %s", selector, len(matches), ", ".join(descriptors))
    return SelectorResolution(found=bool(matches), count=len(matches), descriptors=descriptors)


def exists_uniquely(
    selector: str,
    html: str | ParsedDocument,
    config: EngineConfig | None = None,
) -> bool:
    resolution = resolve(selector, html, config)
    return resolution.found and resolution.count == 1
