from __future__ import annotations

from bs4 import Tag
from selenium.common.exceptions import InvalidSelectorException

from selector_engine.core.document import ParsedDocument
from selector_engine.core.exceptions import InvalidSelectorError

STOREFRONT_HTML = """
<html>
  <body>
    <header class="site-header">
      <nav class="main-nav" role="navigation" aria-label="Main">
        <a href="/" class="nav-link">Home</a>
        <a href="/collections/all" class="nav-link">Shop</a>
      </nav>
    </header>
    <main id="MainContent">
      <div id="shopify-section-template--25767798276440__main" class="shopify-section">
        <section class="product-info">
          <h1 class="product__title">Trail Runner Jacket</h1>
          <p class="price price--sale">$129.00</p>
          <button data-testid="cta" class="btn btn-primary">Add to cart</button>
          <button id="template--25767798276440" class="btn" aria-label="Buy it now">Buy it now</button>
        </section>
      </div>
      <div class="card"><h3 class="card__heading">Title</h3><p class="card__text">First card</p></div>
      <div class="card"><p class="card__text">Second card</p></div>
    </main>
  </body>
</html>
"""

THREE_BUY_BUTTONS_HTML = """
<div class="actions">
  <button class="buy">Buy</button>
  <button class="buy">Buy</button>
  <button class="buy">Buy</button>
</div>
"""

CARD_GRID_HTML = """
<div class="cards">
  <div class="card"><h3 class="card__heading">Title</h3><p>Body copy</p></div>
  <div class="card"><p>Other body copy</p></div>
</div>
"""

FEATURED_TILES_HTML = """
<div class="grid">
  <div class="tile" id="featured"><span class="tile__badge">New</span></div>
  <div class="tile"><span class="tile__badge">Sale</span></div>
</div>
"""

GENERATED_ID_HTML = '<div id="template--25767798276440">Hero</div>'


def first_tag(html: str, selector: str) -> Tag:
    return ParsedDocument.parse(html).select(selector)[0]


class DocumentBackedDriver:
    """Stands in for a selenium driver by answering CSS lookups from a parsed document."""

    def __init__(self, html: str) -> None:
        self.page_source = html
        self.document = ParsedDocument.parse(html)
        self.lookups: list[tuple[str, str]] = []

    def find_elements(self, by: str, value: str):
        self.lookups.append((by, value))
        try:
            return self.document.select(value)
        except InvalidSelectorError as exc:
            raise InvalidSelectorException(str(exc)) from exc
