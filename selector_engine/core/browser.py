from __future__ import annotations

from selenium.common.exceptions import InvalidSelectorException, WebDriverException
from selenium.webdriver.common.by import By

from selector_engine.core.exceptions import EngineError
from selector_engine.utils.cleaner import clean_selector


class LiveSelectorCheck:
    """Re-validates stored selectors against a page already loaded in a browser.

    The check never navigates; whoever owns the driver decides which page is
    the control DOM.
    """

    def __init__(self, driver) -> None:
        self.driver = driver

    def count(self, selector: str) -> int:
        css = clean_selector(selector)
        if not css:
            return 0
        try:
            return len(self.driver.find_elements(By.CSS_SELECTOR, css))
        except InvalidSelectorException:
            return 0

    def exists_uniquely(self, selector: str) -> bool:
        return self.count(selector) == 1

    def snapshot(self) -> str:
        try:
            return self.driver.page_source or ""
        except WebDriverException as exc:
            raise EngineError(f"Could not read the page source: {exc.msg}") from exc
