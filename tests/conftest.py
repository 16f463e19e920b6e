from __future__ import annotations

from pathlib import Path

import pytest

from selector_engine.config.loader import ConfigLoader
from tests.helpers import STOREFRONT_HTML


@pytest.fixture()
def engine_config():
    config_path = Path(__file__).resolve().parents[1] / "config" / "engine.json"
    return ConfigLoader.load(config_path)


@pytest.fixture()
def storefront_html() -> str:
    return STOREFRONT_HTML
