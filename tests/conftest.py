"""
Shared fixtures: a real headless Chromium and a local copy of the widget markup.
"""
import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from playwright.async_api import Browser, Page, async_playwright

from config import Config
from core.logger import EngineLogger
from pages.events_widget import EventsWidgetPage

FIXTURE_PAGE = Path(__file__).parent / "fixtures" / "eventswidget" / "index.html"

# In-memory clipboard; the page's copy button writes here and the engine reads it back
MOCK_CLIPBOARD_JS = """
(() => {
    const store = { text: '' };
    const clipboard = {
        writeText: (text) => { store.text = text; return Promise.resolve(); },
        readText: () => Promise.resolve(store.text),
    };
    Object.defineProperty(Navigator.prototype, 'clipboard', { get: () => clipboard, configurable: true });
})();
"""

NO_CLIPBOARD_JS = """
Object.defineProperty(Navigator.prototype, 'clipboard', { get: () => undefined, configurable: true });
"""


class FastConfig(Config):
    """Local markup answers instantly; keep failing paths short"""
    STRATEGY_TIMEOUT_MS = 500
    VERIFY_TIMEOUT_MS = 1000
    OVERLAY_TIMEOUT_MS = 1000
    PREVIEW_TIMEOUT_MS = 2000


def pytest_collection_modifyitems(config: pytest.Config, items) -> None:
    if os.getenv("WIDGET_LIVE") == "1":
        return
    skip_live = pytest.mark.skip(reason="set WIDGET_LIVE=1 to run against the live widget")
    for item in items:
        if "network" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture
def widget_url() -> str:
    return FIXTURE_PAGE.resolve().as_uri()


@pytest_asyncio.fixture
async def browser() -> AsyncGenerator[Browser, None]:
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True)
        try:
            yield browser
        finally:
            await browser.close()


@pytest_asyncio.fixture
async def page(browser: Browser) -> AsyncGenerator[Page, None]:
    context = await browser.new_context(viewport={"width": 1280, "height": 720})
    page = await context.new_page()
    yield page
    await context.close()


@pytest.fixture
def logger(tmp_path: Path):
    logger = EngineLogger(tmp_path / "output")
    yield logger
    logger.close()


@pytest_asyncio.fixture
async def widget(page: Page, logger: EngineLogger, widget_url: str) -> EventsWidgetPage:
    widget = EventsWidgetPage(page, logger, config=FastConfig)
    await widget.open(widget_url)
    return widget


def action_types(logger: EngineLogger):
    return [entry["action_type"] for entry in logger.read_actions()]
