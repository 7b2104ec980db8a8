"""
Checks against the deployed widget. Opt in with WIDGET_LIVE=1.
"""
import pytest
import pytest_asyncio

from config import Config
from core.errors import VerificationTimeoutError
from pages.events_widget import EventsWidgetPage, ARTIFACT_PATTERN

pytestmark = pytest.mark.network


@pytest_asyncio.fixture
async def live_widget(browser, logger):
    context = await browser.new_context(
        viewport={"width": Config.VIEWPORT_WIDTH, "height": Config.VIEWPORT_HEIGHT},
        permissions=Config.CLIPBOARD_PERMISSIONS
    )
    page = await context.new_page()
    widget = EventsWidgetPage(page, logger)
    await widget.open()
    yield widget
    await context.close()


async def test_live_page_structure(live_widget):
    assert await live_widget.is_loaded()
    for step in range(1, 5):
        assert await live_widget.section_visible(step)


async def test_live_igaming_preview(live_widget):
    await live_widget.select_theme("Igaming")
    await live_widget.set_width(1000)
    await live_widget.set_height(800)
    await live_widget.select_light_theme()

    result = await live_widget.generate_preview()

    assert result.succeeded
    assert ARTIFACT_PATTERN.search(await live_widget.get_generated_code())


async def test_live_negative_width_never_stays_negative(live_widget):
    try:
        observed = await live_widget.set_width(-100)
    except VerificationTimeoutError as e:
        observed = e.observed
    assert not (observed or "").startswith("-")
