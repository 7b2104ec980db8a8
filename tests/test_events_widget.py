"""
EventsWidgetPage end to end on the local widget markup.
"""
import pytest

from core.errors import NotFoundError, VerificationTimeoutError
from pages.events_widget import ARTIFACT_PATTERN, EventsWidgetPage
from conftest import FastConfig, MOCK_CLIPBOARD_JS, NO_CLIPBOARD_JS, action_types


def theme_box(page, value):
    return page.locator(f'input[name="type"][value="{value}"]')


def theme_panel(page):
    return page.locator(".checkselect-popup").nth(0)


LINK_OPTIONS_HTML = """
<div class="field">
    <div class="field-title">Выберите тематику</div>
    <div class="checkselect" style="position: relative; width: 320px">
        <div class="checkselect-title" role="combobox" id="title">Не выбрано</div>
        <div class="checkselect-over" style="position: absolute; top: 0; left: 0; right: 0; height: 30px"
             onclick="var p = document.getElementById('popup'); p.style.display = p.style.display === 'none' ? 'block' : 'none'"></div>
        <div class="checkselect-popup" id="popup" style="display:none">
            <span class="option" onclick="this.classList.add('checkselect-selected'); document.getElementById('title').textContent = this.textContent">Igaming</span>
            <span class="option" onclick="this.classList.add('checkselect-selected'); document.getElementById('title').textContent = this.textContent">Finance</span>
        </div>
    </div>
</div>
"""

TITLE_ONLY_HTML = """
<div class="field">
    <div class="field-title">Выберите тематику</div>
    <div class="checkselect" style="position: relative; width: 320px">
        <div class="checkselect-title" role="combobox">Igaming, Blockchain</div>
        <div class="checkselect-over"></div>
        <div class="checkselect-popup" style="display:none">
            <span class="option">Igaming</span>
            <span class="option">Blockchain</span>
            <span class="option">Finance</span>
        </div>
    </div>
</div>
"""


# ----------------------------------------------------------------------
# Structure
# ----------------------------------------------------------------------

async def test_page_structure(widget):
    assert await widget.is_loaded()
    assert await widget.main_heading.first.is_visible()
    for step in range(1, 5):
        assert await widget.section_visible(step)
    assert await widget.generate_preview_button.is_visible()
    assert await widget.copy_code_button.is_visible()
    assert await widget.theme_combobox.count() == 1
    assert await widget.width_input.get_attribute("id") == "width"
    assert await widget.height_input.get_attribute("id") == "height"
    assert await widget.full_width_checkbox.get_attribute("id") == "full-width"
    assert await widget.dark_theme_radio.get_attribute("id") == "color-dark"


# ----------------------------------------------------------------------
# Themes and countries
# ----------------------------------------------------------------------

async def test_select_theme_checks_option_and_closes_overlay(widget, page):
    await widget.select_theme("Igaming")

    assert await theme_box(page, "igaming").is_checked()
    assert await widget.is_theme_selected("Igaming")
    assert not await widget.is_theme_selected("Blockchain")
    assert not await theme_panel(page).is_visible()


async def test_select_theme_is_idempotent(widget, page, logger):
    await widget.select_theme("Igaming")
    opened = action_types(logger).count("overlay_open")

    await widget.select_theme("Igaming")

    assert await theme_box(page, "igaming").is_checked()
    assert action_types(logger).count("overlay_open") == opened


async def test_select_theme_leaves_a_user_opened_overlay_open(widget, page):
    await page.locator(".checkselect-over").nth(0).click()

    await widget.select_theme("Development")

    assert await theme_box(page, "development").is_checked()
    assert await theme_panel(page).is_visible()


async def test_unknown_theme_names_the_intent_and_restores_overlay(widget, page):
    with pytest.raises(NotFoundError) as exc:
        await widget.select_theme("Несуществующая")

    assert "Несуществующая" in exc.value.intent
    assert not await theme_panel(page).is_visible()


async def test_theme_selection_read_from_the_combobox_title(page, logger):
    await page.set_content(TITLE_ONLY_HTML)
    widget = EventsWidgetPage(page, logger, config=FastConfig)

    assert await widget.is_theme_selected("Igaming")
    assert await widget.is_theme_selected("Blockchain")
    assert not await widget.is_theme_selected("Finance")


async def test_link_style_option_is_clicked_by_text(page, logger):
    await page.set_content(LINK_OPTIONS_HTML)
    widget = EventsWidgetPage(page, logger, config=FastConfig)

    await widget.select_theme("Igaming")

    attempts = [a["details"] for a in logger.read_actions() if a["action_type"] == "strategy_attempt"]
    winners = [a["strategy"] for a in attempts if a["outcome"] == "succeeded"]
    assert winners[-1].startswith("click@text")
    warnings = [a["details"] for a in logger.read_actions() if a["action_type"] == "warning"]
    assert any("no backing checkbox" in w["message"] for w in warnings)
    assert await widget.is_theme_selected("Igaming")
    assert not await widget.is_theme_selected("Finance")
    assert not await page.locator("#popup").is_visible()


async def test_select_all_and_clear_themes(widget, page):
    boxes = page.locator('input[name="type"]')

    await widget.select_all_themes()
    assert all([await boxes.nth(i).is_checked() for i in range(await boxes.count())])

    await widget.clear_themes()
    assert not any([await boxes.nth(i).is_checked() for i in range(await boxes.count())])
    assert not await theme_panel(page).is_visible()


async def test_countries_fall_back_to_the_overlay(widget, page):
    boxes = page.locator('input[name="country"]')

    await widget.select_all_countries()
    assert all([await boxes.nth(i).is_checked() for i in range(await boxes.count())])
    # themes are a different overlay and stay untouched
    assert not await theme_box(page, "igaming").is_checked()

    await widget.clear_countries()
    assert not any([await boxes.nth(i).is_checked() for i in range(await boxes.count())])


# ----------------------------------------------------------------------
# Dimensions, toggles, color scheme
# ----------------------------------------------------------------------

async def test_dimensions_round_trip(widget, page):
    assert await widget.set_width(1000) == "1000"
    assert await widget.set_height(800) == "800"

    assert await page.locator("#width").input_value() == "1000"
    assert await page.locator("#height").input_value() == "800"


async def test_zero_dimension_is_kept(widget):
    assert await widget.set_width(0) == "0"


async def test_negative_dimension_reports_what_the_field_kept(widget):
    with pytest.raises(VerificationTimeoutError) as exc:
        await widget.set_width(-5)

    observed = exc.value.observed
    assert observed == "" or int(observed) >= 0


async def test_full_width_toggle_is_idempotent(widget, page, logger):
    checkbox = page.locator("#full-width")

    assert await widget.set_full_width(True) is True
    assert await checkbox.is_checked()

    attempts = action_types(logger).count("strategy_attempt")
    assert await widget.set_full_width(True) is True
    assert action_types(logger).count("strategy_attempt") == attempts

    assert await widget.set_full_width(False) is False
    assert not await checkbox.is_checked()


async def test_full_height_toggle(widget, page):
    await widget.set_full_height(True)
    assert await page.locator("#full-height").is_checked()
    assert not await page.locator("#full-width").is_checked()


async def test_color_scheme_radios(widget, page):
    await widget.select_dark_theme()
    assert await page.locator("#color-dark").is_checked()
    assert not await page.locator("#color-light").is_checked()

    await widget.select_light_theme()
    assert await page.locator("#color-light").is_checked()


# ----------------------------------------------------------------------
# Preview and copy
# ----------------------------------------------------------------------

async def test_igaming_preview_workflow(widget):
    await widget.select_theme("Igaming")
    await widget.set_width(1000)
    await widget.set_height(800)
    await widget.select_light_theme()

    result = await widget.generate_preview()
    code = await widget.get_generated_code()

    assert result.succeeded
    assert ARTIFACT_PATTERN.search(code)
    assert "type=igaming" in code
    assert 'width="1000"' in code and 'height="800"' in code
    assert "theme=light" in code


async def test_multi_theme_all_countries_dark_workflow(widget):
    await widget.select_theme("Blockchain")
    await widget.select_theme("Development")
    await widget.select_all_countries()
    await widget.set_width(1200)
    await widget.set_height(900)
    await widget.select_dark_theme()

    result = await widget.generate_preview()
    code = await widget.get_generated_code()

    assert result.succeeded
    assert "type=blockchain,development" in code
    assert "countries=all" in code
    assert 'width="1200"' in code and 'height="900"' in code
    assert "theme=dark" in code


async def test_full_width_replaces_the_pixel_width(widget):
    await widget.select_theme("Finance")
    await widget.set_full_width(True)

    await widget.generate_preview()

    assert 'width="100%"' in await widget.get_generated_code()


async def test_preview_without_theme_does_not_raise(widget, logger):
    result = await widget.generate_preview()

    assert not result.succeeded
    assert await widget.get_generated_code() == ""
    verifications = [a for a in logger.read_actions() if a["action_type"] == "verification"]
    assert verifications[-1]["details"]["outcome"] == "timed_out"


async def test_copy_code_matches_clipboard_and_accepts_dialog(widget, page, widget_url):
    await page.add_init_script(MOCK_CLIPBOARD_JS)
    await widget.open(widget_url)
    await widget.select_theme("Igaming")
    await widget.generate_preview()

    result = await widget.copy_code()

    assert result.verified_by == "clipboard"
    assert result.clipboard == result.code
    assert ARTIFACT_PATTERN.search(result.code)
    assert result.dialogs == ["Скопировать код в буфер обмена?"]


async def test_copy_code_degrades_without_clipboard(widget, page, widget_url):
    await page.add_init_script(NO_CLIPBOARD_JS)
    await widget.open(widget_url)
    await widget.select_theme("Igaming")
    await widget.generate_preview()

    result = await widget.copy_code()

    assert result.verified_by == "artifact"
    assert result.clipboard is None
    assert result.code


async def test_grant_clipboard_on_the_context(widget):
    await widget.grant_clipboard()


async def test_copy_code_needs_generated_code(widget):
    with pytest.raises(NotFoundError):
        await widget.copy_code()
