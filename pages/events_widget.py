"""
EventsWidgetPage - page object for the events widget configurator.

One method per widget step. Each method resolves the control the widget
actually rendered, acts on it through an ordered fallback chain and checks
the resulting state before returning.
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from playwright.async_api import Page, Locator, Dialog, Error as PlaywrightError
from rich.console import Console

from config import Config
from core.errors import ExternalUnavailableError, NotFoundError, VerificationTimeoutError
from core.logger import EngineLogger
from core.models import (
    Action, ElementKind, Relationship, Scope, SemanticTarget, StateKind,
    Strategy, VerifiedState, VerifyResult,
)
from executors import (
    LocatorResolver, StateVerifier, StrategyChainExecutor, OverlayGate,
    fallback_chain, choice_chain, click_chain,
)
from executors.locator_resolver import Root
from executors.state_verifier import read_text

console = Console()

THEME_LABEL = "Выберите тематику"
COUNTRY_LABEL = "Выберите страны"
WIDTH_LABEL = "Ширина, px:"
HEIGHT_LABEL = "Высота, px:"
FULL_WIDTH_LABEL = "на всю ширину контейнера"
FULL_HEIGHT_LABEL = "на всю высоту блока"
LIGHT_THEME_LABEL = "Светлая тема:"
DARK_THEME_LABEL = "Темная тема:"
SELECT_ALL_TEXT = "Выбрать все"
ALL_TEXT = "Все"
ALL_COUNTRIES_TEXT = "Все страны"
CLEAR_TEXT = "Очистить"
GENERATE_PREVIEW_TEXT = "Сгенерировать превью"
COPY_CODE_TEXT = "Скопировать код"

ARTIFACT_SELECTOR = 'textarea[disabled], textarea[readonly], input[disabled]'
ARTIFACT_PATTERN = re.compile(r"iframe|script", re.IGNORECASE)

THEME_OVERLAY = 0
COUNTRY_OVERLAY = 1

READ_CLIPBOARD_JS = """
async () => {
    if (!navigator.clipboard || typeof navigator.clipboard.readText !== 'function') {
        return null;
    }
    return await navigator.clipboard.readText();
}
"""

COMBOBOX_TEXT_JS = """
el => {
    if (el.tagName === 'SELECT') {
        return Array.from(el.selectedOptions).map(o => o.textContent).join(', ');
    }
    return el.value || el.textContent || '';
}
"""


@dataclass
class CopyResult:
    code: str
    clipboard: Optional[str] = None
    verified_by: str = "clipboard"  # or "artifact" when the clipboard cannot be read
    dialogs: List[str] = field(default_factory=list)


class EventsWidgetPage:

    def __init__(self, page: Page, logger: EngineLogger, config=Config):
        self.page = page
        self.logger = logger
        self.config = config

        self.verifier = StateVerifier(logger, poll_interval_ms=config.POLL_INTERVAL_MS)
        self.resolver = LocatorResolver(page, logger)
        self.chain = StrategyChainExecutor(page, self.resolver, logger, timeout_ms=config.STRATEGY_TIMEOUT_MS)
        self.gate = OverlayGate(
            page, self.verifier, logger,
            overlay_selector=config.OVERLAY_SELECTOR,
            panel_selector=config.PANEL_SELECTOR,
            timeout_ms=config.OVERLAY_TIMEOUT_MS
        )

        self.width_target = SemanticTarget(WIDTH_LABEL, ElementKind.TEXT_INPUT, Relationship.SIBLING)
        self.height_target = SemanticTarget(HEIGHT_LABEL, ElementKind.TEXT_INPUT, Relationship.SIBLING)
        self.full_width_target = SemanticTarget(FULL_WIDTH_LABEL, ElementKind.CHECKBOX, Relationship.SIBLING)
        self.full_height_target = SemanticTarget(FULL_HEIGHT_LABEL, ElementKind.CHECKBOX, Relationship.SIBLING)
        self.light_theme_target = SemanticTarget(LIGHT_THEME_LABEL, ElementKind.RADIO, Relationship.SIBLING)
        self.dark_theme_target = SemanticTarget(DARK_THEME_LABEL, ElementKind.RADIO, Relationship.SIBLING)

        # Read-only handles for structural assertions
        self.main_heading = page.locator('h1')
        self.step1_section = page.get_by_text(re.compile(r"Шаг 1", re.IGNORECASE)).first
        self.step2_section = page.get_by_text(re.compile(r"Шаг 2", re.IGNORECASE)).first
        self.step3_section = page.get_by_text(re.compile(r"Шаг 3", re.IGNORECASE)).first
        self.step4_section = page.get_by_text(re.compile(r"Шаг 4", re.IGNORECASE)).first
        self.theme_combobox = self.resolver.scoped(SemanticTarget(THEME_LABEL, ElementKind.COMBOBOX), 1).first
        self.country_combobox = self.resolver.scoped(SemanticTarget(COUNTRY_LABEL, ElementKind.COMBOBOX), 1).first
        self.width_input = self.resolver.scoped(self.width_target, 1).first
        self.height_input = self.resolver.scoped(self.height_target, 1).first
        self.full_width_checkbox = self.resolver.scoped(self.full_width_target, 1).first
        self.full_height_checkbox = self.resolver.scoped(self.full_height_target, 1).first
        self.light_theme_radio = self.resolver.scoped(self.light_theme_target, 1).first
        self.dark_theme_radio = self.resolver.scoped(self.dark_theme_target, 1).first
        self.generate_preview_button = page.locator(f'button:has-text("{GENERATE_PREVIEW_TEXT}")')
        self.copy_code_button = page.locator(f'button:has-text("{COPY_CODE_TEXT}")')
        # candidates only: a script-assigned textarea value is invisible to has_text filters
        self.generated_code = page.locator(ARTIFACT_SELECTOR)
        self.preview_container = page.locator('[id*="preview"], [class*="preview"], iframe')

    # ------------------------------------------------------------------
    # Navigation and structure
    # ------------------------------------------------------------------

    async def open(self, url: Optional[str] = None):
        target = url or self.config.widget_url()
        console.print(f"[cyan]🌐 Navigating to {target}...[/cyan]")
        await self.page.goto(target, timeout=self.config.NAVIGATION_TIMEOUT)
        await self.page.wait_for_load_state("networkidle", timeout=self.config.NAVIGATION_TIMEOUT)
        self.logger.log_action("navigate", {"url": self.page.url})

    async def is_loaded(self) -> bool:
        return "eventswidget" in self.page.url

    def step_section(self, step: int) -> Locator:
        return {
            1: self.step1_section,
            2: self.step2_section,
            3: self.step3_section,
            4: self.step4_section,
        }[step]

    async def section_visible(self, step: int) -> bool:
        return await self.step_section(step).is_visible()

    async def grant_clipboard(self):
        try:
            await self.page.context.grant_permissions(self.config.CLIPBOARD_PERMISSIONS)
        except PlaywrightError as e:
            raise ExternalUnavailableError("clipboard permissions", str(e).splitlines()[0])

    # ------------------------------------------------------------------
    # Step 1: themes
    # ------------------------------------------------------------------

    def _option(self, name: str, signature: str) -> SemanticTarget:
        return SemanticTarget(name, ElementKind.CHECKBOX, Relationship.ANCESTOR, exact=True, signature=signature)

    async def _option_checkbox(self, target: SemanticTarget, root: Optional[Root]) -> Optional[Locator]:
        handles = await self.resolver.resolve(target, root)
        return handles[0] if handles else None

    async def select_theme(self, name: str):
        intent = f"select theme '{name}'"
        target = self._option(name, self.config.THEME_CHECKBOX_SIGNATURE)

        if await self.is_theme_selected(name):
            console.print(f"[dim]   theme '{name}' already selected[/dim]")
            return

        async with self.gate.opened(THEME_OVERLAY, fallback=self.theme_combobox) as session:
            await self.chain.run(fallback_chain(target, Action.CHECK), intent, root=session.panel)
            checkbox = await self._option_checkbox(target, session.panel)
            if checkbox is None:
                # link-style option, nothing to read back
                self.logger.log_warning(f"{intent}: no backing checkbox to verify", {"intent": intent})
                return
            await self.verifier.ensure(VerifiedState(
                StateKind.CHECKED, checkbox, f"theme '{name}'", timeout_ms=self.config.VERIFY_TIMEOUT_MS
            ), intent)

    async def is_theme_selected(self, name: str) -> bool:
        """Reads the backing checkbox; the panel is never toggled to find out"""
        target = self._option(name, self.config.THEME_CHECKBOX_SIGNATURE)
        checkbox = await self._option_checkbox(target, await self.gate.panel(THEME_OVERLAY))
        if checkbox is not None:
            try:
                return await checkbox.is_checked(timeout=self.config.STRATEGY_TIMEOUT_MS)
            except PlaywrightError:
                pass

        if await self.theme_combobox.count():
            try:
                shown = await self.theme_combobox.evaluate(COMBOBOX_TEXT_JS, timeout=self.config.STRATEGY_TIMEOUT_MS)
            except PlaywrightError:
                shown = ""
            if shown and target.search_pattern().search(shown):
                return True

        selected = self.page.locator('.checkselect-selected, [class*="selected"]').filter(has_text=target.search_pattern())
        return await selected.count() > 0

    async def select_all_themes(self):
        strategies = click_chain(SELECT_ALL_TEXT) + click_chain(ALL_TEXT, exact=True)
        strategies.append(Strategy(Action.CLICK, SemanticTarget(SELECT_ALL_TEXT, ElementKind.LABEL), Scope.LABEL))
        await self._bulk(THEME_OVERLAY, self.theme_combobox, strategies, "select all themes",
                         self.config.THEME_CHECKBOX_SIGNATURE, checked=True)

    async def clear_themes(self):
        strategies = click_chain(CLEAR_TEXT)
        strategies.append(Strategy(Action.CLICK, SemanticTarget(CLEAR_TEXT, ElementKind.LABEL), Scope.LABEL))
        await self._bulk(THEME_OVERLAY, self.theme_combobox, strategies, "clear themes",
                         self.config.THEME_CHECKBOX_SIGNATURE, checked=False)

    # ------------------------------------------------------------------
    # Step 2: countries
    # ------------------------------------------------------------------

    def _native_country_select(self, label: Optional[str]) -> List[Strategy]:
        combobox = SemanticTarget(COUNTRY_LABEL, ElementKind.COMBOBOX, Relationship.SIBLING)
        return [Strategy(Action.SELECT, combobox, scope, value=label, force=False)
                for scope in (Scope.INSIDE, Scope.PARENT)]

    async def select_all_countries(self):
        intent = "select all countries"
        report = await self.chain.execute(self._native_country_select(ALL_COUNTRIES_TEXT), intent)
        if report.succeeded:
            return

        strategies = click_chain(ALL_COUNTRIES_TEXT, SELECT_ALL_TEXT)
        strategies.append(Strategy(Action.CLICK, SemanticTarget(ALL_COUNTRIES_TEXT, ElementKind.LABEL), Scope.LABEL))
        await self._bulk(COUNTRY_OVERLAY, self.country_combobox, strategies, intent,
                         self.config.COUNTRY_CHECKBOX_SIGNATURE, checked=True)

    async def clear_countries(self):
        intent = "clear countries"
        report = await self.chain.execute(self._native_country_select(None), intent)
        if report.succeeded:
            return

        strategies = click_chain(CLEAR_TEXT)
        strategies.append(Strategy(Action.CLICK, SemanticTarget(CLEAR_TEXT, ElementKind.LABEL), Scope.LABEL))
        await self._bulk(COUNTRY_OVERLAY, self.country_combobox, strategies, intent,
                         self.config.COUNTRY_CHECKBOX_SIGNATURE, checked=False)

    async def _bulk(self, index: int, fallback: Locator, strategies: List[Strategy], intent: str,
                    signature: str, checked: bool):
        async with self.gate.opened(index, fallback=fallback) as session:
            await self.chain.run(strategies, intent, root=session.panel)
            root = session.panel if session.panel is not None else self.page
            boxes = root.locator(signature)
            kind = StateKind.CHECKED if checked else StateKind.UNCHECKED
            for i in range(await boxes.count()):
                await self.verifier.ensure(VerifiedState(
                    kind, boxes.nth(i), f"{intent} option #{i}", timeout_ms=self.config.VERIFY_TIMEOUT_MS
                ), intent)

    # ------------------------------------------------------------------
    # Step 3: block size
    # ------------------------------------------------------------------

    async def set_width(self, width: int) -> str:
        return await self._set_dimension(self.width_target, width, "width")

    async def set_height(self, height: int) -> str:
        return await self._set_dimension(self.height_target, height, "height")

    async def _set_dimension(self, target: SemanticTarget, value: int, name: str) -> str:
        """
        Replace the field content and wait for the widget to echo it back.
        The widget may reject or clamp input; the raised error then carries
        what the field actually holds and the caller decides what is acceptable.
        """
        intent = f"set {name} to {value}"
        expected = str(value)
        await self.chain.run(fallback_chain(target, Action.FILL, value=expected), intent)
        field_ = await self._require(target, intent)
        result = await self.verifier.ensure(VerifiedState(
            StateKind.VALUE, field_, f"{name} field", expected=expected, timeout_ms=self.config.VERIFY_TIMEOUT_MS
        ), intent)
        return result.observed

    # ------------------------------------------------------------------
    # Toggles and color scheme
    # ------------------------------------------------------------------

    async def set_full_width(self, enabled: bool) -> bool:
        return await self._set_toggle(self.full_width_target, enabled, "full width")

    async def set_full_height(self, enabled: bool) -> bool:
        return await self._set_toggle(self.full_height_target, enabled, "full height")

    async def _set_toggle(self, target: SemanticTarget, enabled: bool, name: str) -> bool:
        intent = f"set {name} to {enabled}"
        checkbox = await self._require(target, intent)
        if await checkbox.is_checked(timeout=self.config.STRATEGY_TIMEOUT_MS) == enabled:
            console.print(f"[dim]   {name} already {enabled}[/dim]")
            return enabled

        action = Action.CHECK if enabled else Action.UNCHECK
        await self.chain.run(choice_chain(target, action), intent)
        await self.verifier.ensure(VerifiedState(
            StateKind.CHECKED if enabled else StateKind.UNCHECKED, checkbox, f"{name} toggle",
            timeout_ms=self.config.VERIFY_TIMEOUT_MS
        ), intent)
        return enabled

    async def select_light_theme(self):
        await self._select_choice(self.light_theme_target, "light color scheme")

    async def select_dark_theme(self):
        await self._select_choice(self.dark_theme_target, "dark color scheme")

    async def _select_choice(self, target: SemanticTarget, name: str):
        intent = f"select {name}"
        radio = await self._require(target, intent)
        if await radio.is_checked(timeout=self.config.STRATEGY_TIMEOUT_MS):
            return

        await self.chain.run(choice_chain(target, Action.CHECK), intent)
        await self.verifier.ensure(VerifiedState(
            StateKind.CHECKED, radio, f"{name} radio", timeout_ms=self.config.VERIFY_TIMEOUT_MS
        ), intent)

    # ------------------------------------------------------------------
    # Preview and code
    # ------------------------------------------------------------------

    async def generate_preview(self) -> VerifyResult:
        """Waits for the artifact instead of sleeping; a missing artifact is reported, not raised"""
        await self.chain.run(click_chain(GENERATE_PREVIEW_TEXT, force=False), "generate preview")
        result = await self.verifier.poll(
            self._find_artifact,
            f"generated code: text matching /{ARTIFACT_PATTERN.pattern}/",
            self.config.PREVIEW_TIMEOUT_MS
        )
        if not result.succeeded:
            self.logger.log_warning("generated code did not appear", {"timeout_ms": self.config.PREVIEW_TIMEOUT_MS})
        return result

    async def _find_artifact(self) -> Tuple[bool, Optional[str]]:
        """First read-only field holding an embed snippet"""
        candidates = self.generated_code
        for i in range(await candidates.count()):
            try:
                text = await read_text(candidates.nth(i), self.verifier.read_timeout_ms)
            except PlaywrightError:
                continue
            if text and ARTIFACT_PATTERN.search(text):
                return True, text
        return False, None

    async def get_generated_code(self) -> str:
        found, text = await self._find_artifact()
        return text if found else ""

    async def read_clipboard(self) -> str:
        try:
            text = await self.page.evaluate(READ_CLIPBOARD_JS)
        except PlaywrightError as e:
            raise ExternalUnavailableError("clipboard", str(e).splitlines()[0])
        if text is None:
            raise ExternalUnavailableError("clipboard", "navigator.clipboard.readText is not available")
        return text

    async def copy_code(self) -> CopyResult:
        """
        Click copy, accepting a permission dialog if one shows up, then
        compare the clipboard with the artifact. Without a readable clipboard
        only the non-empty artifact can be vouched for.
        """
        intent = "copy code"
        code = await self.get_generated_code()
        if not code:
            raise NotFoundError(intent, ["generated code"])

        result = CopyResult(code=code)

        async def accept(dialog: Dialog):
            result.dialogs.append(dialog.message)
            self.logger.log_action("dialog_accepted", {"type": dialog.type, "message": dialog.message})
            await dialog.accept()

        # a dialog may arrive any time until the clipboard has been checked
        self.page.on("dialog", accept)
        try:
            await self.chain.run(click_chain(COPY_CODE_TEXT, force=False), intent)
            return await self._verify_copy(result, intent)
        finally:
            self.page.remove_listener("dialog", accept)

    async def _verify_copy(self, result: CopyResult, intent: str) -> CopyResult:
        code = result.code

        async def clipboard_matches():
            try:
                text = await self.read_clipboard()
            except ExternalUnavailableError:
                return False, None
            return text == code, text

        try:
            await self.read_clipboard()
        except ExternalUnavailableError as e:
            self.logger.log_warning(f"{intent}: {e}; verified the artifact only")
            result.verified_by = "artifact"
            return result

        check = await self.verifier.poll(clipboard_matches, "clipboard equals generated code", self.config.VERIFY_TIMEOUT_MS)
        result.clipboard = check.observed
        if not check.succeeded:
            raise VerificationTimeoutError(intent, "clipboard == generated code", check.observed, self.config.VERIFY_TIMEOUT_MS)
        console.print(f"[green]   ✅ clipboard holds {len(code)} chars of generated code[/green]")
        return result

    # ------------------------------------------------------------------

    async def _require(self, target: SemanticTarget, intent: str) -> Locator:
        handles = await self.resolver.resolve(target)
        if not handles:
            raise NotFoundError(intent, [target.describe()])
        return handles[0]
