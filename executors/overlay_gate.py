from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional, TypeVar
from playwright.async_api import Page, Locator, Error as PlaywrightError
from rich.console import Console
from core.errors import ActionUnreachableError
from core.logger import EngineLogger
from core.models import OverlaySession, StateKind, VerifiedState
from .state_verifier import StateVerifier

console = Console()

T = TypeVar("T")


class OverlayGate:
    """
    Opens a checkselect-style overlay before option selection and restores it
    afterwards. Several overlays share one page, so they are addressed by the
    order in which they appear. A panel that was already open stays open.
    """

    def __init__(
        self,
        page: Page,
        verifier: StateVerifier,
        logger: EngineLogger,
        overlay_selector: str,
        panel_selector: str,
        timeout_ms: int = 2000
    ):
        self.page = page
        self.verifier = verifier
        self.logger = logger
        self.overlay_selector = overlay_selector
        self.panel_selector = panel_selector
        self.timeout_ms = timeout_ms

    async def panel(self, index: int) -> Optional[Locator]:
        panels = self.page.locator(self.panel_selector)
        if await panels.count() > index:
            return panels.nth(index)
        return None

    async def open(self, index: int, fallback: Optional[Locator] = None) -> OverlaySession:
        session = OverlaySession(index=index, panel=await self.panel(index))
        surfaces = self.page.locator(self.overlay_selector)

        if session.panel is not None and await session.panel.is_visible():
            console.print(f"[dim]   overlay #{index} already open[/dim]")
            self._log("overlay_already_open", session)
            return session

        if await surfaces.count() > index:
            session.surface = surfaces.nth(index)
            await self._click(session.surface, index, force=False)
        elif fallback is not None and await fallback.count():
            # no custom overlay here: poke the native-equivalent control directly
            session.surface = fallback
            session.via_fallback = True
            await self._click(fallback, index, force=True)
        else:
            self._log("overlay_missing", session)
            return session

        if session.panel is None:
            self._log("overlay_opened_without_panel", session)
            return session

        # the click landed on a closed panel, so restoring it is this call's job
        session.opened_here = True
        result = await self._panel_state(session, StateKind.VISIBLE)
        if result.succeeded:
            session.seen_open = True
            console.print(f"[cyan]   🔓 overlay #{index} opened[/cyan]")
        else:
            # the options are usually reachable anyway through forced actions
            self.logger.log_warning(f"overlay #{index} panel did not become visible", {"index": index})
        self._log("overlay_open", session)
        return session

    async def close(self, session: OverlaySession):
        if not session.opened_here:
            return
        try:
            if session.seen_open:
                visible = await session.panel.is_visible()
            else:
                # a slow panel may still be on its way up
                visible = (await self._panel_state(session, StateKind.VISIBLE)).succeeded
            if not visible:
                self._log("overlay_closed_by_action", session)
                return
            await session.surface.click(force=session.via_fallback, timeout=self.timeout_ms)
        except PlaywrightError as e:
            self.logger.log_warning(f"overlay #{session.index} could not be closed: {str(e).splitlines()[0]}")
            return

        result = await self._panel_state(session, StateKind.HIDDEN)
        if not result.succeeded:
            self.logger.log_warning(f"overlay #{session.index} panel still visible after closing")
        console.print(f"[cyan]   🔒 overlay #{session.index} closed[/cyan]")
        self._log("overlay_close", session)

    @asynccontextmanager
    async def opened(self, index: int, fallback: Optional[Locator] = None):
        session = await self.open(index, fallback)
        try:
            yield session
        finally:
            await self.close(session)

    async def with_overlay(
        self,
        index: int,
        body: Callable[[OverlaySession], Awaitable[T]],
        fallback: Optional[Locator] = None
    ) -> T:
        async with self.opened(index, fallback) as session:
            return await body(session)

    async def _panel_state(self, session: OverlaySession, kind: StateKind):
        return await self.verifier.verify(VerifiedState(
            kind, session.panel, f"overlay #{session.index} panel", timeout_ms=self.timeout_ms
        ))

    async def _click(self, surface: Locator, index: int, force: bool):
        try:
            await surface.click(force=force, timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise ActionUnreachableError(f"open overlay #{index}", [str(e).splitlines()[0]])

    def _log(self, event: str, session: OverlaySession):
        self.logger.log_action(event, {
            "index": session.index,
            "opened_here": session.opened_here,
            "seen_open": session.seen_open,
            "via_fallback": session.via_fallback,
            "has_panel": session.panel is not None
        })
