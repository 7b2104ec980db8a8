from typing import List, Optional, Union
from playwright.async_api import Page, Locator, Error as PlaywrightError
from rich.console import Console
from core.logger import EngineLogger
from core.models import SemanticTarget, Scope

console = Console()

Root = Union[Page, Locator]

# xpath shorthands for walking up from the label text
ANCESTOR_PATHS = {1: "..", 2: "../.."}


class LocatorResolver:
    """
    Turns a SemanticTarget into element handles without asserting existence.

    The widget nests its controls at inconsistent depths relative to their
    labels, so lookups widen: inside the label, its container, the
    container's parent, then a global scan filtered by surrounding text.
    """

    def __init__(self, page: Page, logger: EngineLogger, read_timeout_ms: int = 1000):
        self.page = page
        self.logger = logger
        self.read_timeout_ms = read_timeout_ms

    def _root(self, root: Optional[Root]) -> Root:
        return root if root is not None else self.page

    def anchor(self, target: SemanticTarget, root: Optional[Root] = None) -> Locator:
        """The element holding the label text"""
        return self._root(root).get_by_text(target.pattern()).first

    def scoped(self, target: SemanticTarget, hops: int, root: Optional[Root] = None) -> Locator:
        """Kind-filtered elements nested `hops` levels above the label text"""
        base = self.anchor(target, root)
        if hops:
            base = base.locator(ANCESTOR_PATHS[hops])
        return base.locator(target.kind.selector)

    def labels(self, target: SemanticTarget, root: Optional[Root] = None) -> Locator:
        return self._root(root).locator("label").filter(has_text=target.search_pattern())

    async def locate(self, target: SemanticTarget, scope: Scope, root: Optional[Root] = None) -> List[Locator]:
        """Single-step lookup used by one strategy"""
        if scope == Scope.SCAN:
            return await self.scan(target, root)
        if scope == Scope.TEXT:
            locator = self._root(root).get_by_text(target.pattern())
        elif scope == Scope.LABEL:
            locator = self.labels(target, root)
        else:
            locator = self.scoped(target, scope.hops, root)
        return await self._expand(locator)

    async def resolve(self, target: SemanticTarget, root: Optional[Root] = None) -> List[Locator]:
        """Widening lookup; an empty list is a normal answer"""
        for hops in range(target.relationship.max_hops + 1):
            handles = await self._expand(self.scoped(target, hops, root))
            if handles:
                self._log(target, f"hops={hops}", len(handles))
                return handles

        handles = await self.scan(target, root)
        self._log(target, "scan", len(handles))
        if not handles:
            console.print(f"[dim]   no {target.describe()}[/dim]")
        return handles

    async def scan(self, target: SemanticTarget, root: Optional[Root] = None) -> List[Locator]:
        """
        Every element of the kind (or signature) on the page, kept when the
        text around it matches the label. Parent text is tried for all
        candidates before grandparent text, so the closest label wins.
        """
        candidates = self._root(root).locator(target.scan_selector)
        count = await candidates.count()
        if not count:
            return []

        pattern = target.search_pattern()
        for hops in sorted(ANCESTOR_PATHS):
            matched = []
            for i in range(count):
                element = candidates.nth(i)
                try:
                    text = await element.locator(ANCESTOR_PATHS[hops]).text_content(timeout=self.read_timeout_ms)
                except PlaywrightError:
                    # re-rendered between count() and read
                    continue
                if text and pattern.search(" ".join(text.split())):
                    matched.append(element)
            if matched:
                return matched
        return []

    async def _expand(self, locator: Locator) -> List[Locator]:
        count = await locator.count()
        return [locator.nth(i) for i in range(count)]

    def _log(self, target: SemanticTarget, step: str, matches: int):
        self.logger.log_action("resolve", {
            "target": target.describe(),
            "step": step,
            "matches": matches
        })
