from dataclasses import replace
from typing import List, Optional
from playwright.async_api import Page, Locator, Error as PlaywrightError
from rich.console import Console
from core.errors import NotFoundError, ActionUnreachableError
from core.logger import EngineLogger
from core.models import (
    Action, ActionOutcome, ChainReport, ElementKind, Scope, SemanticTarget,
    Strategy, StrategyAttempt,
)
from .locator_resolver import LocatorResolver, Root

console = Console()

# Last resort for controls that exist logically but never receive pointer events
FORCE_CHECKED_JS = """
(el, checked) => {
    el.checked = checked;
    el.dispatchEvent(new Event('input', { bubbles: true }));
    el.dispatchEvent(new Event('change', { bubbles: true }));
    return el.checked;
}
"""

_HOP_SCOPES = [Scope.INSIDE, Scope.PARENT, Scope.GRANDPARENT]


def _hop_scopes(target: SemanticTarget) -> List[Scope]:
    return _HOP_SCOPES[:target.relationship.max_hops + 1]


def fallback_chain(target: SemanticTarget, action: Action = Action.CHECK, value: Optional[str] = None) -> List[Strategy]:
    """
    Cheap local attempts first, forceful global mutation last:
    control in the text node, in its parent, two levels up, click the text,
    click a <label>, then scan every control of the signature.
    """
    chain = [Strategy(action, target, scope, value=value) for scope in _hop_scopes(target)]
    if action in (Action.CHECK, Action.UNCHECK, Action.CLICK):
        chain.append(Strategy(Action.CLICK, target, Scope.TEXT))
        chain.append(Strategy(Action.CLICK, target, Scope.LABEL))
    chain.append(Strategy(action, target, Scope.SCAN, value=value))
    return chain


def choice_chain(target: SemanticTarget, action: Action = Action.CHECK) -> List[Strategy]:
    """Toggles and radios hidden behind a <label for=...>: the label goes before the bare text"""
    label = replace(target, kind=ElementKind.LABEL)
    scopes = _hop_scopes(target)
    chain = [Strategy(action, target, scope) for scope in scopes]
    chain += [Strategy(Action.CLICK, label, scope) for scope in scopes]
    chain.append(Strategy(Action.CLICK, target, Scope.TEXT))
    chain.append(Strategy(action, target, Scope.SCAN))
    return chain


def click_chain(*labels: str, exact: bool = False, force: bool = True) -> List[Strategy]:
    """Click whichever of several alternative texts exists"""
    return [
        Strategy(Action.CLICK, SemanticTarget(label, ElementKind.LABEL, exact=exact), Scope.TEXT, force=force)
        for label in labels
    ]


class StrategyChainExecutor:
    """Runs strategies strictly in order; per-strategy errors are soft"""

    def __init__(self, page: Page, resolver: LocatorResolver, logger: EngineLogger, timeout_ms: int = 2000):
        self.page = page
        self.resolver = resolver
        self.logger = logger
        self.timeout_ms = timeout_ms

    async def execute(self, strategies: List[Strategy], intent: str, root: Optional[Root] = None) -> ChainReport:
        report = ChainReport(intent=intent)
        console.print(f"[cyan]🔗 {intent} ({len(strategies)} strategies)[/cyan]")

        for strategy in strategies:
            handles = await self.resolver.locate(strategy.target, strategy.scope, root)
            if not handles:
                self._record(report, StrategyAttempt(strategy.name, ActionOutcome.SKIPPED))
                continue

            errors = []
            for handle in handles:
                try:
                    await self._dispatch(strategy, handle)
                    break
                except PlaywrightError as e:
                    errors.append(str(e).splitlines()[0])
            else:
                self._record(report, StrategyAttempt(strategy.name, ActionOutcome.FAILED, len(handles), errors[-1]))
                console.print(f"[dim]   ✗ {strategy.name}: {errors[-1]}[/dim]")
                continue

            self._record(report, StrategyAttempt(strategy.name, ActionOutcome.SUCCEEDED, len(handles)))
            report.outcome = ActionOutcome.SUCCEEDED
            report.winner = strategy.name
            console.print(f"[green]   ✅ {strategy.name}[/green]")
            return report

        report.outcome = ActionOutcome.FAILED
        return report

    async def run(self, strategies: List[Strategy], intent: str, root: Optional[Root] = None) -> ChainReport:
        """Like execute(), but an exhausted chain raises a typed error naming the intent"""
        report = await self.execute(strategies, intent, root)
        if report.succeeded:
            return report

        if report.all_skipped:
            error = NotFoundError(intent, [a.strategy for a in report.attempts])
        else:
            error = ActionUnreachableError(intent, [
                f"{a.strategy}: {a.error}" for a in report.attempts if a.outcome == ActionOutcome.FAILED
            ])
        console.print(f"[red]   ❌ {error}[/red]")
        self.logger.log_error(type(error).__name__, str(error), {"intent": intent})
        raise error

    async def _dispatch(self, strategy: Strategy, handle: Locator):
        timeout = self.timeout_ms
        action = strategy.action

        if action in (Action.CHECK, Action.UNCHECK):
            checked = action == Action.CHECK
            if strategy.scope == Scope.SCAN:
                await self.force_checked(handle, checked)
            else:
                await handle.set_checked(checked, force=strategy.force, timeout=timeout)
        elif action == Action.CLICK:
            await handle.click(force=strategy.force, timeout=timeout)
        elif action == Action.FILL:
            await handle.fill(strategy.value or "", force=strategy.force, timeout=timeout)
        elif action == Action.SELECT:
            if strategy.value is None:
                await handle.select_option(index=0, force=strategy.force, timeout=timeout)
            else:
                await handle.select_option(label=strategy.value, force=strategy.force, timeout=timeout)
        else:
            raise ValueError(f"Unsupported action: {action}")

    async def force_checked(self, handle: Locator, checked: bool):
        """Pointer dispatch first; direct property mutation plus synthetic events if that cannot land"""
        try:
            await handle.set_checked(checked, force=True, timeout=self.timeout_ms)
            return
        except PlaywrightError as e:
            self.logger.log_action("force_mutation", {"checked": checked, "reason": str(e).splitlines()[0]})
        await handle.evaluate(FORCE_CHECKED_JS, checked, timeout=self.timeout_ms)

    def _record(self, report: ChainReport, attempt: StrategyAttempt):
        report.attempts.append(attempt)
        self.logger.log_action("strategy_attempt", {
            "intent": report.intent,
            "strategy": attempt.strategy,
            "outcome": attempt.outcome.value,
            "matches": attempt.matches,
            "error": attempt.error
        })
