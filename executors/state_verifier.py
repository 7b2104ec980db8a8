import asyncio
from typing import Awaitable, Callable, Optional, Tuple
from playwright.async_api import Locator, Error as PlaywrightError
from rich.console import Console
from core.errors import VerificationTimeoutError
from core.logger import EngineLogger
from core.models import StateKind, VerifiedState, VerifyOutcome, VerifyResult

console = Console()

Condition = Callable[[], Awaitable[Tuple[bool, object]]]


class StateVerifier:
    """
    Polls an observable property until it matches or the bound elapses.
    Only observes; never clicks, fills or toggles.
    """

    def __init__(self, logger: EngineLogger, poll_interval_ms: int = 100, read_timeout_ms: int = 500):
        self.logger = logger
        self.poll_interval_ms = poll_interval_ms
        self.read_timeout_ms = read_timeout_ms

    async def observe(self, state: VerifiedState) -> Tuple[bool, object]:
        locator = state.locator
        try:
            if state.kind in (StateKind.CHECKED, StateKind.UNCHECKED):
                checked = await locator.is_checked(timeout=self.read_timeout_ms)
                return checked == (state.kind == StateKind.CHECKED), checked
            if state.kind == StateKind.VALUE:
                value = await locator.input_value(timeout=self.read_timeout_ms)
                return value == state.expected, value
            if state.kind == StateKind.VISIBLE:
                visible = await locator.is_visible()
                return visible, visible
            if state.kind == StateKind.HIDDEN:
                visible = await locator.is_visible()
                return not visible, visible
            if state.kind == StateKind.MATCHES:
                if not await locator.is_visible():
                    return False, None
                text = await read_text(locator, self.read_timeout_ms)
                return bool(text and state.pattern.search(text)), text
        except PlaywrightError:
            # detached or not rendered yet
            return False, None
        raise ValueError(f"Unknown state kind: {state.kind}")

    async def poll(self, condition: Condition, description: str, timeout_ms: int) -> VerifyResult:
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + timeout_ms / 1000
        while True:
            ok, observed = await condition()
            now = loop.time()
            elapsed = int((now - started) * 1000)
            if ok:
                result = VerifyResult(VerifyOutcome.SUCCEEDED, observed, elapsed)
                break
            if now >= deadline:
                result = VerifyResult(VerifyOutcome.TIMED_OUT, observed, elapsed)
                break
            await asyncio.sleep(self.poll_interval_ms / 1000)

        self.logger.log_action("verification", {
            "description": description,
            "outcome": result.outcome.value,
            "observed": result.observed if isinstance(result.observed, (str, bool, int, type(None))) else str(result.observed),
            "elapsed_ms": result.elapsed_ms
        })
        return result

    async def verify(self, state: VerifiedState) -> VerifyResult:
        return await self.poll(
            lambda: self.observe(state),
            f"{state.description}: {state.expectation()}",
            state.timeout_ms
        )

    async def ensure(self, state: VerifiedState, intent: Optional[str] = None) -> VerifyResult:
        """Essential checks: a timeout propagates"""
        result = await self.verify(state)
        if not result.succeeded:
            console.print(f"[red]   ❌ {state.description} never reached {state.expectation()}[/red]")
            error = VerificationTimeoutError(intent or state.description, state.expectation(), result.observed, state.timeout_ms)
            self.logger.log_error("verification_timeout", str(error), {"observed": str(result.observed)})
            raise error
        return result


async def read_text(locator: Locator, timeout_ms: int) -> str:
    """Form fields report their value, everything else its text"""
    try:
        return await locator.input_value(timeout=timeout_ms)
    except PlaywrightError:
        return await locator.text_content(timeout=timeout_ms) or ""
