"""
Events Widget autotests - scenario runner
Drives the live widget through its four steps and writes a JSON report
"""
import asyncio
import sys
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import async_playwright, Browser, Error as PlaywrightError
from pydantic import BaseModel
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import Config
from core.errors import ExternalUnavailableError, WidgetEngineError
from core.logger import EngineLogger
from pages.events_widget import EventsWidgetPage, ARTIFACT_PATTERN
from utils import save_screenshot, shorten

console = Console()

Check = Callable[[Any], Optional[str]]


class StepRecord(BaseModel):
    """One facade call inside a scenario"""
    name: str
    success: bool
    duration_seconds: float
    detail: Optional[str] = None
    error: Optional[str] = None


class ScenarioReport(BaseModel):
    """Outcome of one scenario, run on its own page"""
    scenario: str
    url: str
    started_at: str
    duration_seconds: float = 0.0
    status: str = "FAILED"
    steps: List[StepRecord] = []
    screenshot: Optional[str] = None
    error: Optional[str] = None


class StepFailed(Exception):
    pass


def expect_true(value) -> Optional[str]:
    return None if value else "expected a truthy result"


def expect_artifact(code: str) -> Optional[str]:
    if code and ARTIFACT_PATTERN.search(code):
        return None
    return f"generated code is not an embed snippet: {shorten(code)!r}"


def expect_empty_or_artifact(code: str) -> Optional[str]:
    if not code or ARTIFACT_PATTERN.search(code):
        return None
    return f"unexpected generated code: {shorten(code)!r}"


class StepRecorder:
    """Runs facade calls, timing and recording each of them"""

    def __init__(self, report: ScenarioReport):
        self.report = report

    async def step(self, name: str, action: Awaitable, check: Optional[Check] = None):
        started = time.monotonic()
        try:
            value = await action
        except (WidgetEngineError, PlaywrightError) as e:
            self._record(name, started, error=f"{type(e).__name__}: {e}")
            raise StepFailed(name) from e

        problem = check(value) if check else None
        if problem:
            self._record(name, started, error=problem)
            raise StepFailed(name)

        self._record(name, started, detail=shorten(value) if value is not None else None)
        return value

    def _record(self, name: str, started: float, detail: str = None, error: str = None):
        record = StepRecord(
            name=name,
            success=error is None,
            duration_seconds=round(time.monotonic() - started, 2),
            detail=detail,
            error=error
        )
        self.report.steps.append(record)
        marker = "[green]✓[/green]" if record.success else "[red]✗[/red]"
        console.print(f"   {marker} {name}" + (f" [red]{error}[/red]" if error else ""))


# ----------------------------------------------------------------------
# Scenarios
# ----------------------------------------------------------------------

async def scenario_smoke(widget: EventsWidgetPage, rec: StepRecorder):
    await rec.step("page is loaded", widget.is_loaded(), expect_true)
    await rec.step("main heading visible", widget.main_heading.first.is_visible(), expect_true)
    for step in range(1, 5):
        await rec.step(f"step {step} visible", widget.section_visible(step), expect_true)
    await rec.step("generate button visible", widget.generate_preview_button.is_visible(), expect_true)
    await rec.step(
        "page text lists every step",
        widget.page.locator("body").inner_text(),
        lambda text: None if all(f"Шаг {i}" in text for i in range(1, 5)) else "step headings missing"
    )


async def scenario_steps(widget: EventsWidgetPage, rec: StepRecorder):
    await rec.step("select theme Igaming", widget.select_theme("Igaming"))
    await rec.step("theme Igaming selected", widget.is_theme_selected("Igaming"), expect_true)
    await rec.step("select all countries", widget.select_all_countries())
    await rec.step("clear countries", widget.clear_countries())
    await rec.step("width 800", widget.set_width(800))
    await rec.step("height 600", widget.set_height(600))
    await rec.step("full width on", widget.set_full_width(True))
    await rec.step("full height on", widget.set_full_height(True))
    await rec.step("full width off", widget.set_full_width(False))
    await rec.step("full height off", widget.set_full_height(False))
    await rec.step("light color scheme", widget.select_light_theme())
    await rec.step("dark color scheme", widget.select_dark_theme())


async def scenario_preview(widget: EventsWidgetPage, rec: StepRecorder):
    await rec.step("select theme Igaming", widget.select_theme("Igaming"))
    await rec.step("width 1000", widget.set_width(1000))
    await rec.step("height 800", widget.set_height(800))
    await rec.step("light color scheme", widget.select_light_theme())
    await rec.step("generate preview", widget.generate_preview(), lambda r: None if r.succeeded else "no artifact")
    await rec.step("read generated code", widget.get_generated_code(), expect_artifact)
    await rec.step("copy button visible", widget.copy_code_button.is_visible(), expect_true)


async def scenario_copy(widget: EventsWidgetPage, rec: StepRecorder):
    await rec.step("select theme Igaming", widget.select_theme("Igaming"))
    await rec.step("generate preview", widget.generate_preview(), lambda r: None if r.succeeded else "no artifact")
    await rec.step("copy code", widget.copy_code(), lambda r: expect_artifact(r.code))


async def scenario_workflow(widget: EventsWidgetPage, rec: StepRecorder):
    await rec.step("select theme Blockchain", widget.select_theme("Blockchain"))
    await rec.step("select theme Development", widget.select_theme("Development"))
    await rec.step("select all countries", widget.select_all_countries())
    await rec.step("width 1200", widget.set_width(1200))
    await rec.step("height 900", widget.set_height(900))
    await rec.step("dark color scheme", widget.select_dark_theme())
    await rec.step("generate preview", widget.generate_preview(), lambda r: None if r.succeeded else "no artifact")
    await rec.step("read generated code", widget.get_generated_code(), expect_artifact)


async def scenario_empty(widget: EventsWidgetPage, rec: StepRecorder):
    await rec.step("generate preview without a theme", widget.generate_preview())
    await rec.step("read generated code", widget.get_generated_code(), expect_empty_or_artifact)


SCENARIOS: Dict[str, Callable[[EventsWidgetPage, StepRecorder], Awaitable[None]]] = {
    "smoke": scenario_smoke,
    "steps": scenario_steps,
    "preview": scenario_preview,
    "copy": scenario_copy,
    "workflow": scenario_workflow,
    "empty": scenario_empty,
}


# ----------------------------------------------------------------------
# Runner
# ----------------------------------------------------------------------

async def run_scenario(browser: Browser, name: str, logger: EngineLogger) -> ScenarioReport:
    console.print(f"\n[bold cyan]▶ SCENARIO: {name}[/bold cyan]")
    logger.log_info(f"SCENARIO START: {name}")
    report = ScenarioReport(scenario=name, url=Config.widget_url(), started_at=datetime.now().isoformat())
    started = time.monotonic()

    # every scenario gets a fresh context, nothing leaks between them
    context = await browser.new_context(
        viewport={'width': Config.VIEWPORT_WIDTH, 'height': Config.VIEWPORT_HEIGHT}
    )
    context.set_default_timeout(Config.ACTION_TIMEOUT)
    page = await context.new_page()
    widget = EventsWidgetPage(page, logger)

    try:
        try:
            await widget.grant_clipboard()
        except ExternalUnavailableError as e:
            # copy checks degrade to the artifact alone
            logger.log_warning(str(e))

        try:
            await widget.open()
            await SCENARIOS[name](widget, StepRecorder(report))
            report.status = "PASSED"
        except StepFailed as e:
            report.error = f"step failed: {e}"
        except (WidgetEngineError, PlaywrightError) as e:
            report.error = f"{type(e).__name__}: {e}"
            logger.log_error("scenario_error", str(e), {"scenario": name})

        if report.status != "PASSED":
            try:
                shot = await page.screenshot(full_page=True)
                report.screenshot = save_screenshot(shot, name, logger.session_dir / "screenshots")
            except PlaywrightError as e:
                logger.log_warning(f"screenshot failed for {name}: {e}")
    finally:
        await context.close()

    report.duration_seconds = round(time.monotonic() - started, 2)
    logger.log_action("scenario_finished", {"scenario": name, "status": report.status, "error": report.error})
    return report


async def run(scenarios: List[str], headless: bool) -> List[ScenarioReport]:
    Config.validate()
    logger = EngineLogger(Config.OUTPUT_DIR)
    reports = []

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        try:
            for name in scenarios:
                reports.append(await run_scenario(browser, name, logger))
        finally:
            await browser.close()

    report_path = logger.save_report("widget_report.json", {
        "generated_at": datetime.now().isoformat(),
        "target": Config.widget_url(),
        "passed": sum(1 for r in reports if r.status == "PASSED"),
        "failed": sum(1 for r in reports if r.status != "PASSED"),
        "scenarios": [r.model_dump() for r in reports]
    })
    print_summary(reports)
    console.print(f"💾 Report saved to: {report_path}\n")
    logger.close()
    return reports


def print_summary(reports: List[ScenarioReport]):
    passed = [r for r in reports if r.status == "PASSED"]
    console.print("\n")
    console.print(Panel.fit(
        f"[bold white]📊 EVENTS WIDGET REPORT[/bold white]\n"
        f"[green]✅ Passed : {len(passed)}[/green]   "
        f"[red]❌ Failed : {len(reports) - len(passed)}[/red]   "
        f"[cyan]Total  : {len(reports)}[/cyan]",
        border_style="white"
    ))

    t = Table(title="Scenario Results", box=box.ROUNDED, show_header=True, header_style="bold cyan")
    t.add_column("Status", width=10)
    t.add_column("Scenario", width=12)
    t.add_column("Steps", width=8)
    t.add_column("Time, s", width=8)
    t.add_column("Failure Reason", width=50)

    for r in reports:
        status_str = "[bold green]✅ PASSED[/bold green]" if r.status == "PASSED" else "[bold red]❌ FAILED[/bold red]"
        ok = sum(1 for s in r.steps if s.success)
        t.add_row(status_str, r.scenario, f"{ok}/{len(r.steps)}", str(r.duration_seconds), shorten(r.error or "-", 50))

    console.print(t)


def main():
    """Entry point: python main.py [--scenario NAME ...] [--headed] [--url BASE_URL]"""
    scenarios = []
    headless = Config.BROWSER_HEADLESS

    i = 1
    while i < len(sys.argv):
        if sys.argv[i] == '--scenario' and i + 1 < len(sys.argv):
            scenarios.append(sys.argv[i + 1])
            i += 2
        elif sys.argv[i] == '--url' and i + 1 < len(sys.argv):
            Config.BASE_URL = sys.argv[i + 1]
            i += 2
        elif sys.argv[i] == '--headed':
            headless = False
            i += 1
        else:
            console.print(f"[yellow]⚠️  Ignoring unknown argument: {sys.argv[i]}[/yellow]")
            i += 1

    unknown = [s for s in scenarios if s not in SCENARIOS]
    if unknown:
        console.print(f"[red]❌ Unknown scenario(s): {', '.join(unknown)}. Available: {', '.join(SCENARIOS)}[/red]")
        sys.exit(2)

    reports = asyncio.run(run(scenarios or list(SCENARIOS), headless))
    sys.exit(0 if all(r.status == "PASSED" for r in reports) else 1)


if __name__ == "__main__":
    main()
