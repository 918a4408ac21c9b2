"""
Web Healer - CLI Entry Point.

Configuration Priority:
    1. CLI arguments (--attempts, --timeout, etc.)
    2. Config file (web-healer.yaml)
    3. Environment variables (WEB_HEALER__HEALING__MAX_ATTEMPTS, etc.)

Usage:
    web-healer resolve https://example.com "#submit" --text Submit
    web-healer candidates "#submit" --text Submit --class btn
"""

import asyncio
import logging
from typing import List, Optional, Type

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from web_healer import __version__
from web_healer.config import Settings, load_config
from web_healer.drivers import DriverRegistry
from web_healer.engine.candidates import CandidateGenerator
from web_healer.engine.events import HealedEvent, OverlaysDismissedEvent
from web_healer.engine.knowledge_store import JsonKnowledgeBase
from web_healer.engine.memory import SelectorMemory
from web_healer.engine.models import (
    ElementMetadata,
    ElementReference,
    ResolutionResult,
    ResolveOptions,
)
from web_healer.engine.orchestrator import ResolutionOrchestrator
from web_healer.exceptions import ConfigurationError, DriverError
from web_healer.interfaces.driver import IDriverAdapter
from web_healer.utils.logging import setup_logging

# Create the CLI app
app = typer.Typer(
    name="web-healer",
    help="Self-healing element resolution for browser automation",
    add_completion=False,
)

console = Console()
logger = logging.getLogger(__name__)


def _build_metadata(
    element_id: Optional[str],
    name: Optional[str],
    class_names: Optional[List[str]],
    text: Optional[str],
    aria_label: Optional[str],
    placeholder: Optional[str],
    test_id: Optional[str],
) -> Optional[ElementMetadata]:
    metadata = ElementMetadata(
        id=element_id,
        name=name,
        class_names=tuple(class_names or ()),
        visible_text=text,
        aria_label=aria_label,
        placeholder=placeholder,
        test_id=test_id,
    )
    return None if metadata.is_empty() else metadata


def _load_settings(config: Optional[str], verbose: bool, **overrides) -> Settings:
    try:
        settings = load_config(config_path=config, **overrides)
    except ConfigurationError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    level = "DEBUG" if verbose else settings.logging.level
    setup_logging(level, settings.logging.file, settings.logging.json_format)
    return settings


def _candidates_table(candidates) -> Table:
    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Expression")
    table.add_column("Kind")
    table.add_column("Origin")
    for i, candidate in enumerate(candidates, 1):
        table.add_row(str(i), escape(candidate.expression), candidate.kind.value, candidate.origin.value)
    return table


def _print_result(result: ResolutionResult, original: str) -> None:
    if result.succeeded:
        status = "[yellow]healed[/yellow]" if result.healed else "[green]original[/green]"
        console.print(Panel.fit(
            f"[bold green]✓ Resolved[/bold green] ({status})\n"
            f"[dim]Original:[/dim] {escape(original)}\n"
            f"[dim]Used:[/dim] {escape(result.used_selector.expression)}\n"
            f"[dim]Attempt:[/dim] {result.attempt_index + 1}",
            border_style="green",
        ))
        return

    failure = result.failure
    console.print(Panel.fit(
        f"[bold red]✗ {failure.kind.value}[/bold red]\n{escape(failure.message)}",
        border_style="red",
    ))

    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("Attempt", justify="right")
    table.add_column("Expression")
    table.add_column("Outcome")
    for trial in failure.trail:
        table.add_row(str(trial.attempt_index + 1), escape(trial.candidate.expression), escape(trial.describe()))
    console.print(table)


@app.command()
def resolve(
    url: str = typer.Argument(..., help="Page to open"),
    selector: str = typer.Argument(..., help="Original selector (CSS, XPath or visible text)"),
    element_id: Optional[str] = typer.Option(None, "--id", help="Element id hint"),
    name: Optional[str] = typer.Option(None, "--name", help="Element name hint"),
    class_names: Optional[List[str]] = typer.Option(None, "--class", help="Class name hint (repeatable)"),
    text: Optional[str] = typer.Option(None, "--text", help="Visible text hint"),
    aria_label: Optional[str] = typer.Option(None, "--aria-label", help="aria-label hint"),
    placeholder: Optional[str] = typer.Option(None, "--placeholder", help="Placeholder hint"),
    test_id: Optional[str] = typer.Option(None, "--test-id", help="data-testid hint"),
    visible: bool = typer.Option(False, "--visible", "-v", help="Run with visible browser"),
    engine: Optional[str] = typer.Option(None, "--engine", "-e", help="Driver binding (playwright, selenium)"),
    attempts: Optional[int] = typer.Option(None, "--attempts", "-a", help="Passes over the candidate list"),
    timeout: Optional[int] = typer.Option(None, "--timeout", "-t", help="Base timeout per attempt in ms"),
    kb: Optional[str] = typer.Option(None, "--kb", help="JSON knowledge base file"),
    click: bool = typer.Option(False, "--click", help="Click the element once resolved"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Open a page and resolve a selector into an interactable element.

    Examples:
        web-healer resolve https://example.com "#submit" --text Submit
        web-healer resolve https://example.com "Sign in" --click --visible
        web-healer resolve https://example.com "//form/button" --engine selenium
    """
    overrides = {}
    healing = {}
    if attempts is not None:
        healing["max_attempts"] = attempts
    if timeout is not None:
        healing["base_timeout_ms"] = timeout
    if healing:
        overrides["healing"] = healing
    if kb:
        overrides["memory"] = {"knowledge_base_path": kb}
    browser = {}
    if engine:
        browser["engine"] = engine
    if visible:
        browser["headless"] = False
    if browser:
        overrides["browser"] = browser

    settings = _load_settings(config, verbose, **overrides)

    try:
        ref = ElementReference(
            selector,
            _build_metadata(element_id, name, class_names, text, aria_label, placeholder, test_id),
        )
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    try:
        driver_class = DriverRegistry.get_driver(settings.browser.engine)
        result = asyncio.run(_resolve_async(driver_class, url, ref, settings, click))
    except DriverError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    _print_result(result, selector)
    if not result.succeeded:
        raise typer.Exit(1)


async def _resolve_async(
    driver_class: Type[IDriverAdapter],
    url: str,
    ref: ElementReference,
    settings: Settings,
    click: bool,
) -> ResolutionResult:
    """Open a browser session with the chosen binding, resolve once, and clean up."""
    async with driver_class.open(settings.browser, url) as driver:
        orchestrator = ResolutionOrchestrator.from_settings(driver, settings)
        orchestrator.events.on(
            HealedEvent.name,
            lambda e: console.print(
                f"[yellow]Healed[/yellow] {escape(e.original_selector)} -> {escape(e.used_selector.expression)}"
            ),
        )
        orchestrator.events.on(
            OverlaysDismissedEvent.name,
            lambda e: console.print(f"[dim]Dismissed {e.count} overlay(s)[/dim]"),
        )

        result = await orchestrator.resolve(ref, ResolveOptions())
        if result.succeeded and click:
            await driver.click(result.handle)
            console.print("[green]Clicked[/green]")

        if isinstance(orchestrator.knowledge_base, JsonKnowledgeBase):
            orchestrator.knowledge_base.flush()
        logger.debug(f"Stats: {orchestrator.stats.as_dict()}")
        return result


@app.command()
def candidates(
    selector: str = typer.Argument(..., help="Original selector (CSS, XPath or visible text)"),
    element_id: Optional[str] = typer.Option(None, "--id", help="Element id hint"),
    name: Optional[str] = typer.Option(None, "--name", help="Element name hint"),
    class_names: Optional[List[str]] = typer.Option(None, "--class", help="Class name hint (repeatable)"),
    text: Optional[str] = typer.Option(None, "--text", help="Visible text hint"),
    aria_label: Optional[str] = typer.Option(None, "--aria-label", help="aria-label hint"),
    placeholder: Optional[str] = typer.Option(None, "--placeholder", help="Placeholder hint"),
    test_id: Optional[str] = typer.Option(None, "--test-id", help="data-testid hint"),
    domain: str = typer.Option("", "--domain", "-d", help="Domain scope for learned selectors"),
    kb: Optional[str] = typer.Option(None, "--kb", help="JSON knowledge base file"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Show the candidate selectors that would be tried, without a browser."""
    settings = _load_settings(config, verbose=False)

    try:
        ref = ElementReference(
            selector,
            _build_metadata(element_id, name, class_names, text, aria_label, placeholder, test_id),
        )
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    kb_path = kb or settings.memory.knowledge_base_path
    generator = CandidateGenerator(
        memory=SelectorMemory(capacity=settings.memory.capacity),
        knowledge_base=JsonKnowledgeBase(kb_path) if kb_path else None,
        max_candidates=settings.healing.max_candidates,
    )
    console.print(_candidates_table(generator.generate(ref, domain)))


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]Web Healer[/bold] v{__version__}")


if __name__ == "__main__":
    app()
