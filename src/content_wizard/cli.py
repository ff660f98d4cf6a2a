"""Typer CLI for content-wizard."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Optional, TypeVar

import click
import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from content_wizard.config import load_settings
from content_wizard.credentials import API_KEY_ENV, clear_api_key, credential_path, has_api_key, save_api_key
from content_wizard.errors import ContentWizardError, MissingCredentialError
from content_wizard.export import export_script_text
from content_wizard.gateway import GenerationGateway
from content_wizard.models import (
    ASSET_KINDS,
    MODEL_TIERS,
    SCRIPT_FORMATS,
    GenerationConfig,
    Topic,
    VideoSection,
    WizardStep,
)
from content_wizard.resources import read_text
from content_wizard.storage import AUDIO_FILENAME, export_filename, save_exports, write_text
from content_wizard.wizard import WizardSession

app = typer.Typer(
    name="cwiz",
    help="content-wizard: topic → script → assets, powered by Gemini.",
    add_completion=False,
)
console = Console()

DEFAULT_EXPORT_DIR = "exports"
SCRIPT_MENU = "[c]ontinue to assets, [t]itle, [e]dit section, e[x]port, [r]egenerate, [b]ack, [h]istory, [q]uit"

T = TypeVar("T")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def _make_session() -> WizardSession:
    return WizardSession(GenerationGateway(settings=load_settings()))


async def _with_progress(session: WizardSession, work: Awaitable[T]) -> T:
    """Await *work* while rendering the session's status and progress."""
    task = asyncio.ensure_future(work)
    columns = (TextColumn("{task.description}"), BarColumn(), TextColumn("{task.completed:>3.0f}%"))
    with Progress(*columns, console=console, transient=True) as progress:
        bar = progress.add_task("Working...", total=100)
        while not task.done():
            progress.update(bar, completed=session.state.progress, description=session.state.status or "Working...")
            await asyncio.sleep(0.1)
    return await task


# ── login / logout ───────────────────────────────────────────────────────────

@app.command()
def login(
    key: Optional[str] = typer.Option(None, "--key", help="API key (prompted if omitted)."),
) -> None:
    """Store a Gemini API key locally (used when GEMINI_API_KEY is unset)."""
    api_key = key or typer.prompt("Gemini API key", hide_input=True)
    try:
        path = save_api_key(api_key)
    except ValueError as exc:
        rprint(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    rprint(f"[green]API key stored:[/green] {path}")


@app.command()
def logout() -> None:
    """Remove the locally stored API key."""
    if clear_api_key():
        rprint(f"[green]Removed[/green] {credential_path()}")
    else:
        rprint("[dim]No stored API key.[/dim]")


# ── topics ───────────────────────────────────────────────────────────────────

def _topics_table(topics: list[Topic]) -> Table:
    table = Table(title="Trending Topics", show_lines=False)
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Summary")
    for i, topic in enumerate(topics, 1):
        table.add_row(str(i), escape(topic.title), f"{topic.relevance_score:.0f}", escape(topic.summary[:90]))
    return table


@app.command()
def topics(
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Discovery category."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Discover trending topics for a category."""
    _configure_logging(verbose)
    gateway = GenerationGateway(settings=load_settings())
    try:
        found = asyncio.run(gateway.discover_topics(category))
    except ContentWizardError as exc:
        rprint(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    if not found:
        rprint("[dim]No topics found.[/dim]")
        raise typer.Exit(0)
    console.print(_topics_table(found))
    sources = found[0].source_urls
    if sources:
        rprint("[dim]Sources:[/dim] " + ", ".join(sources))


# ── wizard steps ─────────────────────────────────────────────────────────────

def _show_history(session: WizardSession) -> Optional[str]:
    entries = session.ledger.entries()
    if not entries:
        rprint("[dim]No compositions yet.[/dim]")
        return None
    table = Table(title="History Log")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title")
    table.add_column("Format")
    table.add_column("Updated")
    for i, entry in enumerate(entries, 1):
        table.add_row(str(i), escape(entry.script.title), entry.config.format, entry.updated_at.strftime("%Y-%m-%d %H:%M"))
    console.print(table)
    choice = typer.prompt("Restore # (blank to cancel)", default="", show_default=False)
    if choice.isdigit() and 1 <= int(choice) <= len(entries):
        return entries[int(choice) - 1].id
    return None


async def _discovery_step(session: WizardSession) -> bool:
    if session.topics:
        console.print(_topics_table(session.topics))
    else:
        rprint("[dim]No topics loaded.[/dim]")
    categories = ", ".join(session.settings.discovery.categories)
    choice = typer.prompt("Topic #, [c]ustom, [r]efresh, [h]istory, [q]uit", default="1" if session.topics else "r")

    if choice == "q":
        return False
    if choice == "c":
        session.select_topic(Topic.custom(typer.prompt("Custom topic")))
    elif choice == "r":
        category = typer.prompt(f"Category ({categories})", default=session.settings.discovery.default_category)
        try:
            await _with_progress(session, session.refresh_topics(category))
        except ContentWizardError as exc:
            rprint(f"[red]Discovery failed:[/red] {exc}")
    elif choice == "h":
        entry_id = _show_history(session)
        if entry_id:
            session.load_history(entry_id)
    elif choice.isdigit() and 1 <= int(choice) <= len(session.topics):
        session.select_topic(session.topics[int(choice) - 1])
    return True


async def _configuration_step(session: WizardSession) -> bool:
    topic = session.state.topic
    rprint(Panel(f"[bold]{escape(topic.title)}[/bold]\n{escape(topic.summary)}", title="Selected topic", border_style="dim"))
    if typer.prompt("[g]enerate or [b]ack", default="g") == "b":
        await session.back()
        return True

    draft = session.config_draft
    config = GenerationConfig(
        format=typer.prompt("Format", default=draft.format, type=click.Choice(list(SCRIPT_FORMATS))),
        model=typer.prompt("Model tier", default=draft.model, type=click.Choice(list(MODEL_TIERS))),
        word_count=typer.prompt("Word count", default=draft.word_count, type=click.IntRange(300, 3000)),
        style=typer.prompt("Style", default=draft.style),
        language=typer.prompt("Language", default=draft.language),
        author_role=typer.prompt("Author persona", default=draft.author_role),
    )
    await _with_progress(session, session.submit_config(config))
    return True


def _show_script(session: WizardSession) -> None:
    script = session.state.script
    tags = escape(", ".join(script.tags))
    rprint(Panel(f"[bold]{escape(script.title)}[/bold]\n[dim]{escape(script.subtitle)}[/dim]\n{tags}", border_style="blue"))
    for i, section in enumerate(script.sections):
        header = f"{i}. {escape(section.title)}"
        if isinstance(section, VideoSection) and section.timestamp:
            header += escape(f" [{section.timestamp}]")
        body = escape(section.content)
        if isinstance(section, VideoSection) and section.visual_prompt:
            body = f"[italic]Visual: {escape(section.visual_prompt)}[/italic]\n{body}"
        rprint(Panel(body, title=header, title_align="left", border_style="dim"))


async def _scripting_step(session: WizardSession, output: str) -> bool:
    if session.state.script is None or session.state.has_error:
        rprint(f"[red]{escape(session.state.status or 'No script yet.')}[/red]")
        choice = typer.prompt("[r]etry, [b]ack, [q]uit", default="r")
        if choice == "r":
            await _with_progress(session, session.retry_script())
        elif choice == "b":
            await session.navigate(WizardStep.CONFIGURATION)
        return choice != "q"

    _show_script(session)
    choice = typer.prompt(SCRIPT_MENU, default="c")
    script = session.state.script
    if choice == "c":
        session.confirm_script()
    elif choice == "t":
        session.edit_script(
            title=typer.prompt("Title", default=script.title),
            subtitle=typer.prompt("Subtitle", default=script.subtitle),
        )
    elif choice == "e":
        index = typer.prompt("Section #", type=int)
        if 0 <= index < len(script.sections) and not script.sections[index].attribution:
            body = typer.edit(script.sections[index].content)
            if body is not None:
                session.edit_script(bodies={index: body.strip()})
        else:
            rprint("[yellow]That section cannot be edited.[/yellow]")
    elif choice == "x":
        path = Path(output) / export_filename("script", script.title, ".txt")
        write_text(path, export_script_text(script, owner=session.settings.owner))
        rprint(f"[green]Script exported:[/green] {path}")
    elif choice == "r":
        await _with_progress(session, session.retry_script())
    elif choice == "b":
        await session.back()
    elif choice == "h":
        entry_id = _show_history(session)
        if entry_id:
            session.load_history(entry_id)
    return choice != "q"


def _assets_table(session: WizardSession) -> Table:
    assets = session.state.assets
    table = Table(title="Assets")
    table.add_column("Key", style="dim", width=4)
    table.add_column("Asset")
    table.add_column("Status")
    table.add_row("i", "image", "ready" if assets.cover_image else "-")
    table.add_row("a", "audio", f"ready ({AUDIO_FILENAME})" if assets.audio else "-")
    table.add_row("s", "slides", f"{len(assets.slides)} slides" if assets.slides else "-")
    table.add_row("d", "document", "ready" if assets.document else "-")
    return table


async def _assets_step(session: WizardSession, output: str) -> bool:
    console.print(_assets_table(session))
    choice = typer.prompt("Generate [i/a/s/d], e[x]port all, [n]ew, [b]ack, [q]uit", default="x")
    kinds = {kind[0]: kind for kind in ASSET_KINDS}
    if choice in kinds:
        try:
            await _with_progress(session, session.request_asset(kinds[choice]))
        except ContentWizardError as exc:
            rprint(f"[red]Failed to generate {kinds[choice]}:[/red] {exc}")
    elif choice == "x":
        exported = save_exports(output, session.state.script, session.state.assets, owner=session.settings.owner)
        for name, path in exported.files.items():
            rprint(f"[green]{name}:[/green] {path}")
    elif choice == "n":
        session.reset()
    elif choice == "b":
        await session.back()
    return choice != "q"


async def _run_wizard(session: WizardSession, output: str) -> None:
    while True:
        step = session.state.step
        if step == WizardStep.API_KEY:
            if await _with_progress(session, session.unlock()):
                continue
            if has_api_key():
                rprint("[red]The API key was rejected.[/red]")
                clear_api_key()
                if has_api_key():
                    rprint(f"Unset {API_KEY_ENV} or replace it with a valid key.")
                    return
            key = typer.prompt("Gemini API key", hide_input=True)
            if not await _with_progress(session, session.set_api_key(key)):
                rprint("[red]The API key was rejected.[/red] Enter another one.")
                clear_api_key()
            continue
        console.rule(f"[bold]Step {int(step)}: {step.label}[/bold]")
        if step == WizardStep.DISCOVERY:
            keep_going = await _discovery_step(session)
        elif step == WizardStep.CONFIGURATION:
            keep_going = await _configuration_step(session)
        elif step == WizardStep.SCRIPTING:
            keep_going = await _scripting_step(session, output)
        else:
            keep_going = await _assets_step(session, output)
        if not keep_going:
            return


@app.command()
def wizard(
    output: str = typer.Option(DEFAULT_EXPORT_DIR, "-o", "--output", help="Directory for exported files."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Walk through discovery → configuration → scripting → assets."""
    _configure_logging(verbose)
    session = _make_session()
    try:
        asyncio.run(_run_wizard(session, output))
    except MissingCredentialError as exc:
        rprint(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    except (KeyboardInterrupt, typer.Abort):
        rprint("\n[dim]Session ended.[/dim]")
    rprint(f"[dim]{len(session.ledger)} composition(s) this session.[/dim]")


# ── init ─────────────────────────────────────────────────────────────────────

@app.command()
def init(
    output_dir: str = typer.Option(".", "-o", "--output", help="Directory to create the private profile in."),
    force: bool = typer.Option(False, "--force", help="Overwrite existing files."),
) -> None:
    """Copy the default profile so models, voice and attribution can be customised.

    Then point CONTENT_WIZARD_PRIVATE_DIR at the directory:
        cwiz init -o ./my-wizard
        export CONTENT_WIZARD_PRIVATE_DIR=./my-wizard
    """
    profile_path = Path(output_dir) / "profiles" / "defaults.yaml"
    if profile_path.exists() and not force:
        rprint(f"[yellow]Skipped:[/yellow] {profile_path} already exists (use --force to overwrite)")
        raise typer.Exit(0)
    write_text(profile_path, read_text("profiles/defaults.yaml"))
    rprint(f"[green]Created:[/green] {profile_path}")
    rprint()
    rprint("Next steps:")
    rprint(f"  1. Edit [bold]{profile_path}[/bold]")
    rprint(f"  2. export CONTENT_WIZARD_PRIVATE_DIR={Path(output_dir).resolve()}")
    rprint("  3. Run: [bold]cwiz wizard[/bold]")


if __name__ == "__main__":
    app()
