"""CLI entry point for sciref."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from sciref.models import DisapprovalReason, ModelId, SortPriority

console = Console()

PRIORITY_CHOICES = [p.name.lower() for p in SortPriority]
REASON_CHOICES = [r.name.lower() for r in DisapprovalReason]


def _resolve_model(value: str) -> str:
    """Accept a preset name (best/balanced/fast) or a raw model id."""
    try:
        return ModelId[value.upper()].value
    except KeyError:
        return value


def _parse_reason(value: str) -> Optional[DisapprovalReason]:
    key = value.strip().lower().replace("-", "_")
    for reason in DisapprovalReason:
        if key in (reason.name.lower(), reason.value):
            return reason
    return None


@click.group()
@click.version_option(package_name="sciref")
@click.option("--verbose", "-v", count=True, help="Log progress (-vv for debug output).")
def cli(verbose: int):
    """sciref - Find supporting citations for highlighted manuscript claims."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


# ---------------------------------------------------------------------------
# sciref env
# ---------------------------------------------------------------------------


@cli.group(invoke_without_command=True)
@click.pass_context
def env(ctx):
    """Show or configure API keys.

    Run without arguments to see current status.
    Use `sciref env set KEY value` to save a key to ~/.sciref/.env.
    """
    if ctx.invoked_subcommand is not None:
        return

    from sciref.config import PERSISTENT_ENV, check_env

    statuses = check_env()
    console.print("API Key Status:")
    console.print()
    for var, is_set, info in statuses:
        status = "[green]set[/green]" if is_set else "[red]not set[/red]"
        console.print(f"  {var}: {status}")
        console.print(f"    {info['description']}")
        console.print(f"    Used by: {', '.join(info['required_by'])}", style="dim")
        console.print()

    console.print(f"Config file: {PERSISTENT_ENV}", style="dim")

    if not any(is_set for var, is_set, _ in statuses if var.endswith("_API_KEY")):
        console.print(
            "Tip: Run `sciref env set GEMINI_API_KEY value` to save a key persistently.",
            style="dim",
        )


@env.command("set")
@click.argument("key")
@click.argument("value")
def env_set(key: str, value: str):
    """Save a setting to ~/.sciref/.env.

    KEY: one of GEMINI_API_KEY, OPENAI_API_KEY, OPENAI_BASE_URL, SCIREF_VERIFY_MODEL, API_TIMEOUT
    VALUE: the value to store
    """
    from sciref.config import VALID_KEYS, save_key

    key = key.upper()
    if key not in VALID_KEYS:
        console.print(f"[red]Unknown key: {key}[/red]")
        console.print(f"Valid keys: {', '.join(sorted(VALID_KEYS))}")
        raise SystemExit(1)

    path = save_key(key, value)
    console.print(f"Saved {key} to {path}")


# ---------------------------------------------------------------------------
# sciref options
# ---------------------------------------------------------------------------


@cli.command()
def options():
    """List priorities, disapproval reasons, models, publishers and document types."""
    from sciref.models import PUBLISHER_OPTIONS, SOURCE_TYPE_OPTIONS
    from sciref.renderer import render_options

    render_options(PUBLISHER_OPTIONS, SOURCE_TYPE_OPTIONS)


# ---------------------------------------------------------------------------
# sciref find
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("highlights", nargs=-1, required=True)
@click.option("--num", "-n", default=1, type=click.IntRange(1, 5), help="References to show per highlight (1-5).")
@click.option(
    "--priority", "-p",
    default="most_cited",
    type=click.Choice(PRIORITY_CHOICES),
    help="Ranking priority (default: most_cited).",
)
@click.option("--publisher", multiple=True, help="Restrict to a publisher (repeatable).")
@click.option("--type", "source_types", multiple=True, help="Restrict to a document type (repeatable).")
@click.option("--year-start", default="2018", help="Only papers published after this year ('' for any).")
@click.option("--model", "-m", default="balanced", help="Model preset (best/balanced/fast) or model id.")
@click.option("--no-verify", is_flag=True, help="Skip the verification pass.")
@click.option("--export", "export_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Write the manuscript with citation markers and references to this file.")
@click.option("--interactive", "-i", is_flag=True, help="Review results and replace references interactively.")
def find(
    document: Path,
    highlights: tuple[str, ...],
    num: int,
    priority: str,
    publisher: tuple[str, ...],
    source_types: tuple[str, ...],
    year_start: str,
    model: str,
    no_verify: bool,
    export_path: Optional[Path],
    interactive: bool,
):
    """Find references for highlighted text in a document.

    DOCUMENT: path to the manuscript (plain text)
    HIGHLIGHTS: one or more exact phrases from the document to find references for
    """
    from sciref.models import SearchPreferences

    prefs = SearchPreferences(
        num_references=num,
        priority=SortPriority[priority.upper()],
        publisher_filter=list(publisher),
        source_types=list(source_types),
        year_start=year_start,
        model=_resolve_model(model),
    )

    try:
        asyncio.run(_find(document, list(highlights), prefs, not no_verify, export_path, interactive))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)


async def _find(
    document: Path,
    phrases: list[str],
    prefs,
    verify: bool,
    export_path: Optional[Path],
    interactive: bool,
) -> None:
    from sciref.export import Highlight, build_bibliography, export_manuscript
    from sciref.provider import LLMReferenceProvider
    from sciref.renderer import render_bibliography, render_session
    from sciref.selection import find_span, selection_context
    from sciref.sessions import SessionManager

    text = document.read_text()
    # Validate every phrase before any search starts.
    spans = [find_span(text, phrase) for phrase in phrases]

    manager = SessionManager(LLMReferenceProvider(verify=verify))
    highlights = []
    for start, end in spans:
        session_id = manager.create(selection_context(text, start, end), prefs)
        highlights.append(Highlight(start, end, session_id))

    with console.status("Finding citations..."):
        await manager.drain()

    for i, h in enumerate(highlights, 1):
        console.print(f"Highlight {i}", style="bold")
        render_session(manager.get(h.session_id))

    if interactive:
        await _review(manager, highlights, prefs)

    render_bibliography(build_bibliography(manager.sessions()).lines())

    if export_path is not None:
        export_path.write_text(export_manuscript(text, highlights, manager.get))
        console.print(f"Saved manuscript with references to {export_path}")


REVIEW_HELP = """\
Commands:
  <highlight#> <ref#> <reason>   remove a reference ({reasons})
  retry <highlight#>             search again with the current preferences
  done                           finish reviewing"""


async def _review(manager, highlights, prefs) -> None:
    """Prompt loop for disapproving references and retrying failed searches."""
    from sciref.renderer import render_session

    console.print(REVIEW_HELP.format(reasons=", ".join(REASON_CHOICES)), style="dim")
    while True:
        line = await asyncio.to_thread(click.prompt, "sciref", default="done", show_default=False)
        parts = line.split()
        if not parts or parts[0].lower() in ("done", "q", "quit", "exit"):
            return

        if parts[0].lower() == "retry" and len(parts) == 2 and parts[1].isdigit():
            idx = int(parts[1]) - 1
            if not 0 <= idx < len(highlights):
                console.print("[red]No such highlight.[/red]")
                continue
            session_id = highlights[idx].session_id
            manager.retry(session_id, prefs)
            with console.status("Finding citations..."):
                await manager.drain()
            render_session(manager.get(session_id))
            continue

        reason = _parse_reason(parts[2]) if len(parts) == 3 else None
        if reason is None or not (parts[0].isdigit() and parts[1].isdigit()):
            console.print("[red]Could not understand that command.[/red]")
            continue

        idx = int(parts[0]) - 1
        if not 0 <= idx < len(highlights):
            console.print("[red]No such highlight.[/red]")
            continue
        session_id = highlights[idx].session_id
        removed = manager.disapprove(int(parts[1]) - 1, reason, session_id=session_id)
        if removed is None:
            console.print("[yellow]Nothing to remove there.[/yellow]")
            continue

        console.print(f"Removed: {removed.title}", style="dim")
        with console.status("Fetching more references..."):
            await manager.drain()
        render_session(manager.get(session_id))
