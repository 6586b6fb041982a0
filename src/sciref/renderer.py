"""Rich terminal renderer for search sessions and their references."""

from __future__ import annotations

from rich.console import Console
from rich.text import Text

from sciref.models import (
    DisapprovalReason,
    ModelId,
    Reference,
    SearchSession,
    SessionStatus,
    SortPriority,
)

console = Console()


def _truncate(text: str, limit: int = 300) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def _meta_line(ref: Reference) -> str:
    meta_parts = []
    if ref.authors:
        meta_parts.append(", ".join(ref.authors))
    if ref.year:
        meta_parts.append(ref.year)
    if ref.publication:
        meta_parts.append(ref.publication)
    if ref.citation_count is not None:
        meta_parts.append(f"cited by {ref.citation_count}")
    return " | ".join(meta_parts)


def render_reference(ref: Reference, index: int) -> None:
    title_line = Text()
    title_line.append(f"[{index}] ", style="bold cyan")
    title_line.append(ref.title or "(untitled)", style="bold")
    console.print(title_line)

    if ref.url:
        console.print(f"     {ref.url}", style="dim")

    meta = _meta_line(ref)
    if meta:
        console.print(f"     {meta}", style="dim")

    if ref.summary:
        console.print(f"     {_truncate(ref.summary)}")
    if ref.relevance:
        console.print(f"     Why: {_truncate(ref.relevance)}", style="italic")
    console.print()


def render_session(session: SearchSession) -> None:
    """Render the visible references of a session, or its loading/error state."""
    header = Text()
    header.append(f"{session.id} ", style="bold magenta")
    header.append(f'"{_truncate(session.context.highlighted_text, 80)}"')
    console.print(header)

    if session.status is SessionStatus.LOADING:
        console.print("[yellow]Finding citations...[/yellow]")
        console.print()
        return

    if session.status is SessionStatus.ERROR:
        console.print(f"[red]Error: {session.error_message}[/red]")
        console.print("  > Retry to search again with the current preferences", style="dim italic")
        console.print()
        return

    if not session.visible:
        console.print("[yellow]No references found.[/yellow]")
        console.print()
        return

    prefs = session.query_prefs
    console.print(
        f"Showing {len(session.visible)} of {prefs.num_references} "
        f"({prefs.priority.value}, {len(session.pool)} in reserve)",
        style="dim",
    )
    if session.is_refilling:
        console.print("[yellow]Fetching more references in the background...[/yellow]")
    console.print()

    for i, ref in enumerate(session.visible, 1):
        render_reference(ref, i)


def render_bibliography(lines: list[str]) -> None:
    if not lines:
        console.print("[yellow]No references cited.[/yellow]")
        return
    console.print("References:", style="bold")
    for line in lines:
        console.print(line)


def render_options(publishers: list[str], source_types: list[str]) -> None:
    """List the values accepted by the search options."""
    sections = [
        ("Priorities (--priority)", [p.name.lower() + f"  ({p.value})" for p in SortPriority]),
        ("Disapproval reasons", [r.name.lower() + f"  ({r.value})" for r in DisapprovalReason]),
        ("Models (--model)", [m.value + f"  ({m.name.lower()})" for m in ModelId]),
        ("Publishers (--publisher)", publishers),
        ("Document types (--type)", source_types),
    ]
    for title, values in sections:
        console.print(title, style="bold")
        for value in values:
            console.print(f"  {value}")
        console.print()
