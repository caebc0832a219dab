"""CLI commands for SQL Quest.

Commands:
- challenges: List challenges with lock/completion marks
- show: Show a challenge prompt, schema, sample data and hints
- run: Evaluate a query against a challenge
- status: Show player XP, level and progress
"""

from pathlib import Path
from typing import Any, Mapping, Sequence

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from sqlquest.core.challenges import Challenge, SeedGroup
from sqlquest.core.errors import CatalogError, ChallengeLockedError, ChallengeNotFoundError
from sqlquest.core.evaluator import Evaluated
from sqlquest.core.game import GameService
from sqlquest.core.query_executor import ExecutionError, Invalid
from sqlquest.db.engine import EngineUnavailableError

app = typer.Typer(
    name="sqlquest",
    help="Learn SQL by solving challenges against small sandbox databases.",
    no_args_is_help=True,
)

console = Console()


def _get_service() -> GameService:
    """Build the game service from config, or exit with a clear error."""
    try:
        return GameService.from_config()
    except EngineUnavailableError as e:
        console.print(f"[red]✗ SQL engine unavailable: {e}[/red]")
        raise typer.Exit(code=1)
    except CatalogError as e:
        console.print(f"[red]✗ Invalid challenge catalog: {e}[/red]")
        raise typer.Exit(code=1)


def _get_challenge_or_exit(service: GameService, challenge_id: str) -> Challenge:
    try:
        return service.catalog.get(challenge_id)
    except ChallengeNotFoundError as e:
        console.print(f"[red]✗ {e}[/red]")
        console.print("\nAvailable challenges:")
        for c in service.catalog:
            console.print(f"  - {c.id}")
        raise typer.Exit(code=1)


def _rows_table(rows: Sequence[Mapping[str, Any]], columns: Sequence[str] | None = None, title: str | None = None) -> Table:
    """Render rows as a rich table."""
    if columns is None:
        columns = list(rows[0].keys()) if rows else []
    table = Table(title=title, show_lines=False)
    for col in columns:
        table.add_column(str(col))
    for row in rows:
        table.add_row(*("NULL" if row.get(c) is None else escape(str(row.get(c))) for c in columns))
    return table


# =============================================================================
# COMMANDS
# =============================================================================


@app.command(name="challenges")
def list_challenges() -> None:
    """List all challenges in catalog order."""
    service = _get_service()
    state = service.player_state()

    table = Table(title="Challenges")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Reward", justify="right")
    table.add_column("Status")

    for status in service.challenge_statuses():
        c = status.challenge
        if status.completed:
            mark = "[green]✓ completed[/green]"
        elif status.unlocked:
            mark = "[blue]unlocked[/blue]"
        else:
            mark = f"[dim]locked ({c.required_xp} XP)[/dim]"
        table.add_row(c.id, c.title, f"+{c.reward_xp} XP", mark)

    console.print(table)
    console.print(f"[dim]Level {state.level} • {state.xp} XP[/dim]")


@app.command()
def show(
    challenge_id: str = typer.Argument(..., help="Challenge ID (e.g., 'basic-select')"),
) -> None:
    """Show a challenge: prompt, schema, sample data and hints."""
    service = _get_service()
    challenge = _get_challenge_or_exit(service, challenge_id)

    console.print(f"[bold]{challenge.title}[/bold] [dim]({challenge.id})[/dim]")
    if challenge.environment:
        console.print(f"  [dim]world:[/dim]  {challenge.environment}")
    console.print(f"  [dim]reward:[/dim] +{challenge.reward_xp} XP")
    if challenge.description:
        console.print(f"\n{challenge.description}")

    console.print("\n[bold]Schema[/bold]")
    console.print(challenge.schema.strip(), markup=False)

    if challenge.is_multi_table:
        for group in challenge.seed_data:
            if isinstance(group, SeedGroup):
                console.print(_rows_table(group.rows, title=group.table_name))
    elif challenge.seed_data:
        console.print(_rows_table(challenge.seed_data, title="Sample data"))

    if challenge.expected_result:
        console.print(_rows_table(challenge.expected_result, title="Expected output"))

    if challenge.hints:
        console.print("\n[bold]Hints[/bold]")
        for hint in challenge.hints:
            console.print(f"  • {hint}")


@app.command()
def run(
    challenge_id: str = typer.Argument(..., help="Challenge ID (e.g., 'basic-select')"),
    query: str | None = typer.Argument(None, help="SQL query text"),
    file: Path | None = typer.Option(None, "--file", "-f", help="Read the query from a file"),
    force: bool = typer.Option(False, "--force", help="Attempt even if the challenge is locked"),
) -> None:
    """Run a query against a challenge and check the result."""
    if file is not None:
        if not file.exists():
            console.print(f"[red]✗ File not found: {file}[/red]")
            raise typer.Exit(code=1)
        query_text = file.read_text(encoding="utf-8")
    else:
        query_text = query or ""

    service = _get_service()
    _get_challenge_or_exit(service, challenge_id)

    try:
        outcome = service.submit(challenge_id, query_text, enforce_unlock=not force)
    except ChallengeLockedError as e:
        console.print(f"[yellow]⚠ {e}[/yellow]")
        raise typer.Exit(code=1)

    result = outcome.result

    if isinstance(result, Invalid):
        console.print(f"[yellow]⚠ Please enter a SQL query ({result.reason})[/yellow]")
        raise typer.Exit(code=1)

    if isinstance(result, ExecutionError):
        console.print(f"[red]✗ Error: {escape(result.message)}[/red]")
        raise typer.Exit(code=1)

    if not isinstance(result, Evaluated):
        console.print(f"[red]✗ {result.message}[/red]")
        raise typer.Exit(code=2)

    if result.rows:
        console.print(_rows_table(result.rows, columns=result.columns, title="Your result"))
    else:
        console.print("[dim](no rows)[/dim]")

    if not result.is_correct:
        console.print("[yellow]✗ Not quite right.[/yellow]")
        if result.mismatch is not None:
            console.print(f"  [dim]{result.mismatch.describe()}[/dim]")
        raise typer.Exit(code=1)

    console.print("[green]✓ Correct![/green]")
    completion = outcome.completion
    if completion is not None:
        if completion.already_completed and completion.xp_awarded == 0:
            console.print("  [dim]Already completed, no XP awarded.[/dim]")
        else:
            console.print(f"  [green]+{completion.xp_awarded} XP[/green]")
        if completion.leveled_up:
            console.print(f"  [bold green]Level up! You are now level {completion.state.level}.[/bold green]")
        for unlocked_id in sorted(completion.newly_unlocked):
            console.print(f"  [blue]Unlocked: {unlocked_id}[/blue]")
        for warning in completion.warnings:
            console.print(f"  [yellow]⚠ {warning}[/yellow]")


@app.command()
def status() -> None:
    """Show player XP, level and completed challenges."""
    service = _get_service()
    state = service.player_state()

    console.print(f"[bold]Level {state.level}[/bold] • {state.xp} XP")
    if state.xp_to_next_level:
        console.print(f"  [dim]next level in:[/dim] {state.xp_to_next_level} XP")
    else:
        console.print("  [dim]max level reached[/dim]")
    console.print(
        f"  [dim]completed:[/dim] {len(state.completed_challenge_ids)}/{len(service.catalog)}"
    )


if __name__ == "__main__":
    app()
