"""
Command-line interface for the program generator.

Provides commands for:
- Seeding the exercise catalog and client profiles
- Generating a program end to end
- Previewing the deterministic exercise pre-filter offline
"""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from programgen.config import get_settings
from programgen.database import SqlProgramRepository
from programgen.exceptions import ProgramGenerationError
from programgen.exercise_context import compress_exercises
from programgen.exercise_filter import MAX_CANDIDATES, MIN_CANDIDATES, score_exercises
from programgen.llm_client import ModelClient
from programgen.logging_config import setup_logging
from programgen.orchestrator import ProgramOrchestrator
from programgen.plan_schemas import OrchestrationResult, ProfileAnalysis, ProgramSkeleton
from programgen.schemas import CatalogExercise, ClientProfile, IntakeRequest

# Initialize Typer app and Rich console
app = typer.Typer(help="Coaching Program Generator - multi-agent training program generation")
console = Console()


# ===== LOADING HELPERS =====


def _load_json(path: Path, what: str):
    try:
        with open(path) as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]✗ Failed to load {what}: {e}[/red]")
        raise typer.Exit(1)


def _load_catalog(path: Path) -> List[CatalogExercise]:
    data = _load_json(path, "exercise catalog")
    try:
        return [CatalogExercise(**item) for item in data]
    except (TypeError, ValidationError) as e:
        console.print(f"[red]✗ Invalid exercise catalog: {e}[/red]")
        raise typer.Exit(1)


# ===== DISPLAY HELPER FUNCTIONS =====


def _display_generation_result(result: OrchestrationResult):
    """
    Display the outcome of a generation run.

    Args:
        result: OrchestrationResult from the orchestrator
    """
    validation = result.validation
    color = "green" if validation.passed else "red"
    verdict = "PASSED" if validation.passed else "SAVED WITH BLOCKING ISSUES - NEEDS REVIEW"

    console.print(
        Panel(
            f"Program: [bold]{result.program_id}[/bold]\n"
            f"Validation: [{color}]{verdict}[/{color}]\n"
            f"Pipeline retries: {result.retries}\n"
            f"Duration: {result.duration_ms / 1000:.1f}s",
            title="Generation Complete",
            border_style=color,
        )
    )

    usage = Table(title="Token Usage", box=box.ROUNDED)
    usage.add_column("Agent", style="cyan")
    usage.add_column("Tokens", justify="right", style="yellow")
    usage.add_row("Profile Analyzer", str(result.token_usage.agent1))
    usage.add_row("Program Architect", str(result.token_usage.agent2))
    usage.add_row("Exercise Selector", str(result.token_usage.agent3))
    usage.add_row("Plan Validator", str(result.token_usage.agent4))
    usage.add_row("[bold]Total[/bold]", f"[bold]{result.token_usage.total}[/bold]")
    console.print(usage)

    if validation.issues:
        issues = Table(title="Validation Issues", box=box.ROUNDED)
        issues.add_column("Type")
        issues.add_column("Category", style="cyan")
        issues.add_column("Slot")
        issues.add_column("Message")
        for issue in validation.issues:
            style = "red" if issue.type.value == "error" else "yellow"
            issues.add_row(f"[{style}]{issue.type.value}[/{style}]", issue.category, issue.slot_ref or "-", issue.message)
        console.print(issues)


# ===== COMMANDS =====


@app.command()
def seed(
    catalog: Optional[Path] = typer.Option(
        None,
        "--catalog",
        "-c",
        help="Path to exercise catalog JSON (list of exercises)",
        exists=True,
    ),
    profile: Optional[Path] = typer.Option(
        None,
        "--profile",
        "-p",
        help="Path to client profile JSON",
        exists=True,
    ),
    database_url: Optional[str] = typer.Option(
        None,
        "--database-url",
        help="Database URL (default: DATABASE_URL setting)",
    ),
):
    """
    Load exercises and/or a client profile into the database.
    """
    settings = get_settings()
    setup_logging(settings)
    repository = SqlProgramRepository.from_url(database_url or settings.DATABASE_URL)

    if catalog is None and profile is None:
        console.print("[yellow]Nothing to seed. Pass --catalog and/or --profile.[/yellow]")
        raise typer.Exit(1)

    if catalog is not None:
        count = repository.add_exercises(_load_catalog(catalog))
        console.print(f"✓ Loaded [green]{count}[/green] exercises")

    if profile is not None:
        try:
            client_profile = ClientProfile(**_load_json(profile, "client profile"))
        except ValidationError as e:
            console.print(f"[red]✗ Invalid client profile: {e}[/red]")
            raise typer.Exit(1)
        repository.save_client_profile(client_profile)
        console.print(f"✓ Saved profile for [green]{client_profile.client_id}[/green]")


@app.command()
def generate(
    intake: Path = typer.Option(
        ...,
        "--intake",
        "-i",
        help="Path to intake request JSON",
        exists=True,
    ),
    requested_by: str = typer.Option(
        "cli",
        "--requested-by",
        "-u",
        help="User id recorded as the program's creator",
    ),
    save_result: Optional[Path] = typer.Option(
        None,
        "--save-result",
        help="Write the generation result JSON to this path",
    ),
):
    """
    Generate and save a program for a client.

    Workflow:
    1. Analyze the client profile
    2. Build the program skeleton
    3. Pre-filter the catalog and select exercises
    4. Validate (one restart on blocking issues)
    5. Save the program and print a summary
    """
    console.print("\n[bold cyan]Program Generator[/bold cyan]\n")

    settings = get_settings()
    setup_logging(settings)

    try:
        request = IntakeRequest(**_load_json(intake, "intake request"))
    except ValidationError as e:
        console.print(f"[red]✗ Invalid intake request: {e}[/red]")
        raise typer.Exit(1)

    if not settings.ANTHROPIC_API_KEY:
        console.print("[red]✗ ANTHROPIC_API_KEY is not set[/red]")
        raise typer.Exit(1)

    async def _run() -> OrchestrationResult:
        client = ModelClient.from_settings(settings)
        try:
            orchestrator = ProgramOrchestrator(client, SqlProgramRepository.from_url(settings.DATABASE_URL), settings)
            return await orchestrator.generate(request, requested_by)
        finally:
            await client.aclose()

    try:
        with console.status("Generating program..."):
            result = asyncio.run(_run())
    except ProgramGenerationError as e:
        console.print(f"[red]✗ Generation failed: {e}[/red]")
        raise typer.Exit(1)

    _display_generation_result(result)

    if save_result:
        save_result.write_text(result.model_dump_json(indent=2, by_alias=True))
        console.print(f"\n✓ Result saved: [green]{save_result}[/green]")


@app.command()
def score(
    catalog: Path = typer.Option(
        ...,
        "--catalog",
        "-c",
        help="Path to exercise catalog JSON",
        exists=True,
    ),
    skeleton: Path = typer.Option(
        ...,
        "--skeleton",
        "-s",
        help="Path to program skeleton JSON",
        exists=True,
    ),
    analysis: Path = typer.Option(
        ...,
        "--analysis",
        "-a",
        help="Path to profile analysis JSON",
        exists=True,
    ),
    equipment: List[str] = typer.Option(
        [],
        "--equipment",
        "-e",
        help="Available equipment (repeat the option for several)",
    ),
    top: int = typer.Option(
        MAX_CANDIDATES,
        "--top",
        help="Number of ranked exercises to show",
    ),
):
    """
    Preview the deterministic exercise pre-filter without calling a model.
    """
    try:
        program_skeleton = ProgramSkeleton(**_load_json(skeleton, "skeleton"))
        profile_analysis = ProfileAnalysis(**_load_json(analysis, "analysis"))
    except ValidationError as e:
        console.print(f"[red]✗ Invalid input: {e}[/red]")
        raise typer.Exit(1)

    exercises = compress_exercises(_load_catalog(catalog))
    ranked = score_exercises(exercises, program_skeleton, equipment, profile_analysis)

    table = Table(title=f"Exercise Scores ({len(exercises)} active)", box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("Exercise", style="cyan")
    table.add_column("Pattern")
    table.add_column("Difficulty")
    table.add_column("Score", justify="right", style="yellow")
    for rank, item in enumerate(ranked[:top], start=1):
        ex = item.exercise
        table.add_row(
            str(rank),
            ex.name,
            ex.movement_pattern.value if ex.movement_pattern else "-",
            ex.difficulty.value,
            str(item.score),
        )
    console.print(table)

    kept = min(MAX_CANDIDATES, len(ranked))
    if kept < MIN_CANDIDATES:
        console.print(f"\n[yellow]Only {kept} candidates; the full catalog would be sent to the selector.[/yellow]")
    else:
        console.print(f"\n✓ Top [green]{kept}[/green] exercises would be sent to the selector.")


if __name__ == "__main__":
    app()
