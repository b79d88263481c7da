"""
CuisineDuo - CLI Entry Point.

Usage:
    cuisineduo serve                   Start the API server
    cuisineduo health                  Check configuration
    cuisineduo db                      Check database tables
    cuisineduo swipe-status <id>       Show votes and matches for a swipe session
    cuisineduo --help                  Show help
"""

import asyncio
import logging

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="cuisineduo",
    help="CuisineDuo - household meal planning backend.",
    add_completion=False,
)
console = Console()

TABLES = [
    "profiles",
    "inventory_items",
    "recipes",
    "recipe_taste_params",
    "recipe_translations",
    "swipe_sessions",
    "swipe_session_recipes",
    "swipe_votes",
    "shopping_lists",
    "shopping_list_items",
    "messages",
    "push_subscriptions",
    "ai_logs",
]


@app.command()
def health() -> None:
    """Check configuration."""
    from cuisineduo.config import get_settings

    console.print("\n[bold]CuisineDuo Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("[green]OK[/green] Configuration loaded")
        console.print(f"   Environment: {settings.cuisineduo_env}")
        console.print(f"   Log level: {settings.log_level}")

        if settings.openai_api_key.startswith("sk-"):
            console.print("[green]OK[/green] OpenAI API key configured")
        else:
            console.print("[yellow]WARN[/yellow] OpenAI API key may be invalid")

        if settings.openai_scan_api_key:
            console.print("[green]OK[/green] Separate scan API key configured")

        if settings.supabase_url.startswith("https://"):
            console.print("[green]OK[/green] Supabase URL configured")
        else:
            console.print("[red]FAIL[/red] Supabase URL missing or invalid")

        if settings.giphy_api_key:
            console.print("[green]OK[/green] Giphy API key configured")
        else:
            console.print("[dim]INFO[/dim] Giphy disabled (no GIPHY_API_KEY)")

        if settings.push_enabled:
            console.print("[green]OK[/green] Web push VAPID keys configured")
        else:
            console.print("[dim]INFO[/dim] Web push disabled (no VAPID keys)")

        console.print("\n[green]All checks passed![/green]")

    except Exception as e:
        console.print(f"\n[red]FAIL Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from cuisineduo import __version__

    console.print(f"CuisineDuo version {__version__}")


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log all LLM prompts to prompt_logs/"),
) -> None:
    """Start the API server."""
    import os

    import uvicorn

    from cuisineduo.config import settings
    from cuisineduo.llm.prompt_logger import enable_prompt_logging

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if log_prompts:
        # Also set for the reloader's worker process
        os.environ["CUISINEDUO_LOG_PROMPTS"] = "1"
        enable_prompt_logging(True)
        console.print("[dim]Prompt logging enabled. Check prompt_logs/.[/dim]")

    # Hosting platforms set PORT
    actual_port = int(os.environ.get("PORT", port))

    console.print("\n[bold green]CuisineDuo API[/bold green]")
    console.print(f"Starting server on http://localhost:{actual_port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "cuisineduo.web.app:app",
        host="0.0.0.0",
        port=actual_port,
        reload=reload,
    )


@app.command()
def db() -> None:
    """Check database connection and tables."""
    from cuisineduo.db.client import get_service_client

    console.print("\n[bold]Database Connection Check[/bold]\n")

    try:
        client = get_service_client()
        console.print("[green]OK[/green] Connected to Supabase")

        console.print("\n[bold]Table Status:[/bold]")
        for table in TABLES:
            try:
                result = client.table(table).select("*", count="exact").limit(0).execute()
                console.print(f"  [green]OK[/green] {table}: {result.count} rows")
            except Exception as e:
                console.print(f"  [red]FAIL[/red] {table}: {e}")

        console.print("\n[green]Database check complete![/green]")

    except Exception as e:
        console.print(f"\n[red]FAIL Database connection failed: {e}[/red]")
        raise typer.Exit(1)


def _progress_table(snapshot) -> Table:
    table = Table(title=f"Session {snapshot.session.id} ({snapshot.session.status.value})")
    table.add_column("Member")
    table.add_column("Voted", justify="right")
    table.add_column("Progress", justify="right")
    for progress in snapshot.members_progress:
        table.add_row(
            progress.display_name or progress.profile_id,
            f"{progress.voted_count}/{progress.total_count}",
            f"{progress.ratio:.0%}",
        )
    return table


@app.command("swipe-status")
def swipe_status(session_id: str = typer.Argument(..., help="swipe_sessions id")) -> None:
    """Show voting progress and matches for a swipe session."""
    from cuisineduo.db.client import get_service_client
    from cuisineduo.swipe.aggregator import SwipeSessionAggregator
    from cuisineduo.swipe.models import SwipeSessionNotFound
    from cuisineduo.swipe.store import SupabaseSwipeStore

    aggregator = SwipeSessionAggregator(SupabaseSwipeStore(get_service_client()), session_id, profile_id="")
    try:
        snapshot = asyncio.run(aggregator.load())
    except SwipeSessionNotFound:
        console.print(f"[red]Swipe session {session_id} not found[/red]")
        raise typer.Exit(1)

    console.print(_progress_table(snapshot))
    console.print(f"\nRecipes: {len(snapshot.recipes)}  Complete: {snapshot.is_complete}")

    if snapshot.matches:
        console.print("\n[bold green]Matches[/bold green]")
        for recipe in snapshot.matches:
            existing = " [dim](existing)[/dim]" if recipe.is_existing_recipe else ""
            console.print(f"  • {recipe.name}{existing}")
    else:
        console.print("\n[dim]No matches yet[/dim]")


if __name__ == "__main__":
    app()
