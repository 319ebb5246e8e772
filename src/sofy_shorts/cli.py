"""CLI interface for sofy-shorts."""

from __future__ import annotations

import asyncio

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from sofy_shorts import __version__
from sofy_shorts.config.loader import apply_upload_defaults, list_available_configs, load_config
from sofy_shorts.config.logging import setup_logging
from sofy_shorts.config.settings import Settings, get_settings
from sofy_shorts.exceptions import ConfigurationError
from sofy_shorts.models.job import JobStatus
from sofy_shorts.monitoring.dashboard import Dashboard, DashboardConfig
from sofy_shorts.monitoring.service import MonitoringService
from sofy_shorts.pipeline.orchestrator import PipelineResult, build_orchestrator
from sofy_shorts.publishing.youtube_uploader import default_token_path, get_youtube_service

app = typer.Typer(
    name="sofy",
    help="Generate short-form videos from niche configurations with generative AI.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console()

STATUS_MARKUP = {
    JobStatus.PENDING: "[yellow]pending[/yellow]",
    JobStatus.RUNNING: "[cyan]running[/cyan]",
    JobStatus.COMPLETED: "[green]completed[/green]",
    JobStatus.FAILED: "[red]failed[/red]",
}


def _load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as e:
        console.print(
            "[red]Configuration error:[/red] Invalid settings.\n"
            "Check your .env file for correct format.\n"
            f"Details: {e}"
        )
        raise typer.Exit(1)


def _print_configs(settings: Settings) -> None:
    configs = list_available_configs(settings.sofy_config_dir)
    if not configs:
        console.print(f"[yellow]No configurations found in {settings.sofy_config_dir}[/yellow]")
        return
    console.print("[bold]Available niche configurations:[/bold]")
    for name in configs:
        console.print(f"  - {name.rsplit('.', 1)[0]}")


def _print_result(result: PipelineResult) -> None:
    if result.success:
        lines = [
            f"[bold]Job:[/bold] {result.job_id}",
            f"[bold]Clips:[/bold] {len(result.clip_paths)}",
            f"[bold]Final video:[/bold] {result.output_path}",
        ]
        if result.video_url:
            lines.append(f"[bold]YouTube:[/bold] {result.video_url}")
        console.print(Panel("\n".join(lines), title="Generation Complete", border_style="green"))
    else:
        console.print(
            Panel(
                f"[bold]Job:[/bold] {result.job_id}\n"
                f"[bold]Error:[/bold] {result.error}\n"
                f"[bold]Completed steps:[/bold] {', '.join(result.steps_completed) or '-'}",
                title="Generation Failed",
                border_style="red",
            )
        )


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override SOFY_LOG_LEVEL."),
) -> None:
    """Configure logging before any command runs."""
    try:
        level = log_level or get_settings().sofy_log_level
    except ValidationError:
        level = "INFO"
    setup_logging(level=level)


@app.command()
def generate(
    niche: str = typer.Option(None, "--niche", "-n", help="Niche configuration to use."),
    list_niches: bool = typer.Option(
        False, "--list-niches", "-l", help="List available niche configurations."
    ),
) -> None:
    """Generate one video for a niche and print the analytics report.

    Examples:
        sofy generate --niche motivational
        sofy generate -l
    """
    settings = _load_settings()
    if list_niches:
        _print_configs(settings)
        return
    if not niche:
        console.print("[red]Error:[/red] No niche specified. Use --niche or --list-niches.")
        raise typer.Exit(1)

    try:
        config = apply_upload_defaults(load_config(niche, settings.sofy_config_dir), settings)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    monitoring = MonitoringService.from_settings(settings, console=console)
    try:
        try:
            orchestrator = build_orchestrator(settings, config, monitoring)
        except ConfigurationError as e:
            console.print(f"[red]Configuration error:[/red] {e}")
            raise typer.Exit(1)

        console.print(
            f"Starting video generation for niche [bold]{config.niche}[/bold] "
            f"(theme: {config.theme}, duration: {config.duration:g}s)"
        )
        try:
            result = asyncio.run(orchestrator.run())
        except KeyboardInterrupt:
            console.print("\n[yellow]Generation cancelled by user.[/yellow]")
            raise typer.Exit(130)

        _print_result(result)
        console.print("\n[bold]Analytics Report:[/bold]")
        console.print(monitoring.generate_report(), markup=False, highlight=False)
    finally:
        monitoring.close()

    if not result.success:
        raise typer.Exit(1)


@app.command()
def niches() -> None:
    """List available niche configurations."""
    _print_configs(_load_settings())


@app.command()
def jobs(
    active: bool = typer.Option(False, "--active", "-a", help="Only pending/running jobs."),
) -> None:
    """List tracked jobs."""
    settings = _load_settings()
    monitoring = MonitoringService.from_settings(settings)
    try:
        records = monitoring.active_jobs() if active else monitoring.list_all()
    finally:
        monitoring.close()

    if not records:
        console.print("[dim]No jobs found.[/dim]")
        return
    table = Table(title="Jobs", show_header=True, header_style="bold")
    table.add_column("Job", style="cyan")
    table.add_column("Niche")
    table.add_column("Status")
    table.add_column("Step")
    table.add_column("Duration", justify="right")
    table.add_column("Output / Error", style="dim")
    for job in records:
        table.add_row(
            job.id,
            job.niche,
            STATUS_MARKUP[job.status],
            job.current_step.value if job.current_step else "-",
            f"{job.elapsed_seconds():.1f}s",
            job.error or job.output_path or "",
        )
    console.print(table)


@app.command()
def report() -> None:
    """Print the analytics report."""
    monitoring = MonitoringService.from_settings(_load_settings())
    try:
        console.print(monitoring.generate_report(), markup=False, highlight=False)
    finally:
        monitoring.close()


@app.command()
def monitor() -> None:
    """Live dashboard of jobs, analytics and logs (Ctrl+C to exit)."""
    settings = _load_settings()
    monitoring = MonitoringService.from_settings(settings)
    dashboard = Dashboard(
        monitoring,
        DashboardConfig(
            refresh_interval=settings.monitor_refresh_interval,
            max_log_entries=settings.monitor_max_log_entries,
            show_active_only=settings.monitor_show_active_only,
        ),
        console=console,
    )
    console.print(
        f"Monitoring dashboard started with refresh interval of "
        f"{settings.monitor_refresh_interval:g}s"
    )
    try:
        asyncio.run(dashboard.run())
    except KeyboardInterrupt:
        console.print("[dim]Monitoring dashboard stopped[/dim]")
    finally:
        monitoring.close()


@app.command()
def recover() -> None:
    """Mark jobs left pending/running by a crashed process as failed.

    Only run this while no generation is in progress.
    """
    monitoring = MonitoringService.from_settings(_load_settings())
    try:
        failed = monitoring.recover_orphaned()
    finally:
        monitoring.close()
    if not failed:
        console.print("[green]No orphaned jobs found.[/green]")
        return
    for job in failed:
        console.print(f"[yellow]Marked as failed:[/yellow] {job.id}")


@app.command()
def status() -> None:
    """Show configuration status."""
    settings = _load_settings()
    table = Table(title="Configuration Status", show_header=True, header_style="bold")
    table.add_column("Setting", style="cyan")
    table.add_column("Status", justify="center")
    for name, ok in settings.is_configured().items():
        table.add_row(name, "[green]OK[/green]" if ok else "[red]Missing[/red]")
    table.add_row("API keys loaded", str(len(settings.api_keys())))
    table.add_row("Data directory", str(settings.sofy_data_dir))
    console.print(table)


@app.command("youtube-auth")
def youtube_auth() -> None:
    """Authorize YouTube uploads and store the OAuth token.

    Opens a browser for consent. Run it once before enabling output.upload.
    """
    settings = _load_settings()
    secrets = settings.youtube_client_secrets
    if secrets is None or not secrets.exists():
        console.print(
            "[red]Error:[/red] Set YOUTUBE_CLIENT_SECRETS to an existing OAuth client JSON file."
        )
        raise typer.Exit(1)
    token = settings.youtube_token_file or default_token_path(secrets)
    get_youtube_service(secrets, token)
    console.print(f"[green]YouTube token saved to {token}[/green]")


@app.command()
def version() -> None:
    """Show the installed version."""
    console.print(f"sofy-shorts {__version__}")


if __name__ == "__main__":
    app()
