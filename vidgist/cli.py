"""
vidgist.cli - Typer CLI entry point.

Provides subcommands for resolving, inspecting and ingesting videos.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from vidgist import __version__
from vidgist.config import (
    BUILTIN_PROFILES,
    CONFIG_FILENAME,
    MAX_FRAME_COUNT,
    VidgistConfig,
    create_default_config,
    load_config,
    write_config,
)
from vidgist.exceptions import ConfigError, VidgistError
from vidgist.logging import configure_logging
from vidgist.resolve import resolve_url
from vidgist.utils import format_duration

app = typer.Typer(
    name="vidgist",
    help="Video ingestion for content summarization.\n\n"
    "Turns a YouTube or Instagram video into a transcript plus visual notes "
    "ready for summary, slide and mind-map generation.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"vidgist {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Vidgist - video ingestion for content summarization."""
    configure_logging(verbose)


def _load_config(config_path: str | None) -> VidgistConfig:
    try:
        return load_config(Path(config_path) if config_path else None)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command("init")
def init_config(
    profile: str = typer.Option(
        "cloud",
        "--profile",
        "-p",
        help="Config profile: cloud or local",
    ),
    path: str = typer.Option(".", "--path", "-d", help="Directory to write vidgist.yaml in"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
) -> None:
    """Write a default vidgist.yaml."""
    if profile not in BUILTIN_PROFILES:
        console.print(f"[red]Error: Unknown profile '{profile}'[/red]")
        raise typer.Exit(1)

    config_path = Path(path) / CONFIG_FILENAME
    if config_path.exists() and not force:
        console.print(f"[red]Error: {config_path} already exists (use --force)[/red]")
        raise typer.Exit(1)

    write_config(create_default_config(profile), config_path)
    console.print(f"[green]✓[/green] Wrote {config_path} with profile '{profile}'")


@app.command("resolve")
def resolve_cmd(
    url: str = typer.Argument(..., help="Video URL"),
) -> None:
    """Show which platform and media id a URL resolves to."""
    ref = resolve_url(url)

    table = Table(title="Resolved URL")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("URL", ref.source_url)
    table.add_row("Platform", ref.platform.value)
    table.add_row("Media ID", ref.media_id + (" [dim](generated)[/dim]" if ref.synthetic_id else ""))
    table.add_row("Supported", "yes" if ref.supported else "[red]no[/red]")
    console.print(table)

    if not ref.supported:
        raise typer.Exit(1)


@app.command("info")
def info_cmd(
    url: str = typer.Argument(..., help="Video URL"),
) -> None:
    """Fetch video metadata without running the pipeline."""
    from vidgist.pipeline import get_video_info

    try:
        info = asyncio.run(get_video_info(url))
    except VidgistError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Video Info")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Title", info.title)
    table.add_row("Author", info.author)
    table.add_row("Duration", format_duration(info.duration_seconds))
    table.add_row("Views", str(info.view_count) if info.view_count is not None else "-")
    table.add_row("Uploaded", info.upload_date or "-")
    table.add_row("Keywords", ", ".join(info.keywords) or "-")
    console.print(table)


@app.command("analyze")
def analyze_cmd(
    url: str = typer.Argument(..., help="Video URL"),
    frames: int | None = typer.Option(
        None,
        "--frames",
        "-n",
        min=0,
        max=MAX_FRAME_COUNT,
        help="Frames to sample (default from config)",
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", "-t", help="Seconds the whole run may take (default from config)"
    ),
    output: str | None = typer.Option(
        None, "--output", "-o", help="Write the extracted content as JSON"
    ),
    text: bool = typer.Option(False, "--text", help="Print the canonical text"),
    config_path: str | None = typer.Option(None, "--config", "-c", help="Path to vidgist.yaml"),
) -> None:
    """Extract transcript and visual notes from a video."""
    from vidgist.pipeline import PipelineCoordinator

    config = _load_config(config_path)
    coordinator = PipelineCoordinator(config)

    console.print(f"[cyan]Analyzing {url}...[/cyan]")
    try:
        content = asyncio.run(coordinator.process(url, frame_count=frames, timeout=timeout))
    except VidgistError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    diagnostics = content.diagnostics
    table = Table(title="Extracted Content")
    table.add_column("Branch", style="cyan")
    table.add_column("Result", style="green")
    table.add_column("Status", style="yellow")
    table.add_row(
        "Audio",
        f"{len(content.transcript.segments)} segment(s), "
        f"{format_duration(content.transcript.duration_seconds)}",
        "[red]Degraded[/red]" if diagnostics.audio_degraded else "[green]✓[/green]",
    )
    table.add_row(
        "Visual",
        f"{diagnostics.frames_analyzed}/{diagnostics.frames_sampled} frame(s)",
        "[red]Degraded[/red]" if diagnostics.visual_degraded else "[green]✓[/green]",
    )
    console.print(table)

    for warning in diagnostics.warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")

    if content.visual_summary.key_visual_tags:
        tags = ", ".join(sorted(content.visual_summary.key_visual_tags))
        console.print(f"[dim]Key visual elements: {tags}[/dim]")

    usage = coordinator.visual_analyzer.client.get_token_usage()
    if usage["total_tokens"]:
        console.print(
            f"[dim]Vision tokens: {usage['total_tokens']} "
            f"({usage['prompt_tokens']} prompt, {usage['completion_tokens']} completion)[/dim]"
        )

    if output:
        from vidgist.io import save_content

        save_content(Path(output), content)
        console.print(f"[green]✓[/green] Wrote {output}")

    if text:
        console.print(content.to_text(), markup=False)


@app.command("doctor")
def doctor_cmd(
    config_path: str | None = typer.Option(None, "--config", "-c", help="Path to vidgist.yaml"),
) -> None:
    """Check FFmpeg, yt-dlp, backends and the scratch directory."""
    from vidgist.validation import run_preflight_checks

    config = _load_config(config_path)
    results = run_preflight_checks(config)

    table = Table(title="Preflight Checks")
    table.add_column("Check", style="cyan")
    table.add_column("Details", style="green")
    for name, check in results["checks"].items():
        if "error" in check:
            hint = f" ({check['install_hint']})" if check.get("install_hint") else ""
            table.add_row(name, f"[red]{check['error']}{hint}[/red]")
        elif name == "backends":
            details = [f"[red]{e}[/red]" for e in check["errors"]]
            details += [f"[yellow]{w}[/yellow]" for w in check["warnings"]]
            table.add_row(name, "\n".join(details) or "ok")
        elif name == "disk_space":
            status = "ok" if check["sufficient"] else "[red]insufficient[/red]"
            table.add_row(name, f"{check['available_mb']} MB free, {status}")
        elif name == "scratch_dir":
            leftovers = len(check["leftover_files"])
            note = f", [yellow]{leftovers} leftover file(s)[/yellow]" if leftovers else ""
            table.add_row(name, f"{check['path']}{note}")
        else:
            table.add_row(name, ", ".join(f"{k}={v}" for k, v in check.items()))
    console.print(table)

    if not results["passed"]:
        raise typer.Exit(1)
    console.print("[green]✓[/green] All checks passed")


@app.command("text")
def text_cmd(
    path: str = typer.Argument(..., help="JSON written by analyze --output"),
    output: str | None = typer.Option(None, "--output", "-o", help="Write the text to a file"),
) -> None:
    """Render saved extracted content as the canonical text."""
    from vidgist.io import load_content, save_text

    try:
        content = load_content(Path(path))
    except (FileNotFoundError, VidgistError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if output:
        save_text(Path(output), content)
        console.print(f"[green]✓[/green] Wrote {output}")
    else:
        console.print(content.to_text(), markup=False)
