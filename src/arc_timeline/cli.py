"""CLI entry point for the timeline recorder."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from arc_timeline.core.orchestrator import TimelineRecorder
from arc_timeline.metrics.logging import LogAnalyzer, LogWriter
from arc_timeline.modules.sources import (
    JsonlSampleSource,
    ScriptedSampleSource,
    write_samples,
)
from arc_timeline.schemas import CycleResult, TimelineSettings
from arc_timeline.utils.config import (
    DEFAULT_HISTORY_RETENTION_SECONDS,
    DEFAULT_SAMPLES_PER_MINUTE,
)
from arc_timeline.utils.logging import LogLevel, SessionLogger

app = typer.Typer(
    name="arc-timeline",
    help="Motion-segmented timeline recorder",
    add_completion=False,
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def format_cycle_summary(result: CycleResult) -> str:
    """Format a single-line cycle summary for console output.

    Args:
        result: The cycle to summarise.

    Returns:
        Formatted summary string.
    """
    stamp = result.sample_timestamp.strftime("%H:%M:%S")
    if not result.accepted:
        return f"[----] {stamp} skipped ({result.rejection.value})"

    markers = ""
    if result.created_segment_id:
        markers += f" +{result.created_segment_id}"
    if result.merges:
        markers += f" merged={len(result.merges)}"
    if result.promoted_ids:
        markers += f" final+{len(result.promoted_ids)}"
    if result.expired_ids:
        markers += f" expired={len(result.expired_ids)}"
    return (
        f"[{result.cycle:04d}] {stamp} "
        f"active={result.active_count} final={result.finalized_count}"
        f"{markers}"
    )


@app.command()
def run(
    input_path: Optional[Path] = typer.Option(
        None,
        "--input",
        "-i",
        help="JSONL sample file to replay (default: synthetic commute)",
    ),
    steps: int = typer.Option(
        0,
        "--steps",
        "-n",
        help="Maximum samples to submit (0 = all)",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        "-s",
        help="Random seed for the synthetic commute",
    ),
    samples_per_minute: float = typer.Option(
        DEFAULT_SAMPLES_PER_MINUTE,
        "--samples-per-minute",
        help="Rate limit for accepted samples",
    ),
    retention_hours: float = typer.Option(
        DEFAULT_HISTORY_RETENTION_SECONDS / 3600,
        "--retention-hours",
        help="Hours of finalized history to keep",
    ),
    output_dir: Path = typer.Option(
        Path("runs"),
        "--output",
        "-o",
        help="Output directory for run logs",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress per-cycle output",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Record a timeline from replayed or synthetic samples.

    Every sample runs a full processing cycle. Cycle results are written
    to runs/<run_id>/cycles.jsonl. Expiry is measured against sample
    time, not wall-clock time.

    Examples:

        # Synthetic commute
        arc-timeline run --seed 7

        # Replay a recorded day
        arc-timeline run --input day.jsonl --retention-hours 2
    """
    setup_logging(verbose)

    try:
        settings = TimelineSettings(
            samples_per_minute=samples_per_minute,
            history_retention=timedelta(hours=retention_hours),
        )
    except ValidationError as e:
        typer.echo(f"Error: invalid settings: {e}", err=True)
        raise typer.Exit(1)

    if input_path is not None:
        if not input_path.exists():
            typer.echo(f"Error: input file not found: {input_path}", err=True)
            raise typer.Exit(1)
        source = JsonlSampleSource(input_path)
        if not source.total_samples:
            typer.echo(f"Error: no valid samples in {input_path}", err=True)
            raise typer.Exit(1)
        source_label = f"{input_path} ({source.total_samples} samples, {source.skipped_lines} skipped)"
    else:
        source = ScriptedSampleSource(seed=seed)
        source_label = f"synthetic commute ({source.total_samples} samples, seed {seed})"

    # Random suffix: one directory per invocation
    run_id = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"
    run_dir = output_dir / run_id
    run_dir.mkdir(parents=True, exist_ok=False)
    log_path = run_dir / "cycles.jsonl"

    session_log = SessionLogger(
        run_id,
        runs_dir=output_dir,
        console_output=verbose,
        level=LogLevel.DEBUG if verbose else LogLevel.INFO,
    )
    recorder = TimelineRecorder(
        settings=settings,
        source=source,
        logger=session_log,
        run_id=run_id,
    )
    recorder.set_clock(recorder.sample_clock)

    if not quiet:
        typer.echo("Arc Timeline Recorder")
        typer.echo(f"Run ID: {run_id}")
        typer.echo(f"Source: {source_label}")
        typer.echo(
            f"Rate: {settings.samples_per_minute:g}/min, "
            f"Retention: {retention_hours:g}h"
        )
        typer.echo(f"Log: {log_path}")
        typer.echo("-" * 60)

    max_samples = steps if steps > 0 else None
    recorder.start_recording()
    try:
        with LogWriter(log_path) as writer:
            for result in recorder.iter_run(max_samples=max_samples):
                writer.write(result)
                if not quiet:
                    typer.echo(format_cycle_summary(result))
    except KeyboardInterrupt:
        if not quiet:
            typer.echo("\n" + "-" * 60)
            typer.echo("Interrupted by user")
    finally:
        recorder.stop_recording()
        session_log.close()

    if not quiet:
        stats = LogAnalyzer(log_path).summary()
        typer.echo("-" * 60)
        typer.echo(
            f"Submitted {stats['submitted']} samples, accepted {stats['accepted']}, "
            f"merges {stats['merges']}"
        )
        typer.echo(f"Finalized segments: {len(recorder.finalized_segments)}")
        for segment in recorder.finalized_segments:
            typer.echo(f"  {segment.summary()}")
        typer.echo(f"Active segments: {len(recorder.active_segments)}")
        for segment in recorder.active_segments:
            typer.echo(f"  {segment.summary()}")
        typer.echo(f"Log written to: {log_path}")


@app.command()
def generate(
    output: Path = typer.Argument(..., help="JSONL file to write"),
    seed: int = typer.Option(42, "--seed", "-s", help="Random seed"),
    interval: float = typer.Option(
        6.0,
        "--interval",
        help="Seconds between samples",
    ),
) -> None:
    """Write the synthetic commute as a replayable JSONL sample file."""
    try:
        source = ScriptedSampleSource(interval=interval, seed=seed)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    samples = []
    while source.has_samples():
        samples.append(source.get_sample())
    write_samples(output, samples)
    typer.echo(f"Wrote {len(samples)} samples to {output}")


@app.command()
def version() -> None:
    """Show version information."""
    from arc_timeline import __version__
    typer.echo(f"arc-timeline v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
