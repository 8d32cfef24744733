from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_documents, render_job, render_metrics, render_search
from datastore.readings_table import write_readings_csv
from services.agent import build_agent_specification
from services.generator import GeneratorConfig, GeneratorError, SensorDataGenerator
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for the IoT temperature agent demo service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds between status checks when waiting for completion.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Maximum seconds to wait when polling for results.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(
        base_url=base_url,
        poll_interval=poll_interval,
        poll_timeout=timeout,
    )
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("generate")
def generate_command(
    ctx: typer.Context,
    hours: Optional[int] = typer.Option(None, "--hours", help="Number of hourly timestamps per customer."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible values."),
    replace: bool = typer.Option(
        False,
        "--replace/--keep",
        help="Regenerate even when the readings table already holds rows.",
    ),
    wait: bool = typer.Option(
        False,
        "--wait/--no-wait",
        help="Wait for the job to finish and display the result.",
    ),
) -> None:
    """Start generating the synthetic readings table."""
    state = _get_state(ctx)
    payload = {"num_hours": hours, "seed": seed, "replace": replace}
    job_id = state.client.generate({key: value for key, value in payload.items() if value is not None})
    typer.secho(f"Generation accepted. job_id={job_id}", fg=typer.colors.GREEN)

    if not wait:
        return

    typer.echo(
        f"Waiting for generation (interval={state.config.poll_interval}s, "
        f"timeout={state.config.poll_timeout}s)..."
    )
    result = state.client.poll_job(
        job_id, interval=state.config.poll_interval, timeout=state.config.poll_timeout
    )
    typer.echo()
    render_job(result)


@app.command("job")
def job_command(
    ctx: typer.Context,
    job_id: str = typer.Argument(..., help="Identifier returned from the generate command."),
) -> None:
    """Fetch the status of a generation job."""
    state = _get_state(ctx)
    render_job(state.client.get_job(job_id))


@app.command("metrics")
def metrics_command(
    ctx: typer.Context,
    metrics: List[str] = typer.Argument(..., help="Metric names or synonyms, e.g. 'avg temp'."),
    by: List[str] = typer.Option([], "--by", help="Dimension to group by; repeatable."),
    customer: Optional[str] = typer.Option(None, "--customer", help="Restrict to a customer id."),
    sensor: Optional[str] = typer.Option(None, "--sensor", help="Restrict to a sensor id."),
) -> None:
    """Query metrics from the semantic view."""
    state = _get_state(ctx)
    payload = {
        "metrics": metrics,
        "dimensions": by,
        "customer_id": customer,
        "sensor_id": sensor,
    }
    render_metrics(state.client.query_metrics(payload))


@app.command("upload")
def upload_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to a benchmark PDF."),
) -> None:
    """Upload a benchmark PDF to the document stage."""
    state = _get_state(ctx)
    body = state.client.upload_benchmark(file)
    typer.secho(
        f"Staged {body.get('file_name')} ({body.get('size_bytes')} bytes)",
        fg=typer.colors.GREEN,
    )


@app.command("refresh")
def refresh_command(ctx: typer.Context) -> None:
    """Parse staged PDFs into the benchmark documents table."""
    state = _get_state(ctx)
    render_documents(state.client.refresh_benchmarks())


@app.command("search")
def search_command(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Words to look for in benchmark documents."),
    customer: Optional[str] = typer.Option(None, "--customer", help="Restrict to a customer id."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Maximum results."),
) -> None:
    """Search ingested benchmark documents."""
    state = _get_state(ctx)
    payload = {"query": query, "customer_id": customer, "limit": limit}
    render_search(state.client.search(payload))


@app.command("export")
def export_command(
    output: Path = typer.Argument(..., dir_okay=False, help="CSV file to write."),
    hours: Optional[int] = typer.Option(None, "--hours", help="Number of hourly timestamps per customer."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible values."),
) -> None:
    """Generate readings locally and write them to CSV without the service."""
    settings = get_settings()
    config = GeneratorConfig(
        num_hours=hours if hours is not None else settings.num_hours,
        anchor_timestamp=settings.anchor_timestamp,
        seed=seed if seed is not None else settings.seed,
    )
    try:
        generator = SensorDataGenerator(config)
    except GeneratorError as exc:
        raise typer.BadParameter(str(exc)) from exc

    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8", newline="") as handle:
        written = write_readings_csv(handle, generator.iter_readings())
    typer.secho(f"Wrote {written} readings to {output}", fg=typer.colors.GREEN)


@app.command("agent-spec")
def agent_spec_command() -> None:
    """Print the temperature monitoring agent specification as YAML."""
    typer.echo(build_agent_specification().to_yaml(), nl=False)
