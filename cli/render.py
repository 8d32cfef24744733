from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_job(payload: Dict[str, Any]) -> None:
    echo_heading("Generation Job")
    echo_key_values(
        [
            ("job_id", payload.get("job_id")),
            ("status", payload.get("status")),
            ("requested_at", payload.get("requested_at")),
            ("completed_at", payload.get("completed_at")),
            ("processing_ms", payload.get("processing_ms")),
            ("row_count", payload.get("row_count")),
            ("excursion_count", payload.get("excursion_count")),
        ]
    )

    errors = payload.get("errors") or []
    typer.echo()
    echo_heading("Errors")
    if errors:
        for error in errors:
            typer.echo(f"  - {error.get('reason')}")
    else:
        typer.echo("No errors recorded.")


def render_metrics(payload: Dict[str, Any]) -> None:
    columns: List[str] = list(payload.get("dimensions") or []) + list(payload.get("metrics") or [])
    rows = payload.get("rows") or []
    echo_heading("Metrics")
    if not rows:
        typer.echo("No readings matched.")
        return
    typer.echo(" | ".join(columns))
    for row in rows:
        typer.echo(" | ".join(_format_cell(row.get(column)) for column in columns))


def render_documents(documents: List[Dict[str, Any]]) -> None:
    echo_heading("Benchmark Documents")
    if not documents:
        typer.echo("No PDF documents found in the stage.")
        return
    for document in documents:
        customer = document.get("customer_id") or "unmatched"
        typer.echo(f"  - {document.get('file_name')} ({customer})")


def render_search(payload: Dict[str, Any]) -> None:
    echo_heading(f"Results for {payload.get('query')!r}")
    results = payload.get("results") or []
    if not results:
        typer.echo("No matching documents.")
        return
    for hit in results:
        typer.echo(f"  - {hit.get('id')} [{hit.get('title')}] score={hit.get('score')}")
        snippet = hit.get("snippet")
        if snippet:
            typer.echo(f"      {snippet}")


def _format_cell(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)
