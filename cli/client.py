from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Dict, List

import httpx
import typer

from cli.config import CLIConfig

_PENDING_STATUSES = {"queued", "running"}


class ApiClient:
    """Minimal HTTP client for the demo service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.request_timeout)

    def close(self) -> None:
        self._client.close()

    def generate(self, payload: Dict[str, Any]) -> str:
        body = self._request("POST", "/readings/generate", json=payload)
        job_id = body.get("job_id")
        if not isinstance(job_id, str):
            raise typer.BadParameter("Unexpected response payload when starting generation.")
        return job_id

    def get_job(self, job_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/readings/jobs/{job_id}", not_found=f"Job {job_id} was not found.")

    def poll_job(self, job_id: str, interval: float, timeout: float) -> Dict[str, Any]:
        deadline = time.monotonic() + timeout
        last_payload: Dict[str, Any] | None = None
        while time.monotonic() <= deadline:
            last_payload = self.get_job(job_id)
            if last_payload.get("status") not in _PENDING_STATUSES:
                return last_payload
            time.sleep(interval)
        typer.secho(
            (
                f"Timed out waiting for generation job {job_id}. "
                f"Last status: {last_payload.get('status') if last_payload else 'unknown'}"
            ),
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    def query_metrics(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/semantic-view/query", json=payload)

    def upload_benchmark(self, path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise typer.BadParameter(f"Path {path} is not a file.")
        with path.open("rb") as handle:
            return self._request(
                "POST",
                "/benchmarks",
                files={"file": (path.name, handle, "application/pdf")},
            )

    def refresh_benchmarks(self) -> List[Dict[str, Any]]:
        return self._request("POST", "/benchmarks/refresh")

    def search(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/benchmarks/search", json=payload)

    def _request(self, method: str, url: str, not_found: str | None = None, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, url, **kwargs)
            if not_found is not None and response.status_code == 404:
                raise typer.BadParameter(not_found)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
