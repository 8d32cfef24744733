"""Unit tests for the mock DynamoDB datastore implementation."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from app.schemas import BenchmarkDocument, GenerationJob, JobError, JobStatus
from datastore.mock_dynamodb import MockDynamoDBTable


def _jobs_table(path=None) -> MockDynamoDBTable[GenerationJob]:
    return MockDynamoDBTable(
        name="generation_jobs",
        model=GenerationJob,
        key_attribute="job_id",
        persistence_path=path,
    )


def _sample_job(job_id: str = "job-123") -> GenerationJob:
    return GenerationJob(
        job_id=job_id,
        status=JobStatus.completed,
        requested_at=datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc),
        completed_at=datetime(2025, 1, 1, 12, 5, tzinfo=timezone.utc),
        processing_ms=300000,
        row_count=23112,
        excursion_count=340,
    )


def test_put_and_get_round_trip_returns_deep_copy() -> None:
    table = _jobs_table()
    original = _sample_job()

    table.put_item(original)
    fetched = table.get_item(original.job_id)

    assert fetched is not None
    assert fetched == original
    assert fetched is not original

    # Mutating the fetched instance should not affect stored data
    fetched.errors.append(JobError(reason="changed"))
    fetched_again = table.get_item(original.job_id)
    assert fetched_again is not None
    assert fetched_again.errors == []


def test_get_item_returns_none_when_missing() -> None:
    table = _jobs_table()

    assert table.get_item("missing-id") is None


def test_put_item_persists_to_disk_and_reloads(tmp_path) -> None:
    path = tmp_path / "jobs.json"
    table = _jobs_table(path)
    job = _sample_job()

    table.put_item(job)

    assert path.exists()
    payload = json.loads(path.read_text())
    assert job.job_id in payload
    assert payload[job.job_id]["status"] == JobStatus.completed

    loaded = _jobs_table(path).get_item(job.job_id)
    assert loaded == job
    assert loaded is not job


def test_scan_returns_all_items_as_deep_copies() -> None:
    table = _jobs_table()
    table.put_item(_sample_job(job_id="job-1"))
    table.put_item(_sample_job(job_id="job-2"))

    scanned = sorted(table.scan(), key=lambda item: item.job_id)
    assert [item.job_id for item in scanned] == ["job-1", "job-2"]

    scanned[0].row_count = 99
    assert all(item.row_count == 23112 for item in table.scan())


def test_delete_item_removes_and_persists(tmp_path) -> None:
    path = tmp_path / "docs.json"
    table = MockDynamoDBTable(
        name="docs",
        model=BenchmarkDocument,
        key_attribute="file_name",
        persistence_path=path,
    )
    table.put_item(
        BenchmarkDocument(
            file_name="a.pdf",
            document_content="text",
            ingested_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
    )

    assert table.delete_item("a.pdf") is True
    assert table.delete_item("a.pdf") is False
    assert json.loads(path.read_text()) == {}


def test_corrupt_persistence_file_starts_empty(tmp_path) -> None:
    path = tmp_path / "jobs.json"
    path.write_text("{not json")

    assert _jobs_table(path).scan() == []
