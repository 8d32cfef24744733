from __future__ import annotations

from datetime import datetime
from typing import Iterable

from datastore.mock_dynamodb import build_default_documents_table, build_default_jobs_table
from datastore.readings_table import build_default_readings_table
from services.readings import build_default_readings_service
from settings import get_settings
from storage.benchmark_stage import build_default_stage

CACHES = (
    get_settings,
    build_default_readings_table,
    build_default_jobs_table,
    build_default_documents_table,
    build_default_stage,
    build_default_readings_service,
)


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    readings_path = tmp_path / "readings.csv"
    jobs_path = tmp_path / "jobs.json"
    docs_path = tmp_path / "docs.json"
    stage_root = tmp_path / "stage"

    monkeypatch.setenv("READINGS_TABLE_PATH", str(readings_path))
    monkeypatch.setenv("GENERATION_JOBS_PATH", str(jobs_path))
    monkeypatch.setenv("BENCHMARK_DOCS_PATH", str(docs_path))
    monkeypatch.setenv("BENCHMARK_STAGE_PATH", str(stage_root))
    monkeypatch.setenv("GENERATOR_WORKER_COUNT", "3")
    monkeypatch.setenv("GENERATOR_NUM_HOURS", "48")
    monkeypatch.setenv("GENERATOR_ANCHOR_TIMESTAMP", "2025-06-01T00:00:00")
    monkeypatch.setenv("GENERATOR_SEED", "17")
    monkeypatch.setenv("IOT_DEMO_DATABASE", "ANALYTICS")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    _clear_caches(CACHES)
    service = build_default_readings_service()

    try:
        settings = get_settings()
        assert settings.database == "ANALYTICS"
        assert settings.num_hours == 48
        assert settings.anchor_timestamp == datetime(2025, 6, 1)
        assert settings.seed == 17
        assert settings.log_level == "DEBUG"
        assert build_default_readings_table().persistence_path == readings_path
        assert build_default_jobs_table().persistence_path == jobs_path
        assert build_default_documents_table().persistence_path == docs_path
        assert build_default_stage().root_path == stage_root
        assert service.executor._max_workers == 3
    finally:
        service.shutdown()
        _clear_caches(CACHES)


def test_malformed_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("GENERATOR_WORKER_COUNT", "-1")
    monkeypatch.setenv("GENERATOR_NUM_HOURS", "many")
    monkeypatch.setenv("GENERATOR_ANCHOR_TIMESTAMP", "yesterday")
    monkeypatch.setenv("GENERATOR_SEED", "abc")
    monkeypatch.setenv("SEARCH_MAX_RESULTS", "  ")
    monkeypatch.setenv("READINGS_TABLE_PATH", "")

    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.generator_workers == 2
        assert settings.num_hours == 7704
        assert settings.anchor_timestamp == datetime(2025, 1, 1)
        assert settings.seed is None
        assert settings.search_max_results == 4
        assert settings.readings_table_path is None
    finally:
        get_settings.cache_clear()
