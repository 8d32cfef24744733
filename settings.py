from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Optional


_DATABASE_ENV = "IOT_DEMO_DATABASE"
_SCHEMA_ENV = "IOT_DEMO_SCHEMA"
_WAREHOUSE_ENV = "IOT_DEMO_WAREHOUSE"
_READINGS_PATH_ENV = "READINGS_TABLE_PATH"
_JOBS_PATH_ENV = "GENERATION_JOBS_PATH"
_STAGE_PATH_ENV = "BENCHMARK_STAGE_PATH"
_DOCS_PATH_ENV = "BENCHMARK_DOCS_PATH"
_NUM_HOURS_ENV = "GENERATOR_NUM_HOURS"
_ANCHOR_ENV = "GENERATOR_ANCHOR_TIMESTAMP"
_SEED_ENV = "GENERATOR_SEED"
_WORKER_COUNT_ENV = "GENERATOR_WORKER_COUNT"
_SEARCH_MAX_RESULTS_ENV = "SEARCH_MAX_RESULTS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_ANCHOR_TIMESTAMP = datetime(2025, 1, 1, 0, 0, 0)


@dataclass(frozen=True)
class Settings:
    database: str
    schema: str
    warehouse: str
    readings_table_path: Optional[str]
    jobs_table_path: Optional[str]
    benchmark_stage_path: Optional[str]
    benchmark_docs_path: Optional[str]
    num_hours: int
    anchor_timestamp: datetime
    seed: Optional[int]
    generator_workers: int
    search_max_results: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_seed() -> Optional[int]:
    value = os.getenv(_SEED_ENV)
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _read_anchor(default: datetime) -> datetime:
    value = os.getenv(_ANCHOR_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database=_read_str_env(_DATABASE_ENV, "NLDEMO"),
        schema=_read_str_env(_SCHEMA_ENV, "IOT_AGENT_DEMO"),
        warehouse=_read_str_env(_WAREHOUSE_ENV, "NLDEMO"),
        readings_table_path=_read_optional_env(_READINGS_PATH_ENV, "./tmp/sensor_readings.csv"),
        jobs_table_path=_read_optional_env(_JOBS_PATH_ENV, "./tmp/generation_jobs.json"),
        benchmark_stage_path=_read_optional_env(_STAGE_PATH_ENV, "./tmp/customer_benchmarks"),
        benchmark_docs_path=_read_optional_env(_DOCS_PATH_ENV, "./tmp/benchmark_docs.json"),
        num_hours=_read_positive_int(_NUM_HOURS_ENV, 7704),
        anchor_timestamp=_read_anchor(DEFAULT_ANCHOR_TIMESTAMP),
        seed=_read_seed(),
        generator_workers=_read_positive_int(_WORKER_COUNT_ENV, 2),
        search_max_results=_read_positive_int(_SEARCH_MAX_RESULTS_ENV, 4),
        log_level=_read_log_level("INFO"),
    )
