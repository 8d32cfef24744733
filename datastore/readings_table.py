"""CSV-backed fact table holding generated sensor readings."""

from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Iterable, List, Optional, TextIO

from models.records import READING_COLUMNS, SensorReading
from settings import get_settings

logger = logging.getLogger(__name__)


class SensorReadingsTable:
    """Holds the SENSOR_READINGS rows, keyed by (customer_id, sensor_id, reading_timestamp)."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self.persistence_path = persistence_path
        self._rows: List[SensorReading] = []
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def exists(self) -> bool:
        with self._lock:
            return bool(self._rows)

    def count(self) -> int:
        with self._lock:
            return len(self._rows)

    def replace(self, readings: Iterable[SensorReading]) -> int:
        """Swap the table contents for ``readings``; duplicate natural keys are rejected."""
        rows = _ordered_rows(readings)
        with self._lock:
            self._rows = rows
            self._persist()
        return len(rows)

    def create_if_empty(self, readings: Iterable[SensorReading]) -> Optional[int]:
        """Populate the table unless it already holds rows; returns None when left untouched."""
        rows = _ordered_rows(readings)
        with self._lock:
            if self._rows:
                return None
            self._rows = rows
            self._persist()
        return len(rows)

    def scan(
        self,
        customer_id: Optional[str] = None,
        sensor_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[SensorReading]:
        start = _naive(start)
        end = _naive(end)
        with self._lock:
            rows = list(self._rows)

        matched: List[SensorReading] = []
        for reading in rows:
            if customer_id is not None and reading.customer_id != customer_id:
                continue
            if sensor_id is not None and reading.sensor_id != sensor_id:
                continue
            if start is not None and reading.reading_timestamp < start:
                continue
            if end is not None and reading.reading_timestamp >= end:
                continue
            matched.append(reading)
            if limit is not None and len(matched) >= limit:
                break
        return matched

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        with self.persistence_path.open("w", encoding="utf-8", newline="") as handle:
            write_readings_csv(handle, self._rows)

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return
        with self.persistence_path.open("r", encoding="utf-8", newline="") as handle:
            self._rows = read_readings_csv(handle, source=str(self.persistence_path))


def _ordered_rows(readings: Iterable[SensorReading]) -> List[SensorReading]:
    rows = list(readings)
    seen = set()
    for reading in rows:
        key = reading.natural_key
        if key in seen:
            raise ValueError(f"Duplicate reading for key {key!r}.")
        seen.add(key)
    rows.sort(key=lambda item: (item.customer_id, item.reading_timestamp))
    return rows


def write_readings_csv(handle: TextIO, readings: Iterable[SensorReading]) -> int:
    writer = csv.DictWriter(handle, fieldnames=list(READING_COLUMNS))
    writer.writeheader()
    written = 0
    for reading in readings:
        writer.writerow(
            {
                "customer_id": reading.customer_id,
                "customer_name": reading.customer_name,
                "reading_timestamp": reading.reading_timestamp.isoformat(),
                "temperature_celsius": repr(reading.temperature_celsius),
                "sensor_id": reading.sensor_id,
            }
        )
        written += 1
    return written


def read_readings_csv(handle: TextIO, source: str = "<stream>") -> List[SensorReading]:
    """Parse readings CSV, skipping rows that fail validation."""
    reader = csv.DictReader(handle)
    if not reader.fieldnames:
        return []

    normalized = {name.lower().strip(): name for name in reader.fieldnames}
    missing = sorted(set(READING_COLUMNS) - normalized.keys())
    if missing:
        raise ValueError(f"CSV missing required columns: {', '.join(missing)}")

    readings: List[SensorReading] = []
    for row_number, row in enumerate(reader, start=2):
        values = {column: (row.get(normalized[column]) or "").strip() for column in READING_COLUMNS}

        reason: Optional[str] = None
        for column in ("customer_id", "sensor_id", "reading_timestamp", "temperature_celsius"):
            if not values[column]:
                reason = f"missing {column}"
                break

        timestamp: Optional[datetime] = None
        temperature: Optional[float] = None
        if reason is None:
            try:
                timestamp = _parse_timestamp(values["reading_timestamp"])
            except ValueError:
                reason = "invalid timestamp"
        if reason is None:
            try:
                temperature = float(values["temperature_celsius"])
            except ValueError:
                reason = "invalid numeric value"

        if reason is not None:
            logger.warning(
                "Skipping row in %s",
                source,
                extra={"row_number": row_number, "reason": reason},
            )
            continue

        readings.append(
            SensorReading(
                customer_id=values["customer_id"],
                customer_name=values["customer_name"],
                sensor_id=values["sensor_id"],
                reading_timestamp=timestamp,
                temperature_celsius=temperature,
            )
        )
    return readings


def _parse_timestamp(value: str) -> datetime:
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    return _naive(parsed)


def _naive(value: Optional[datetime]) -> Optional[datetime]:
    # the table stores wall-clock UTC timestamps without tzinfo
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@lru_cache
def build_default_readings_table(path: Optional[str] = None) -> SensorReadingsTable:
    table_path = get_settings().readings_table_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return SensorReadingsTable(name="SENSOR_READINGS", persistence_path=persistence)
