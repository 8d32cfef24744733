"""Aggregation logic for sensor readings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable

from models.records import SensorReading


@dataclass
class AggregationSummary:
    """Computed temperature statistics for a batch of readings."""

    reading_count: int = 0
    min_temperature: float | None = None
    max_temperature: float | None = None
    avg_temperature: float | None = None
    per_sensor_count: Dict[str, int] = field(default_factory=dict)


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def aggregate(self, readings: Iterable[SensorReading]) -> AggregationSummary:
        summary = AggregationSummary()
        total = 0.0

        for reading in readings:
            summary.reading_count += 1
            value = reading.temperature_celsius
            total += value

            if summary.min_temperature is None or value < summary.min_temperature:
                summary.min_temperature = value
            if summary.max_temperature is None or value > summary.max_temperature:
                summary.max_temperature = value

            summary.per_sensor_count[reading.sensor_id] = (
                summary.per_sensor_count.get(reading.sensor_id, 0) + 1
            )

        if summary.reading_count:
            summary.avg_temperature = total / summary.reading_count

        return summary
