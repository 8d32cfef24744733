"""Semantic view over SENSOR_READINGS used by the SensorAnalytics tool.

The definition mirrors the facts, dimensions and metrics the analyst service
is told about, synonyms included. ``query`` evaluates a structured request
(metrics grouped by dimensions) directly against the readings table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Tuple

from app.schemas import SemanticQuery, SemanticQueryResult
from datastore.readings_table import SensorReadingsTable, build_default_readings_table
from models.records import SensorReading
from services.aggregator import AggregationSummary, Aggregator


@dataclass(frozen=True)
class SemanticField:
    name: str
    kind: str
    expression: str
    synonyms: Tuple[str, ...] = ()
    comment: str = ""


@dataclass(frozen=True)
class SemanticViewDefinition:
    name: str
    table: str
    primary_key: Tuple[str, ...]
    table_synonyms: Tuple[str, ...]
    comment: str
    table_comment: str = ""
    fields: Tuple[SemanticField, ...] = field(default_factory=tuple)

    def by_kind(self, kind: str) -> List[SemanticField]:
        return [item for item in self.fields if item.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        def _describe(item: SemanticField) -> Dict[str, Any]:
            return {
                "name": item.name,
                "expression": item.expression,
                "synonyms": list(item.synonyms),
                "comment": item.comment,
            }

        return {
            "name": self.name,
            "table": self.table,
            "primary_key": list(self.primary_key),
            "synonyms": list(self.table_synonyms),
            "table_comment": self.table_comment,
            "comment": self.comment,
            "facts": [_describe(item) for item in self.by_kind("fact")],
            "dimensions": [_describe(item) for item in self.by_kind("dimension")],
            "metrics": [_describe(item) for item in self.by_kind("metric")],
        }


SENSOR_READINGS_SV = SemanticViewDefinition(
    name="SENSOR_READINGS_SV",
    table="SENSOR_READINGS",
    primary_key=("customer_id", "sensor_id", "reading_timestamp"),
    table_synonyms=("temperature readings", "sensor data", "IoT data"),
    comment="Semantic view for IoT temperature sensor data analysis with Cortex Analyst",
    table_comment="IoT sensor temperature readings from various customer facilities",
    fields=(
        SemanticField(
            name="temperature_celsius",
            kind="fact",
            expression="readings.temperature_celsius",
            synonyms=("temperature", "temp", "celsius", "degrees"),
            comment="Temperature measurement in degrees Celsius",
        ),
        SemanticField(
            name="customer_id",
            kind="dimension",
            expression="readings.customer_id",
            synonyms=("customer identifier", "customer code", "client id"),
            comment="Unique identifier for each customer",
        ),
        SemanticField(
            name="customer_name",
            kind="dimension",
            expression="readings.customer_name",
            synonyms=("customer", "client", "facility name", "site"),
            comment="Name of the customer facility being monitored",
        ),
        SemanticField(
            name="sensor_id",
            kind="dimension",
            expression="readings.sensor_id",
            synonyms=("sensor identifier", "device id", "sensor name"),
            comment="Unique identifier for each temperature sensor",
        ),
        SemanticField(
            name="reading_timestamp",
            kind="dimension",
            expression="readings.reading_timestamp",
            synonyms=("time", "timestamp", "date", "when", "reading time", "measurement time"),
            comment="Timestamp when the temperature reading was recorded",
        ),
        SemanticField(
            name="avg_temperature",
            kind="metric",
            expression="AVG(temperature_celsius)",
            synonyms=("average temperature", "mean temperature", "average temp", "avg temp"),
            comment="Average temperature across selected readings",
        ),
        SemanticField(
            name="min_temperature",
            kind="metric",
            expression="MIN(temperature_celsius)",
            synonyms=("minimum temperature", "lowest temperature", "min temp"),
            comment="Minimum temperature recorded",
        ),
        SemanticField(
            name="max_temperature",
            kind="metric",
            expression="MAX(temperature_celsius)",
            synonyms=("maximum temperature", "highest temperature", "max temp", "peak temperature"),
            comment="Maximum temperature recorded",
        ),
        SemanticField(
            name="reading_count",
            kind="metric",
            expression="COUNT(*)",
            synonyms=("number of readings", "count of readings", "total readings", "data points"),
            comment="Total number of temperature readings",
        ),
    ),
)


_METRIC_VALUES: Dict[str, Callable[[AggregationSummary], Any]] = {
    "avg_temperature": lambda summary: summary.avg_temperature,
    "min_temperature": lambda summary: summary.min_temperature,
    "max_temperature": lambda summary: summary.max_temperature,
    "reading_count": lambda summary: summary.reading_count,
}


class SemanticView:
    """Evaluates metric queries declared by a ``SemanticViewDefinition``."""

    def __init__(
        self,
        table: SensorReadingsTable,
        aggregator: Aggregator,
        definition: SemanticViewDefinition = SENSOR_READINGS_SV,
    ) -> None:
        self.table = table
        self.aggregator = aggregator
        self.definition = definition
        self._lookup: Dict[str, SemanticField] = {}
        for item in definition.fields:
            self._lookup[item.name.lower()] = item
            for synonym in item.synonyms:
                self._lookup.setdefault(synonym.lower(), item)

    def resolve(self, term: str, kind: Optional[str] = None) -> SemanticField:
        """Map a field name or synonym to its field, case-insensitively."""
        item = self._lookup.get(term.strip().lower())
        if item is None:
            raise ValueError(f"Unknown term {term!r} in semantic view {self.definition.name}.")
        if kind is not None and item.kind != kind:
            raise ValueError(f"Term {term!r} resolves to {item.kind} {item.name!r}, not a {kind}.")
        return item

    def query(self, request: SemanticQuery) -> SemanticQueryResult:
        metrics = [self.resolve(term, kind="metric").name for term in request.metrics]
        dimensions = [self.resolve(term, kind="dimension").name for term in request.dimensions]

        readings = self.table.scan(
            customer_id=request.customer_id,
            sensor_id=request.sensor_id,
            start=request.start,
            end=request.end,
        )

        groups: Dict[Tuple[Any, ...], List[SensorReading]] = {}
        for reading in readings:
            key = tuple(getattr(reading, name) for name in dimensions)
            groups.setdefault(key, []).append(reading)
        if not dimensions and not groups:
            groups[()] = []

        rows: List[Dict[str, Any]] = []
        for key in sorted(groups):
            summary = self.aggregator.aggregate(groups[key])
            row: Dict[str, Any] = dict(zip(dimensions, key))
            for metric in metrics:
                row[metric] = _METRIC_VALUES[metric](summary)
            rows.append(row)

        return SemanticQueryResult(metrics=metrics, dimensions=dimensions, rows=rows)


@lru_cache
def build_default_semantic_view() -> SemanticView:
    return SemanticView(table=build_default_readings_table(), aggregator=Aggregator())
