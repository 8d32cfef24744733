"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class Customer:
    """A monitored facility and its normal operating temperature band."""

    customer_id: str
    customer_name: str
    min_temp: float
    max_temp: float
    document_pattern: Optional[str] = None

    @property
    def midpoint(self) -> float:
        return self.min_temp + (self.max_temp - self.min_temp) / 2


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single hourly temperature reading."""

    customer_id: str
    customer_name: str
    sensor_id: str
    reading_timestamp: datetime
    temperature_celsius: float

    @property
    def natural_key(self) -> Tuple[str, str, datetime]:
        return (self.customer_id, self.sensor_id, self.reading_timestamp)


READING_COLUMNS = (
    "customer_id",
    "customer_name",
    "reading_timestamp",
    "temperature_celsius",
    "sensor_id",
)


DEFAULT_CUSTOMERS: Tuple[Customer, ...] = (
    Customer(
        customer_id="CUST-DC-8472",
        customer_name="Apex Cloud Data Center",
        min_temp=18.0,
        max_temp=21.0,
        document_pattern="Apex Cloud Data Center",
    ),
    Customer(
        customer_id="CUST-PH-3291",
        customer_name="BioSyn Pharmaceutical Manufacturing",
        min_temp=20.0,
        max_temp=22.0,
        document_pattern="BioSyn Pharmaceutical",
    ),
    Customer(
        customer_id="CUST-AU-5614",
        customer_name="Precision Automotive Components",
        min_temp=21.0,
        max_temp=24.0,
        document_pattern="Precision Automotive",
    ),
)
