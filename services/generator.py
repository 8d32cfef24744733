"""Synthetic hourly temperature readings with injected excursions."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterator, List, Optional, Protocol, Sequence, Tuple, Union

from models.records import DEFAULT_CUSTOMERS, Customer, SensorReading
from settings import DEFAULT_ANCHOR_TIMESTAMP

logger = logging.getLogger(__name__)

Number = Union[int, float]

SPIKE_CHECK_RANGE = (1, 1000)
VARIATION_RANGE = (0, 1000)


class GeneratorError(ValueError):
    """Base class for configuration problems detected before generation starts."""


class EmptyCustomerSet(GeneratorError):
    pass


class InvalidCustomerBounds(GeneratorError):
    pass


class DuplicateCustomerId(GeneratorError):
    pass


class InvalidRowCount(GeneratorError):
    pass


class InvalidGeneratorConfig(GeneratorError):
    pass


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int: ...

    def uniform(self, a: float, b: float) -> float: ...


@dataclass(frozen=True)
class GeneratorConfig:
    customers: Sequence[Customer] = DEFAULT_CUSTOMERS
    num_hours: int = 7704
    anchor_timestamp: datetime = DEFAULT_ANCHOR_TIMESTAMP
    excursion_probability_per_mille: int = 15
    excursion_magnitude_range: Tuple[Number, Number] = (8, 12)
    sensor_count: int = 5
    seed: Optional[int] = field(default=None, compare=False)

    def validate(self) -> None:
        """Raise a ``GeneratorError`` subclass describing the first problem found."""
        if not self.customers:
            raise EmptyCustomerSet("At least one customer is required.")

        seen: set[str] = set()
        for customer in self.customers:
            if customer.customer_id in seen:
                raise DuplicateCustomerId(
                    f"Customer id {customer.customer_id!r} is configured more than once."
                )
            seen.add(customer.customer_id)
            if not (math.isfinite(customer.min_temp) and math.isfinite(customer.max_temp)):
                raise InvalidCustomerBounds(
                    f"Customer {customer.customer_id!r} has non-finite temperature bounds."
                )
            if customer.min_temp >= customer.max_temp:
                raise InvalidCustomerBounds(
                    f"Customer {customer.customer_id!r} has min_temp {customer.min_temp} "
                    f">= max_temp {customer.max_temp}."
                )

        if self.num_hours <= 0:
            raise InvalidRowCount(f"num_hours must be positive, got {self.num_hours}.")

        if not 0 <= self.excursion_probability_per_mille <= 1000:
            raise InvalidGeneratorConfig(
                "excursion_probability_per_mille must be within [0, 1000], "
                f"got {self.excursion_probability_per_mille}."
            )

        low, high = self.excursion_magnitude_range
        if not (math.isfinite(low) and math.isfinite(high)) or low < 0 or low > high:
            raise InvalidGeneratorConfig(
                f"excursion_magnitude_range must satisfy 0 <= low <= high, got [{low}, {high}]."
            )

        if self.sensor_count < 1:
            raise InvalidGeneratorConfig(
                f"sensor_count must be at least 1, got {self.sensor_count}."
            )


def sensor_label(customer_id: str, sensor_num: int) -> str:
    return f"SENSOR-{customer_id}-{sensor_num:03d}"


class SensorDataGenerator:
    """Emit one reading per (customer, hour), ordered by customer id then time.

    Rows are independent: each one draws its own excursion check, value and
    sensor number from the random source. Normal rows spread uniformly over
    the customer's band; excursions sit at the band midpoint plus a drawn
    magnitude.
    """

    def __init__(self, config: GeneratorConfig, rng: Optional[RandomSource] = None) -> None:
        config.validate()
        self.config = config
        self.rng: RandomSource = rng if rng is not None else random.Random(config.seed)
        self.excursion_count = 0

    def timestamps(self) -> List[datetime]:
        anchor = self.config.anchor_timestamp
        return [anchor + timedelta(hours=offset) for offset in range(self.config.num_hours)]

    def iter_readings(self) -> Iterator[SensorReading]:
        self.excursion_count = 0
        timestamps = self.timestamps()
        customers = sorted(self.config.customers, key=lambda item: item.customer_id)
        for customer in customers:
            for timestamp in timestamps:
                yield self._reading(customer, timestamp)

    def generate(self) -> List[SensorReading]:
        readings = list(self.iter_readings())
        logger.info(
            "Generated sensor readings",
            extra={"row_count": len(readings), "excursion_count": self.excursion_count},
        )
        return readings

    def _reading(self, customer: Customer, timestamp: datetime) -> SensorReading:
        config = self.config
        spike_check = self._draw(*SPIKE_CHECK_RANGE)
        if spike_check <= config.excursion_probability_per_mille:
            magnitude = self._draw(*config.excursion_magnitude_range)
            self.excursion_count += 1
            temperature = customer.midpoint + magnitude
        else:
            variation = self._draw(*VARIATION_RANGE)
            temperature = (
                customer.min_temp
                + variation * (customer.max_temp - customer.min_temp) / 1000.0
            )
        sensor_num = self._draw(1, config.sensor_count)
        return SensorReading(
            customer_id=customer.customer_id,
            customer_name=customer.customer_name,
            sensor_id=sensor_label(customer.customer_id, sensor_num),
            reading_timestamp=timestamp,
            temperature_celsius=float(temperature),
        )

    def _draw(self, low: Number, high: Number) -> Number:
        # integer bounds draw integers, real bounds draw reals
        if isinstance(low, int) and isinstance(high, int):
            return self.rng.randint(low, high)
        return self.rng.uniform(low, high)


def generate_readings(config: GeneratorConfig, rng: Optional[RandomSource] = None) -> List[SensorReading]:
    return SensorDataGenerator(config, rng=rng).generate()
