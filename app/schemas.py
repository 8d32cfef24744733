"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from models.records import Customer, SensorReading


class JobStatus(str, Enum):
    """Generation job lifecycle states exposed via the API."""

    queued = "queued"
    running = "running"
    completed = "completed"
    skipped = "skipped"
    failed = "failed"


class CustomerConfig(BaseModel):
    """Customer facility definition accepted by the generation endpoint."""

    customer_id: str = Field(..., min_length=1)
    customer_name: str
    min_temp: float
    max_temp: float
    document_pattern: Optional[str] = None

    def to_customer(self) -> Customer:
        return Customer(
            customer_id=self.customer_id,
            customer_name=self.customer_name,
            min_temp=self.min_temp,
            max_temp=self.max_temp,
            document_pattern=self.document_pattern,
        )


class GenerationRequest(BaseModel):
    """Options for a synthetic readings run; omitted values use settings defaults."""

    customers: Optional[List[CustomerConfig]] = None
    num_hours: Optional[int] = None
    anchor_timestamp: Optional[datetime] = None
    seed: Optional[int] = None
    excursion_probability_per_mille: int = 15
    excursion_magnitude_range: Tuple[Union[int, float], Union[int, float]] = (8, 12)
    sensor_count: int = 5
    replace: bool = Field(
        default=False,
        description="Regenerate even when the readings table already holds rows.",
    )


class GenerationAccepted(BaseModel):
    """Immediate response payload after accepting a generation request."""

    job_id: str = Field(..., description="Generated identifier for the generation job.")


class JobError(BaseModel):
    reason: str


class GenerationJob(BaseModel):
    """Full record representing a generation job."""

    job_id: str
    status: JobStatus
    requested_at: datetime
    completed_at: Optional[datetime] = None
    processing_ms: Optional[int] = Field(
        default=None, description="Duration in milliseconds from start to finish."
    )
    row_count: Optional[int] = Field(default=None, ge=0)
    excursion_count: Optional[int] = Field(default=None, ge=0)
    errors: List[JobError] = Field(default_factory=list)


class ReadingOut(BaseModel):
    customer_id: str
    customer_name: str
    reading_timestamp: datetime
    temperature_celsius: float
    sensor_id: str

    @classmethod
    def from_reading(cls, reading: SensorReading) -> "ReadingOut":
        return cls(
            customer_id=reading.customer_id,
            customer_name=reading.customer_name,
            reading_timestamp=reading.reading_timestamp,
            temperature_celsius=reading.temperature_celsius,
            sensor_id=reading.sensor_id,
        )


class SemanticQuery(BaseModel):
    """Structured query against the semantic view."""

    metrics: List[str] = Field(..., min_length=1)
    dimensions: List[str] = Field(default_factory=list)
    customer_id: Optional[str] = None
    sensor_id: Optional[str] = None
    start: Optional[datetime] = Field(default=None, description="Inclusive lower bound.")
    end: Optional[datetime] = Field(default=None, description="Exclusive upper bound.")


class SemanticQueryResult(BaseModel):
    metrics: List[str]
    dimensions: List[str]
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class BenchmarkDocument(BaseModel):
    """Parsed benchmark PDF tagged with the customer it belongs to."""

    file_name: str
    document_content: str
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    ingested_at: datetime


class BenchmarkUploadResponse(BaseModel):
    file_name: str
    size_bytes: int = Field(..., ge=0)


class SearchRequest(BaseModel):
    query: str = ""
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    file_name: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1)


class SearchHit(BaseModel):
    id: str
    title: Optional[str] = None
    score: float
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    file_name: str
    snippet: str = ""


class SearchResponse(BaseModel):
    query: str
    results: List[SearchHit] = Field(default_factory=list)
