"""Background generation of the SENSOR_READINGS table."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from functools import lru_cache
from threading import Lock
from typing import Dict, List, Optional
from uuid import uuid4

from app.schemas import GenerationJob, GenerationRequest, JobError, JobStatus
from datastore.mock_dynamodb import MockDynamoDBTable, build_default_jobs_table
from datastore.readings_table import SensorReadingsTable, build_default_readings_table
from models.records import DEFAULT_CUSTOMERS, SensorReading
from services.generator import GeneratorConfig, SensorDataGenerator
from settings import get_settings

logger = logging.getLogger(__name__)


class ReadingsService:
    """Coordinates generation jobs, the readings table and job bookkeeping."""

    def __init__(
        self,
        readings: SensorReadingsTable,
        jobs: MockDynamoDBTable[GenerationJob],
        workers: int = 2,
    ) -> None:
        self.readings = readings
        self.jobs = jobs
        self.executor = ThreadPoolExecutor(max_workers=workers)
        self._futures: Dict[str, Future[None]] = {}
        self._futures_lock = Lock()

    def build_config(self, request: GenerationRequest) -> GeneratorConfig:
        """Merge request options with settings defaults and validate the result."""
        settings = get_settings()
        customers = (
            tuple(item.to_customer() for item in request.customers)
            if request.customers is not None
            else DEFAULT_CUSTOMERS
        )
        anchor = request.anchor_timestamp or settings.anchor_timestamp
        if anchor.tzinfo is not None:
            anchor = anchor.astimezone(timezone.utc).replace(tzinfo=None)
        config = GeneratorConfig(
            customers=customers,
            num_hours=request.num_hours if request.num_hours is not None else settings.num_hours,
            anchor_timestamp=anchor,
            excursion_probability_per_mille=request.excursion_probability_per_mille,
            excursion_magnitude_range=tuple(request.excursion_magnitude_range),
            sensor_count=request.sensor_count,
            seed=request.seed if request.seed is not None else settings.seed,
        )
        config.validate()
        return config

    def enqueue_generation(self, request: GenerationRequest) -> str:
        """Validate the request, record a queued job, and start generation."""
        config = self.build_config(request)
        job_id = str(uuid4())
        requested_at = datetime.now(timezone.utc)
        self.jobs.put_item(
            GenerationJob(job_id=job_id, status=JobStatus.queued, requested_at=requested_at)
        )

        future = self.executor.submit(
            self._run_generation,
            job_id=job_id,
            config=config,
            replace=request.replace,
            requested_at=requested_at,
        )
        with self._futures_lock:
            self._futures[job_id] = future
        future.add_done_callback(lambda _f, jid=job_id: self._clear_future(jid))
        logger.info("Generation job queued", extra={"job_id": job_id})
        return job_id

    def fetch_job(self, job_id: str) -> GenerationJob:
        job = self.jobs.get_item(job_id)
        if job is None:
            raise KeyError(f"Generation job {job_id!r} not found.")
        return job

    def list_readings(
        self,
        customer_id: Optional[str] = None,
        sensor_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[SensorReading]:
        return self.readings.scan(
            customer_id=customer_id,
            sensor_id=sensor_id,
            start=start,
            end=end,
            limit=limit,
        )

    def shutdown(self) -> None:
        """Clean up executor resources during application shutdown."""
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _clear_future(self, job_id: str) -> None:
        with self._futures_lock:
            self._futures.pop(job_id, None)

    def _run_generation(
        self,
        job_id: str,
        config: GeneratorConfig,
        replace: bool,
        requested_at: datetime,
    ) -> None:
        start_time = time.perf_counter()
        self.jobs.put_item(
            GenerationJob(job_id=job_id, status=JobStatus.running, requested_at=requested_at)
        )

        errors: List[JobError] = []
        row_count: Optional[int] = None
        excursion_count: Optional[int] = None

        try:
            if self.readings.exists() and not replace:
                status = JobStatus.skipped
                row_count = self.readings.count()
            else:
                generator = SensorDataGenerator(config)
                readings = generator.generate()
                if replace:
                    row_count = self.readings.replace(readings)
                else:
                    row_count = self.readings.create_if_empty(readings)
                if row_count is None:
                    # another job populated the table while this one generated
                    status = JobStatus.skipped
                    row_count = self.readings.count()
                else:
                    excursion_count = generator.excursion_count
                    status = JobStatus.completed
            if status == JobStatus.skipped:
                logger.info(
                    "Readings table already populated; skipping generation",
                    extra={"job_id": job_id, "row_count": row_count},
                )
        except Exception as exc:
            logger.exception("Generation job failed", extra={"job_id": job_id})
            status = JobStatus.failed
            errors.append(JobError(reason=str(exc)))
            row_count = None

        processing_ms = int((time.perf_counter() - start_time) * 1000)
        self.jobs.put_item(
            GenerationJob(
                job_id=job_id,
                status=status,
                requested_at=requested_at,
                completed_at=datetime.now(timezone.utc),
                processing_ms=processing_ms,
                row_count=row_count,
                excursion_count=excursion_count,
                errors=errors,
            )
        )
        logger.info(
            "Generation job finished",
            extra={
                "job_id": job_id,
                "status": status.value,
                "row_count": row_count,
                "excursion_count": excursion_count,
                "processing_ms": processing_ms,
            },
        )


@lru_cache
def build_default_readings_service(
    workers: Optional[int] = None,
) -> ReadingsService:
    """Factory that wires the service with the default tables."""
    worker_count = workers or get_settings().generator_workers
    return ReadingsService(
        readings=build_default_readings_table(),
        jobs=build_default_jobs_table(),
        workers=worker_count,
    )
