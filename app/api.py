"""HTTP route definitions for the service."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import PlainTextResponse, Response

from app.schemas import (
    BenchmarkDocument,
    BenchmarkUploadResponse,
    GenerationAccepted,
    GenerationJob,
    GenerationRequest,
    ReadingOut,
    SearchRequest,
    SearchResponse,
    SemanticQuery,
    SemanticQueryResult,
)
from services.agent import AgentToolbox, build_default_toolbox
from services.documents import DocumentIngestor, build_default_ingestor
from services.readings import ReadingsService, build_default_readings_service
from services.search import BenchmarkSearchService, build_default_search_service
from services.semantic_view import SemanticView, build_default_semantic_view

router = APIRouter()


def get_readings_service() -> ReadingsService:
    return build_default_readings_service()


def get_semantic_view() -> SemanticView:
    return build_default_semantic_view()


def get_ingestor() -> DocumentIngestor:
    return build_default_ingestor()


def get_search_service() -> BenchmarkSearchService:
    return build_default_search_service()


def get_toolbox() -> AgentToolbox:
    return build_default_toolbox()


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post(
    "/readings/generate",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=GenerationAccepted,
    summary="Generate the synthetic sensor readings table asynchronously.",
)
async def generate_readings(
    request: GenerationRequest,
    service: ReadingsService = Depends(get_readings_service),
) -> GenerationAccepted:
    try:
        job_id = service.enqueue_generation(request)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return GenerationAccepted(job_id=job_id)


@router.get(
    "/readings/jobs/{job_id}",
    response_model=GenerationJob,
    summary="Fetch the status of a generation job.",
)
async def get_generation_job(
    job_id: str,
    service: ReadingsService = Depends(get_readings_service),
) -> GenerationJob:
    try:
        return service.fetch_job(job_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.get(
    "/readings",
    response_model=List[ReadingOut],
    summary="List generated readings ordered by customer and timestamp.",
)
async def list_readings(
    customer_id: Optional[str] = None,
    sensor_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = Query(1000, ge=1, le=100000),
    service: ReadingsService = Depends(get_readings_service),
) -> List[ReadingOut]:
    readings = service.list_readings(
        customer_id=customer_id,
        sensor_id=sensor_id,
        start=start,
        end=end,
        limit=limit,
    )
    return [ReadingOut.from_reading(reading) for reading in readings]


@router.get("/semantic-view", summary="Describe the semantic view over sensor readings.")
async def describe_semantic_view(
    view: SemanticView = Depends(get_semantic_view),
) -> Dict[str, Any]:
    return view.definition.to_dict()


@router.post(
    "/semantic-view/query",
    response_model=SemanticQueryResult,
    summary="Evaluate metrics grouped by dimensions.",
)
async def query_semantic_view(
    query: SemanticQuery,
    view: SemanticView = Depends(get_semantic_view),
) -> SemanticQueryResult:
    try:
        return view.query(query)
    except ValueError as exc:
        raise _bad_request(exc) from exc


@router.post(
    "/benchmarks",
    status_code=status.HTTP_201_CREATED,
    response_model=BenchmarkUploadResponse,
    summary="Upload a benchmark PDF to the stage.",
)
async def upload_benchmark(
    file: UploadFile = File(..., description="Customer benchmark specification PDF."),
    ingestor: DocumentIngestor = Depends(get_ingestor),
) -> BenchmarkUploadResponse:
    contents = await file.read()
    try:
        key = ingestor.upload(file.filename or "", contents)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    finally:
        await file.close()
    return BenchmarkUploadResponse(file_name=key, size_bytes=len(contents))


@router.post(
    "/benchmarks/refresh",
    response_model=List[BenchmarkDocument],
    summary="Parse staged PDFs into the benchmark documents table.",
)
def refresh_benchmarks(
    ingestor: DocumentIngestor = Depends(get_ingestor),
) -> List[BenchmarkDocument]:
    return ingestor.ingest()


@router.get(
    "/benchmarks",
    response_model=List[BenchmarkDocument],
    summary="List ingested benchmark documents.",
)
async def list_benchmarks(
    ingestor: DocumentIngestor = Depends(get_ingestor),
) -> List[BenchmarkDocument]:
    return ingestor.list_documents()


@router.post(
    "/benchmarks/search",
    response_model=SearchResponse,
    summary="Search benchmark documents.",
)
async def search_benchmarks(
    request: SearchRequest,
    search: BenchmarkSearchService = Depends(get_search_service),
) -> SearchResponse:
    return search.search(request)


@router.get("/agent", summary="Return the agent specification as JSON or YAML.")
async def get_agent_specification(
    format: str = Query("json", pattern="^(json|yaml)$"),
    toolbox: AgentToolbox = Depends(get_toolbox),
) -> Response:
    specification = toolbox.specification
    if format == "yaml":
        return PlainTextResponse(specification.to_yaml(), media_type="application/yaml")
    return Response(
        content=specification.model_dump_json(exclude_none=True),
        media_type="application/json",
    )


@router.post("/agent/tools/{tool_name}", summary="Invoke a declared agent tool.")
async def invoke_agent_tool(
    tool_name: str,
    payload: Dict[str, Any],
    toolbox: AgentToolbox = Depends(get_toolbox),
) -> Dict[str, Any]:
    try:
        return toolbox.invoke(tool_name, payload)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except ValueError as exc:
        raise _bad_request(exc) from exc
