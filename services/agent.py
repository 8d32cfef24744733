"""TEMPERATURE_MONITORING_AGENT specification and its local tool bindings."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, model_validator

from app.schemas import SearchRequest, SemanticQuery
from services.search import BenchmarkSearchService, build_default_search_service
from services.semantic_view import SemanticView, build_default_semantic_view
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

SEARCH_TOOL_TYPE = "cortex_search"
ANALYST_TOOL_TYPE = "cortex_analyst_text_to_sql"
KNOWN_TOOL_TYPES = {SEARCH_TOOL_TYPE, ANALYST_TOOL_TYPE}


class AgentModels(BaseModel):
    orchestration: str = "claude-4-sonnet"


class OrchestrationBudget(BaseModel):
    seconds: int = Field(60, gt=0)
    tokens: int = Field(32000, gt=0)


class Orchestration(BaseModel):
    budget: OrchestrationBudget = Field(default_factory=OrchestrationBudget)


class SampleQuestion(BaseModel):
    question: str
    answer: str


class Instructions(BaseModel):
    response: str
    orchestration: str
    system: str
    sample_questions: List[SampleQuestion] = Field(default_factory=list)


class ToolSpec(BaseModel):
    type: str
    name: str
    description: str


class Tool(BaseModel):
    tool_spec: ToolSpec


class ExecutionEnvironment(BaseModel):
    type: str = "warehouse"
    warehouse: str = ""


class ToolResource(BaseModel):
    search_service: Optional[str] = None
    id_column: Optional[str] = None
    title_column: Optional[str] = None
    max_results: Optional[int] = Field(default=None, ge=1)
    semantic_view: Optional[str] = None
    execution_environment: Optional[ExecutionEnvironment] = None


class AgentSpecification(BaseModel):
    """Declarative agent definition; serializes to the YAML the platform expects."""

    name: str = "TEMPERATURE_MONITORING_AGENT"
    comment: str = "Agent for analyzing IoT temperature data against customer benchmarks"
    models: AgentModels = Field(default_factory=AgentModels)
    orchestration: Orchestration = Field(default_factory=Orchestration)
    instructions: Instructions
    tools: List[Tool] = Field(default_factory=list)
    tool_resources: Dict[str, ToolResource] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_tools(self) -> "AgentSpecification":
        for tool in self.tools:
            spec = tool.tool_spec
            if spec.type not in KNOWN_TOOL_TYPES:
                raise ValueError(f"Tool {spec.name!r} has unsupported type {spec.type!r}.")
            resource = self.tool_resources.get(spec.name)
            if resource is None:
                raise ValueError(f"Tool {spec.name!r} has no tool_resources entry.")
            if spec.type == SEARCH_TOOL_TYPE and not resource.search_service:
                raise ValueError(f"Search tool {spec.name!r} needs a search_service.")
            if spec.type == ANALYST_TOOL_TYPE and not resource.semantic_view:
                raise ValueError(f"Analyst tool {spec.name!r} needs a semantic_view.")
        return self

    def tool(self, name: str) -> ToolSpec:
        for tool in self.tools:
            if tool.tool_spec.name == name:
                return tool.tool_spec
        raise KeyError(f"Tool {name!r} is not declared by agent {self.name!r}.")

    def to_yaml(self) -> str:
        """Render the specification body (without name/comment) as YAML."""
        payload = self.model_dump(mode="json", exclude={"name", "comment"}, exclude_none=True)
        return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)

    @classmethod
    def from_yaml(cls, text: str, **overrides: Any) -> "AgentSpecification":
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError("Agent specification YAML must be a mapping.")
        data.update(overrides)
        return cls.model_validate(data)


def build_agent_specification(settings: Optional[Settings] = None) -> AgentSpecification:
    settings = settings or get_settings()
    qualified = f"{settings.database}.{settings.schema}"
    return AgentSpecification(
        instructions=Instructions(
            response=(
                "Provide clear analysis of temperature data compared to benchmarks. "
                "Include specific time periods and temperature values when relevant."
            ),
            orchestration=(
                "First use BenchmarkSearch to retrieve customer temperature specifications, "
                "then use SensorAnalytics to query actual temperature readings for comparison."
            ),
            system=(
                "You analyze IoT temperature sensor data against customer-specific benchmark "
                "specifications to identify compliance periods and temperature excursions."
            ),
            sample_questions=[
                SampleQuestion(
                    question=(
                        "Were the temperatures at Apex Cloud Data Center within the expected "
                        "range last week?"
                    ),
                    answer=(
                        "I'll check the benchmark specifications for Apex Cloud Data Center and "
                        "compare them against the actual sensor readings from last week."
                    ),
                ),
                SampleQuestion(
                    question=(
                        "Show me when BioSyn Pharmaceutical had temperature readings outside "
                        "their acceptable range"
                    ),
                    answer=(
                        "I'll retrieve BioSyn's temperature benchmarks and analyze their sensor "
                        "data to identify out-of-range periods."
                    ),
                ),
            ],
        ),
        tools=[
            Tool(
                tool_spec=ToolSpec(
                    type=SEARCH_TOOL_TYPE,
                    name="BenchmarkSearch",
                    description=(
                        "Searches customer temperature benchmark specifications to find expected "
                        "temperature ranges and requirements for each facility"
                    ),
                )
            ),
            Tool(
                tool_spec=ToolSpec(
                    type=ANALYST_TOOL_TYPE,
                    name="SensorAnalytics",
                    description=(
                        "Queries IoT sensor temperature readings to analyze actual temperatures "
                        "by customer, time period, and sensor"
                    ),
                )
            ),
        ],
        tool_resources={
            "BenchmarkSearch": ToolResource(
                search_service=f"{qualified}.BENCHMARK_SEARCH_SERVICE",
                id_column="FILE_NAME",
                title_column="CUSTOMER_NAME",
                max_results=settings.search_max_results,
            ),
            "SensorAnalytics": ToolResource(
                semantic_view=f"{qualified}.SENSOR_READINGS_SV",
                execution_environment=ExecutionEnvironment(warehouse=settings.warehouse),
            ),
        },
    )


class AgentToolbox:
    """Dispatches declared agent tools to the local search service and semantic view."""

    def __init__(
        self,
        specification: AgentSpecification,
        search: BenchmarkSearchService,
        semantic_view: SemanticView,
    ) -> None:
        self.specification = specification
        self.search = search
        self.semantic_view = semantic_view

    def invoke(self, tool_name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        spec = self.specification.tool(tool_name)
        logger.info("Invoking agent tool", extra={"tool": tool_name})
        if spec.type == SEARCH_TOOL_TYPE:
            request = SearchRequest.model_validate(payload)
            resource = self.specification.tool_resources[tool_name]
            if resource.max_results is not None:
                request.limit = min(request.limit or resource.max_results, resource.max_results)
            return self.search.search(request).model_dump(mode="json")
        query = SemanticQuery.model_validate(payload)
        return self.semantic_view.query(query).model_dump(mode="json")


@lru_cache
def build_default_toolbox() -> AgentToolbox:
    return AgentToolbox(
        specification=build_agent_specification(),
        search=build_default_search_service(),
        semantic_view=build_default_semantic_view(),
    )
