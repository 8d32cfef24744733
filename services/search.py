"""BENCHMARK_SEARCH_SERVICE stand-in over ingested benchmark documents."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional

from app.schemas import BenchmarkDocument, SearchHit, SearchRequest, SearchResponse
from datastore.mock_dynamodb import MockDynamoDBTable, build_default_documents_table
from settings import get_settings

_TOKEN = re.compile(r"[a-z0-9]+(?:[.-][a-z0-9]+)*")
_SNIPPET_CHARS = 240


@dataclass(frozen=True)
class SearchServiceDefinition:
    name: str
    search_column: str
    attributes: tuple[str, ...]
    target_lag: str
    embedding_model: str
    comment: str


BENCHMARK_SEARCH_SERVICE = SearchServiceDefinition(
    name="BENCHMARK_SEARCH_SERVICE",
    search_column="document_content",
    attributes=("customer_id", "customer_name", "file_name"),
    target_lag="1 hour",
    embedding_model="snowflake-arctic-embed-m-v1.5",
    comment="Cortex Search Service for customer temperature benchmark specification PDFs",
)


def tokenize(text: str) -> List[str]:
    return _TOKEN.findall(text.lower())


class BenchmarkSearchService:
    """Attribute-filtered term search; hits are ranked by query term occurrences."""

    def __init__(
        self,
        table: MockDynamoDBTable[BenchmarkDocument],
        max_results: int = 4,
        definition: SearchServiceDefinition = BENCHMARK_SEARCH_SERVICE,
    ) -> None:
        self.table = table
        self.max_results = max_results
        self.definition = definition

    def search(self, request: SearchRequest) -> SearchResponse:
        filters = {
            name: getattr(request, name)
            for name in self.definition.attributes
            if getattr(request, name) is not None
        }
        terms = set(tokenize(request.query))
        limit = min(request.limit or self.max_results, self.max_results)

        hits: List[SearchHit] = []
        for document in self.table.scan():
            if not _matches(document, filters):
                continue
            score = _score(document.document_content, terms)
            if terms and score == 0:
                continue
            hits.append(
                SearchHit(
                    id=document.file_name,
                    title=document.customer_name,
                    score=float(score),
                    customer_id=document.customer_id,
                    customer_name=document.customer_name,
                    file_name=document.file_name,
                    snippet=_snippet(document.document_content, terms),
                )
            )

        hits.sort(key=lambda hit: (-hit.score, hit.file_name))
        return SearchResponse(query=request.query, results=hits[:limit])


def _matches(document: BenchmarkDocument, filters: Dict[str, str]) -> bool:
    for name, expected in filters.items():
        actual = getattr(document, name)
        if actual is None or actual.lower() != expected.lower():
            return False
    return True


def _score(content: str, terms: set[str]) -> int:
    if not terms:
        return 0
    return sum(1 for token in tokenize(content) if token in terms)


def _snippet(content: str, terms: set[str]) -> str:
    text = " ".join(content.split())
    position: Optional[int] = None
    lowered = text.lower()
    for term in terms:
        found = lowered.find(term)
        if found != -1 and (position is None or found < position):
            position = found
    start = max(0, (position or 0) - _SNIPPET_CHARS // 4)
    return text[start:start + _SNIPPET_CHARS]


@lru_cache
def build_default_search_service() -> BenchmarkSearchService:
    return BenchmarkSearchService(
        table=build_default_documents_table(),
        max_results=get_settings().search_max_results,
    )
