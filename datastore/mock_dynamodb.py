from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Generic, Optional, Type, TypeVar

from pydantic import BaseModel

from app.schemas import BenchmarkDocument, GenerationJob
from settings import get_settings

ItemT = TypeVar("ItemT", bound=BaseModel)


class MockDynamoDBTable(Generic[ItemT]):
    """Key/value table of pydantic items, optionally mirrored to a JSON file."""

    def __init__(
        self,
        name: str,
        model: Type[ItemT],
        key_attribute: str,
        persistence_path: Optional[Path] = None,
    ) -> None:
        self.name = name
        self.model = model
        self.key_attribute = key_attribute
        self._items: Dict[str, ItemT] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_item(self, item: ItemT) -> None:
        key = getattr(item, self.key_attribute)
        with self._lock:
            self._items[key] = item.model_copy(deep=True)
            self._persist()

    def get_item(self, key: str) -> Optional[ItemT]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def delete_item(self, key: str) -> bool:
        with self._lock:
            removed = self._items.pop(key, None) is not None
            if removed:
                self._persist()
            return removed

    def scan(self) -> list[ItemT]:
        """Return deep copies of all stored items."""

        with self._lock:
            return [item.model_copy(deep=True) for item in self._items.values()]

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {key: item.model_dump(mode="json") for key, item in self._items.items()}
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for key, payload in data.items():
            self._items[key] = self.model.model_validate(payload)


@lru_cache
def build_default_jobs_table(path: Optional[str] = None) -> MockDynamoDBTable[GenerationJob]:
    table_path = get_settings().jobs_table_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return MockDynamoDBTable(
        name="generation_jobs",
        model=GenerationJob,
        key_attribute="job_id",
        persistence_path=persistence,
    )


@lru_cache
def build_default_documents_table(
    path: Optional[str] = None,
) -> MockDynamoDBTable[BenchmarkDocument]:
    table_path = get_settings().benchmark_docs_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return MockDynamoDBTable(
        name="CUSTOMER_BENCHMARK_DOCS",
        model=BenchmarkDocument,
        key_attribute="file_name",
        persistence_path=persistence,
    )
