from __future__ import annotations
from functools import lru_cache
from pathlib import Path, PurePosixPath
from threading import Lock
from typing import Dict, Iterable, Optional, Set

from settings import get_settings


class BenchmarkStage:
    """Named file stage for uploaded benchmark documents, optionally disk-backed."""

    def __init__(self, name: str, root_path: Optional[Path] = None) -> None:
        self.name = name
        self._objects: Dict[str, bytes] = {}
        self._known_keys: Set[str] = set()
        self.root_path = root_path
        self._lock = Lock()
        if root_path:
            root_path.mkdir(parents=True, exist_ok=True)
            self._load_existing_keys()

    def put_object(self, key: str, data: bytes) -> str:
        key = self._normalize_key(key)
        with self._lock:
            self._objects[key] = data
            self._known_keys.add(key)
            if self.root_path:
                path = self.root_path / key
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(data)
        return key

    def get_object(self, key: str) -> bytes:
        with self._lock:
            data = self._objects.get(key)
            if data is not None:
                return data

        if self.root_path:
            path = self.root_path / key
            if path.is_file():
                data = path.read_bytes()
                with self._lock:
                    self._objects[key] = data
                    self._known_keys.add(key)
                return data

        raise KeyError(f"File {key!r} not found in stage {self.name!r}.")

    def list_objects(self, suffix: Optional[str] = None) -> Iterable[str]:
        """List relative paths, optionally limited to a case-insensitive suffix."""
        with self._lock:
            keys = set(self._known_keys)
            keys.update(self._objects.keys())

        if self.root_path:
            for path in self.root_path.rglob("*"):
                if path.is_file():
                    keys.add(path.relative_to(self.root_path).as_posix())

        if suffix is not None:
            wanted = suffix.lower()
            keys = {key for key in keys if key.lower().endswith(wanted)}
        return sorted(keys)

    @staticmethod
    def _normalize_key(key: str) -> str:
        parts = [part for part in PurePosixPath(key.replace("\\", "/")).parts if part not in ("", ".", "..", "/")]
        if not parts:
            raise ValueError("File name is empty.")
        return "/".join(parts)

    def _load_existing_keys(self) -> None:
        assert self.root_path is not None
        for path in self.root_path.rglob("*"):
            if path.is_file():
                self._known_keys.add(path.relative_to(self.root_path).as_posix())


@lru_cache
def build_default_stage(root_path: Optional[str] = None) -> BenchmarkStage:
    stage_root = get_settings().benchmark_stage_path if root_path is None else root_path
    path = Path(stage_root) if stage_root else None
    return BenchmarkStage(name="customer_benchmarks", root_path=path)
