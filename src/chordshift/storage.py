"""Persistence of conversion results.

:class:`StorageService` writes JSON blobs through any object implementing
:class:`StorageAdapter`:

=================================  ===========================================
Path                               Content
=================================  ===========================================
``conversions/<request_id>.json``  the ConversionResult
``models/<request_id>.json``       the parsed CanonicalSongModel
``inputs/<request_id>.txt``        the raw input text
``metadata/<request_id>.json``     name, formats and timestamp of the request
=================================  ===========================================
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from .exceptions import StorageError
from .models import (
    CanonicalSongModel,
    ConversionRequest,
    ConversionResult,
    Dialect,
    model_from_dict,
    model_to_dict,
    result_to_dict,
)

logger = logging.getLogger(__name__)


class StorageAdapter(Protocol):
    def read(self, path: str) -> str: ...

    def write(self, path: str, data: str) -> None: ...

    def exists(self, path: str) -> bool: ...

    def delete(self, path: str) -> None: ...

    def list(self, prefix: str = "") -> list[str]: ...


class MemoryStorage:
    """Dict-backed storage, mostly for tests."""

    def __init__(self):
        self.files: dict[str, str] = {}

    def read(self, path: str) -> str:
        try:
            return self.files[path]
        except KeyError as exc:
            raise StorageError(path, "not found") from exc

    def write(self, path: str, data: str) -> None:
        self.files[path] = data

    def exists(self, path: str) -> bool:
        return path in self.files

    def delete(self, path: str) -> None:
        self.files.pop(path, None)

    def list(self, prefix: str = "") -> list[str]:
        return sorted(p for p in self.files if p.startswith(prefix))


class DirectoryStorage:
    """Files under a root directory; paths are relative to the root."""

    def __init__(self, root: str | Path):
        self.root = Path(root).expanduser()

    def _resolve(self, path: str) -> Path:
        full = (self.root / path).resolve()
        if not full.is_relative_to(self.root.resolve()):
            raise StorageError(path, "path escapes storage root")
        return full

    def read(self, path: str) -> str:
        try:
            return self._resolve(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(path, exc.strerror or str(exc)) from exc

    def write(self, path: str, data: str) -> None:
        full = self._resolve(path)
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            full.write_text(data, encoding="utf-8")
        except OSError as exc:
            raise StorageError(path, exc.strerror or str(exc)) from exc

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def delete(self, path: str) -> None:
        try:
            self._resolve(path).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(path, exc.strerror or str(exc)) from exc

    def list(self, prefix: str = "") -> list[str]:
        if not self.root.exists():
            return []
        paths = (p.relative_to(self.root).as_posix() for p in self.root.rglob("*") if p.is_file())
        return sorted(p for p in paths if p.startswith(prefix))


class StorageService:
    def __init__(self, adapter: StorageAdapter):
        self.adapter = adapter

    def save(self, request: ConversionRequest, result: ConversionResult) -> str:
        """Persist *request* and *result*; return the id they are stored under."""
        rid = request.request_id
        self._write_json(f"conversions/{rid}.json", result_to_dict(result))
        if result.model is not None:
            self._write_json(f"models/{rid}.json", model_to_dict(result.model))
        self.adapter.write(f"inputs/{rid}.txt", request.input)
        self._write_json(f"metadata/{rid}.json", {
            "id": rid,
            "name": request.name or (result.model.metadata.title if result.model else "") or rid,
            "source_format": result.metadata.get("source_format"),
            "target_format": _dialect_id(request.target_format),
            "success": result.success,
            "saved_at": datetime.now(timezone.utc).isoformat(),
        })
        logger.info("Saved conversion %s", rid)
        return rid

    def load_result(self, rid: str) -> dict:
        return self._read_json(f"conversions/{rid}.json")

    def load_model(self, rid: str) -> CanonicalSongModel:
        return model_from_dict(self._read_json(f"models/{rid}.json"))

    def load_input(self, rid: str) -> str:
        return self.adapter.read(f"inputs/{rid}.txt")

    def list_conversions(self) -> list[dict]:
        return [self._read_json(path) for path in self.adapter.list("metadata/") if path.endswith(".json")]

    def delete(self, rid: str) -> None:
        for path in (f"conversions/{rid}.json", f"models/{rid}.json", f"inputs/{rid}.txt", f"metadata/{rid}.json"):
            if self.adapter.exists(path):
                self.adapter.delete(path)

    def _write_json(self, path: str, data: dict) -> None:
        self.adapter.write(path, json.dumps(data, indent=2, ensure_ascii=False))

    def _read_json(self, path: str) -> dict:
        try:
            return json.loads(self.adapter.read(path))
        except json.JSONDecodeError as exc:
            raise StorageError(path, f"invalid JSON: {exc}") from exc


def _dialect_id(value: Dialect | str | None) -> str | None:
    return value.value if isinstance(value, Dialect) else value
