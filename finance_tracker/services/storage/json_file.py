"""
JSON File Storage

DESIGN DECISION: Each collection lives in its own ``<key>.json`` file inside
one data directory. This keeps collections independently readable/writable
and makes the data trivially inspectable by the user.

Writes go to a temporary file first and are then renamed over the target,
so a crash mid-write never leaves a half-written collection behind.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from finance_tracker.services.storage.interface import (
    EntityStoreInterface,
    StorageError,
)

logger = structlog.get_logger(__name__)


class JsonFileEntityStore(EntityStoreInterface):
    """Directory of JSON documents, one per key."""

    def __init__(self, data_path: Union[str, Path]):
        self._root = Path(data_path)

    def _path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._root / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path_for(key)
        if not path.exists():
            return default
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            # Corrupt file: moved aside, then treated as absent
            backup = path.with_suffix(".json.corrupt")
            logger.warning(
                "json_store_corrupt", key=key, backup=str(backup), error=str(e)
            )
            try:
                os.replace(path, backup)
            except OSError as move_error:
                raise StorageError(f"Failed to move corrupt {key} aside: {move_error}")
            return default
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}")

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write(self, path: Path, payload: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def set(self, key: str, value: Any) -> None:
        path = self._path_for(key)
        try:
            payload = json.dumps(value, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON-serializable: {e}")
        try:
            self._write(path, payload)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}")

    def keys(self) -> list[str]:
        if not self._root.exists():
            return []
        return sorted(p.stem for p in self._root.glob("*.json"))
