"""
Local Storage Implementations

InMemoryStorage: a dict, for tests and throwaway sessions.
JsonFileStorage: one JSON object on disk mapping key -> string value,
the on-disk equivalent of a browser's localStorage for one origin.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from payright.services.storage.interface import (
    KeyValueStorageInterface,
    StorageError,
)


class InMemoryStorage(KeyValueStorageInterface):
    """Dict-backed storage. Nothing survives the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove_item(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def keys(self) -> list[str]:
        return list(self._data.keys())


class JsonFileStorage(KeyValueStorageInterface):
    """
    File-backed storage.

    The whole file is read on every access and rewritten on every
    write. Writes go to a temp file first and are moved into place,
    so a crash mid-write leaves the previous version intact.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}")

        if not content.strip():
            return {}

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise StorageError(f"Storage file {self._path} is not valid JSON: {e}")

        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self._path} must hold a JSON object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")

    async def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    async def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    async def remove_item(self, key: str) -> bool:
        data = self._read()
        if key not in data:
            return False
        del data[key]
        self._write(data)
        return True

    async def keys(self) -> list[str]:
        return list(self._read().keys())
