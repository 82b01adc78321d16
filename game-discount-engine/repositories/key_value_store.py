"""
Key-value storage backends for the cart.

Every backend stores opaque strings under string keys. Backends raise
StorageError for any read/write failure; callers decide how to degrade.

- InMemoryKeyValueStore: process-local dict (tests, single-process demos).
- FileKeyValueStore: one file per key inside a directory.
- SupabaseKeyValueStore: rows in a (key, value, updated_at_utc) table.
"""

from __future__ import annotations

import os
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from repositories.settings import Settings


class StorageError(RuntimeError):
    """Raised by a backend when a read or write cannot be completed."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


_SAFE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")


class FileKeyValueStore:
    """Stores each key as `<directory>/<key>.json`; writes replace the file atomically."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise StorageError(f"Stored value in {path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}") from e


class SupabaseKeyValueStore:
    """
    Key-value rows in Supabase.

    Expected schema:
        key text primary key, value text not null, updated_at_utc timestamptz
    """

    def __init__(self, client: Any, table: str = "cart_storage") -> None:
        self._client = client
        self._table = table

    def _execute(self, query: Any, action: str) -> Any:
        """Run a query; API errors and transport failures both surface as StorageError."""

        import httpx
        from postgrest.exceptions import APIError

        try:
            response = query.execute()
        except (APIError, httpx.HTTPError) as e:
            raise StorageError(f"Failed to {action}: {e}") from e

        error = getattr(response, "error", None)
        if error:
            raise StorageError(f"Failed to {action}: {error}")
        return response

    def get(self, key: str) -> Optional[str]:
        response = self._execute(
            self._client.table(self._table).select("value").eq("key", key).limit(1),
            f"read key {key!r}",
        )
        rows = getattr(response, "data", None) or []
        if not rows:
            return None
        return str(rows[0]["value"])

    def set(self, key: str, value: str) -> None:
        self._execute(
            self._client.table(self._table).upsert({
                "key": key,
                "value": value,
                "updated_at_utc": datetime.now(timezone.utc).isoformat(),
            }),
            f"write key {key!r}",
        )

    def delete(self, key: str) -> None:
        self._execute(
            self._client.table(self._table).delete().eq("key", key),
            f"delete key {key!r}",
        )


def create_store(settings: Settings) -> KeyValueStore:
    """Build the backend selected by CART_STORE_BACKEND."""

    if settings.cart_store_backend == "memory":
        return InMemoryKeyValueStore()
    if settings.cart_store_backend == "supabase":
        from repositories.client import get_supabase

        return SupabaseKeyValueStore(get_supabase(), table=settings.cart_store_table)
    return FileKeyValueStore(settings.cart_store_dir)


__all__ = [
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "StorageError",
    "SupabaseKeyValueStore",
    "create_store",
]
