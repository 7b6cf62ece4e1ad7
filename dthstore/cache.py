"""
Local cache: a JSON key-value file.

Source of truth whenever the remote lead backend is unreachable or not
configured. Each key holds the direct JSON serialisation of one collection
or config object.

Read-modify-write goes through update(), which holds an asyncio.Lock so two
concurrent callers on the same loop never interleave between the read and
the write. The file work itself runs in a worker thread.

A file that is not a JSON object is moved aside to ``<name>.corrupt`` on
first read, so the next write starts clean without destroying the evidence.
"""
from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)


class LocalCache:
    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def corrupt_path(self) -> Path:
        return self.path.with_suffix(self.path.suffix + ".corrupt")

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _read_all(self) -> dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            self._quarantine(f"invalid JSON: {e}")
            return {}
        except OSError as e:
            logger.error("cache unreadable at %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            self._quarantine(f"top level is {type(data).__name__}, not an object")
            return {}
        return data

    def _quarantine(self, reason: str) -> None:
        logger.error("cache at %s is corrupt (%s), moving it to %s", self.path, reason, self.corrupt_path)
        try:
            os.replace(self.path, self.corrupt_path)
        except FileNotFoundError:
            pass  # another reader moved it first
        except OSError as e:
            logger.error("could not move corrupt cache aside: %s", e)

    def _write_all(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as fh:
            json.dump(data, fh, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)

    def _set_sync(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _remove_sync(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)

    def _update_sync(self, key: str, default: Any, fn: Callable[[Any], Any]) -> Any:
        data = self._read_all()
        current = data[key] if key in data else copy.deepcopy(default)
        new_value = fn(current)
        data[key] = new_value
        self._write_all(data)
        return new_value

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def has(self, key: str) -> bool:
        return key in self._read_all()

    def get(self, key: str, default: Any = None) -> Any:
        """Stored value, or a copy of default when the key was never written."""
        data = self._read_all()
        if key not in data:
            return copy.deepcopy(default)
        return data[key]

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            await asyncio.to_thread(self._set_sync, key, value)

    async def remove(self, key: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._remove_sync, key)

    async def update(self, key: str, default: Any, fn: Callable[[Any], Any]) -> Any:
        """Apply fn to the current value (or default) and store the result."""
        async with self._lock:
            return await asyncio.to_thread(self._update_sync, key, default, fn)
