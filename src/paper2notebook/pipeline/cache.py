"""Cache stores keyed by the fingerprint of the paper text."""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from ..errors import CacheUnavailableError
from .schemas import PipelineResult

__all__ = [
    "CacheStore",
    "InMemoryCacheStore",
    "JsonFileCacheStore",
    "fingerprint",
]

logger = logging.getLogger(__name__)


def fingerprint(paper_text: str) -> str:
    """Return the SHA-256 digest of the exact UTF-8 bytes of ``paper_text``."""

    return hashlib.sha256(paper_text.encode("utf-8")).hexdigest()


class CacheStore(Protocol):
    """Key/value store for completed pipeline results."""

    async def get(self, key: str) -> Optional[PipelineResult]: ...

    async def set(self, key: str, result: PipelineResult) -> None: ...


class InMemoryCacheStore:
    """Process-lifetime cache without eviction; last write wins."""

    def __init__(self) -> None:
        self._entries: Dict[str, PipelineResult] = {}

    async def get(self, key: str) -> Optional[PipelineResult]:
        return self._entries.get(key)

    async def set(self, key: str, result: PipelineResult) -> None:
        self._entries[key] = result

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def clear(self) -> None:
        self._entries.clear()


class JsonFileCacheStore:
    """Durable cache writing one JSON document per fingerprint."""

    def __init__(self, directory: Path | str, *, encoding: str = "utf-8") -> None:
        self.directory = Path(directory).expanduser()
        self.encoding = encoding

    def _path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    async def get(self, key: str) -> Optional[PipelineResult]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, result: PipelineResult) -> None:
        await asyncio.to_thread(self._write, key, result)

    def _read(self, key: str) -> Optional[PipelineResult]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding=self.encoding))
            return PipelineResult.model_validate(payload)
        except (OSError, json.JSONDecodeError, PydanticValidationError) as exc:
            raise CacheUnavailableError(f"Unreadable cache entry {path.name}: {exc}") from exc

    def _write(self, key: str, result: PipelineResult) -> None:
        payload = json.dumps(result.to_response(), ensure_ascii=False, indent=2)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding=self.encoding) as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path_for(key))
        except OSError as exc:
            raise CacheUnavailableError(f"Cannot write cache entry for {key}: {exc}") from exc
        logger.debug("Cached pipeline result at %s", self._path_for(key))
