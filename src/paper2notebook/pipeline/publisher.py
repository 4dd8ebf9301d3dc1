"""Publication of generated notebooks to GitHub Gist or a local directory."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Protocol

import httpx

from ..errors import PublicationError
from .notebook import notebook_filename, to_ipynb
from .schemas import Notebook

__all__ = [
    "PublishedNotebook",
    "Publisher",
    "GistPublisher",
    "LocalPublisher",
]

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
COLAB_GIST_URL = "https://colab.research.google.com/gist"


@dataclass(frozen=True, slots=True)
class PublishedNotebook:
    """Stable URLs of a published notebook."""

    viewer_url: str
    source_url: str
    raw_url: str


class Publisher(Protocol):
    """Creates an externally addressable copy of a notebook. Not idempotent."""

    async def publish(self, notebook: Notebook, title: str) -> PublishedNotebook: ...


class GistPublisher:
    """Upload notebooks as GitHub gists and link them through Colab."""

    def __init__(
        self,
        token: str | None,
        *,
        public: bool = False,
        api_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self.public = public
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def publish(self, notebook: Notebook, title: str) -> PublishedNotebook:
        if not self._token:
            raise PublicationError("GITHUB_TOKEN is not set; cannot create a gist")

        filename = notebook_filename(title)
        body = {
            "description": f"{title} (generated implementation notebook)",
            "public": self.public,
            "files": {filename: {"content": json.dumps(to_ipynb(notebook), ensure_ascii=False, indent=1)}},
        }
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), transport=self._transport) as client:
                response = await client.post(f"{self.api_url}/gists", json=body, headers=headers)
                response.raise_for_status()
                payload: Dict[str, Any] = response.json()
        except httpx.HTTPStatusError as exc:
            raise PublicationError(
                f"Gist API returned {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise PublicationError(f"Gist upload failed: {exc}") from exc

        return self._parse_gist(payload, filename)

    def _parse_gist(self, payload: Dict[str, Any], filename: str) -> PublishedNotebook:
        try:
            gist_id = payload["id"]
            owner = payload["owner"]["login"]
            html_url = payload["html_url"]
            raw_url = payload["files"][filename]["raw_url"]
        except (KeyError, TypeError) as exc:
            raise PublicationError(f"Unexpected gist response, missing {exc}") from exc

        logger.info("Published gist %s", html_url)
        return PublishedNotebook(
            viewer_url=f"{COLAB_GIST_URL}/{owner}/{gist_id}/{filename}",
            source_url=html_url,
            raw_url=raw_url,
        )


class LocalPublisher:
    """Write notebooks into a directory and return ``file://`` URLs."""

    def __init__(self, directory: Path | str, *, encoding: str = "utf-8") -> None:
        self.directory = Path(directory).expanduser()
        self.encoding = encoding

    async def publish(self, notebook: Notebook, title: str) -> PublishedNotebook:
        try:
            path = await asyncio.to_thread(self._write, notebook, title)
        except OSError as exc:
            raise PublicationError(f"Cannot write notebook to {self.directory}: {exc}") from exc
        uri = path.resolve().as_uri()
        return PublishedNotebook(viewer_url=uri, source_url=uri, raw_url=uri)

    def _write(self, notebook: Notebook, title: str) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        stem = Path(notebook_filename(title)).stem
        path = self.directory / f"{stem}.ipynb"
        counter = 2
        while path.exists():
            path = self.directory / f"{stem}_{counter}.ipynb"
            counter += 1
        path.write_text(json.dumps(to_ipynb(notebook), ensure_ascii=False, indent=1), encoding=self.encoding)
        return path
