"""
Default Template Loader

The default template is the baseline record used on first run (or after a
reset). It is shaped like a UserDataRecord minus timestamps; the store
stamps createdDate/lastUpdated when it adopts the template.

The source is either a filesystem path (the packaged template by default)
or an http(s) URL. Remote fetches are retried on transport errors only;
a 404 or a malformed document fails immediately.
"""

import json
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from zakat_tracker.config import get_settings


class TemplateFetchError(Exception):
    """Default template resource is unavailable or unreadable."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(message)


class DefaultTemplateLoader:
    """
    Fetches the default template document.

    Args:
        source: File path or http(s) URL. Defaults to settings.
        timeout_seconds: Timeout for remote fetches. Defaults to settings.
    """

    def __init__(
        self,
        source: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        settings = get_settings().template
        self._source = str(source or settings.source)
        self._timeout = timeout_seconds or settings.timeout_seconds

    @property
    def source(self) -> str:
        return self._source

    @property
    def is_remote(self) -> bool:
        return urlparse(self._source).scheme in ("http", "https")

    async def fetch(self) -> dict[str, Any]:
        """
        Fetch and parse the template.

        Returns:
            The template as a JSON object

        Raises:
            TemplateFetchError: If the resource is missing, unreachable,
                                not JSON, or not a JSON object
        """
        try:
            if self.is_remote:
                text = await self._fetch_remote()
            else:
                text = Path(self._source).read_text(encoding="utf-8")
            template = json.loads(text)
        except (httpx.HTTPError, OSError, ValueError) as e:
            raise TemplateFetchError(
                self._source,
                f"Default template unavailable at {self._source}: {e}",
            )

        if not isinstance(template, dict):
            raise TemplateFetchError(
                self._source,
                f"Default template at {self._source} is not a JSON object",
            )
        return template

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    async def _fetch_remote(self) -> str:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.get(self._source)
            resp.raise_for_status()
            return resp.text
