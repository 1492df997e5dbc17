"""Tests for zakat_tracker.services.template: default template fetching."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from tenacity import wait_none

from zakat_tracker.config import PACKAGED_TEMPLATE_PATH
from zakat_tracker.models.user_data import UserDataRecord
from zakat_tracker.services.template import DefaultTemplateLoader, TemplateFetchError

TEMPLATE_URL = "https://example.com/data/user-data-template.json"


def mock_client_returning(response=None, error=None):
    """An httpx.AsyncClient stand-in whose get() returns or raises."""
    client = AsyncMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    if error is not None:
        client.get = AsyncMock(side_effect=error)
    else:
        client.get = AsyncMock(return_value=response)
    return client


class TestLocalTemplate:
    """Templates read from the filesystem."""

    @pytest.mark.asyncio
    async def test_packaged_template_is_valid(self):
        """The shipped template parses into a full record."""
        loader = DefaultTemplateLoader(source=str(PACKAGED_TEMPLATE_PATH))
        template = await loader.fetch()

        record = UserDataRecord.model_validate(template)
        assert len(record.categories) == 7
        assert sum(c.percentage for c in record.categories) == 100
        assert loader.is_remote is False

    def test_default_source_is_packaged_template(self):
        """Without arguments the loader uses the configured source."""
        loader = DefaultTemplateLoader()
        assert loader.source == str(PACKAGED_TEMPLATE_PATH)

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        """A missing file raises TemplateFetchError naming the source."""
        source = str(tmp_path / "nope.json")
        loader = DefaultTemplateLoader(source=source)

        with pytest.raises(TemplateFetchError) as exc_info:
            await loader.fetch()
        assert exc_info.value.source == source

    @pytest.mark.asyncio
    async def test_invalid_json(self, tmp_path):
        """Unparseable content raises TemplateFetchError."""
        path = tmp_path / "template.json"
        path.write_text("{broken", encoding="utf-8")

        with pytest.raises(TemplateFetchError):
            await DefaultTemplateLoader(source=str(path)).fetch()

    @pytest.mark.asyncio
    async def test_non_object_template(self, tmp_path):
        """A JSON list is not a template."""
        path = tmp_path / "template.json"
        path.write_text(json.dumps([1, 2, 3]), encoding="utf-8")

        with pytest.raises(TemplateFetchError):
            await DefaultTemplateLoader(source=str(path)).fetch()


class TestRemoteTemplate:
    """Templates fetched over http(s) with a mocked client."""

    @pytest.mark.asyncio
    async def test_successful_fetch(self):
        """A 200 response with a JSON object is returned as a dict."""
        response = MagicMock()
        response.text = json.dumps({"categories": [{"id": 1, "name": "A"}]})
        response.raise_for_status = MagicMock()
        client = mock_client_returning(response=response)

        loader = DefaultTemplateLoader(source=TEMPLATE_URL)
        with patch("zakat_tracker.services.template.loader.httpx.AsyncClient", return_value=client):
            template = await loader.fetch()

        assert loader.is_remote is True
        assert template["categories"][0]["name"] == "A"
        client.get.assert_awaited_once_with(TEMPLATE_URL)

    @pytest.mark.asyncio
    async def test_http_error_is_not_retried(self):
        """A 404 fails immediately."""
        request = httpx.Request("GET", TEMPLATE_URL)
        response = MagicMock()
        response.raise_for_status = MagicMock(side_effect=httpx.HTTPStatusError(
            "Not Found", request=request, response=httpx.Response(404, request=request),
        ))
        client = mock_client_returning(response=response)

        loader = DefaultTemplateLoader(source=TEMPLATE_URL)
        with patch("zakat_tracker.services.template.loader.httpx.AsyncClient", return_value=client):
            with pytest.raises(TemplateFetchError):
                await loader.fetch()

        assert client.get.await_count == 1

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self, monkeypatch):
        """Connection failures are retried three times, then reported."""
        monkeypatch.setattr(DefaultTemplateLoader._fetch_remote.retry, "wait", wait_none())
        client = mock_client_returning(error=httpx.ConnectError("connection refused"))

        loader = DefaultTemplateLoader(source=TEMPLATE_URL)
        with patch("zakat_tracker.services.template.loader.httpx.AsyncClient", return_value=client):
            with pytest.raises(TemplateFetchError):
                await loader.fetch()

        assert client.get.await_count == 3
