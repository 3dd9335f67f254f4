"""
Tests for the Airtable record store client.

Tests cover:
- Configuration validation
- Record fetch and parsing
- Malformed success bodies
- Traffic logging
- HTTP error mapping
- Transport failures
"""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from lanehub.integrations import (
    AirtableClient,
    AirtableConfig,
    AuthenticationError,
    IntegrationError,
    MemoryRecordStore,
    NotFoundError,
    RateLimitError,
    RecordStore,
    SourceRecord,
    ValidationError,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def airtable_config():
    return AirtableConfig(api_key="pat_test_key", base_id="appTEST123")


@pytest.fixture
def client(airtable_config):
    return AirtableClient(airtable_config)


def _response(status_code, body="", headers=None):
    request = httpx.Request("GET", "https://api.airtable.com/v0/appTEST123/tbl/rec")
    return httpx.Response(status_code, text=body, headers=headers, request=request)


# =============================================================================
# Config
# =============================================================================


class TestAirtableConfig:
    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="API key"):
            AirtableConfig(api_key="", base_id="appTEST123")

    def test_requires_base_id(self):
        with pytest.raises(ValueError, match="base id"):
            AirtableConfig(api_key="pat_test_key", base_id="")

    def test_defaults(self, airtable_config):
        assert airtable_config.base_url == "https://api.airtable.com"
        assert airtable_config.timeout == 30.0


# =============================================================================
# Client
# =============================================================================


class TestAirtableClient:
    """Tests for AirtableClient."""

    def test_client_name(self, client):
        assert client.name == "airtable"
        assert client.base_id == "appTEST123"

    def test_implements_record_store(self, client):
        assert isinstance(client, RecordStore)
        assert isinstance(MemoryRecordStore(), RecordStore)

    def test_auth_headers(self, client):
        assert client._get_auth_headers() == {"Authorization": "Bearer pat_test_key"}

    def test_record_path_quotes_table_names(self, client):
        assert client._record_path("Content Types", "rec1") == "/v0/appTEST123/Content%20Types/rec1"

    @pytest.mark.asyncio
    async def test_find(self, client):
        with patch.object(client, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = MagicMock(
                json=lambda: {
                    "id": "rec123",
                    "createdTime": "2024-05-01T10:00:00.000Z",
                    "fields": {"Name": "Launch", "Branch A": True},
                }
            )

            record = await client.find("tblBCiyCEEFJCJ1nO", "rec123")

            assert isinstance(record, SourceRecord)
            assert record.id == "rec123"
            assert record.created_time == "2024-05-01T10:00:00.000Z"
            assert record.fields["Name"] == "Launch"
            mock_request.assert_called_once_with("GET", "/v0/appTEST123/tblBCiyCEEFJCJ1nO/rec123")

    @pytest.mark.asyncio
    async def test_find_without_fields(self, client):
        with patch.object(client, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = MagicMock(json=lambda: {"id": "rec123"})
            record = await client.find("tbl", "rec123")
            assert record.fields == {}

    @pytest.mark.asyncio
    async def test_find_not_found(self, client):
        with patch.object(client, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = NotFoundError("Record not found", "airtable", status_code=404)
            with pytest.raises(NotFoundError):
                await client.find("tbl", "recMISSING")

    @pytest.mark.asyncio
    async def test_find_non_json_body(self, client):
        with patch.object(client, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = _response(200, "<html>gateway</html>")
            with pytest.raises(IntegrationError, match="Malformed record body") as exc_info:
                await client.find("tbl", "rec123")

        error = exc_info.value
        assert not isinstance(error, NotFoundError)
        assert error.status_code == 200
        assert error.response_body == "<html>gateway</html>"

    @pytest.mark.asyncio
    async def test_find_body_without_id(self, client):
        with patch.object(client, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = _response(200, '{"fields": {"Name": "Launch"}}')
            with pytest.raises(IntegrationError, match="tbl/rec123"):
                await client.find("tbl", "rec123")

    @pytest.mark.asyncio
    async def test_traffic_logging(self, caplog):
        config = AirtableConfig(api_key="pat_test_key", base_id="appTEST123", log_requests=True, log_responses=True)
        client = AirtableClient(config)
        client._client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"id": "rec123"})),
            base_url=config.base_url,
        )
        caplog.set_level(logging.DEBUG, logger="lanehub.integrations.base")

        async with client:
            await client.find("tbl", "rec123")

        assert "[airtable] GET /v0/appTEST123/tbl/rec123" in caplog.text
        assert "[airtable] Response: status=200" in caplog.text

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, airtable_config):
        async with AirtableClient(airtable_config) as client:
            http = await client._get_client()
            assert not http.is_closed
        assert http.is_closed


# =============================================================================
# Error mapping
# =============================================================================


class TestResponseErrors:
    """Tests for _check_response status mapping."""

    def test_success_passes(self, client):
        client._check_response(_response(200, "{}"))

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_errors(self, client, status):
        with pytest.raises(AuthenticationError) as exc_info:
            client._check_response(_response(status, "denied"))
        assert exc_info.value.status_code == status

    def test_not_found(self, client):
        with pytest.raises(NotFoundError) as exc_info:
            client._check_response(_response(404, '{"error": "NOT_FOUND"}'))
        assert exc_info.value.integration == "airtable"
        assert exc_info.value.retryable is False

    def test_rate_limit(self, client):
        with pytest.raises(RateLimitError) as exc_info:
            client._check_response(_response(429, "slow down", headers={"Retry-After": "30"}))
        assert exc_info.value.retry_after == 30.0
        assert exc_info.value.retryable is True

    @pytest.mark.parametrize("status", [400, 422])
    def test_validation(self, client, status):
        with pytest.raises(ValidationError):
            client._check_response(_response(status, "bad"))

    def test_server_error_retryable(self, client):
        with pytest.raises(IntegrationError) as exc_info:
            client._check_response(_response(503, "unavailable"))
        assert exc_info.value.retryable is True
        assert exc_info.value.response_body == "unavailable"

    @pytest.mark.asyncio
    async def test_timeout_mapped(self, client):
        http = MagicMock()
        http.request = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))
        with patch.object(client, "_get_client", new_callable=AsyncMock, return_value=http):
            with pytest.raises(IntegrationError, match="timeout") as exc_info:
                await client._request("GET", "/v0/appTEST123/tbl/rec")
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_transport_error_mapped(self, client):
        http = MagicMock()
        http.request = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch.object(client, "_get_client", new_callable=AsyncMock, return_value=http):
            with pytest.raises(IntegrationError, match="Network error"):
                await client._request("GET", "/v0/appTEST123/tbl/rec")
