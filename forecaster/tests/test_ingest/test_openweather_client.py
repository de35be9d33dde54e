"""Tests for the OpenWeatherMap client with mocked httpx."""

from datetime import date
from unittest.mock import patch

import httpx
import pytest
import respx

from forecaster.config.schema import ProviderConfig
from forecaster.errors import ExternalProviderError, InvalidProviderResponse
from forecaster.ingest.openweather_client import OpenWeatherClient

FORECAST_URL = "https://test-owm.example.com/forecast"


@pytest.fixture
def owm() -> OpenWeatherClient:
    return OpenWeatherClient(
        api_key="test-key",
        base_url="https://test-owm.example.com",
        timeout=2.0,
        max_retries=1,
        retry_base_delay=0.01,  # Fast retries in tests
    )


class TestInit:
    def test_missing_api_key(self):
        with pytest.raises(ExternalProviderError, match="OPENWEATHER_API_KEY"):
            OpenWeatherClient(api_key="")

    def test_from_config(self):
        config = ProviderConfig(api_key="abc", timeout_seconds=3.5, max_retries=2)
        client = OpenWeatherClient.from_config(config)
        assert client.api_key == "abc"
        assert client.timeout == 3.5
        assert client.max_retries == 2
        assert client.sample_count == 40


class TestGetForecast:
    @respx.mock
    def test_success(self, owm: OpenWeatherClient, fresno_payload: dict):
        respx.get(FORECAST_URL).mock(return_value=httpx.Response(200, json=fresno_payload))

        records = owm.get_forecast("fresno", "california", 3)
        assert len(records) == 3
        assert records[0].forecast_date == date(2025, 11, 25)
        assert records[0].temperature == 18.5

    @respx.mock
    def test_query_params(self, owm: OpenWeatherClient, fresno_payload: dict):
        route = respx.get(
            FORECAST_URL,
            params={"q": "fresno,california,US", "units": "metric", "cnt": "40"},
        ).mock(return_value=httpx.Response(200, json=fresno_payload))

        owm.get_forecast("fresno", "california", 3)
        assert route.called
        assert route.calls[0].request.url.params["appid"] == "test-key"

    @pytest.mark.parametrize(
        "status,message",
        [
            (401, "Invalid API key"),
            (403, "Invalid API key"),
            (404, "Location not found"),
            (500, "failed with status 500"),
            (302, "failed with status 302"),
        ],
    )
    @respx.mock
    def test_error_statuses(self, owm: OpenWeatherClient, status: int, message: str):
        respx.get(FORECAST_URL).mock(
            return_value=httpx.Response(status, text='{"cod": "%d"}' % status)
        )

        with pytest.raises(ExternalProviderError, match=message) as exc_info:
            owm.get_forecast("fresno", "california", 3)
        err = exc_info.value
        assert err.provider == "openweathermap"
        assert err.provider_status == status
        assert err.response_body == '{"cod": "%d"}' % status
        assert err.status_code == 502

    @respx.mock
    def test_retry_on_503(self, owm: OpenWeatherClient, fresno_payload: dict):
        route = respx.get(FORECAST_URL).mock(
            side_effect=[
                httpx.Response(503),
                httpx.Response(200, json=fresno_payload),
            ]
        )

        with patch("forecaster.ingest.openweather_client.time.sleep"):
            records = owm.get_forecast("fresno", "california", 3)
        assert len(records) == 3
        assert route.call_count == 2

    @respx.mock
    def test_rate_limit_after_retries(self, owm: OpenWeatherClient):
        route = respx.get(FORECAST_URL).mock(return_value=httpx.Response(429, text="slow down"))

        with patch("forecaster.ingest.openweather_client.time.sleep"), pytest.raises(
            ExternalProviderError, match="rate limit"
        ) as exc_info:
            owm.get_forecast("fresno", "california", 3)
        assert exc_info.value.provider_status == 429
        assert route.call_count == 2

    @respx.mock
    def test_timeout(self, owm: OpenWeatherClient):
        respx.get(FORECAST_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

        with patch("forecaster.ingest.openweather_client.time.sleep"), pytest.raises(
            ExternalProviderError, match="timed out"
        ) as exc_info:
            owm.get_forecast("fresno", "california", 3)
        assert exc_info.value.provider_status is None

    @respx.mock
    def test_network_error(self, owm: OpenWeatherClient):
        route = respx.get(FORECAST_URL).mock(side_effect=httpx.ConnectError("refused"))

        with patch("forecaster.ingest.openweather_client.time.sleep"), pytest.raises(
            ExternalProviderError, match="Network error"
        ):
            owm.get_forecast("fresno", "california", 3)
        assert route.call_count == 2

    @respx.mock
    def test_no_retry_when_disabled(self, fresno_payload: dict):
        client = OpenWeatherClient(
            api_key="k", base_url="https://test-owm.example.com", max_retries=0
        )
        route = respx.get(FORECAST_URL).mock(return_value=httpx.Response(503))

        with pytest.raises(ExternalProviderError):
            client.get_forecast("fresno", "california", 3)
        assert route.call_count == 1

    @respx.mock
    def test_non_json_body(self, owm: OpenWeatherClient):
        respx.get(FORECAST_URL).mock(return_value=httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(InvalidProviderResponse) as exc_info:
            owm.get_forecast("fresno", "california", 3)
        assert exc_info.value.response_body == "<html>oops</html>"

    @respx.mock
    def test_malformed_payload(self, owm: OpenWeatherClient):
        respx.get(FORECAST_URL).mock(
            return_value=httpx.Response(200, json={"list": [{"dt": 1764072000}]})
        )

        with pytest.raises(InvalidProviderResponse):
            owm.get_forecast("fresno", "california", 3)

    @respx.mock
    def test_schema_mismatch_keeps_body(self, owm: OpenWeatherClient):
        body = '{"list": [{"dt": 1, "main": {}}]}'
        respx.get(FORECAST_URL).mock(return_value=httpx.Response(200, text=body))

        with pytest.raises(InvalidProviderResponse, match="schema error") as exc_info:
            owm.get_forecast("fresno", "california", 3)
        err = exc_info.value
        assert err.response_body == body
        assert err.provider == "openweathermap"
        assert err.code == "INVALID_PROVIDER_RESPONSE"

    @respx.mock
    def test_empty_list_keeps_body(self, owm: OpenWeatherClient):
        body = '{"cod": "200", "list": []}'
        respx.get(FORECAST_URL).mock(return_value=httpx.Response(200, text=body))

        with pytest.raises(InvalidProviderResponse, match="empty forecast list") as exc_info:
            owm.get_forecast("fresno", "california", 3)
        assert exc_info.value.response_body == body


class TestPing:
    @respx.mock
    def test_reachable(self, owm: OpenWeatherClient):
        respx.get("https://test-owm.example.com/").mock(return_value=httpx.Response(401))
        assert owm.ping() is True

    @respx.mock
    def test_unreachable(self, owm: OpenWeatherClient):
        respx.get("https://test-owm.example.com/").mock(side_effect=httpx.ConnectError("down"))
        assert owm.ping() is False
