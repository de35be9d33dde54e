"""OpenWeatherMap 5-day / 3-hour forecast client with bounded retry and typed failures."""

import logging
import time

import httpx

from forecaster.config.schema import ProviderConfig
from forecaster.errors import ExternalProviderError, InvalidProviderResponse
from forecaster.ingest import provider_adapter
from forecaster.models.forecast import ForecastRecord

logger = logging.getLogger(__name__)

OPENWEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5"
PROVIDER_NAME = "openweathermap"
RETRYABLE_STATUSES = (429, 503)


class OpenWeatherClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = OPENWEATHER_BASE_URL,
        timeout: float = 10.0,
        sample_count: int = 40,
        country_code: str = "US",
        units: str = "metric",
        max_retries: int = 1,
        retry_base_delay: float = 0.5,
    ):
        if not api_key:
            raise ExternalProviderError("OPENWEATHER_API_KEY not set", PROVIDER_NAME)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.sample_count = sample_count
        self.country_code = country_code
        self.units = units
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        logger.info(
            "OpenWeatherClient initialized (base_url=%s, timeout=%.1fs)",
            self.base_url, self.timeout,
        )

    @classmethod
    def from_config(cls, config: ProviderConfig) -> "OpenWeatherClient":
        return cls(
            api_key=config.api_key.get_secret_value(),
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            sample_count=config.sample_count,
            country_code=config.country_code,
            units=config.units,
            max_retries=config.max_retries,
            retry_base_delay=config.retry_base_delay_seconds,
        )

    def get_forecast(self, city: str, state: str, days: int) -> list[ForecastRecord]:
        """Fetch the provider's forecast window and collapse it into daily records.

        Raises ExternalProviderError on timeout, non-2xx status or transport
        failure, and InvalidProviderResponse when the body cannot be decoded.
        """
        logger.debug("Fetching forecast for %s, %s (%d days)", city, state, days)
        resp = self._get(city, state)
        try:
            payload = resp.json()
        except ValueError as e:
            raise InvalidProviderResponse(
                "Weather API returned a non-JSON body", PROVIDER_NAME, resp.text
            ) from e

        samples = payload.get("list") if isinstance(payload, dict) else None
        logger.info(
            "Fetched forecast for %s, %s: %d samples received",
            city, state, len(samples) if isinstance(samples, list) else 0,
        )
        try:
            return provider_adapter.adapt(payload, city, state, days)
        except InvalidProviderResponse as e:
            raise InvalidProviderResponse(e.message, PROVIDER_NAME, resp.text) from e

    def ping(self) -> bool:
        """Check that the provider answers at all. Any HTTP response counts."""
        try:
            httpx.get(self.base_url, timeout=min(self.timeout, 5.0))
            return True
        except httpx.HTTPError:
            return False

    def _get(self, city: str, state: str) -> httpx.Response:
        """GET /forecast, retrying 429/503 and transport errors with exponential backoff."""
        url = f"{self.base_url}/forecast"
        params = {
            "q": f"{city},{state},{self.country_code}",
            "appid": self.api_key,
            "units": self.units,
            "cnt": self.sample_count,
        }

        for attempt in range(self.max_retries + 1):
            try:
                resp = httpx.get(url, params=params, timeout=self.timeout)
            except httpx.TimeoutException as e:
                if attempt < self.max_retries:
                    self._backoff(attempt, f"timeout: {e}")
                    continue
                logger.error("OpenWeatherMap timeout for %s, %s", city, state)
                raise ExternalProviderError(
                    "Weather API request timed out", PROVIDER_NAME
                ) from e
            except httpx.RequestError as e:
                if attempt < self.max_retries:
                    self._backoff(attempt, f"request error: {e}")
                    continue
                logger.error("OpenWeatherMap network error for %s, %s: %s", city, state, e)
                raise ExternalProviderError(
                    "Network error while contacting weather service", PROVIDER_NAME
                ) from e

            if resp.status_code in RETRYABLE_STATUSES and attempt < self.max_retries:
                self._backoff(attempt, f"status {resp.status_code}")
                continue
            if not resp.is_success:
                raise self._status_error(resp, city, state)
            return resp

        raise AssertionError("unreachable")

    def _backoff(self, attempt: int, reason: str) -> None:
        delay = self.retry_base_delay * (2**attempt)
        logger.warning(
            "OpenWeatherMap %s, retrying in %.1fs (attempt %d/%d)",
            reason, delay, attempt + 1, self.max_retries,
        )
        time.sleep(delay)

    def _status_error(
        self, resp: httpx.Response, city: str, state: str
    ) -> ExternalProviderError:
        status = resp.status_code
        body = resp.text
        logger.error("OpenWeatherMap %d for %s, %s: %s", status, city, state, body)
        if status in (401, 403):
            message = "Invalid API key for weather service"
        elif status == 404:
            message = f"Location not found: {city}, {state}"
        elif status == 429:
            message = "Weather API rate limit exceeded"
        else:
            message = f"Weather API request failed with status {status}"
        return ExternalProviderError(message, PROVIDER_NAME, status, body)
