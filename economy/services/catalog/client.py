"""
Catalog client: resolves episode price and free flag from the catalog service.
Sync httpx client behind a circuit breaker; the catalog stays the source of truth for pricing.
"""
import logging
import time

import httpx
import pybreaker
from pydantic import ValidationError

from economy.core.config import settings
from economy.schemas.catalog import Episode
from economy.services.circuit_breaker import get_circuit_breaker
from economy.services.errors import CatalogError, EpisodeNotFoundError
from economy.utils.metrics import catalog_request_duration_seconds, catalog_requests_total

logger = logging.getLogger(__name__)


class CatalogClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.catalog_api_base).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.http_client_timeout
        self._breaker = breaker
        self._transport = transport
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout, transport=self._transport)
        return self._client

    @property
    def breaker(self) -> pybreaker.CircuitBreaker:
        if self._breaker is None:
            self._breaker = get_circuit_breaker("catalog")
        return self._breaker

    def get_episode(self, episode_id: str) -> Episode:
        url = f"{self._base_url}/episodes/{episode_id}"
        start = time.time()
        try:
            resp = self.breaker.call(self.client.get, url)
        except pybreaker.CircuitBreakerError as e:
            catalog_requests_total.labels(status="circuit_open").inc()
            raise CatalogError("catalog circuit open") from e
        except httpx.HTTPError as e:
            catalog_requests_total.labels(status="error").inc()
            logger.warning("catalog_request_failed", extra={"content_id": episode_id, "error": str(e)})
            raise CatalogError(f"catalog unavailable: {e}") from e
        finally:
            catalog_request_duration_seconds.observe(time.time() - start)

        catalog_requests_total.labels(status=str(resp.status_code)).inc()
        if resp.status_code == 404:
            raise EpisodeNotFoundError(episode_id)
        if resp.status_code >= 400:
            raise CatalogError(f"catalog returned {resp.status_code} for episode {episode_id}")

        data = resp.json()
        # Catalog wraps single resources as {"episode": {...}}
        payload = data.get("episode", data) if isinstance(data, dict) else data
        try:
            return Episode.model_validate(payload)
        except ValidationError as e:
            raise CatalogError(f"malformed episode payload for {episode_id}") from e

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
