import time
from http import HTTPStatus

import backoff
import httpx
import structlog

from lead_pipeline.adapters.observability.metrics import EXTERNAL_CALLS, EXTERNAL_LATENCY

logger = structlog.get_logger(__name__)


class BaseHttpClient:
    """Cliente HTTP com retry exponencial e métricas por provedor."""
    DEFAULT_TIMEOUT = 10

    def __init__(self, provider: str, base_url: str, token: str | None = None, timeout: float | None = None):
        self.provider = provider
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    @backoff.on_exception(backoff.expo, (httpx.TimeoutException, httpx.HTTPError),
                          max_tries=3, jitter=None)
    def _request(self, method: str, path: str, **kw) -> httpx.Response:
        start = time.perf_counter()
        try:
            resp = httpx.request(
                method, f"{self.base_url}{path}", headers=self._headers(), timeout=self.timeout, **kw
            )
            if resp.status_code >= HTTPStatus.BAD_REQUEST:
                raise httpx.HTTPStatusError("Bad status", request=resp.request, response=resp)
            EXTERNAL_CALLS.labels(self.provider, "ok").inc()
            return resp
        except httpx.HTTPError:
            EXTERNAL_CALLS.labels(self.provider, "error").inc()
            raise
        finally:
            EXTERNAL_LATENCY.labels(self.provider).observe(time.perf_counter() - start)
