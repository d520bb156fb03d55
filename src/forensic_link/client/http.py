from __future__ import annotations

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from forensic_link.settings import settings


def default_timeout() -> httpx.Timeout:
    t = settings.http_timeout_s
    return httpx.Timeout(connect=min(t, 10.0), read=t, write=t, pool=min(t, 10.0))


def default_limits() -> httpx.Limits:
    return httpx.Limits(max_connections=20, max_keepalive_connections=10)


class HttpClientFactory:
    """Creates shared httpx clients with sane defaults.

    Keep one client per provider; do not create per-request.
    """

    @staticmethod
    def client(
        base_url: str | None = None,
        headers: dict | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> httpx.Client:
        return httpx.Client(
            base_url=base_url or "",
            headers=headers,
            timeout=default_timeout(),
            limits=default_limits(),
            follow_redirects=True,
            transport=transport,
        )


TransientHttpError = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)


def transient_retry(attempts: int | None = None):
    return retry(
        reraise=True,
        stop=stop_after_attempt(max(1, attempts or settings.http_retries)),
        wait=wait_exponential_jitter(initial=0.5, max=10.0),
        retry=retry_if_exception_type(TransientHttpError),
    )
