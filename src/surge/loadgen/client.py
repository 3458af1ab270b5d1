from __future__ import annotations

import asyncio
import logging
import time

import httpx

from surge.loadgen.endpoint import Endpoint, IdPicker
from surge.metrics import TRANSPORT_FAILURE, Aggregator, Outcome

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}
IDLE_CONNECTION_TIMEOUT_SEC = 90.0


def base_url_for(server_addr: str) -> str:
    """Turn ``:8080``, ``host:8080`` or ``http://host:8080`` into a base URL."""
    addr = server_addr.strip()
    if "://" in addr:
        return addr.rstrip("/")
    if addr.startswith(":"):
        addr = "localhost" + addr
    return "http://" + addr.rstrip("/")


def new_client(concurrency: int, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    limits = httpx.Limits(
        max_connections=None,
        max_keepalive_connections=max(1, concurrency),
        keepalive_expiry=IDLE_CONNECTION_TIMEOUT_SEC,
    )
    return httpx.AsyncClient(limits=limits, transport=transport)


async def execute(
    client: httpx.AsyncClient,
    endpoint: Endpoint,
    base_url: str,
    timeout_sec: float,
    metrics: Aggregator,
    ids: IdPicker | None = None,
) -> Outcome:
    path = endpoint.path
    if endpoint.has_dynamic_id and ids is not None:
        path = ids.resolve(path)
    url = base_url + path
    content = endpoint.body.encode() if endpoint.body else None
    headers = JSON_HEADERS if content is not None else None

    start = time.perf_counter()
    try:
        # httpx timeouts apply per phase; wait_for bounds the whole exchange,
        # body read included.
        resp = await asyncio.wait_for(
            client.request(
                endpoint.method,
                url,
                content=content,
                headers=headers,
                timeout=timeout_sec,
            ),
            timeout_sec,
        )
    except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as exc:
        logger.debug("%s %s failed: %r", endpoint.method, url, exc)
        metrics.record_error(TRANSPORT_FAILURE)
        return Outcome(latency_ms=None, status_code=TRANSPORT_FAILURE)
    latency_ms = (time.perf_counter() - start) * 1000.0
    metrics.record_request(latency_ms, resp.status_code)
    return Outcome(latency_ms=latency_ms, status_code=resp.status_code)
