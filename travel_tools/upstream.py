from typing import Any, Dict, Optional
import logging
import time
import json
from datetime import datetime, timezone

import httpx

from .config import CONFIG
from .errors import ProviderError


def log_call(tool: str, fn: str, start_time: float, ok: bool, http_status: Optional[int]) -> None:
    latency_ms = (time.monotonic() - start_time) * 1000
    log_data = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "tool": tool,
        "fn": fn,
        "latency_ms": f"{latency_ms:.2f}",
        "ok": ok,
        "http_status": http_status,
    }
    logging.info(json.dumps(log_data))


async def fetch_json(
    client: httpx.AsyncClient,
    provider: str,
    fn: str,
    url: str,
    *,
    method: str = "GET",
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    json_body: Optional[Dict[str, Any]] = None,
) -> Any:
    """Call a provider endpoint and return its decoded JSON body.

    Transport errors, non-2xx statuses and undecodable bodies all surface as
    ``ProviderError`` so tool executors only have one failure type to expect.
    """
    start_time = time.monotonic()
    request_headers = {"User-Agent": CONFIG.user_agent, "Accept": "application/json"}
    if headers:
        request_headers.update(headers)
    try:
        resp = await client.request(method, url, params=params, headers=request_headers, json=json_body)
    except httpx.HTTPError as e:
        log_call(provider, fn, start_time, False, None)
        raise ProviderError(provider, f"request failed: {e}") from e

    if not resp.is_success:
        log_call(provider, fn, start_time, False, resp.status_code)
        raise ProviderError(provider, f"{fn} returned an error", resp.status_code)

    try:
        data = resp.json()
    except ValueError as e:
        log_call(provider, fn, start_time, False, resp.status_code)
        raise ProviderError(provider, "response malformed", resp.status_code) from e

    log_call(provider, fn, start_time, True, resp.status_code)
    return data


def require_key(provider: str, value: Optional[str]) -> str:
    if not value:
        raise ProviderError(provider, "missing API key")
    return value
