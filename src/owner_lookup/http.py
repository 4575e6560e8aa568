from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Dict, List, Optional

import requests


RETRY_STATUS = {500, 502, 503, 504}

logger = logging.getLogger("owner_lookup.http")


class RetryConfig:
    def __init__(self, retries=2, base_delay=0.2, factor=2.0, jitter=0.1):
        self.retries = retries
        self.base_delay = base_delay
        self.factor = factor
        self.jitter = jitter


def compute_backoff_delays(
    retries, base_delay=0.2, factor=2.0, jitter=0.1, rand_fn=None
) -> List[float]:
    delays = []
    current = base_delay
    rand_fn = rand_fn or random.random
    for _ in range(retries):
        noise = (rand_fn() * 2 - 1) * jitter
        delays.append(max(0.0, current + noise))
        current *= factor
    return delays


def build_session(user_agent: str = "owner-lookup") -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent})
    return session


def request_with_retries(
    session: requests.Session,
    method: str,
    url: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 20.0,
    retry_config: Optional[RetryConfig] = None,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> requests.Response:
    """Issue one request, retrying 5xx responses and connection failures.

    Non-retryable responses (2xx, 4xx incl. 429) are returned as-is; the caller
    interprets the status. The last exception is re-raised once retries run
    out.
    """

    cfg = retry_config or RetryConfig()
    delays = compute_backoff_delays(cfg.retries, cfg.base_delay, cfg.factor, cfg.jitter)
    attempts = len(delays) + 1
    last_error: Optional[Exception] = None
    for attempt in range(attempts):
        try:
            response = session.request(
                method, url, params=params, headers=headers, timeout=timeout
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            last_error = exc
            logger.warning("request to %s failed (attempt %s/%s): %s", url, attempt + 1, attempts, exc)
            if attempt < len(delays):
                sleep_fn(delays[attempt])
            continue
        if response.status_code in RETRY_STATUS and attempt < len(delays):
            logger.info("retrying %s after status %s", url, response.status_code)
            sleep_fn(delays[attempt])
            continue
        return response
    raise last_error
