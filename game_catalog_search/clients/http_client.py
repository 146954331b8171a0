from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import requests

from ..config import REQUEST, RETRY
from ..utils.utilities import RateLimiter, bump_stat, with_retries


@dataclass(frozen=True)
class RequestPolicy:
    """
    Timeout and retry budget for one kind of request.

    Interactive search and bulk lookups hit the same endpoint but need different budgets, so the
    API client holds one policy per use instead of one per URL.
    """

    timeout_s: float = REQUEST.timeout_s
    retries: int = RETRY.retries
    base_sleep_s: float = RETRY.base_sleep_s
    counter_key: str = "http_post"
    context_prefix: str = ""

    def describe(self, context: str) -> str:
        if self.context_prefix and context:
            return f"{self.context_prefix}: {context}"
        return self.context_prefix or context


def format_timing(stats: dict[str, Any] | None, *, key: str) -> str:
    if not stats:
        return f"{key}=0 {key}_ms=0"
    return f"{key}={int(stats.get(key, 0) or 0)} {key}_ms={int(stats.get(f'{key}_ms', 0) or 0)}"


class HTTPJSONClient:
    """
    JSON-over-POST helper owned by one API client.

    Shares the client's `requests.Session`, rate limiter and `stats` dict; every attempt (retries
    included) bumps `<counter_key>` and adds its wall time to `<counter_key>_ms`.
    """

    def __init__(
        self,
        session: requests.Session,
        *,
        stats: dict[str, Any] | None = None,
        ratelimiter: RateLimiter | None = None,
    ):
        self.session = session
        self.stats = stats
        self.ratelimiter = ratelimiter

    def _count(self, key: str, elapsed_ms: int | None = None) -> None:
        bump_stat(self.stats, key)
        if elapsed_ms is not None:
            bump_stat(self.stats, f"{key}_ms", elapsed_ms)

    def post_json(
        self,
        url: str,
        *,
        policy: RequestPolicy,
        body: str | dict[str, Any],
        headers: dict[str, str] | None = None,
        status_handlers: dict[int, Any] | None = None,
        context: str = "",
        on_fail_return: Any = None,
    ) -> Any:
        """
        POST `body` and decode the JSON answer.

        A status listed in `status_handlers` short-circuits to the mapped value without retrying;
        other HTTP errors, network errors and undecodable bodies are retried per `policy`, then
        `on_fail_return` is returned.
        """

        def _attempt() -> Any:
            if self.ratelimiter is not None:
                self.ratelimiter.wait()
            t0 = time.perf_counter()
            r = self.session.post(url, headers=headers, data=body, timeout=policy.timeout_s)
            self._count(policy.counter_key, int(round((time.perf_counter() - t0) * 1000.0)))
            if status_handlers and r.status_code in status_handlers:
                return status_handlers[r.status_code]
            r.raise_for_status()
            return r.json()

        return with_retries(
            _attempt,
            retries=policy.retries,
            base_sleep_s=policy.base_sleep_s,
            on_fail_return=on_fail_return,
            context=policy.describe(context),
            retry_stats=self.stats,
        )
