"""Async GitHub REST client for fork lookups and snapshot submission.

The two call patterns get different failure policies:

* ``get`` is a single attempt that never sleeps. Fork lookups degrade to
  "unresolved" on any failure, so waiting on them only delays the scan.
* ``post`` retries only when the request provably never reached GitHub
  (connection failures) or was rejected by a short rate-limit window.
  A timed-out or 5xx POST may already have been accepted and is not resent.
"""

from __future__ import annotations

import asyncio
import os
import time
from typing import Any

import httpx
import structlog

log = structlog.get_logger("actiondeps.github")

DEFAULT_API_URL = "https://api.github.com"

_POST_ATTEMPTS = 3
_CONNECT_RETRY_DELAY = 1.0  # seconds, multiplied by the attempt number
_MAX_RATE_LIMIT_WAIT = 60  # longer windows fail the submission instead
_DEFAULT_RATE_LIMIT_WAIT = 60

# Errors raised before any byte of the request was sent.
_NOT_SENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


class RateLimitError(Exception):
    """GitHub refused the request because a rate limit is exhausted."""

    def __init__(self, wait_seconds: int) -> None:
        self.wait_seconds = wait_seconds
        super().__init__(f"rate limit exceeded, resets in {wait_seconds}s")


def _header_int(response: httpx.Response, name: str) -> int | None:
    value = response.headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def is_rate_limited(response: httpx.Response) -> bool:
    """True for a 403/429 caused by a primary or secondary rate limit."""
    if response.status_code not in (403, 429):
        return False
    if _header_int(response, "X-RateLimit-Remaining") == 0:
        return True
    return "Retry-After" in response.headers


def rate_limit_wait(response: httpx.Response) -> int:
    """Seconds until the limit lifts, from ``Retry-After`` or ``X-RateLimit-Reset``."""
    retry_after = _header_int(response, "Retry-After")
    if retry_after is not None:
        return max(retry_after, 1)
    reset_at = _header_int(response, "X-RateLimit-Reset")
    if reset_at is not None:
        return max(reset_at - int(time.time()), 1)
    return _DEFAULT_RATE_LIMIT_WAIT


class GitHubClient:
    """Thin async wrapper around the GitHub REST API."""

    def __init__(self, token: str | None = None, api_url: str = DEFAULT_API_URL) -> None:
        resolved_token = token or os.environ.get("GITHUB_TOKEN")
        headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if resolved_token:
            headers["Authorization"] = f"Bearer {resolved_token}"
        self._client = httpx.AsyncClient(
            base_url=api_url,
            headers=headers,
            timeout=30.0,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def get(self, path: str) -> dict[str, Any]:
        """Single GET, no retries and no waiting.

        Raises :class:`RateLimitError` on a rate-limit rejection and
        :class:`httpx.HTTPError` for everything else that goes wrong.
        """
        response = await self._send("GET", path)
        return response.json()

    async def post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON body, returns parsed JSON (empty dict for empty bodies)."""
        attempt = 1
        while True:
            try:
                response = await self._send("POST", path, json=payload)
            except _NOT_SENT_ERRORS as exc:
                if attempt >= _POST_ATTEMPTS:
                    raise
                reason = type(exc).__name__
                delay = _CONNECT_RETRY_DELAY * attempt
            except RateLimitError as exc:
                if attempt >= _POST_ATTEMPTS or exc.wait_seconds > _MAX_RATE_LIMIT_WAIT:
                    raise
                reason = "rate_limited"
                delay = float(exc.wait_seconds)
            else:
                return response.json() if response.content else {}

            log.warning(
                "github.post_retry",
                path=path,
                reason=reason,
                delay_seconds=delay,
                attempt=attempt,
                max_attempts=_POST_ATTEMPTS,
            )
            await asyncio.sleep(delay)
            attempt += 1

    # ── internal ───────────────────────────────────────────────────────────

    async def _send(
        self, method: str, path: str, *, json: dict[str, Any] | None = None
    ) -> httpx.Response:
        response = await self._client.request(method, path, json=json)
        if is_rate_limited(response):
            raise RateLimitError(rate_limit_wait(response))
        response.raise_for_status()
        return response
