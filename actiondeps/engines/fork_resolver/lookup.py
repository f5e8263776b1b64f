"""Fork lookup capability — ask GitHub whether a repository is a fork."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx
import structlog

from actiondeps.core.errors import LookupFailure
from actiondeps.engines.fork_resolver.github_client import GitHubClient, RateLimitError

log = structlog.get_logger("actiondeps.fork")


@dataclass(frozen=True)
class ForkInfo:
    is_fork: bool
    original_owner: str | None = None
    original_repo: str | None = None


@runtime_checkable
class ForkLookup(Protocol):
    """Anything that can report the fork status of ``owner/repo``.

    Implementations raise :class:`LookupFailure` when they cannot answer.
    """

    async def lookup_fork(self, owner: str, repo: str) -> ForkInfo: ...


class GitHubForkLookup:
    """``GET /repos/{owner}/{repo}`` backed fork lookup."""

    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    async def lookup_fork(self, owner: str, repo: str) -> ForkInfo:
        try:
            data = await self._client.get(f"/repos/{owner}/{repo}")
        except httpx.HTTPStatusError as exc:
            raise LookupFailure(owner, repo, f"HTTP {exc.response.status_code}") from exc
        except (httpx.HTTPError, RateLimitError) as exc:
            raise LookupFailure(owner, repo, f"{type(exc).__name__}: {exc}") from exc

        if not data.get("fork"):
            return ForkInfo(is_fork=False)

        # ``parent`` is the direct upstream; ``source`` the root of the network.
        upstream = data.get("parent") or data.get("source") or {}
        upstream_owner = (upstream.get("owner") or {}).get("login")
        upstream_repo = upstream.get("name")
        if not upstream_owner or not upstream_repo:
            log.debug("fork.parent_missing", repository=f"{owner}/{repo}")
            return ForkInfo(is_fork=True)
        return ForkInfo(is_fork=True, original_owner=upstream_owner, original_repo=upstream_repo)
