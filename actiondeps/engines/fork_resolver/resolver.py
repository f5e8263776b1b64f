"""ForkResolver — map forked actions of selected organizations to their upstream."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from actiondeps.core.errors import LookupFailure
from actiondeps.engines.dependency_scanner.models import Dependency, Original, ResolvedDependency
from actiondeps.engines.fork_resolver.lookup import ForkInfo, ForkLookup

log = structlog.get_logger("actiondeps.fork")

_DEFAULT_CONCURRENCY = 5


@dataclass
class ForkResolverConfig:
    fork_organizations: list[str] = field(default_factory=list)
    fork_regex: re.Pattern[str] | None = None
    lookup: ForkLookup | None = None
    concurrency: int = _DEFAULT_CONCURRENCY


class ForkResolver:
    """Attach an upstream :class:`Original` to dependencies that are forks.

    Only owners listed in ``fork_organizations`` are considered. For those,
    the configured regex is tried first (no network); otherwise the lookup
    is consulted. A failed lookup leaves the dependency unresolved.
    """

    def __init__(self, config: ForkResolverConfig) -> None:
        self._config = config
        self._organizations = {org.lower() for org in config.fork_organizations}
        self._lookups: dict[str, asyncio.Task[ForkInfo | None]] = {}

    async def resolve(self, dependencies: Iterable[Dependency]) -> list[ResolvedDependency]:
        """Resolve every dependency once, preserving first-seen order."""
        unique: dict[str, Dependency] = {}
        for dep in dependencies:
            unique.setdefault(dep.key, dep)

        semaphore = asyncio.Semaphore(max(self._config.concurrency, 1))

        async def _bounded(dep: Dependency) -> ResolvedDependency:
            async with semaphore:
                return await self.resolve_one(dep)

        resolved = await asyncio.gather(*(_bounded(dep) for dep in unique.values()))
        forks = sum(1 for r in resolved if r.original is not None)
        log.info("fork.resolved", dependencies=len(resolved), forks=forks)
        return list(resolved)

    async def resolve_one(self, dep: Dependency) -> ResolvedDependency:
        if dep.owner.lower() not in self._organizations:
            return ResolvedDependency(dependency=dep)

        original = self._match_regex(dep)
        if original is None:
            original = await self._lookup(dep)

        if original is not None and self._is_self(dep, original):
            log.debug("fork.self_reference_ignored", dependency=dep.key)
            original = None
        return ResolvedDependency(dependency=dep, original=original)

    # ── strategies ───────────────────────────────────────────────────────

    def _match_regex(self, dep: Dependency) -> Original | None:
        pattern = self._config.fork_regex
        if pattern is None:
            return None
        match = pattern.search(f"{dep.owner}/{dep.repo}")
        if match is None:
            return None
        org, repo = match.group("org"), match.group("repo")
        if not org or not repo:
            return None
        return Original(owner=org, repo=repo)

    async def _lookup(self, dep: Dependency) -> Original | None:
        if self._config.lookup is None:
            return None
        repository = f"{dep.owner}/{dep.repo}".lower()
        # Several versions of one fork share a single lookup.
        task = self._lookups.get(repository)
        if task is None:
            task = asyncio.ensure_future(self._query(dep.owner, dep.repo))
            self._lookups[repository] = task
        info = await task
        if info is None or not info.is_fork or not info.original_owner or not info.original_repo:
            return None
        return Original(owner=info.original_owner, repo=info.original_repo)

    async def _query(self, owner: str, repo: str) -> ForkInfo | None:
        try:
            return await self._config.lookup.lookup_fork(owner, repo)  # type: ignore[union-attr]
        except LookupFailure as exc:
            log.warning("fork.lookup_failed", repository=f"{owner}/{repo}", reason=exc.reason)
            return None
        except Exception as exc:
            log.warning(
                "fork.lookup_failed",
                repository=f"{owner}/{repo}",
                reason=f"{type(exc).__name__}: {exc}",
            )
            return None

    @staticmethod
    def _is_self(dep: Dependency, original: Original) -> bool:
        return (
            original.owner.lower() == dep.owner.lower()
            and original.repo.lower() == dep.repo.lower()
        )
