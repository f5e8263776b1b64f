"""Build and submit a dependency snapshot to GitHub's dependency graph."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from actiondeps import __version__
from actiondeps.core.config import Settings
from actiondeps.core.errors import SubmissionError
from actiondeps.engines.fork_resolver.github_client import GitHubClient, RateLimitError
from actiondeps.engines.submission.aggregator import SubmissionEntry

log = structlog.get_logger("actiondeps.submission")

MANIFEST_NAME = "github-actions-workflows"
DETECTOR = {
    "name": "actions-dependency-submission",
    "version": __version__,
    "url": "https://github.com/jessehouwing/actions-dependency-submission",
}


def build_snapshot(
    entries: Sequence[SubmissionEntry],
    settings: Settings,
    scanned_at: datetime | None = None,
) -> dict[str, Any]:
    """Return the snapshot payload for ``POST .../dependency-graph/snapshots``."""
    scanned_at = scanned_at or datetime.now(timezone.utc)
    resolved = {
        entry.package_id: {
            "package_url": entry.package_url,
            "relationship": "direct",
            "scope": "runtime",
            "dependencies": [],
        }
        for entry in entries
    }
    return {
        "version": 0,
        "sha": settings.sha,
        "ref": settings.ref,
        "job": {"correlator": settings.correlator, "id": settings.run_id},
        "detector": dict(DETECTOR),
        "scanned": scanned_at.isoformat().replace("+00:00", "Z"),
        "manifests": {
            MANIFEST_NAME: {
                "name": MANIFEST_NAME,
                "file": {"source_location": settings.manifest_location},
                "resolved": resolved,
            },
        },
    }


async def submit_dependencies(
    client: GitHubClient,
    settings: Settings,
    entries: Sequence[SubmissionEntry],
) -> int:
    """Submit *entries* and return how many were sent (0 when there are none).

    Raises :class:`SubmissionError` when the API call fails.
    """
    if not entries:
        log.info("submission.skipped", reason="no dependencies")
        return 0

    owner, repo = settings.owner_and_repo()
    payload = build_snapshot(entries, settings)
    try:
        response = await client.post(f"/repos/{owner}/{repo}/dependency-graph/snapshots", payload)
    except httpx.HTTPStatusError as exc:
        raise SubmissionError(
            f"dependency submission failed with HTTP {exc.response.status_code}"
        ) from exc
    except (httpx.HTTPError, RateLimitError) as exc:
        raise SubmissionError(f"dependency submission failed: {exc}") from exc

    log.info(
        "submission.done",
        repository=f"{owner}/{repo}",
        dependencies=len(entries),
        snapshot_id=response.get("id"),
    )
    return len(entries)
