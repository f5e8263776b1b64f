"""Tests for aggregation, package URLs and snapshot submission."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from actiondeps.core.config import Settings
from actiondeps.core.errors import SubmissionError
from actiondeps.engines.dependency_scanner.models import Dependency, Original, ResolvedDependency
from actiondeps.engines.fork_resolver.github_client import GitHubClient
from actiondeps.engines.submission.aggregator import SubmissionEntry, aggregate, to_package_url
from actiondeps.engines.submission.submitter import (
    MANIFEST_NAME,
    build_snapshot,
    submit_dependencies,
)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        token="t",
        repository="owner/repo",
        sha="abc123",
        ref="refs/heads/main",
        repository_root=tmp_path,
        correlator="ci-deps",
        run_id="42",
    )


# ── aggregate ────────────────────────────────────────────────────────────


class TestAggregate:
    def test_fork_emits_fork_and_original(self):
        resolved = [
            ResolvedDependency(Dependency("myorg/checkout", "v4"), Original("actions", "checkout"))
        ]
        ids = [e.package_id for e in aggregate(resolved)]
        assert ids == ["myorg/checkout@v4", "actions/checkout"]

    def test_plain_dependency(self):
        entries = aggregate([ResolvedDependency(Dependency("actions/cache", "v4", "ci.yml"))])
        assert entries == [SubmissionEntry("actions/cache", "v4", "ci.yml")]

    def test_original_shared_by_two_forks(self):
        resolved = [
            ResolvedDependency(Dependency("myorg/checkout", "v3"), Original("actions", "checkout")),
            ResolvedDependency(Dependency("myorg/checkout", "v4"), Original("actions", "checkout")),
        ]
        ids = [e.package_id for e in aggregate(resolved)]
        assert ids == ["myorg/checkout@v3", "actions/checkout", "myorg/checkout@v4"]

    def test_duplicates_dropped(self):
        dep = Dependency("actions/cache", "v4")
        assert len(aggregate([ResolvedDependency(dep), ResolvedDependency(dep)])) == 1

    def test_empty(self):
        assert aggregate([]) == []


class TestPackageUrl:
    def test_with_version(self):
        assert to_package_url("actions/checkout", "v4") == "pkg:github/actions/checkout@v4"

    def test_without_version(self):
        assert to_package_url("actions/checkout") == "pkg:github/actions/checkout"

    def test_subpath(self):
        purl = to_package_url("org/repo/.github/workflows/build.yml", "main")
        assert purl == "pkg:github/org/repo@main#.github/workflows/build.yml"

    def test_version_escaped(self):
        assert to_package_url("a/b", "release/1.0") == "pkg:github/a/b@release%2F1.0"


# ── snapshot ─────────────────────────────────────────────────────────────


class TestBuildSnapshot:
    def test_payload(self, settings):
        entries = [
            SubmissionEntry("myorg/checkout", "v4"),
            SubmissionEntry("actions/checkout"),
        ]
        scanned = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        payload = build_snapshot(entries, settings, scanned)

        assert payload["version"] == 0
        assert payload["sha"] == "abc123"
        assert payload["ref"] == "refs/heads/main"
        assert payload["job"] == {"correlator": "ci-deps", "id": "42"}
        assert payload["scanned"] == "2024-05-01T12:00:00Z"
        manifest = payload["manifests"][MANIFEST_NAME]
        assert manifest["file"]["source_location"] == ".github/workflows/"
        assert list(manifest["resolved"]) == ["myorg/checkout@v4", "actions/checkout"]
        assert manifest["resolved"]["actions/checkout"] == {
            "package_url": "pkg:github/actions/checkout",
            "relationship": "direct",
            "scope": "runtime",
            "dependencies": [],
        }

    def test_absolute_workflow_directory(self, settings):
        settings.workflow_directory = str(Path(settings.repository_root) / "ci" / "pipelines")
        payload = build_snapshot([], settings)
        assert payload["manifests"][MANIFEST_NAME]["file"]["source_location"] == "ci/pipelines/"


class TestSubmitDependencies:
    @pytest.mark.anyio
    async def test_posts_snapshot(self, settings):
        client = MagicMock()
        client.post = AsyncMock(return_value={"id": 7, "result": "SUCCESS"})
        count = await submit_dependencies(client, settings, [SubmissionEntry("a/b", "v1")])
        assert count == 1
        path, payload = client.post.await_args.args
        assert path == "/repos/owner/repo/dependency-graph/snapshots"
        assert "a/b@v1" in payload["manifests"][MANIFEST_NAME]["resolved"]

    @pytest.mark.anyio
    async def test_empty_skips_call(self, settings):
        client = MagicMock()
        client.post = AsyncMock()
        assert await submit_dependencies(client, settings, []) == 0
        client.post.assert_not_called()

    @pytest.mark.anyio
    async def test_http_failure(self, settings):
        response = MagicMock(spec=httpx.Response)
        response.status_code = 403
        client = MagicMock()
        client.post = AsyncMock(
            side_effect=httpx.HTTPStatusError("403", request=MagicMock(), response=response)
        )
        with pytest.raises(SubmissionError, match="HTTP 403"):
            await submit_dependencies(client, settings, [SubmissionEntry("a/b", "v1")])

    @pytest.mark.anyio
    async def test_timed_out_snapshot_sent_once(self, settings):
        sent: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            raise httpx.ReadTimeout("no response", request=request)

        client = GitHubClient.__new__(GitHubClient)
        client._client = httpx.AsyncClient(
            base_url="https://api.github.com", transport=httpx.MockTransport(handler)
        )
        with patch(
            "actiondeps.engines.fork_resolver.github_client.asyncio.sleep", new_callable=AsyncMock
        ) as sleep:
            async with client:
                with pytest.raises(SubmissionError):
                    await submit_dependencies(client, settings, [SubmissionEntry("a/b", "v1")])
        assert len(sent) == 1
        sleep.assert_not_awaited()
