"""Merge resolved dependencies into the entries that get submitted."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import quote

from actiondeps.engines.dependency_scanner.models import ResolvedDependency

_PURL_SAFE = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789._-~"


@dataclass(frozen=True)
class SubmissionEntry:
    """A submission-ready dependency; originals of forks carry no version."""

    coordinate: str
    version: str | None = None
    source_file: str | None = None

    @property
    def package_id(self) -> str:
        if self.version:
            return f"{self.coordinate}@{self.version}"
        return self.coordinate

    @property
    def package_url(self) -> str:
        return to_package_url(self.coordinate, self.version)


def to_package_url(coordinate: str, version: str | None = None) -> str:
    """Build ``pkg:github/owner/repo[@version][#subpath]``.

    Examples:
        actions/checkout, v4               -> pkg:github/actions/checkout@v4
        org/repo/.github/workflows/x.yml   -> pkg:github/org/repo#.github/workflows/x.yml
    """
    parts = coordinate.split("/")
    owner, repo, subpath = parts[0], parts[1] if len(parts) > 1 else "", parts[2:]
    purl = f"pkg:github/{quote(owner, safe=_PURL_SAFE)}"
    if repo:
        purl += f"/{quote(repo, safe=_PURL_SAFE)}"
    if version:
        purl += f"@{quote(version, safe=_PURL_SAFE)}"
    segments = [quote(s, safe=_PURL_SAFE) for s in subpath if s]
    if segments:
        purl += "#" + "/".join(segments)
    return purl


def aggregate(resolved: Iterable[ResolvedDependency]) -> list[SubmissionEntry]:
    """Flatten forks and their originals into an ordered, de-duplicated list.

    A fork contributes itself (with version) followed by its original
    (without version). Duplicates are dropped by ``package_id``; the first
    occurrence keeps its position.
    """
    entries: dict[str, SubmissionEntry] = {}
    for item in resolved:
        dep = item.dependency
        fork_entry = SubmissionEntry(dep.coordinate, dep.version, dep.source_file)
        entries.setdefault(fork_entry.package_id, fork_entry)
        if item.original is not None:
            original_entry = SubmissionEntry(item.original.coordinate, None, dep.source_file)
            entries.setdefault(original_entry.package_id, original_entry)
    return list(entries.values())
