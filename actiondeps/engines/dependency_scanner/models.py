"""Data models for the dependency scanner engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ReferenceKind(str, enum.Enum):
    REMOTE_ACTION = "remote-action"
    LOCAL_ACTION = "local-action"
    REMOTE_WORKFLOW = "remote-workflow"
    LOCAL_WORKFLOW = "local-workflow"

    @property
    def is_remote(self) -> bool:
        return self in (ReferenceKind.REMOTE_ACTION, ReferenceKind.REMOTE_WORKFLOW)

    @property
    def is_local(self) -> bool:
        return self in (ReferenceKind.LOCAL_ACTION, ReferenceKind.LOCAL_WORKFLOW)


@dataclass(frozen=True)
class Reference:
    """A single ``uses:`` value extracted from a workflow or action manifest.

    Remote kinds carry ``coordinate`` + ``ref``; local kinds carry
    ``relative_path``. Container images (``docker://...``) never become
    references.
    """

    raw_text: str
    kind: ReferenceKind
    coordinate: str | None = None
    ref: str | None = None
    relative_path: str | None = None

    def __post_init__(self) -> None:
        if self.kind.is_remote:
            ok = bool(self.coordinate) and bool(self.ref) and self.relative_path is None
        else:
            ok = bool(self.relative_path) and self.coordinate is None and self.ref is None
        if not ok:
            raise ValueError(f"inconsistent fields for {self.kind.value} reference {self.raw_text!r}")


@dataclass(frozen=True)
class Dependency:
    """A remote action or reusable workflow pinned at a version.

    Identity is ``coordinate@version``; ``source_file`` is diagnostic only.
    """

    coordinate: str  # owner/repo or owner/repo/subpath
    version: str
    source_file: str | None = None

    @property
    def key(self) -> str:
        return f"{self.coordinate}@{self.version}"

    @property
    def owner(self) -> str:
        return self.coordinate.split("/", 1)[0]

    @property
    def repo_path(self) -> str:
        """Everything after the owner (``repo`` or ``repo/subpath``)."""
        parts = self.coordinate.split("/", 1)
        return parts[1] if len(parts) == 2 else ""

    @property
    def repo(self) -> str:
        return self.repo_path.split("/", 1)[0]


@dataclass(frozen=True)
class Original:
    """Upstream repository a fork was created from (no version)."""

    owner: str
    repo: str

    @property
    def coordinate(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class ResolvedDependency:
    dependency: Dependency
    original: Original | None = None

    @property
    def key(self) -> str:
        return self.dependency.key
