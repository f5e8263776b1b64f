"""DependencyScanner — worklist traversal of workflows and local actions."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog

from actiondeps.core.errors import ParseFailure, PathTraversalRejected
from actiondeps.engines.dependency_scanner.extractor import (
    WORKFLOW_SUFFIXES,
    DocumentKind,
    classify_document,
    declares_workflow_call,
    extract_references,
    find_workflow_files,
    load_document,
)
from actiondeps.engines.dependency_scanner.models import Dependency, Reference, ReferenceKind

log = structlog.get_logger("actiondeps.scanner")

ACTION_MANIFEST_NAMES = ("action.yml", "action.yaml")
_ROOT_RELATIVE_PREFIXES = ("./", ".\\")


def resolve_local_path(base_directory: Path, relative_path: str, repository_root: Path) -> Path:
    """Resolve a ``./``-style reference against *base_directory*.

    Raises :class:`PathTraversalRejected` if the result leaves *repository_root*.
    """
    # Windows-style separators are accepted in ``uses:`` values
    normalized = relative_path.replace("\\", "/")
    resolved = (base_directory / normalized).resolve()
    if not resolved.is_relative_to(repository_root):
        raise PathTraversalRejected(relative_path, str(resolved))
    return resolved


def find_action_manifest(path: Path) -> Path | None:
    """Return the manifest for a local action reference.

    *path* may point at a YAML file directly or at a directory holding
    ``action.yml`` (preferred) or ``action.yaml``.
    """
    if path.is_file():
        return path if path.name.endswith(WORKFLOW_SUFFIXES) else None
    if path.is_dir():
        for name in ACTION_MANIFEST_NAMES:
            candidate = path / name
            if candidate.is_file():
                return candidate
    return None


class DependencyScanner:
    """Collect remote dependencies reachable from a repository's workflows.

    One instance performs one scan: the visited set, parsed-document cache
    and result map live on the instance and are shared between the primary
    workflow tree and any additional directories.
    """

    def __init__(self, repository_root: Path) -> None:
        self._root = Path(repository_root).resolve()
        self._queue: deque[Path] = deque()
        self._visited: set[str] = set()
        self._documents: dict[str, Any] = {}
        self._dependencies: dict[str, Dependency] = {}

    @property
    def visited(self) -> frozenset[str]:
        return frozenset(self._visited)

    def scan(
        self,
        workflow_directory: Path | str,
        additional_paths: Iterable[str] = (),
    ) -> dict[str, Dependency]:
        """Run the traversal and return dependencies keyed by ``coordinate@version``.

        The mapping preserves discovery order. Unreadable files, missing
        directories and out-of-tree references contribute nothing.
        """
        primary = self._root / workflow_directory
        self._queue.extend(find_workflow_files(primary))
        self._drain()

        for extra in additional_paths:
            directory = (self._root / extra).resolve()
            if not directory.is_relative_to(self._root):
                log.warning("scanner.additional_path_rejected", path=extra, resolved=str(directory))
                continue
            self._scan_additional(directory)
            self._drain()

        log.info(
            "scanner.done",
            files=len(self._visited),
            dependencies=len(self._dependencies),
        )
        return dict(self._dependencies)

    # ── traversal ────────────────────────────────────────────────────────

    def _drain(self) -> None:
        while self._queue:
            path = self._queue.popleft()
            if self._identity(path) in self._visited:
                continue
            self._process(path, self._load(path))

    def _scan_additional(self, directory: Path) -> None:
        """Pick up composite actions and callable workflows not reached so far."""
        for path in find_workflow_files(directory):
            if self._identity(path) in self._visited:
                continue
            document = self._load(path)
            kind = classify_document(document)
            if kind is DocumentKind.COMPOSITE_ACTION or declares_workflow_call(document):
                self._process(path, document, kind)

    def _process(self, path: Path, document: Any, kind: DocumentKind | None = None) -> None:
        self._visited.add(self._identity(path))
        references = extract_references(document, kind)
        log.debug("scanner.file_processed", path=str(path), references=len(references))
        for reference in references:
            if reference.kind.is_remote:
                self._add_dependency(reference, path)
            elif reference.kind is ReferenceKind.LOCAL_ACTION:
                self._enqueue_local_action(path, reference)
            else:
                self._enqueue_local_workflow(path, reference)

    def _add_dependency(self, reference: Reference, source: Path) -> None:
        dep = Dependency(
            coordinate=reference.coordinate,  # type: ignore[arg-type]
            version=reference.ref,  # type: ignore[arg-type]
            source_file=self._display_path(source),
        )
        # First discovery wins; later sightings keep the original source_file.
        self._dependencies.setdefault(dep.key, dep)

    def _enqueue_local_action(self, current: Path, reference: Reference) -> None:
        target = self._resolve(current, reference)
        if target is None:
            return
        try:
            manifest = find_action_manifest(target)
        except OSError as exc:
            self._unresolvable(current, reference, exc)
            return
        if manifest is None:
            log.debug("scanner.action_manifest_missing", uses=reference.raw_text, path=str(target))
            return
        if self._identity(manifest) in self._visited:
            return
        if classify_document(self._load(manifest)) is not DocumentKind.COMPOSITE_ACTION:
            return
        self._queue.append(manifest)

    def _enqueue_local_workflow(self, current: Path, reference: Reference) -> None:
        target = self._resolve(current, reference)
        if target is not None and self._identity(target) not in self._visited:
            self._queue.append(target)

    # ── helpers ──────────────────────────────────────────────────────────

    def _resolve(self, current: Path, reference: Reference) -> Path | None:
        """Resolve against the referencing file's directory.

        A ``./`` reference that does not exist there is retried against the
        repository root, which is how the Actions runner resolves it.
        """
        relative = reference.relative_path or ""
        try:
            target = resolve_local_path(current.parent, relative, self._root)
            if not target.exists() and relative.startswith(_ROOT_RELATIVE_PREFIXES):
                root_target = resolve_local_path(self._root, relative, self._root)
                if root_target.exists():
                    return root_target
            return target
        except PathTraversalRejected as exc:
            log.warning(
                "scanner.path_traversal_rejected",
                uses=exc.reference,
                resolved=exc.resolved,
                source=self._display_path(current),
            )
            return None
        except (OSError, ValueError) as exc:
            # ENAMETOOLONG, EACCES and NUL bytes surface from stat/resolve
            self._unresolvable(current, reference, exc)
            return None

    def _unresolvable(self, current: Path, reference: Reference, exc: Exception) -> None:
        log.warning(
            "scanner.local_unresolvable",
            uses=reference.raw_text,
            source=self._display_path(current),
            reason=str(exc),
        )

    def _load(self, path: Path) -> Any:
        """Parse *path* once per scan; failures are cached as ``None``."""
        identity = self._identity(path)
        if identity not in self._documents:
            try:
                self._documents[identity] = load_document(path)
            except ParseFailure as exc:
                log.warning("scanner.file_unparsable", path=exc.path, reason=exc.reason)
                self._documents[identity] = None
        return self._documents[identity]

    @staticmethod
    def _identity(path: Path) -> str:
        return str(path.resolve())

    def _display_path(self, path: Path) -> str:
        resolved = path.resolve()
        if resolved.is_relative_to(self._root):
            return resolved.relative_to(self._root).as_posix()
        return str(resolved)


def scan_dependencies(
    workflow_directory: Path | str,
    additional_paths: Iterable[str],
    repository_root: Path,
) -> dict[str, Dependency]:
    """Scan a repository for action dependencies (no network access)."""
    return DependencyScanner(repository_root).scan(workflow_directory, additional_paths)
