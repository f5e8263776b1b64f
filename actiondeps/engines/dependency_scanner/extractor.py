"""Extract ``uses:`` references from workflow files and composite action manifests."""

from __future__ import annotations

import enum
import os
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog
import yaml

from actiondeps.core.errors import ParseFailure
from actiondeps.engines.dependency_scanner.models import Reference, ReferenceKind

log = structlog.get_logger("actiondeps.scanner")

WORKFLOW_SUFFIXES = (".yml", ".yaml")

# "owner/repo@ref", "owner/repo/path@ref"
REMOTE_USES_PATTERN = re.compile(r"^(?P<coordinate>[^@]+)@(?P<ref>.+)$")

_LOCAL_PREFIXES = ("./", "../", ".\\", "..\\")
_DOCKER_PREFIX = "docker://"


class DocumentKind(str, enum.Enum):
    WORKFLOW = "workflow"
    COMPOSITE_ACTION = "composite-action"
    OTHER = "other"


class CallSite(str, enum.Enum):
    STEP = "step"
    JOB = "job"


# ── document loading ─────────────────────────────────────────────────────


def load_document(path: Path) -> Any:
    """Read and parse one YAML file.

    Raises :class:`ParseFailure` when the file is missing, unreadable,
    not UTF-8, or not valid YAML.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseFailure(str(path), str(exc)) from exc
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ParseFailure(str(path), str(exc)) from exc


def classify_document(document: Any) -> DocumentKind:
    """Tell a composite action manifest from a workflow (composite wins)."""
    if not isinstance(document, dict):
        return DocumentKind.OTHER
    runs = document.get("runs")
    if isinstance(runs, dict) and runs.get("using") == "composite":
        return DocumentKind.COMPOSITE_ACTION
    if document.get("jobs"):
        return DocumentKind.WORKFLOW
    return DocumentKind.OTHER


def declares_workflow_call(document: Any) -> bool:
    """True when the workflow can be called from another workflow's job."""
    if not isinstance(document, dict):
        return False
    # YAML 1.1 loads a bare ``on:`` key as boolean True
    for key in ("on", True):
        triggers = document.get(key)
        if isinstance(triggers, dict) and "workflow_call" in triggers:
            return True
        if isinstance(triggers, list) and "workflow_call" in triggers:
            return True
        if triggers == "workflow_call":
            return True
    return False


def is_composite_action(path: Path) -> bool:
    try:
        return classify_document(load_document(path)) is DocumentKind.COMPOSITE_ACTION
    except ParseFailure:
        return False


def is_callable_workflow(path: Path) -> bool:
    try:
        return declares_workflow_call(load_document(path))
    except ParseFailure:
        return False


def find_workflow_files(directory: Path) -> list[Path]:
    """Recursively list ``.yml``/``.yaml`` files below *directory*.

    A missing or unreadable directory yields an empty list.
    """
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames.sort()
        for name in sorted(filenames):
            if name.endswith(WORKFLOW_SUFFIXES):
                found.append(Path(dirpath) / name)
    return found


# ── reference classification ─────────────────────────────────────────────


def parse_uses(uses: Any, site: CallSite = CallSite.STEP) -> Reference | None:
    """Classify a single ``uses:`` value.

    Returns None for container images, malformed strings and non-string
    values; never raises.
    """
    if not isinstance(uses, str):
        return None
    uses = uses.strip()
    local_kind = ReferenceKind.LOCAL_ACTION if site is CallSite.STEP else ReferenceKind.LOCAL_WORKFLOW
    remote_kind = ReferenceKind.REMOTE_ACTION if site is CallSite.STEP else ReferenceKind.REMOTE_WORKFLOW

    if uses.startswith(_LOCAL_PREFIXES):
        return Reference(raw_text=uses, kind=local_kind, relative_path=uses)

    if uses.startswith(_DOCKER_PREFIX):
        # Container steps are never dependencies; a job cannot use one at all.
        return None

    match = REMOTE_USES_PATTERN.match(uses)
    if match is None:
        log.debug("extractor.malformed_uses", uses=uses, site=site.value)
        return None
    return Reference(
        raw_text=uses,
        kind=remote_kind,
        coordinate=match.group("coordinate"),
        ref=match.group("ref"),
    )


# ── extraction ───────────────────────────────────────────────────────────


def _steps_references(steps: Any) -> list[Reference]:
    if not isinstance(steps, list):
        return []
    refs: list[Reference] = []
    for step in steps:
        if not isinstance(step, dict) or "uses" not in step:
            continue
        ref = parse_uses(step["uses"], CallSite.STEP)
        if ref is not None:
            refs.append(ref)
    return refs


def _extract_from_workflow(document: dict) -> list[Reference]:
    jobs = document.get("jobs")
    if not isinstance(jobs, dict):
        return []
    refs: list[Reference] = []
    for job in jobs.values():
        if not isinstance(job, dict):
            continue
        if "uses" in job:
            ref = parse_uses(job["uses"], CallSite.JOB)
            if ref is not None:
                refs.append(ref)
        refs.extend(_steps_references(job.get("steps")))
    return refs


def _extract_from_composite(document: dict) -> list[Reference]:
    runs = document.get("runs")
    if not isinstance(runs, dict):
        return []
    return _steps_references(runs.get("steps"))


_EXTRACTORS: dict[DocumentKind, Callable[[dict], list[Reference]]] = {
    DocumentKind.WORKFLOW: _extract_from_workflow,
    DocumentKind.COMPOSITE_ACTION: _extract_from_composite,
}


def extract_references(document: Any, kind: DocumentKind | None = None) -> list[Reference]:
    """Return the references declared by one parsed document, in document order.

    *kind* defaults to :func:`classify_document`. Empty documents and
    documents of any other shape yield an empty list.
    """
    if not isinstance(document, dict):
        return []
    if kind is None:
        kind = classify_document(document)
    extractor = _EXTRACTORS.get(kind)
    if extractor is None:
        return []
    return extractor(document)
