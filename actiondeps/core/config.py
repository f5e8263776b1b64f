"""Runtime settings — GitHub Actions environment plus explicit overrides."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from actiondeps.core.errors import ConfigError
from actiondeps.core.github import parse_repository

DEFAULT_WORKFLOW_DIRECTORY = ".github/workflows"
DEFAULT_API_URL = "https://api.github.com"

# JavaScript-style named group ``(?<name>`` (but not lookbehind ``(?<=`` / ``(?<!``)
_JS_NAMED_GROUP = re.compile(r"\(\?<(?=[A-Za-z_])")


def split_list(value: str | None) -> list[str]:
    """Split a comma- or newline-separated input, dropping empty items."""
    if not value:
        return []
    return [item.strip() for item in re.split(r"[,\n]", value) if item.strip()]


def compile_fork_regex(pattern: str | None) -> re.Pattern[str] | None:
    """Compile the fork pattern and check it declares ``org`` and ``repo`` groups.

    Raises :class:`ConfigError` for invalid patterns.
    """
    if not pattern:
        return None
    try:
        compiled = re.compile(_JS_NAMED_GROUP.sub("(?P<", pattern))
    except re.error as exc:
        raise ConfigError(f"invalid fork regex {pattern!r}: {exc}") from exc
    missing = {"org", "repo"} - set(compiled.groupindex)
    if missing:
        raise ConfigError(
            f"fork regex {pattern!r} must contain named groups 'org' and 'repo' "
            f"(missing: {', '.join(sorted(missing))})"
        )
    return compiled


@dataclass
class Settings:
    token: str | None
    repository: str | None
    sha: str | None = None
    ref: str | None = None
    repository_root: Path = field(default_factory=Path.cwd)
    workflow_directory: str = DEFAULT_WORKFLOW_DIRECTORY
    additional_paths: list[str] = field(default_factory=list)
    fork_organizations: list[str] = field(default_factory=list)
    fork_regex: re.Pattern[str] | None = None
    correlator: str = "workflow-job"
    run_id: str = "0"
    api_url: str = DEFAULT_API_URL

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, **overrides: object) -> Settings:
        """Build settings from ``GITHUB_*`` variables; non-None *overrides* win.

        ``additional_paths``/``fork_organizations`` overrides may be given as
        raw strings, ``fork_regex`` as an uncompiled pattern.
        """
        env = os.environ if env is None else env
        values: dict[str, object] = {
            "token": env.get("GITHUB_TOKEN") or None,
            "repository": env.get("GITHUB_REPOSITORY") or None,
            "sha": env.get("GITHUB_SHA") or None,
            "ref": env.get("GITHUB_REF") or None,
            "repository_root": env.get("GITHUB_WORKSPACE") or None,
            "correlator": (
                f"{env.get('GITHUB_WORKFLOW') or 'workflow'}-{env.get('GITHUB_JOB') or 'job'}"
            ),
            "run_id": env.get("GITHUB_RUN_ID") or "0",
            "api_url": env.get("GITHUB_API_URL") or DEFAULT_API_URL,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        root = values.pop("repository_root")
        for key in ("additional_paths", "fork_organizations"):
            if isinstance(values.get(key), str):
                values[key] = split_list(values[key])  # type: ignore[arg-type]
        if isinstance(values.get("fork_regex"), str):
            values["fork_regex"] = compile_fork_regex(values["fork_regex"])  # type: ignore[arg-type]

        return cls(repository_root=Path(root or Path.cwd()).resolve(), **values)  # type: ignore[arg-type]

    def owner_and_repo(self) -> tuple[str, str]:
        if not self.repository:
            raise ConfigError("repository is not set (GITHUB_REPOSITORY or --repository)")
        try:
            return parse_repository(self.repository)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    def validate_for_submission(self) -> None:
        """Raise :class:`ConfigError` unless everything a submission needs is present."""
        if not self.token:
            raise ConfigError("a GitHub token is required (GITHUB_TOKEN or --token)")
        self.owner_and_repo()
        if not self.sha or not self.ref:
            raise ConfigError("commit sha and ref are required (GITHUB_SHA / GITHUB_REF)")

    @property
    def manifest_location(self) -> str:
        """Workflow directory relative to the repository root, with trailing slash."""
        path = Path(self.workflow_directory)
        if path.is_absolute():
            resolved, root = path.resolve(), self.repository_root.resolve()
            if resolved.is_relative_to(root):
                path = resolved.relative_to(root)
        return path.as_posix().rstrip("/") + "/"
