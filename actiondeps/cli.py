"""CLI entry point: actions-deps.

Subcommands:
    actions-deps scan [ROOT]                 # list action dependencies (offline)
    actions-deps scan --resolve-forks        # also resolve forks via the GitHub API
    actions-deps submit                      # scan, resolve and submit a snapshot
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Sequence

import click
import structlog

from actiondeps.core.config import DEFAULT_WORKFLOW_DIRECTORY, Settings
from actiondeps.core.errors import ConfigError, SubmissionError
from actiondeps.core.logging import setup_logging
from actiondeps.engines.dependency_scanner.models import Dependency
from actiondeps.engines.dependency_scanner.scanner import scan_dependencies
from actiondeps.engines.fork_resolver.github_client import GitHubClient
from actiondeps.engines.fork_resolver.lookup import GitHubForkLookup
from actiondeps.engines.fork_resolver.resolver import ForkResolver, ForkResolverConfig
from actiondeps.engines.submission.aggregator import SubmissionEntry, aggregate
from actiondeps.engines.submission.submitter import submit_dependencies

log = structlog.get_logger("actiondeps.cli")


async def resolve_entries(
    dependencies: Sequence[Dependency],
    settings: Settings,
    client: GitHubClient | None,
) -> list[SubmissionEntry]:
    """Fork-resolve *dependencies* and flatten them into submission entries."""
    config = ForkResolverConfig(
        fork_organizations=settings.fork_organizations,
        fork_regex=settings.fork_regex,
        lookup=GitHubForkLookup(client) if client is not None else None,
    )
    resolved = await ForkResolver(config).resolve(dependencies)
    return aggregate(resolved)


async def run_submission(settings: Settings) -> int:
    """Full pipeline: scan -> resolve forks -> aggregate -> submit."""
    settings.validate_for_submission()
    log.info(
        "cli.scan_start",
        workflow_directory=settings.workflow_directory,
        additional_paths=settings.additional_paths,
        fork_organizations=settings.fork_organizations,
    )
    found = scan_dependencies(
        settings.workflow_directory, settings.additional_paths, settings.repository_root
    )
    if not found:
        log.warning("cli.no_dependencies", workflow_directory=settings.workflow_directory)
        return 0

    async with GitHubClient(settings.token, settings.api_url) as client:
        entries = await resolve_entries(list(found.values()), settings, client)
        return await submit_dependencies(client, settings, entries)


def _print_entries(entries: Sequence[SubmissionEntry], as_json: bool) -> None:
    if as_json:
        rows = [
            {
                "package_id": e.package_id,
                "package_url": e.package_url,
                "name": e.coordinate,
                "version": e.version,
                "source_file": e.source_file,
            }
            for e in entries
        ]
        click.echo(json.dumps(rows, indent=2))
        return

    if not entries:
        click.echo("No dependencies found.")
        return

    by_file: dict[str, list[SubmissionEntry]] = {}
    for e in entries:
        by_file.setdefault(e.source_file or "-", []).append(e)

    click.echo(f"Found {len(entries)} dependencies in {len(by_file)} file(s)\n")
    for source_file, file_entries in sorted(by_file.items()):
        click.echo(f"  {source_file}")
        for e in file_entries:
            click.echo(f"    {e.package_id}")
        click.echo()


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """Inventory the actions and reusable workflows a repository depends on."""
    setup_logging("DEBUG" if verbose else None)


def _common_options(func):
    options = [
        click.option(
            "--workflow-directory",
            default=None,
            help=f"Workflow directory, relative to the root (default: {DEFAULT_WORKFLOW_DIRECTORY})",
        ),
        click.option(
            "--additional-paths",
            default=None,
            help="Comma-separated directories with composite actions or reusable workflows",
        ),
        click.option(
            "--fork-organizations",
            default=None,
            help="Comma-separated organizations whose actions may be forks",
        ),
        click.option(
            "--fork-regex",
            default=None,
            help="Pattern with named groups 'org' and 'repo' mapping a fork to its original",
        ),
        click.option("--token", default=None, help="GitHub token (default: $GITHUB_TOKEN)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@main.command("scan")
@click.argument("root", required=False, type=click.Path(file_okay=False))
@_common_options
@click.option("--resolve-forks", is_flag=True, help="Look up forks via the GitHub API")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def scan(
    root: str | None,
    workflow_directory: str | None,
    additional_paths: str | None,
    fork_organizations: str | None,
    fork_regex: str | None,
    token: str | None,
    resolve_forks: bool,
    as_json: bool,
) -> None:
    """List the action dependencies of the repository at ROOT."""
    try:
        settings = Settings.from_env(
            repository_root=root,
            workflow_directory=workflow_directory,
            additional_paths=additional_paths,
            fork_organizations=fork_organizations,
            fork_regex=fork_regex,
            token=token,
        )
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    found = scan_dependencies(
        settings.workflow_directory, settings.additional_paths, settings.repository_root
    )

    async def _resolve() -> list[SubmissionEntry]:
        if not resolve_forks:
            return await resolve_entries(list(found.values()), settings, None)
        async with GitHubClient(settings.token, settings.api_url) as client:
            return await resolve_entries(list(found.values()), settings, client)

    _print_entries(asyncio.run(_resolve()), as_json)


@main.command("submit")
@_common_options
@click.option("--repository", default=None, help="owner/repo (default: $GITHUB_REPOSITORY)")
@click.option("--root", default=None, type=click.Path(file_okay=False), help="Repository root")
def submit(
    workflow_directory: str | None,
    additional_paths: str | None,
    fork_organizations: str | None,
    fork_regex: str | None,
    token: str | None,
    repository: str | None,
    root: str | None,
) -> None:
    """Scan, resolve forks and submit a dependency snapshot to GitHub."""
    try:
        settings = Settings.from_env(
            repository_root=root,
            workflow_directory=workflow_directory,
            additional_paths=additional_paths,
            fork_organizations=fork_organizations,
            fork_regex=fork_regex,
            token=token,
            repository=repository,
        )
        count = asyncio.run(run_submission(settings))
    except (ConfigError, SubmissionError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Submitted {count} dependencies")


if __name__ == "__main__":
    main()
