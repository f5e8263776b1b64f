"""Tests for the actions-deps CLI — GitHub access is mocked."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from actiondeps.cli import main

WORKFLOW = """
on: push
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - uses: myorg/actions-cache@v4
      - uses: ./.github/actions/setup
"""

COMPOSITE = """
runs:
  using: composite
  steps:
    - uses: actions/setup-node@v4
"""


@pytest.fixture(autouse=True)
def _no_logging_setup():
    with patch("actiondeps.cli.setup_logging"):
        yield


@pytest.fixture
def repo(write_file, tmp_path):
    write_file(".github/workflows/ci.yml", WORKFLOW)
    write_file(".github/actions/setup/action.yml", COMPOSITE)
    return tmp_path


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "GITHUB_TOKEN",
        "GITHUB_REPOSITORY",
        "GITHUB_SHA",
        "GITHUB_REF",
        "GITHUB_WORKSPACE",
    ):
        monkeypatch.delenv(name, raising=False)


class TestScanCommand:
    def test_text_output(self, repo, clean_env):
        result = CliRunner().invoke(main, ["scan", str(repo)])
        assert result.exit_code == 0, result.output
        assert "Found 3 dependencies" in result.output
        assert "actions/checkout@v4" in result.output
        assert "actions/setup-node@v4" in result.output

    def test_json_with_fork_regex(self, repo, clean_env):
        result = CliRunner().invoke(
            main,
            [
                "scan",
                str(repo),
                "--json",
                "--fork-organizations",
                "myorg",
                "--fork-regex",
                "^(?<org>myorg)/actions-(?<repo>.+)$",
            ],
        )
        assert result.exit_code == 0, result.output
        rows = json.loads(result.output)
        ids = [row["package_id"] for row in rows]
        assert ids == [
            "actions/checkout@v4",
            "myorg/actions-cache@v4",
            "myorg/cache",
            "actions/setup-node@v4",
        ]
        assert rows[2]["version"] is None
        assert rows[2]["package_url"] == "pkg:github/myorg/cache"

    def test_empty_repository(self, tmp_path, clean_env):
        result = CliRunner().invoke(main, ["scan", str(tmp_path)])
        assert result.exit_code == 0
        assert "No dependencies found." in result.output

    def test_invalid_regex(self, repo, clean_env):
        result = CliRunner().invoke(main, ["scan", str(repo), "--fork-regex", "(?<org>x)"])
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestSubmitCommand:
    def test_missing_repository(self, repo, clean_env):
        result = CliRunner().invoke(main, ["submit", "--root", str(repo), "--token", "t"])
        assert result.exit_code == 1
        assert "repository" in result.output

    def test_submits(self, repo, clean_env, monkeypatch):
        monkeypatch.setenv("GITHUB_SHA", "abc123")
        monkeypatch.setenv("GITHUB_REF", "refs/heads/main")
        with patch(
            "actiondeps.cli.submit_dependencies", new_callable=AsyncMock, return_value=3
        ) as submit:
            result = CliRunner().invoke(
                main,
                ["submit", "--root", str(repo), "--token", "t", "--repository", "owner/repo"],
            )
        assert result.exit_code == 0, result.output
        assert "Submitted 3 dependencies" in result.output
        _, settings, entries = submit.await_args.args
        assert settings.owner_and_repo() == ("owner", "repo")
        assert [e.package_id for e in entries] == [
            "actions/checkout@v4",
            "myorg/actions-cache@v4",
            "actions/setup-node@v4",
        ]

    def test_nothing_to_submit(self, tmp_path, clean_env, monkeypatch):
        monkeypatch.setenv("GITHUB_SHA", "abc123")
        monkeypatch.setenv("GITHUB_REF", "refs/heads/main")
        with patch("actiondeps.cli.submit_dependencies", new_callable=AsyncMock) as submit:
            result = CliRunner().invoke(
                main,
                ["submit", "--root", str(tmp_path), "--token", "t", "--repository", "o/r"],
            )
        assert result.exit_code == 0, result.output
        assert "Submitted 0 dependencies" in result.output
        submit.assert_not_called()
