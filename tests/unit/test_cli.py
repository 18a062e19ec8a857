"""Unit tests for cli/main.py using click's CliRunner."""
from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from view_matrix_auth.cli.main import cli

_CATALOG = textwrap.dedent(
    """\
    permissions:
      - id: Overall.Administer
      - id: Overall.Read
        implied_by: Overall.Administer
      - id: View.Configure
        implied_by: Overall.Administer
        scopes: [view]
      - id: View.Read
        implied_by: View.Configure
        scopes: [view]
      - id: View.Write
        implied_by: View.Configure
        scopes: [view]
    """
)

_MATRIX = textwrap.dedent(
    """\
    version: "1"
    global:
      - permission: "Overall.Read:alice"
      - permission: "Overall.Administer:root"
    views:
      Frontend:
        - permission: "View.Write:bob"
      Locked:
        - blocksInheritance: "true"
        - permission: "View.Read:carol"
        - permission: "View.Gone:dave"
    """
)


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    (tmp_path / "permissions.yaml").write_text(_CATALOG, encoding="utf-8")
    (tmp_path / "matrix.yaml").write_text(_MATRIX, encoding="utf-8")
    config = tmp_path / "view-auth.yaml"
    config.write_text(
        "catalog_path: permissions.yaml\nstore_path: matrix.yaml\nlog_level: ERROR\n",
        encoding="utf-8",
    )
    return config


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------

class TestVersion:
    def test_version_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

class TestCheck:
    def test_global_fallback_allowed(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(
            cli, ["check", "-u", "root", "-p", "View.Read", "-v", "Frontend", "-c", str(config_file)]
        )
        assert result.exit_code == 0
        assert "ALLOWED" in result.output

    def test_local_grant_allowed(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(
            cli, ["check", "-u", "bob", "-p", "View.Write", "-v", "Frontend", "-c", str(config_file)]
        )
        assert result.exit_code == 0
        assert "local" in result.output

    def test_sibling_denied(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(
            cli, ["check", "-u", "bob", "-p", "View.Read", "-v", "Frontend", "-c", str(config_file)]
        )
        assert result.exit_code == 1
        assert "DENIED" in result.output

    def test_blocked_view_denies_global(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(
            cli, ["check", "-u", "root", "-p", "View.Read", "-v", "Locked", "-c", str(config_file)]
        )
        assert result.exit_code == 1

    def test_global_check(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(
            cli, ["check", "-u", "alice", "-p", "Overall.Read", "-c", str(config_file)]
        )
        assert result.exit_code == 0

    def test_unknown_permission(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(
            cli, ["check", "-u", "alice", "-p", "Nope.Nope", "-c", str(config_file)]
        )
        assert result.exit_code == 1
        assert "Unknown permission" in result.output

    def test_unknown_view(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(
            cli, ["check", "-u", "alice", "-p", "View.Read", "-v", "Ghost", "-c", str(config_file)]
        )
        assert result.exit_code == 1
        assert "Unknown view" in result.output

    def test_missing_catalog(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "view-auth.yaml"
        config.write_text("catalog_path: absent.yaml\n", encoding="utf-8")
        result = runner.invoke(cli, ["check", "-u", "a", "-p", "View.Read", "-c", str(config)])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_invalid_config(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "view-auth.yaml"
        config.write_text("log_level: LOUD\n", encoding="utf-8")
        result = runner.invoke(cli, ["check", "-u", "a", "-p", "View.Read", "-c", str(config)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


# ---------------------------------------------------------------------------
# principals / show / validate
# ---------------------------------------------------------------------------

class TestListing:
    def test_principals(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["principals", "-c", str(config_file)])
        assert result.exit_code == 0
        assert result.output.split() == ["alice", "bob", "carol", "root"]

    def test_show_view(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["show", "-v", "Locked", "-c", str(config_file)])
        assert result.exit_code == 0
        assert "carol" in result.output
        assert "blocked" in result.output

    def test_show_global(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["show", "-c", str(config_file)])
        assert result.exit_code == 0
        assert "root" in result.output

    def test_validate_reports_skipped(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["validate", "-c", str(config_file)])
        assert result.exit_code == 0
        assert "Skipped records" in result.output

    def test_validate_strict_fails(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["validate", "--strict", "-c", str(config_file)])
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# grant
# ---------------------------------------------------------------------------

class TestGrant:
    def test_replaces_view_table(self, runner: CliRunner, config_file: Path, tmp_path: Path) -> None:
        form = tmp_path / "form.json"
        form.write_text(
            json.dumps({"blocksInheritance": {}, "data": {"erin": {"View.Read": True}}}),
            encoding="utf-8",
        )
        result = runner.invoke(
            cli, ["grant", "-f", str(form), "-v", "Frontend", "-c", str(config_file)]
        )
        assert result.exit_code == 0

        saved = yaml.safe_load((tmp_path / "matrix.yaml").read_text(encoding="utf-8"))
        assert saved["views"]["Frontend"] == [
            {"blocksInheritance": "true"},
            {"permission": "View.Read:erin"},
        ]
        assert saved["global"] == [
            {"permission": "Overall.Administer:root"},
            {"permission": "Overall.Read:alice"},
        ]

    def test_new_view_created(self, runner: CliRunner, config_file: Path, tmp_path: Path) -> None:
        form = tmp_path / "form.json"
        form.write_text(json.dumps({"data": {"erin": {"View.Read": True}}}), encoding="utf-8")
        result = runner.invoke(cli, ["grant", "-f", str(form), "-v", "New", "-c", str(config_file)])
        assert result.exit_code == 0
        saved = yaml.safe_load((tmp_path / "matrix.yaml").read_text(encoding="utf-8"))
        assert saved["views"]["New"] == [{"permission": "View.Read:erin"}]

    def test_rejected_form_leaves_store_untouched(
        self, runner: CliRunner, config_file: Path, tmp_path: Path
    ) -> None:
        before = (tmp_path / "matrix.yaml").read_text(encoding="utf-8")
        form = tmp_path / "form.json"
        form.write_text(json.dumps({"data": {"erin": {"View.Read": "yes"}}}), encoding="utf-8")
        result = runner.invoke(cli, ["grant", "-f", str(form), "-v", "Frontend", "-c", str(config_file)])
        assert result.exit_code == 1
        assert "Rejected" in result.output
        assert (tmp_path / "matrix.yaml").read_text(encoding="utf-8") == before

    def test_invalid_json(self, runner: CliRunner, config_file: Path, tmp_path: Path) -> None:
        form = tmp_path / "form.json"
        form.write_text("{not json", encoding="utf-8")
        result = runner.invoke(cli, ["grant", "-f", str(form), "-c", str(config_file)])
        assert result.exit_code == 1
        assert "Invalid JSON" in result.output
