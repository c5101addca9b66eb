"""
Tests for CLI commands — global options, config, and the openspec group.
"""

import json
import shutil
import subprocess
import textwrap

import pytest
from click.testing import CliRunner

from specops.core.services import openspec as openspec_pkg
from specops.main import cli


@pytest.fixture
def patched_toolchain(monkeypatch, mock_runner, bus):
    """Route every CLI command through the mock runner."""
    real = openspec_pkg.OpenSpecToolchain

    def _factory(*, config=None, **_):
        return real(config=config, runner=mock_runner, bus=bus)

    monkeypatch.setattr(openspec_pkg, "OpenSpecToolchain", _factory)
    return mock_runner


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "OpenSpec" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_openspec_group_registered(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["openspec", "--help"])
        assert result.exit_code == 0
        for command in ("status", "installers", "tools", "install", "init"):
            assert command in result.output


# ── config show ──────────────────────────────────────────────────────


class TestConfigShow:
    def test_defaults_as_json(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        runner = CliRunner()
        result = runner.invoke(cli, ["config", "show", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["cli_command"] == "openspec"
        assert data["package"] == "@fission-ai/openspec@latest"

    def test_explicit_file(self, tmp_path):
        config = tmp_path / "specops.yml"
        config.write_text(textwrap.dedent("""\
            openspec:
              cli_command: /opt/openspec/bin/openspec
              probe_timeout: 2
        """))
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "config", "show"])
        assert result.exit_code == 0
        assert "/opt/openspec/bin/openspec" in result.output
        assert "probe 2s" in result.output

    def test_invalid_file(self, tmp_path):
        config = tmp_path / "specops.yml"
        config.write_text("probe_timeout: -1\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config), "config", "show"])
        assert result.exit_code == 1
        assert "Invalid engine configuration" in result.output


# ── openspec status / installers / tools ─────────────────────────────


class TestStatus:
    def test_available(self, patched_toolchain, script_cli):
        script_cli(version="1.4.0")
        result = CliRunner().invoke(cli, ["openspec", "status"])
        assert result.exit_code == 0
        assert "1.4.0" in result.output

    def test_missing_exits_1(self, patched_toolchain):
        result = CliRunner().invoke(cli, ["openspec", "status"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_json(self, patched_toolchain, script_cli):
        script_cli(version="1.4.0")
        result = CliRunner().invoke(cli, ["openspec", "status", "--json"])
        assert json.loads(result.output) == {"available": True, "version": "1.4.0"}


class TestInstallers:
    def test_json_lists_all_four(self, patched_toolchain, script_installers):
        script_installers(pnpm="9.1.0")
        result = CliRunner().invoke(cli, ["openspec", "installers", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [d["name"] for d in data] == ["npm", "bun", "yarn", "pnpm"]
        assert [d["installed"] for d in data] == [False, False, False, True]

    def test_none_installed_hint(self, patched_toolchain):
        result = CliRunner().invoke(cli, ["openspec", "installers"])
        assert result.exit_code == 0
        assert "to continue" in result.output


class TestTools:
    def test_lists_names(self, patched_toolchain, script_cli):
        script_cli(tools=["claude", "cursor"])
        result = CliRunner().invoke(cli, ["openspec", "tools", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output) == ["claude", "cursor"]

    def test_listing_failure(self, patched_toolchain):
        result = CliRunner().invoke(cli, ["openspec", "tools"])
        assert result.exit_code == 1
        assert "Unable to load tools" in result.output


# ── openspec install ─────────────────────────────────────────────────


class TestInstallCommand:
    def test_already_installed(self, patched_toolchain, script_cli, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        script_cli()
        result = CliRunner().invoke(cli, ["openspec", "install"])
        assert result.exit_code == 0
        assert "already installed" in result.output
        assert patched_toolchain.calls_for("npm") == []

    def test_installs_with_preselected_manager(
        self, patched_toolchain, script_installers, tmp_path, monkeypatch,
    ):
        monkeypatch.chdir(tmp_path)
        mock = patched_toolchain
        script_installers(yarn="1.22.0")
        mock.set_launch_error(("openspec", "--version"))
        mock.set_response(("openspec", "--version"), stdout=["1.0.0"])
        mock.set_response(("openspec", "init", "--help"), stdout=["--tools <t>  list of: claude"])
        mock.set_response(("yarn", "global"), stdout=["success Installed"])

        result = CliRunner().invoke(cli, ["openspec", "install"])

        assert result.exit_code == 0, result.output
        assert "success Installed" in result.output
        assert "installed (1.0.0)" in result.output

    def test_manager_not_installed(self, patched_toolchain, script_installers, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        script_installers(yarn="1.22.0")
        result = CliRunner().invoke(cli, ["openspec", "install", "--manager", "npm"])
        assert result.exit_code == 1
        assert "npm is not installed" in result.output

    def test_still_unavailable(self, patched_toolchain, script_installers, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        script_installers(npm="10.0.0")
        patched_toolchain.set_response(("npm", "install"), stdout=["added 1 package"])
        result = CliRunner().invoke(cli, ["openspec", "install"])
        assert result.exit_code == 1
        assert "still unavailable" in result.output


# ── openspec init ────────────────────────────────────────────────────


class TestInitCommand:
    def test_cli_missing(self, patched_toolchain, tmp_path):
        result = CliRunner().invoke(cli, ["openspec", "init", str(tmp_path)])
        assert result.exit_code == 1
        assert "not installed" in result.output

    def test_custom_tools(self, patched_toolchain, script_cli, tmp_path):
        script_cli(tools=["claude", "cursor"])
        patched_toolchain.set_response(("openspec", "init", "--tools"), stdout=["Done"])

        result = CliRunner().invoke(
            cli, ["openspec", "init", str(tmp_path), "--tools", "cursor"],
        )

        assert "Done" in result.output
        call = patched_toolchain.calls_for("openspec", "init", "--tools")[0]
        assert call.argv == ("openspec", "init", "--tools", "cursor")
        assert call.cwd == str(tmp_path.resolve())

    def test_default_is_none(self, patched_toolchain, script_cli, tmp_path):
        script_cli()
        patched_toolchain.set_response(("openspec", "init", "--tools"))
        CliRunner().invoke(cli, ["openspec", "init", str(tmp_path)])
        call = patched_toolchain.calls_for("openspec", "init", "--tools")[0]
        assert call.argv[-1] == "none"

    def test_unknown_tool(self, patched_toolchain, script_cli, tmp_path):
        script_cli(tools=["claude"])
        result = CliRunner().invoke(cli, ["openspec", "init", str(tmp_path), "--tools", "emacs"])
        assert result.exit_code == 1
        assert "Unknown tool" in result.output

    def test_init_failure(self, patched_toolchain, script_cli, tmp_path):
        script_cli()
        patched_toolchain.set_response(("openspec", "init", "--tools"), exit_code=1)
        result = CliRunner().invoke(cli, ["openspec", "init", str(tmp_path), "--tools", "all"])
        assert result.exit_code == 1
        assert "OpenSpec init failed" in result.output

    def test_outside_git_warns(self, patched_toolchain, script_cli, tmp_path, monkeypatch):
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
        script_cli()
        patched_toolchain.set_response(("openspec", "init", "--tools"))
        result = CliRunner().invoke(cli, ["openspec", "init", str(tmp_path)])
        assert result.exit_code == 0
        assert "project discovery failed" in result.output

    @pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
    def test_reports_discovery(self, patched_toolchain, script_cli, tmp_path):
        subprocess.run(["git", "init", "-q", str(tmp_path)], check=True)
        (tmp_path / "openspec").mkdir()
        script_cli()
        patched_toolchain.set_response(("openspec", "init", "--tools"))
        result = CliRunner().invoke(cli, ["openspec", "init", str(tmp_path)])
        assert result.exit_code == 0
        assert f"{tmp_path.resolve().name}: openspec/ present" in result.output
