"""
Tests for capability listing from ``openspec init --help``.
"""

import pytest

from specops.core.services.openspec.errors import ListingFailed
from specops.core.services.openspec.tools import list_tools, parse_tools_help

# ── Help parsing ─────────────────────────────────────────────────────


class TestParseToolsHelp:
    def test_wrapped_option(self, init_help):
        text = init_help(["claude", "cursor", "windsurf"])
        assert parse_tools_help(text) == ["claude", "cursor", "windsurf"]

    def test_single_line_option(self):
        text = (
            "Options:\n"
            "  --tools <tools>  comma-separated list of: claude, github-copilot, qwen\n"
            "  --force          overwrite\n"
        )
        assert parse_tools_help(text) == ["claude", "github-copilot", "qwen"]

    def test_stops_at_prose(self):
        text = "--tools <t>  Use one or more of: claude, cursor (default: none)\n"
        assert parse_tools_help(text) == ["claude", "cursor"]

    def test_skips_reserved_and_duplicates(self):
        text = "--tools <t>  list of: all, claude, none, claude, cursor\n"
        assert parse_tools_help(text) == ["claude", "cursor"]

    def test_ansi_codes_stripped(self):
        text = "\x1b[1m--tools\x1b[0m <t>  list of: claude, cursor\n"
        assert parse_tools_help(text) == ["claude", "cursor"]

    def test_usage_line_skipped(self):
        text = (
            "Usage: openspec init [--tools <tools>]\n"
            "\n"
            "  --tools <tools>  list of: amp, claude\n"
        )
        assert parse_tools_help(text) == ["amp", "claude"]

    def test_empty_list(self):
        assert parse_tools_help("--tools <t>  list of:\n") == []

    def test_no_tools_option(self):
        with pytest.raises(ListingFailed, match="--tools"):
            parse_tools_help("Usage: openspec init [path]\n")

    def test_no_list(self):
        with pytest.raises(ListingFailed):
            parse_tools_help("--tools <t>  Configure AI tools\n")


# ── Listing ──────────────────────────────────────────────────────────


class TestListTools:
    @pytest.mark.asyncio
    async def test_lists_from_cli(self, mock_runner, engine_config, script_cli):
        script_cli(tools=["claude", "cursor"])
        assert await list_tools(mock_runner, engine_config) == ["claude", "cursor"]
        call = mock_runner.calls_for("openspec", "init", "--help")[0]
        assert call.timeout == engine_config.list_timeout

    @pytest.mark.asyncio
    async def test_not_cached(self, mock_runner, engine_config, script_cli):
        script_cli()
        await list_tools(mock_runner, engine_config)
        await list_tools(mock_runner, engine_config)
        assert len(mock_runner.calls_for("openspec", "init", "--help")) == 2

    @pytest.mark.asyncio
    async def test_missing_cli(self, mock_runner, engine_config):
        with pytest.raises(ListingFailed, match="Unable to load tools"):
            await list_tools(mock_runner, engine_config)

    @pytest.mark.asyncio
    async def test_non_zero_exit(self, mock_runner, engine_config):
        mock_runner.set_response(("openspec", "init", "--help"), exit_code=2)
        with pytest.raises(ListingFailed, match="exited with 2"):
            await list_tools(mock_runner, engine_config)

    @pytest.mark.asyncio
    async def test_timeout(self, mock_runner, engine_config):
        mock_runner.set_timeout(("openspec", "init", "--help"))
        with pytest.raises(ListingFailed):
            await list_tools(mock_runner, engine_config)
