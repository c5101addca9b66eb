"""
Tests for configuration loading — specops.yml parsing and validation.
"""

import textwrap
from pathlib import Path

import pytest

from specops.core.config.loader import (
    ConfigError,
    EngineConfig,
    find_config_file,
    load_engine_config,
)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    content = textwrap.dedent("""\
        openspec:
          cli_command: openspec-dev
          package: "@fission-ai/openspec@1.0.0"
          probe_timeout: 2.5
          env:
            NO_COLOR: "1"
            NPM_CONFIG_PREFIX: /opt/npm
    """)
    path = tmp_path / "specops.yml"
    path.write_text(content)
    return path


# ── Defaults ─────────────────────────────────────────────────────────


class TestDefaults:
    def test_engine_defaults(self):
        config = EngineConfig()
        assert config.cli_command == "openspec"
        assert config.package == "@fission-ai/openspec@latest"
        assert config.probe_timeout == 5.0
        assert config.env == {"NO_COLOR": "1"}

    def test_no_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert find_config_file(tmp_path) is None
        assert load_engine_config() == EngineConfig()


# ── Loading ──────────────────────────────────────────────────────────


class TestLoad:
    def test_nested_section(self, config_file):
        config = load_engine_config(config_file)
        assert config.cli_command == "openspec-dev"
        assert config.package == "@fission-ai/openspec@1.0.0"
        assert config.probe_timeout == 2.5
        assert config.detect_timeout == 3.0
        assert config.env["NPM_CONFIG_PREFIX"] == "/opt/npm"

    def test_flat_file(self, tmp_path):
        path = tmp_path / "specops.yml"
        path.write_text("list_timeout: 30\n")
        assert load_engine_config(path).list_timeout == 30.0

    def test_empty_file(self, tmp_path):
        path = tmp_path / "specops.yml"
        path.write_text("")
        assert load_engine_config(path) == EngineConfig()

    def test_found_by_walking_up(self, config_file, monkeypatch):
        nested = config_file.parent / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == config_file.resolve()
        monkeypatch.chdir(nested)
        assert load_engine_config().cli_command == "openspec-dev"


# ── Errors ───────────────────────────────────────────────────────────


class TestErrors:
    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_engine_config(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "specops.yml"
        path.write_text("openspec: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_engine_config(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "specops.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_engine_config(path)

    def test_section_not_a_mapping(self, tmp_path):
        path = tmp_path / "specops.yml"
        path.write_text("openspec: yes\n")
        with pytest.raises(ConfigError, match="'openspec'"):
            load_engine_config(path)

    def test_non_positive_timeout(self, tmp_path):
        path = tmp_path / "specops.yml"
        path.write_text("probe_timeout: 0\n")
        with pytest.raises(ConfigError, match="Invalid engine configuration"):
            load_engine_config(path)
