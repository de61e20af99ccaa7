"""Tests for config loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from reqfix.core.config import LOG_LEVEL_ENV, ReqfixConfig, load_config


@pytest.fixture(autouse=True)
def _no_log_level_env(monkeypatch):
    monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)


class TestLoadConfig:
    def test_defaults_when_no_config_file(self, tmp_path: Path):
        """Without a reqfix.toml, load_config should return defaults."""
        config = load_config(tmp_path)

        assert isinstance(config, ReqfixConfig)
        assert config.fix.dry_run is False
        assert config.fix.pin_comment == "pinned to avoid a vulnerability"
        assert config.manifest.suffixes == [".txt", ".in"]
        assert config.log_level is None

    def test_loads_toml_sections(self, tmp_path: Path):
        toml_content = """\
[fix]
dry_run = true
pin_comment = "security pin"

[manifest]
suffixes = ["txt", ".pip"]

[general]
log_level = "info"
"""
        (tmp_path / "reqfix.toml").write_text(toml_content)
        config = load_config(tmp_path)

        assert config.fix.dry_run is True
        assert config.fix.pin_comment == "security pin"
        assert config.manifest.suffixes == [".txt", ".pip"]
        assert config.log_level == "info"

    def test_empty_pin_comment_disables_it(self, tmp_path: Path):
        (tmp_path / "reqfix.toml").write_text('[fix]\npin_comment = ""\n')

        assert load_config(tmp_path).fix.pin_comment is None

    def test_env_log_level_overrides_file(self, tmp_path: Path, monkeypatch):
        (tmp_path / "reqfix.toml").write_text('[general]\nlog_level = "info"\n')
        monkeypatch.setenv(LOG_LEVEL_ENV, "debug")

        assert load_config(tmp_path).log_level == "debug"

    def test_partial_file_keeps_other_defaults(self, tmp_path: Path):
        (tmp_path / "reqfix.toml").write_text("[fix]\ndry_run = true\n")
        config = load_config(tmp_path)

        assert config.fix.dry_run is True
        assert config.fix.pin_comment == "pinned to avoid a vulnerability"
        assert config.manifest.suffixes == [".txt", ".in"]
