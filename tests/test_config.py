"""Tests for codemeta_harvester.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from codemeta_harvester.config import (
    ReconcileOptions,
    collect_config_files,
    default_cache_dir,
    load_project_config,
    load_project_configs,
    parse_reconcile_options,
)
from codemeta_harvester.errors import ConfigError, FatalError


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_load_project_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = _write(
        tmp_path / "frog.yml",
        """
source: https://github.com/example/frog
root: src/frog
scandirs:
  - docs
  - packaging
services:
  - https://frog.example.org
ref: v2.0.1
""",
    )

    config = load_project_config(config_file)

    assert config.identifier == "frog"
    assert config.source == "https://github.com/example/frog"
    assert config.root == "src/frog"
    assert config.scandirs == ["docs", "packaging"]
    assert config.services == ["https://frog.example.org"]
    assert config.ref == "v2.0.1"
    assert config.path == config_file.resolve()


def test_explicit_identifier_wins_over_filename(tmp_path: Path) -> None:
    config_file = _write(
        tmp_path / "whatever.yaml",
        "identifier: ucto\nsource: https://github.com/LanguageMachines/ucto\n",
    )

    assert load_project_config(config_file).identifier == "ucto"


def test_scalar_lists_are_coerced(tmp_path: Path) -> None:
    config_file = _write(
        tmp_path / "tool.yml",
        "source: https://example.org/tool.git\nscandirs: docs\nservices:\n",
    )

    config = load_project_config(config_file)

    assert config.scandirs == ["docs"]
    assert config.services == []
    assert config.ref is None


def test_missing_source_is_fatal(tmp_path: Path) -> None:
    config_file = _write(tmp_path / "broken.yml", "root: src\n")

    with pytest.raises(ConfigError) as excinfo:
        load_project_config(config_file)

    assert isinstance(excinfo.value, FatalError)
    assert "source" in str(excinfo.value)


def test_non_mapping_config_is_rejected(tmp_path: Path) -> None:
    config_file = _write(tmp_path / "list.yml", "- one\n- two\n")

    with pytest.raises(ConfigError):
        load_project_config(config_file)


def test_collect_config_files_expands_directories(tmp_path: Path) -> None:
    configs = tmp_path / "configs"
    _write(configs / "b.yaml", "source: x\n")
    _write(configs / "a.yml", "source: y\n")
    _write(configs / "notes.txt", "ignored")
    single = _write(tmp_path / "single.yml", "source: z\n")

    files = collect_config_files([configs, single])

    assert [path.name for path in files] == ["a.yml", "b.yaml", "single.yml"]


def test_collect_config_files_rejects_missing_targets(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        collect_config_files([tmp_path / "missing.yml"])


def test_load_project_configs_keeps_order(tmp_path: Path) -> None:
    _write(tmp_path / "one.yml", "source: https://example.org/one\n")
    _write(tmp_path / "two.yml", "source: https://example.org/two\n")

    configs = load_project_configs([tmp_path])

    assert [config.identifier for config in configs] == ["one", "two"]


def test_parse_reconcile_options_defaults() -> None:
    assert parse_reconcile_options(None) == ReconcileOptions()


def test_parse_reconcile_options_reads_tokens() -> None:
    options = parse_reconcile_options("indent=4 sort-keys=yes accumulate=funder drop=readme,version")

    assert options.indent == 4
    assert options.sort_keys is True
    assert options.accumulate == ["funder"]
    assert options.drop == ["readme", "version"]


@pytest.mark.parametrize("text", ["indent=-1", "sort-keys=maybe", "colour=blue", "indent", "drop='unclosed"])
def test_parse_reconcile_options_rejects_invalid_tokens(text: str) -> None:
    with pytest.raises(ConfigError):
        parse_reconcile_options(text)


def test_default_cache_dir_honours_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("CODEMETA_HARVESTER_CACHE", raising=False)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg"))
    assert default_cache_dir() == tmp_path / "xdg" / "codemeta-harvester"

    monkeypatch.setenv("CODEMETA_HARVESTER_CACHE", str(tmp_path / "explicit"))
    assert default_cache_dir() == tmp_path / "explicit"
