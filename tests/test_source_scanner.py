"""Tests for the metadata source presence scanner."""

from __future__ import annotations

from pathlib import Path

import pytest

from codemeta_harvester.catalog import ScanHints, hosting_service, kind_by_name
from codemeta_harvester.source_scanner import SourceScanner
from tests._fixtures.repo_builder import RepoBuilder


def test_scanner_detects_catalog_files(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "codemeta.json": "{}",
            "CITATION.cff": "cff-version: 1.2.0\n",
            "pyproject.toml": "[project]\nname = 'demo'\n",
            "AUTHORS": "Jane Doe\n",
            "LICENSE": "MIT License\n",
            "README.md": "# Demo\n",
            "notes.txt": "unrelated",
        }
    )

    matches = repo_builder.scan()

    assert [match.kind for match in matches] == [
        "codemeta",
        "citation",
        "pyproject",
        "authors",
        "license",
        "readme",
    ]
    assert [match.rank for match in matches] == [0, 2, 3, 4, 5, 8]
    root = repo_builder.path().resolve()
    assert all(match.path.parent == root for match in matches)


def test_scanner_orders_extra_directories_before_root(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "python/setup.cfg": "[metadata]\nname = demo\n",
            "python/codemeta.json": "{}",
            "README.md": "# Demo\n",
        }
    )

    matches = repo_builder.scan("python", "missing")

    assert [match.kind for match in matches] == ["setup-cfg", "readme"]
    assert matches[0].path.parent.name == "python"


def test_scanner_reports_git_and_hosting_only_at_root(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"sub/README.md": "# Sub\n"})
    (repo_builder.path() / ".git").mkdir()
    hints = ScanHints(
        repository=repo_builder.path(),
        source_url="https://github.com/example/demo",
    )

    matches = SourceScanner().scan(repo_builder.path(), ["sub"], hints)

    assert [match.kind for match in matches] == ["readme", "git", "hosting"]


def test_scanner_skips_hosting_offline(repo_builder: RepoBuilder) -> None:
    hints = ScanHints(source_url="https://github.com/example/demo", offline=True)

    assert SourceScanner().scan(repo_builder.path(), (), hints) == []


def test_scanner_returns_empty_list_without_sources(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"main.c": "int main(void) { return 0; }\n"})

    assert repo_builder.scan() == []


def test_scanner_rejects_missing_root(tmp_path: Path) -> None:
    with pytest.raises(NotADirectoryError):
        SourceScanner().scan(tmp_path / "nope")


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/proycon/codemetapy", "github.com"),
        ("git@gitlab.com:group/project.git", "gitlab.com"),
        ("https://codeberg.org/user/repo", None),
    ],
)
def test_hosting_service(url: str, expected: str | None) -> None:
    assert hosting_service(url) == expected


def test_kind_by_name_unknown() -> None:
    with pytest.raises(KeyError):
        kind_by_name("nonexistent")
