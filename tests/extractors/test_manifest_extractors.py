"""Tests for the packaging manifest extractors."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest

from codemeta_harvester.errors import ExtractionError
from codemeta_harvester.extractors.packages import (
    CargoExtractor,
    MavenExtractor,
    PackageJsonExtractor,
    RDescriptionExtractor,
)
from codemeta_harvester.extractors.python import (
    PyprojectExtractor,
    SetupCfgExtractor,
    SetupPyExtractor,
)
from codemeta_harvester.models import ProjectContext, SourceMatch


def _run(extractor, tmp_path: Path, filename: str, content: str) -> list:
    path = tmp_path / filename
    path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    context = ProjectContext(identifier="demo", root=tmp_path, repository=None, staging_dir=tmp_path)
    return list(extractor.extract(SourceMatch("manifest", path, 3), context))


def test_pyproject_pep621(tmp_path: Path) -> None:
    [record] = _run(
        PyprojectExtractor(),
        tmp_path,
        "pyproject.toml",
        """
        [project]
        name = "codemetapy"
        version = "2.5.0"
        description = "Generate CodeMeta metadata"
        keywords = ["metadata", "codemeta"]
        license = {text = "GPL-3.0-or-later"}
        requires-python = ">=3.9"
        authors = [{name = "Maarten van Gompel", email = "proycon@anaproy.nl"}]
        dependencies = ["rdflib>=6.0", "requests; python_version>'3'"]

        [project.urls]
        Repository = "https://github.com/proycon/codemetapy.git"
        "Bug Tracker" = "https://github.com/proycon/codemetapy/issues"
        Documentation = "https://codemetapy.readthedocs.io"
        """,
    )

    assert record["name"] == "codemetapy"
    assert record["version"] == "2.5.0"
    assert record["keywords"] == ["metadata", "codemeta"]
    assert record["license"] == "http://spdx.org/licenses/GPL-3.0-or-later"
    assert record["runtimePlatform"] == "Python >=3.9"
    assert record["author"] == [
        {
            "@type": "Person",
            "givenName": "Maarten van",
            "familyName": "Gompel",
            "email": "proycon@anaproy.nl",
        }
    ]
    assert [req["name"] for req in record["softwareRequirements"]] == ["rdflib", "requests"]
    assert record["softwareRequirements"][0]["version"] == ">=6.0"
    assert record["codeRepository"] == "https://github.com/proycon/codemetapy"
    assert record["issueTracker"] == "https://github.com/proycon/codemetapy/issues"
    assert record["softwareHelp"][0]["url"] == "https://codemetapy.readthedocs.io"
    assert record["programmingLanguage"]["name"] == "Python"


def test_pyproject_poetry_fallback(tmp_path: Path) -> None:
    [record] = _run(
        PyprojectExtractor(),
        tmp_path,
        "pyproject.toml",
        """
        [tool.poetry]
        name = "demo"
        version = "0.1.0"
        description = "Demo"
        authors = ["Jane Doe <jane@example.org>"]
        license = "MIT"

        [tool.poetry.dependencies]
        python = "^3.11"
        click = "^8.1"
        """,
    )

    assert record["license"] == "http://spdx.org/licenses/MIT"
    assert record["author"][0]["email"] == "jane@example.org"
    assert [req["name"] for req in record["softwareRequirements"]] == ["click"]


def test_pyproject_without_metadata(tmp_path: Path) -> None:
    assert _run(PyprojectExtractor(), tmp_path, "pyproject.toml", "[build-system]\nrequires = []\n") == []


def test_pyproject_invalid_toml(tmp_path: Path) -> None:
    with pytest.raises(ExtractionError):
        _run(PyprojectExtractor(), tmp_path, "pyproject.toml", "[project\n")


def test_setup_cfg_metadata(tmp_path: Path) -> None:
    [record] = _run(
        SetupCfgExtractor(),
        tmp_path,
        "setup.cfg",
        """
        [metadata]
        name = clam
        version = attr: clam.__version__
        description = Computational Linguistics Application Mediator
        author = Maarten van Gompel
        author_email = proycon@anaproy.nl
        license = GPLv3
        project_urls =
            Source = https://github.com/proycon/clam

        [options]
        install_requires =
            lxml
            flask>=2.0
        """,
    )

    assert record["name"] == "clam"
    assert "version" not in record
    assert record["license"] == "http://spdx.org/licenses/GPL-3.0-only"
    assert record["codeRepository"] == "https://github.com/proycon/clam"
    assert [req["name"] for req in record["softwareRequirements"]] == ["lxml", "flask"]


def test_setup_py_literal_arguments(tmp_path: Path) -> None:
    [record] = _run(
        SetupPyExtractor(),
        tmp_path,
        "setup.py",
        """
        from setuptools import setup

        VERSION = compute_version()

        setup(
            name="folia",
            version=VERSION,
            description="FoLiA library",
            author="Maarten van Gompel",
            license="GPL",
            install_requires=["lxml>=2.2"],
        )
        """,
    )

    assert record["name"] == "folia"
    assert "version" not in record
    assert record["license"] == "http://spdx.org/licenses/GPL-3.0-only"
    assert record["softwareRequirements"][0]["name"] == "lxml"


def test_setup_py_without_setup_call(tmp_path: Path) -> None:
    assert _run(SetupPyExtractor(), tmp_path, "setup.py", "print('hello')\n") == []


def test_package_json(tmp_path: Path) -> None:
    path = tmp_path / "package.json"
    path.write_text(
        json.dumps(
            {
                "name": "demo-js",
                "version": "1.2.3",
                "license": "MIT",
                "author": "Jane Doe <jane@example.org> (https://jane.example.org)",
                "repository": {"type": "git", "url": "git+https://github.com/example/demo-js.git"},
                "bugs": {"url": "https://github.com/example/demo-js/issues"},
                "dependencies": {"lodash": "^4.17.21"},
                "engines": {"node": ">=18"},
            }
        ),
        encoding="utf-8",
    )
    context = ProjectContext(identifier="demo", root=tmp_path, repository=None, staging_dir=tmp_path)

    [record] = PackageJsonExtractor().extract(SourceMatch("package-json", path, 3), context)

    assert record["codeRepository"] == "https://github.com/example/demo-js"
    assert record["issueTracker"] == "https://github.com/example/demo-js/issues"
    assert record["author"][0]["url"] == "https://jane.example.org"
    assert record["runtimePlatform"] == "Node.js >=18"
    assert record["softwareRequirements"] == [
        {"@type": "SoftwareApplication", "name": "lodash", "identifier": "lodash", "version": "^4.17.21"}
    ]


def test_package_json_must_be_an_object(tmp_path: Path) -> None:
    with pytest.raises(ExtractionError):
        _run(PackageJsonExtractor(), tmp_path, "package.json", "[1, 2]")


def test_cargo_package(tmp_path: Path) -> None:
    [record] = _run(
        CargoExtractor(),
        tmp_path,
        "Cargo.toml",
        """
        [package]
        name = "analiticcl"
        version = "0.4.6"
        authors = ["Maarten van Gompel <proycon@anaproy.nl>"]
        license = "GPL-3.0+"
        repository = "https://github.com/proycon/analiticcl"
        documentation = "https://docs.rs/analiticcl"

        [dependencies]
        clap = "4"
        serde = { version = "1.0", features = ["derive"] }
        """,
    )

    assert record["programmingLanguage"]["name"] == "Rust"
    assert record["license"] == "http://spdx.org/licenses/GPL-3.0+"
    assert record["softwareHelp"][0]["url"] == "https://docs.rs/analiticcl"
    assert [(req["name"], req["version"]) for req in record["softwareRequirements"]] == [
        ("clap", "4"),
        ("serde", "1.0"),
    ]


def test_maven_pom_with_namespace(tmp_path: Path) -> None:
    [record] = _run(
        MavenExtractor(),
        tmp_path,
        "pom.xml",
        """
        <project xmlns="http://maven.apache.org/POM/4.0.0">
          <groupId>org.example</groupId>
          <artifactId>demo</artifactId>
          <version>3.1.0</version>
          <name>Demo</name>
          <scm><url>https://github.com/example/demo</url></scm>
          <licenses>
            <license><name>Apache License, Version 2.0</name></license>
          </licenses>
          <developers>
            <developer><name>Jane Doe</name><email>jane@example.org</email></developer>
          </developers>
        </project>
        """,
    )

    assert record["identifier"] == "org.example:demo"
    assert record["version"] == "3.1.0"
    assert record["license"] == "http://spdx.org/licenses/Apache-2.0"
    assert record["author"][0]["familyName"] == "Doe"


def test_r_description(tmp_path: Path) -> None:
    [record] = _run(
        RDescriptionExtractor(),
        tmp_path,
        "DESCRIPTION",
        """
        Package: demo
        Title: Demo Package
        Version: 0.3.1
        Description: Does demo things
            across several lines.
        License: MIT + file LICENSE
        URL: https://github.com/example/demo, https://example.org/demo
        BugReports: https://github.com/example/demo/issues
        Maintainer: Jane Doe <jane@example.org>
        Imports: httr (>= 1.0), jsonlite
        """,
    )

    assert record["description"] == "Does demo things across several lines."
    assert record["license"] == "http://spdx.org/licenses/MIT"
    assert record["codeRepository"] == "https://github.com/example/demo"
    assert record["maintainer"][0]["email"] == "jane@example.org"
    assert [req["name"] for req in record["softwareRequirements"]] == ["httr", "jsonlite"]


def test_r_description_without_package(tmp_path: Path) -> None:
    with pytest.raises(ExtractionError):
        _run(RDescriptionExtractor(), tmp_path, "DESCRIPTION", "Title: Nothing\n")
