"""Tests for the CITATION.cff extractor."""

from __future__ import annotations

from pathlib import Path

import pytest

from codemeta_harvester.errors import ExtractionError
from codemeta_harvester.extractors.citation import CitationExtractor
from codemeta_harvester.models import ProjectContext, SourceMatch


def _extract(tmp_path: Path, content: str) -> list:
    path = tmp_path / "CITATION.cff"
    path.write_text(content, encoding="utf-8")
    context = ProjectContext(identifier="demo", root=tmp_path, repository=None, staging_dir=tmp_path)
    return list(CitationExtractor().extract(SourceMatch("citation", path, 2), context))


def test_citation_fields_are_mapped(tmp_path: Path) -> None:
    [record] = _extract(
        tmp_path,
        """
cff-version: 1.2.0
title: Frog
abstract: Tagger for Dutch text.
version: 0.26
date-released: 2023-02-14
license: GPL-3.0-only
doi: 10.5281/zenodo.1234
repository-code: https://github.com/LanguageMachines/frog.git
keywords:
  - nlp
  - dutch
authors:
  - given-names: Maarten
    name-particle: van
    family-names: Gompel
    orcid: https://orcid.org/0000-0002-1046-0006
    affiliation: Radboud University
  - name: KNAW Humanities Cluster
""",
    )

    assert record["name"] == "Frog"
    assert record["description"] == "Tagger for Dutch text."
    assert record["version"] == "0.26"
    assert record["datePublished"] == "2023-02-14"
    assert record["license"] == "http://spdx.org/licenses/GPL-3.0-only"
    assert record["identifier"] == "https://doi.org/10.5281/zenodo.1234"
    assert record["codeRepository"] == "https://github.com/LanguageMachines/frog"
    assert record["keywords"] == ["nlp", "dutch"]
    person, organization = record["author"]
    assert person == {
        "@type": "Person",
        "givenName": "Maarten",
        "familyName": "van Gompel",
        "@id": "https://orcid.org/0000-0002-1046-0006",
        "affiliation": {"@type": "Organization", "name": "Radboud University"},
    }
    assert organization == {"@type": "Organization", "name": "KNAW Humanities Cluster"}


def test_doi_from_identifiers_list(tmp_path: Path) -> None:
    [record] = _extract(
        tmp_path,
        """
title: Demo
identifiers:
  - type: url
    value: https://example.org
  - type: doi
    value: 10.1000/demo
""",
    )

    assert record["identifier"] == "https://doi.org/10.1000/demo"
    assert "author" not in record


def test_invalid_yaml_is_an_extraction_error(tmp_path: Path) -> None:
    with pytest.raises(ExtractionError):
        _extract(tmp_path, "title: [unterminated\n")


def test_non_mapping_is_an_extraction_error(tmp_path: Path) -> None:
    with pytest.raises(ExtractionError):
        _extract(tmp_path, "- just\n- a list\n")
