"""Citation File Format (CITATION.cff) extractor."""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Iterable, List, Optional

import yaml

from .base import Contribution, Extractor
from .utils import (
    CODEMETA_CONTEXT,
    compact,
    license_url,
    normalize_repository_url,
    read_text,
    split_keywords,
)
from ..errors import ExtractionError
from ..models import ProjectContext, SourceMatch


class CitationExtractor(Extractor):
    """Maps CFF 1.2 fields onto their CodeMeta equivalents."""

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        text = read_text(source.path)
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ExtractionError(f"Invalid YAML in {source.path.name}: {exc}") from exc
        if not isinstance(data, dict):
            raise ExtractionError(f"{source.path.name} does not contain a mapping")

        record: Dict[str, Any] = {
            "@context": CODEMETA_CONTEXT,
            "@type": "SoftwareSourceCode",
            "name": _text(data.get("title")),
            "description": _text(data.get("abstract")),
            "version": _text(data.get("version")),
            "datePublished": _date(data.get("date-released")),
            "author": _authors(data.get("authors")),
            "license": _licenses(data.get("license")),
            "identifier": _doi(data),
            "codeRepository": normalize_repository_url(_text(data.get("repository-code"))),
            "url": _text(data.get("url")),
            "keywords": split_keywords(data.get("keywords")),
        }
        return [compact(record)]


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _date(value: Any) -> Optional[str]:
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()[:10]
    return _text(value)


def _authors(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    authors: List[Dict[str, Any]] = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        given = _text(entry.get("given-names"))
        family = _text(entry.get("family-names"))
        if given or family:
            author: Dict[str, Any] = {"@type": "Person"}
            if given:
                author["givenName"] = given
            if family:
                particle = _text(entry.get("name-particle"))
                author["familyName"] = f"{particle} {family}" if particle else family
        elif _text(entry.get("name")):
            author = {"@type": "Organization", "name": _text(entry.get("name"))}
        else:
            continue
        orcid = _text(entry.get("orcid"))
        if orcid:
            author["@id"] = orcid
        email = _text(entry.get("email"))
        if email:
            author["email"] = email
        affiliation = _text(entry.get("affiliation"))
        if affiliation:
            author["affiliation"] = {"@type": "Organization", "name": affiliation}
        authors.append(author)
    return authors


def _licenses(value: Any) -> Any:
    if isinstance(value, list):
        urls = [url for url in (license_url(item) for item in value) if url]
        if len(urls) == 1:
            return urls[0]
        return urls
    return license_url(value)


def _doi(data: Dict[str, Any]) -> Optional[str]:
    doi = _text(data.get("doi"))
    if not doi:
        for identifier in data.get("identifiers") or []:
            if isinstance(identifier, dict) and identifier.get("type") == "doi":
                doi = _text(identifier.get("value"))
                if doi:
                    break
    if not doi:
        return None
    if doi.startswith("http"):
        return doi
    return f"https://doi.org/{doi}"
