"""Extractors for non-Python language manifests."""

from __future__ import annotations

import json
import re
import tomllib
import xml.etree.ElementTree as ET
from typing import Any, Dict, Iterable, List, Optional

from .base import Contribution, Extractor
from .utils import (
    CODEMETA_CONTEXT,
    compact,
    license_url,
    normalize_repository_url,
    parse_people,
    parse_person,
    read_text,
    software_requirement,
    split_keywords,
)
from ..errors import ExtractionError
from ..models import ProjectContext, SourceMatch


def _base_record(language: str) -> Dict[str, Any]:
    return {
        "@context": CODEMETA_CONTEXT,
        "@type": "SoftwareSourceCode",
        "programmingLanguage": {"@type": "ComputerLanguage", "name": language},
    }


class PackageJsonExtractor(Extractor):
    """Reads npm ``package.json`` metadata."""

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        try:
            data = json.loads(read_text(source.path))
        except json.JSONDecodeError as exc:
            raise ExtractionError(f"Invalid JSON in {source.path.name}: {exc}") from exc
        if not isinstance(data, dict):
            raise ExtractionError(f"{source.path.name} does not contain an object")

        record = _base_record("JavaScript")
        record["name"] = data.get("name")
        record["version"] = data.get("version")
        record["description"] = data.get("description")
        record["keywords"] = split_keywords(data.get("keywords"))
        record["license"] = license_url(data.get("license"))
        author = parse_person(data.get("author"))
        record["author"] = [author] if author else []
        record["contributor"] = parse_people(data.get("contributors") or [])
        record["maintainer"] = parse_people(data.get("maintainers") or [])
        record["url"] = data.get("homepage") if isinstance(data.get("homepage"), str) else None

        repository = data.get("repository")
        if isinstance(repository, dict):
            repository = repository.get("url")
        if isinstance(repository, str):
            record["codeRepository"] = normalize_repository_url(repository)

        bugs = data.get("bugs")
        if isinstance(bugs, dict):
            bugs = bugs.get("url")
        if isinstance(bugs, str):
            record["issueTracker"] = bugs

        dependencies = data.get("dependencies")
        if isinstance(dependencies, dict):
            record["softwareRequirements"] = [
                software_requirement(name, str(version))
                for name, version in dependencies.items()
            ]
        engines = data.get("engines")
        if isinstance(engines, dict) and isinstance(engines.get("node"), str):
            record["runtimePlatform"] = f"Node.js {engines['node']}"
        return [compact(record)]


class CargoExtractor(Extractor):
    """Reads the ``[package]`` table of Cargo.toml."""

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        try:
            data = tomllib.loads(read_text(source.path))
        except tomllib.TOMLDecodeError as exc:
            raise ExtractionError(f"Invalid TOML in {source.path.name}: {exc}") from exc

        package = data.get("package")
        if not isinstance(package, dict):
            return []

        record = _base_record("Rust")
        record["name"] = package.get("name")
        if isinstance(package.get("version"), str):
            record["version"] = package["version"]
        record["description"] = package.get("description")
        record["keywords"] = split_keywords(package.get("keywords"))
        if isinstance(package.get("authors"), list):
            record["author"] = parse_people(package["authors"])
        record["license"] = license_url(package.get("license"))
        if isinstance(package.get("repository"), str):
            record["codeRepository"] = normalize_repository_url(package["repository"])
        if isinstance(package.get("homepage"), str):
            record["url"] = package["homepage"]
        if isinstance(package.get("documentation"), str):
            record["softwareHelp"] = [
                {"@type": "WebSite", "name": "Documentation", "url": package["documentation"]}
            ]
        dependencies = data.get("dependencies")
        if isinstance(dependencies, dict):
            record["softwareRequirements"] = [
                software_requirement(
                    name,
                    spec if isinstance(spec, str) else (spec.get("version") if isinstance(spec, dict) else None),
                )
                for name, spec in dependencies.items()
            ]
        return [compact(record)]


class MavenExtractor(Extractor):
    """Reads project coordinates and descriptive fields from pom.xml."""

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        try:
            root = ET.fromstring(read_text(source.path))
        except ET.ParseError as exc:
            raise ExtractionError(f"Invalid XML in {source.path.name}: {exc}") from exc

        namespace = ""
        if root.tag.startswith("{"):
            namespace = root.tag.split("}", 1)[0] + "}"

        def text(node: Optional[ET.Element], path: str) -> Optional[str]:
            if node is None:
                return None
            found = node.find("/".join(f"{namespace}{part}" for part in path.split("/")))
            if found is None or found.text is None:
                return None
            value = found.text.strip()
            return value or None

        record = _base_record("Java")
        artifact = text(root, "artifactId")
        group = text(root, "groupId") or text(root, "parent/groupId")
        record["name"] = text(root, "name") or artifact
        if artifact and group:
            record["identifier"] = f"{group}:{artifact}"
        version = text(root, "version")
        if version and "${" not in version:
            record["version"] = version
        record["description"] = text(root, "description")
        record["url"] = text(root, "url")
        record["codeRepository"] = normalize_repository_url(text(root, "scm/url"))
        record["issueTracker"] = text(root, "issueManagement/url")

        licenses = root.find(f"{namespace}licenses")
        if licenses is not None:
            urls = [
                license_url(text(entry, "name")) or text(entry, "url")
                for entry in licenses.findall(f"{namespace}license")
            ]
            urls = [url for url in urls if url]
            record["license"] = urls[0] if len(urls) == 1 else urls

        developers = root.find(f"{namespace}developers")
        if developers is not None:
            record["author"] = parse_people(
                {"name": text(entry, "name"), "email": text(entry, "email"), "url": text(entry, "url")}
                for entry in developers.findall(f"{namespace}developer")
            )
        return [compact(record)]


class RDescriptionExtractor(Extractor):
    """Reads the Debian-control style DESCRIPTION file of R packages."""

    _FIELD = re.compile(r"^([A-Za-z][A-Za-z0-9@/._-]*):\s*(.*)$")

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        fields = self._parse(read_text(source.path))
        if "Package" not in fields:
            raise ExtractionError(f"{source.path.name} has no Package field")

        record = _base_record("R")
        record["name"] = fields.get("Package")
        record["version"] = fields.get("Version")
        record["description"] = fields.get("Description") or fields.get("Title")
        record["license"] = license_url(fields.get("License", "").split("|")[0].split("+")[0].strip())
        urls = [url.strip() for url in re.split(r"[,\s]+", fields.get("URL", "")) if url.strip()]
        if urls:
            record["url"] = urls[0]
            repositories = [url for url in urls if "github.com" in url or "gitlab" in url]
            if repositories:
                record["codeRepository"] = normalize_repository_url(repositories[0])
        if fields.get("BugReports"):
            record["issueTracker"] = fields["BugReports"]
        maintainer = parse_person(fields.get("Maintainer", ""))
        record["maintainer"] = [maintainer] if maintainer else []
        if fields.get("Author"):
            record["author"] = parse_people(
                re.sub(r"\[[^\]]*\]", "", part).strip()
                for part in re.split(r",|\band\b", fields["Author"])
            )
        record["softwareRequirements"] = [
            software_requirement(name)
            for name in (item.split("(")[0].strip() for item in fields.get("Imports", "").split(","))
            if name
        ]
        return [compact(record)]

    def _parse(self, text: str) -> Dict[str, str]:
        fields: Dict[str, str] = {}
        current: Optional[str] = None
        lines: List[str] = []
        for line in text.splitlines():
            if line[:1].isspace() and current is not None:
                lines.append(line.strip())
                continue
            match = self._FIELD.match(line)
            if not match:
                continue
            if current is not None:
                fields[current] = " ".join(lines).strip()
            current = match.group(1)
            lines = [match.group(2)]
        if current is not None:
            fields[current] = " ".join(lines).strip()
        return fields


__all__ = ["CargoExtractor", "MavenExtractor", "PackageJsonExtractor", "RDescriptionExtractor"]
