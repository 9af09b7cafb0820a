"""Python packaging manifest extractors (pyproject.toml, setup.cfg, setup.py)."""

from __future__ import annotations

import ast
import configparser
import re
import tomllib
from typing import Any, Dict, Iterable, List, Mapping, Optional

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

_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)\s*(?:\[[^\]]*\])?\s*(.*)$")

_URL_FIELDS = {
    "homepage": "url",
    "home": "url",
    "home-page": "url",
    "repository": "codeRepository",
    "source": "codeRepository",
    "source code": "codeRepository",
    "code": "codeRepository",
    "bug tracker": "issueTracker",
    "issues": "issueTracker",
    "tracker": "issueTracker",
    "changelog": "releaseNotes",
    "documentation": "softwareHelp",
    "docs": "softwareHelp",
}


def _base_record() -> Dict[str, Any]:
    return {
        "@context": CODEMETA_CONTEXT,
        "@type": "SoftwareSourceCode",
        "programmingLanguage": {"@type": "ComputerLanguage", "name": "Python"},
    }


def _requirements(values: Iterable[Any]) -> List[Dict[str, Any]]:
    requirements: List[Dict[str, Any]] = []
    for value in values:
        if not isinstance(value, str):
            continue
        spec = value.split(";", 1)[0]
        match = _REQUIREMENT_NAME.match(spec)
        if not match:
            continue
        name = match.group(1)
        if name.lower() == "python":
            continue
        requirements.append(software_requirement(name, match.group(2).strip() or None))
    return requirements


def _apply_urls(record: Dict[str, Any], urls: Mapping[str, Any]) -> None:
    for label, value in urls.items():
        if not isinstance(value, str):
            continue
        target = _URL_FIELDS.get(str(label).strip().lower())
        if target is None or target in record:
            continue
        if target == "softwareHelp":
            record[target] = [{"@type": "WebSite", "name": str(label), "url": value}]
        elif target == "codeRepository":
            record[target] = normalize_repository_url(value)
        else:
            record[target] = value


class PyprojectExtractor(Extractor):
    """Reads PEP 621 ``[project]`` metadata, falling back to ``[tool.poetry]``."""

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        try:
            data = tomllib.loads(read_text(source.path))
        except tomllib.TOMLDecodeError as exc:
            raise ExtractionError(f"Invalid TOML in {source.path.name}: {exc}") from exc

        project = data.get("project")
        if isinstance(project, dict) and project.get("name"):
            return [compact(self._from_pep621(project))]

        tool = data.get("tool") if isinstance(data.get("tool"), dict) else {}
        poetry = tool.get("poetry") if isinstance(tool.get("poetry"), dict) else None
        if poetry and poetry.get("name"):
            return [compact(self._from_poetry(poetry))]
        return []

    @staticmethod
    def _from_pep621(project: Dict[str, Any]) -> Dict[str, Any]:
        record = _base_record()
        record["name"] = project.get("name")
        record["description"] = project.get("description")
        if isinstance(project.get("version"), str):
            record["version"] = project["version"]
        record["keywords"] = split_keywords(project.get("keywords"))
        record["author"] = parse_people(project.get("authors") or [])
        record["maintainer"] = parse_people(project.get("maintainers") or [])

        license_value = project.get("license")
        if isinstance(license_value, dict):
            license_value = license_value.get("text")
        record["license"] = license_url(license_value)

        requires_python = project.get("requires-python")
        if isinstance(requires_python, str):
            record["runtimePlatform"] = f"Python {requires_python}".strip()

        record["softwareRequirements"] = _requirements(project.get("dependencies") or [])
        urls = project.get("urls")
        if isinstance(urls, dict):
            _apply_urls(record, urls)
        return record

    @staticmethod
    def _from_poetry(poetry: Dict[str, Any]) -> Dict[str, Any]:
        record = _base_record()
        record["name"] = poetry.get("name")
        record["description"] = poetry.get("description")
        record["version"] = poetry.get("version")
        record["keywords"] = split_keywords(poetry.get("keywords"))
        record["author"] = parse_people(poetry.get("authors") or [])
        record["maintainer"] = parse_people(poetry.get("maintainers") or [])
        record["license"] = license_url(poetry.get("license"))
        dependencies = poetry.get("dependencies")
        if isinstance(dependencies, dict):
            record["softwareRequirements"] = [
                software_requirement(name, value if isinstance(value, str) else None)
                for name, value in dependencies.items()
                if name.lower() != "python"
            ]
        _apply_urls(
            record,
            {
                "homepage": poetry.get("homepage"),
                "repository": poetry.get("repository"),
                "documentation": poetry.get("documentation"),
            },
        )
        return record


class SetupCfgExtractor(Extractor):
    """Reads the declarative ``[metadata]`` section of setup.cfg."""

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        parser = configparser.ConfigParser(interpolation=None)
        try:
            parser.read_string(read_text(source.path), source=str(source.path))
        except configparser.Error as exc:
            raise ExtractionError(f"Invalid setup.cfg: {exc}") from exc
        if not parser.has_section("metadata"):
            return []

        metadata = parser["metadata"]
        record = _base_record()
        record["name"] = metadata.get("name")
        version = metadata.get("version")
        if version and not version.startswith(("attr:", "file:")):
            record["version"] = version
        record["description"] = metadata.get("description")
        record["keywords"] = split_keywords(metadata.get("keywords"))
        author = parse_person(
            {"name": metadata.get("author"), "email": metadata.get("author_email")}
        )
        record["author"] = [author] if author else []
        maintainer = parse_person(
            {"name": metadata.get("maintainer"), "email": metadata.get("maintainer_email")}
        )
        record["maintainer"] = [maintainer] if maintainer else []
        record["license"] = license_url(metadata.get("license"))
        if metadata.get("url"):
            record["url"] = metadata.get("url")

        project_urls: Dict[str, str] = {}
        for line in (metadata.get("project_urls") or "").splitlines():
            if "=" in line:
                label, value = line.split("=", 1)
                project_urls[label.strip()] = value.strip()
        _apply_urls(record, project_urls)

        if parser.has_section("options"):
            requires = parser["options"].get("install_requires") or ""
            record["softwareRequirements"] = _requirements(
                line.strip() for line in requires.splitlines() if line.strip()
            )
        return [compact(record)]


class SetupPyExtractor(Extractor):
    """Collects literal keyword arguments of the ``setup()`` call without running setup.py."""

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        try:
            tree = ast.parse(read_text(source.path), filename=str(source.path))
        except SyntaxError as exc:
            raise ExtractionError(f"Unable to parse {source.path.name}: {exc}") from exc

        arguments = self._setup_arguments(tree)
        if arguments is None:
            return []

        record = _base_record()
        record["name"] = arguments.get("name")
        record["version"] = arguments.get("version")
        record["description"] = arguments.get("description")
        record["keywords"] = split_keywords(arguments.get("keywords"))
        author = parse_person({"name": arguments.get("author"), "email": arguments.get("author_email")})
        record["author"] = [author] if author else []
        maintainer = parse_person(
            {"name": arguments.get("maintainer"), "email": arguments.get("maintainer_email")}
        )
        record["maintainer"] = [maintainer] if maintainer else []
        record["license"] = license_url(arguments.get("license"))
        if isinstance(arguments.get("url"), str):
            record["url"] = arguments["url"]
        if isinstance(arguments.get("project_urls"), dict):
            _apply_urls(record, arguments["project_urls"])
        if isinstance(arguments.get("install_requires"), (list, tuple)):
            record["softwareRequirements"] = _requirements(arguments["install_requires"])
        return [compact(record)]

    @staticmethod
    def _setup_arguments(tree: ast.AST) -> Optional[Dict[str, Any]]:
        for node in ast.walk(tree):
            if not isinstance(node, ast.Call):
                continue
            func = node.func
            name = func.id if isinstance(func, ast.Name) else getattr(func, "attr", None)
            if name != "setup":
                continue
            arguments: Dict[str, Any] = {}
            for keyword in node.keywords:
                if keyword.arg is None:
                    continue
                try:
                    arguments[keyword.arg] = ast.literal_eval(keyword.value)
                except (ValueError, TypeError, SyntaxError):
                    continue
            return arguments
        return None


__all__ = ["PyprojectExtractor", "SetupCfgExtractor", "SetupPyExtractor"]
