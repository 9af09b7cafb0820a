"""Extractor implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, Iterable, Mapping, Optional

from .base import Contribution, Extractor
from .citation import CitationExtractor
from .codemeta import CodeMetaFileExtractor
from .docs import InstallExtractor, ReadmeExtractor
from .git import GitHistoryExtractor
from .hosting import HostingApiExtractor
from .license import LicenseFileExtractor
from .packages import CargoExtractor, MavenExtractor, PackageJsonExtractor, RDescriptionExtractor
from .people import PeopleFileExtractor
from .python import PyprojectExtractor, SetupCfgExtractor, SetupPyExtractor

_ENTRY_POINT_GROUP = "codemeta_harvester.extractors"

_BUILTIN_FACTORIES: dict[str, Callable[[], Extractor]] = {
    "codemeta": CodeMetaFileExtractor,
    "codemeta-harvest": CodeMetaFileExtractor,
    "citation": CitationExtractor,
    "pyproject": PyprojectExtractor,
    "setup-cfg": SetupCfgExtractor,
    "setup-py": SetupPyExtractor,
    "package-json": PackageJsonExtractor,
    "cargo": CargoExtractor,
    "maven": MavenExtractor,
    "r-description": RDescriptionExtractor,
    "maintainers": lambda: PeopleFileExtractor("maintainer"),
    "authors": lambda: PeopleFileExtractor("author"),
    "contributors": lambda: PeopleFileExtractor("contributor"),
    "license": LicenseFileExtractor,
    "git": GitHistoryExtractor,
    "install": InstallExtractor,
    "readme": ReadmeExtractor,
    "hosting": HostingApiExtractor,
}


def discover_extractors(
    overrides: Optional[Mapping[str, Extractor]] = None,
) -> Dict[str, Extractor]:
    """Return one extractor per source kind.

    Entry points in the ``codemeta_harvester.extractors`` group replace the
    built-in extractor registered under the same kind; explicit ``overrides``
    win over both.
    """
    extractors: Dict[str, Extractor] = {}
    for kind, factory in _BUILTIN_FACTORIES.items():
        extractors[kind] = _coerce_extractor(factory, kind)

    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - defensive guard
            raise RuntimeError(f"Failed to load extractor entry point '{entry.name}': {exc}") from exc
        extractors[entry.name] = _coerce_extractor(loaded, entry.name)

    if overrides:
        for kind, extractor in overrides.items():
            extractors[kind] = _coerce_extractor(extractor, kind)
    return extractors


def _coerce_extractor(obj: object, kind: str) -> Extractor:
    if isinstance(obj, Extractor):
        return obj
    if isinstance(obj, type) and issubclass(obj, Extractor):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, Extractor):
            return instance
    raise TypeError(f"Extractor for '{kind}' must be an Extractor subclass, instance or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points(group=_ENTRY_POINT_GROUP)


__all__ = ["Contribution", "Extractor", "discover_extractors"]
