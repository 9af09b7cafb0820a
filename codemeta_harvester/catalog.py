"""Declarative catalog of metadata sources and their priority ranks.

Ranks are fixed per source kind; a lower rank wins when two sources set the
same property. The explicit ``codemeta.json`` record has rank 0 and, when it is
well-formed, replaces automatic extraction altogether.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple
from urllib.parse import urlparse

EXPLICIT_KIND = "codemeta"
HOSTED_DOMAINS = ("github.com", "gitlab.com")


@dataclass(frozen=True)
class ScanHints:
    """Project facts that detectors of non-file sources need."""

    repository: Optional[Path] = None
    source_url: Optional[str] = None
    offline: bool = False


Detector = Callable[[Path, ScanHints], Optional[Path]]


@dataclass(frozen=True)
class SourceKind:
    """A known metadata origin: how it is detected and how much it counts."""

    name: str
    rank: int
    filenames: Tuple[str, ...] = ()
    detector: Optional[Detector] = None
    root_only: bool = False

    def detect(self, directory: Path, hints: ScanHints) -> Optional[Path]:
        if self.detector is not None:
            return self.detector(directory, hints)
        for filename in self.filenames:
            candidate = directory / filename
            if candidate.is_file():
                return candidate
        return None


def _detect_git(directory: Path, hints: ScanHints) -> Optional[Path]:
    repository = hints.repository or directory
    marker = repository / ".git"
    return repository if marker.exists() else None


def _detect_hosting(directory: Path, hints: ScanHints) -> Optional[Path]:
    if hints.offline or not hints.source_url:
        return None
    if hosting_service(hints.source_url) is None:
        return None
    return directory


def hosting_service(url: str) -> Optional[str]:
    """Return the hosting domain of ``url`` when an API extractor exists for it."""
    candidate = url.strip()
    if candidate.startswith("git@"):
        candidate = "https://" + candidate[4:].replace(":", "/", 1)
    host = (urlparse(candidate).hostname or "").lower()
    for domain in HOSTED_DOMAINS:
        if host == domain or host.endswith(f".{domain}"):
            return domain
    return None


SOURCE_CATALOG: Sequence[SourceKind] = (
    SourceKind(EXPLICIT_KIND, 0, ("codemeta.json",), root_only=True),
    SourceKind("codemeta-harvest", 1, ("codemeta-harvest.json",)),
    SourceKind("citation", 2, ("CITATION.cff", "citation.cff", "CITATION.CFF")),
    SourceKind("pyproject", 3, ("pyproject.toml",)),
    SourceKind("setup-cfg", 3, ("setup.cfg",)),
    SourceKind("setup-py", 3, ("setup.py",)),
    SourceKind("package-json", 3, ("package.json",)),
    SourceKind("cargo", 3, ("Cargo.toml",)),
    SourceKind("maven", 3, ("pom.xml",)),
    SourceKind("r-description", 3, ("DESCRIPTION",)),
    SourceKind("maintainers", 4, ("MAINTAINERS", "MAINTAINERS.md", "MAINTAINERS.txt")),
    SourceKind("authors", 4, ("AUTHORS", "AUTHORS.md", "AUTHORS.txt")),
    SourceKind("contributors", 4, ("CONTRIBUTORS", "CONTRIBUTORS.md", "CONTRIBUTORS.txt")),
    SourceKind(
        "license",
        5,
        ("LICENSE", "LICENSE.md", "LICENSE.txt", "LICENCE", "COPYING", "COPYING.md"),
    ),
    SourceKind("git", 6, detector=_detect_git, root_only=True),
    SourceKind("install", 7, ("INSTALL.md", "INSTALL", "INSTALL.rst", "BUILD.md")),
    SourceKind("readme", 8, ("README.md", "README.rst", "README", "README.txt")),
    SourceKind("hosting", 9, detector=_detect_hosting, root_only=True),
)


def kind_by_name(name: str) -> SourceKind:
    for kind in SOURCE_CATALOG:
        if kind.name == name:
            return kind
    raise KeyError(name)


__all__ = [
    "EXPLICIT_KIND",
    "SOURCE_CATALOG",
    "ScanHints",
    "SourceKind",
    "hosting_service",
    "kind_by_name",
]
