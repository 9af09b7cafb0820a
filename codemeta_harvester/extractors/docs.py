"""README and install-instruction extractors, including documentation link detection."""

from __future__ import annotations

import re
from html.parser import HTMLParser
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

import markdown

from .base import Contribution, Extractor
from .utils import hosted_file_url, read_text
from ..errors import ExtractionError
from ..logging import get_logger
from ..models import ProjectContext, SourceMatch

_DOC_HOST_MARKERS = ("readthedocs.io", "readthedocs.org", "rtfd.io", "gitbook.io", "docs.rs")
_DOC_PATH_MARKERS = ("/docs", "/doc/", "/documentation", "/manual", "/wiki", "/guide", "/api/")
_DOC_TEXT_MARKERS = (
    "documentation",
    "docs",
    "manual",
    "user guide",
    "handbook",
    "api reference",
    "tutorial",
)
_RST_LINK = re.compile(r"`([^`<]+?)\s*<(https?://[^>]+)>`_")
_BARE_URL = re.compile(r"https?://[^\s<>()\"'`]+")


def _relative_to_repository(path: Path, context: ProjectContext) -> str:
    base = context.repository or context.root
    try:
        return path.resolve().relative_to(base.resolve()).as_posix()
    except ValueError:
        return path.name


def _ref_name(context: ProjectContext) -> Optional[str]:
    return context.ref.name if context.ref is not None else None


def is_documentation_link(url: str, text: str = "") -> bool:
    """Heuristic deciding whether a README link points at documentation."""
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"}:
        return False
    host = (parsed.hostname or "").lower()
    path = parsed.path.lower()
    if any(marker in host for marker in _DOC_HOST_MARKERS):
        return True
    if host.startswith("docs.") or host.endswith(".github.io"):
        return True
    if "/badge" in path or path.endswith((".svg", ".png")):
        return False
    label = text.strip().lower()
    if any(marker in label for marker in _DOC_TEXT_MARKERS):
        return True
    return any(marker in path for marker in _DOC_PATH_MARKERS)


class _AnchorCollector(HTMLParser):
    def __init__(self) -> None:
        super().__init__()
        self.links: List[Tuple[str, str]] = []
        self._href: Optional[str] = None
        self._text: List[str] = []

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        if tag == "a":
            self._href = dict(attrs).get("href")
            self._text = []
        elif tag == "img" and self._href is not None:
            alt = dict(attrs).get("alt")
            if alt:
                self._text.append(alt)

    def handle_data(self, data: str) -> None:
        if self._href is not None:
            self._text.append(data)

    def handle_endtag(self, tag: str) -> None:
        if tag == "a" and self._href is not None:
            self.links.append((self._href, " ".join(part.strip() for part in self._text).strip()))
            self._href = None
            self._text = []


class InstallExtractor(Extractor):
    """Points ``buildInstructions`` at the install document."""

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        relative = _relative_to_repository(source.path, context)
        url = hosted_file_url(context.source_url, _ref_name(context), relative)
        return [{"buildInstructions": url}]


class ReadmeExtractor(Extractor):
    """Sets ``readme`` and emits one ``softwareHelp`` record per documentation link."""

    def __init__(self) -> None:
        self.logger = get_logger("extractors.readme")

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        relative = _relative_to_repository(source.path, context)
        contributions: List[Contribution] = [
            {"readme": hosted_file_url(context.source_url, _ref_name(context), relative)}
        ]

        if source.path.suffix.lower() in {".md", ".markdown"}:
            links = self._markdown_links(source.path, context)
        else:
            links = self._plain_links(read_text(source.path))

        seen: Dict[str, str] = {}
        for url, text in links:
            if url in seen or not is_documentation_link(url, text):
                continue
            seen[url] = text
            self.logger.debug("Documentation link detected in README: %s", url)
            contributions.append(
                {"softwareHelp": [{"@type": "WebSite", "name": text or url, "url": url}]}
            )
        return contributions

    def _markdown_links(self, path: Path, context: ProjectContext) -> List[Tuple[str, str]]:
        # The HTML rendering only exists for link detection and is removed right after.
        converted = context.staging_dir / f"{context.identifier}.README.html"
        try:
            html = markdown.markdown(read_text(path), extensions=["extra"])
            converted.parent.mkdir(parents=True, exist_ok=True)
            converted.write_text(html, encoding="utf-8")
            collector = _AnchorCollector()
            collector.feed(converted.read_text(encoding="utf-8"))
            collector.close()
        except OSError as exc:
            raise ExtractionError(f"Unable to convert {path.name}: {exc}") from exc
        finally:
            converted.unlink(missing_ok=True)
        return collector.links

    @staticmethod
    def _plain_links(text: str) -> List[Tuple[str, str]]:
        links: List[Tuple[str, str]] = [
            (match.group(2).strip(), match.group(1).strip()) for match in _RST_LINK.finditer(text)
        ]
        known = {url for url, _ in links}
        for match in _BARE_URL.finditer(text):
            url = match.group(0).rstrip(".,;:")
            if url not in known:
                links.append((url, ""))
                known.add(url)
        return links


__all__ = ["InstallExtractor", "ReadmeExtractor", "is_documentation_link"]
