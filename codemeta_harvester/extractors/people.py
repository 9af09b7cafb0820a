"""Extractors for AUTHORS, CONTRIBUTORS and MAINTAINERS lists."""

from __future__ import annotations

import re
from typing import Iterable, List

from .base import Contribution, Extractor
from .utils import parse_people, read_text
from ..models import ProjectContext, SourceMatch

_BULLET = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+")
_MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")


class PeopleFileExtractor(Extractor):
    """Reads one person per line into the given CodeMeta property."""

    def __init__(self, property_name: str) -> None:
        self.property_name = property_name

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        people = parse_people(self._entries(read_text(source.path)))
        if not people:
            return []
        return [{self.property_name: people}]

    @staticmethod
    def _entries(text: str) -> List[str]:
        entries: List[str] = []
        for raw in text.splitlines():
            line = raw.strip()
            if not line or line.startswith(("#", "=", "//")) or line.endswith(":"):
                continue
            line = _BULLET.sub("", line)
            # [Jane Doe](https://example.org) -> Jane Doe (https://example.org)
            line = _MARKDOWN_LINK.sub(lambda match: f"{match.group(1)} ({match.group(2)})", line)
            line = line.replace("**", "").strip()
            if line:
                entries.append(line)
        return entries


__all__ = ["PeopleFileExtractor"]
