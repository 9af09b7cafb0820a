"""Extractor for CodeMeta files kept in the repository itself."""

from __future__ import annotations

from typing import Iterable

from .base import Contribution, Extractor
from .utils import read_text
from ..models import ProjectContext, SourceMatch


class CodeMetaFileExtractor(Extractor):
    """Stages ``codemeta.json`` or ``codemeta-harvest.json`` verbatim.

    The content is not parsed here; the partial record validator decides whether
    it is well-formed.
    """

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        return [read_text(source.path)]
