"""Base classes for extractor plugins."""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping, Union

from ..models import ProjectContext, SourceMatch

Contribution = Union[Mapping[str, Any], str]


class Extractor(ABC):
    """Contract for extractors that turn one source into partial CodeMeta records.

    An extractor yields zero or more contributions. A mapping is serialised by the
    staging area; a string is staged verbatim so malformed output still reaches the
    validator. Failures are signalled by raising ``ExtractionError``.
    """

    @abstractmethod
    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        """Produce partial records for ``source``."""
