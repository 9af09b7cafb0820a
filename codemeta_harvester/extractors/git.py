"""Extractor deriving metadata from the commit history."""

from __future__ import annotations

import subprocess
from typing import Any, Dict, Iterable

from .base import Contribution, Extractor
from .utils import compact, normalize_repository_url, parse_person
from ..errors import ExtractionError
from ..git.history import GitHistory
from ..models import ProjectContext, SourceMatch


class GitHistoryExtractor(Extractor):
    """Contributors, first and last commit dates and the origin remote."""

    def __init__(self, history: GitHistory | None = None) -> None:
        self.history = history or GitHistory()

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        repo = context.repository or source.path
        try:
            contributors = self.history.contributors(repo)
            created = self.history.first_commit_date(repo)
            modified = self.history.last_commit_date(repo)
        except (subprocess.CalledProcessError, OSError) as exc:
            raise ExtractionError(f"Unable to read git history in {repo}: {exc}") from exc

        people = []
        for contributor in contributors:
            person = parse_person({"name": contributor.name, "email": contributor.email})
            if person is not None:
                people.append(person)

        record: Dict[str, Any] = {
            "contributor": people,
            "dateCreated": created,
            "dateModified": modified,
            "codeRepository": normalize_repository_url(self.history.remote_url(repo)),
        }
        return [compact(record)]


__all__ = ["GitHistoryExtractor"]
