"""Run- and project-scoped staging of partial records."""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any, List, Mapping, Union

from .logging import get_logger
from .models import PartialRecord


class StagingArea:
    """Ordered collection of the partial records produced for one project.

    Records live in memory; each one is mirrored to ``<staging>/<identifier>/``
    so intermediate output can be inspected when ``keep`` is set. Nothing from
    another identifier is ever read or written here.
    """

    def __init__(self, root: Path, identifier: str, *, keep: bool = False) -> None:
        self.identifier = identifier
        self.directory = root / identifier
        self.keep = keep
        self._records: List[PartialRecord] = []
        self._sequence = 0
        self.logger = get_logger("staging")

    def reset(self) -> None:
        """Remove leftovers of an earlier run for this identifier."""
        self._records.clear()
        self._sequence = 0
        if self.directory.exists():
            self.logger.debug("Clearing stale staging directory %s", self.directory)
            shutil.rmtree(self.directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def clear_slot(self, rank: int, kind: str) -> None:
        """Drop anything already staged for ``(rank, kind)`` before re-running its extractor."""
        self._records = [
            record for record in self._records if not (record.rank == rank and record.kind == kind)
        ]
        if self.directory.exists():
            for stale in self.directory.glob(f"{rank:02d}-*-{kind}.json"):
                stale.unlink()

    def stage(self, rank: int, kind: str, contribution: Union[Mapping[str, Any], str]) -> PartialRecord:
        """Add one contribution, assigning the next sequence number."""
        self._sequence += 1
        if isinstance(contribution, str):
            payload = contribution
        else:
            payload = json.dumps(dict(contribution), indent=2, ensure_ascii=False, default=str)
        record = PartialRecord(
            rank=rank,
            kind=kind,
            identifier=self.identifier,
            sequence=self._sequence,
            payload=payload,
        )
        self.directory.mkdir(parents=True, exist_ok=True)
        record.path = self.directory / f"{record.slot}.json"
        record.path.write_text(payload, encoding="utf-8")
        self._records.append(record)
        self.logger.debug("Staged %s as %s", kind, record.path.name)
        return record

    def discard(self, record: PartialRecord) -> None:
        self._records = [item for item in self._records if item is not record]
        if record.path is not None:
            record.path.unlink(missing_ok=True)

    def records(self) -> List[PartialRecord]:
        """Return the currently staged records ordered by rank, then sequence."""
        return sorted(
            (record for record in self._records if record.identifier == self.identifier),
            key=lambda record: (record.rank, record.sequence),
        )

    def cleanup(self) -> None:
        if self.keep:
            self.logger.info("Keeping staged partial records in %s", self.directory)
            return
        shutil.rmtree(self.directory, ignore_errors=True)


__all__ = ["StagingArea"]
