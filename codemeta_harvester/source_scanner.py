"""Detects which known metadata sources are present in a checkout."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

from .catalog import SOURCE_CATALOG, ScanHints, SourceKind
from .logging import get_logger
from .models import SourceMatch


class SourceScanner:
    """Walks the scan directories once and matches them against the source catalog."""

    def __init__(self, catalog: Sequence[SourceKind] = SOURCE_CATALOG) -> None:
        self.catalog = tuple(catalog)
        self.logger = get_logger("scanner")

    def scan(
        self,
        root: Path,
        extra_dirs: Sequence[str | Path] = (),
        hints: Optional[ScanHints] = None,
    ) -> List[SourceMatch]:
        """Return present sources; extra directories first, the root last."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.is_dir():
            raise NotADirectoryError(f"Scan root is not a directory: {root}")
        hints = hints or ScanHints()

        matches: List[SourceMatch] = []
        for directory in self._scan_directories(root_path, extra_dirs):
            is_root = directory == root_path
            for kind in self.catalog:
                if kind.root_only and not is_root:
                    continue
                found = kind.detect(directory, hints)
                if found is None:
                    continue
                self.logger.debug("Found %s source at %s", kind.name, found)
                matches.append(SourceMatch(kind=kind.name, path=found, rank=kind.rank))

        if matches:
            self.logger.info(
                "Detected %d metadata source(s): %s",
                len(matches),
                ", ".join(match.kind for match in matches),
            )
        else:
            self.logger.warning("No metadata sources found in %s", root_path)
        return matches

    def _scan_directories(self, root: Path, extra_dirs: Sequence[str | Path]) -> List[Path]:
        directories: List[Path] = []
        for extra in extra_dirs:
            candidate = Path(extra).expanduser()
            if not candidate.is_absolute():
                candidate = root / candidate
            candidate = candidate.resolve()
            if candidate == root or candidate in directories:
                continue
            if not candidate.is_dir():
                self.logger.warning("Skipping missing scan directory %s", candidate)
                continue
            directories.append(candidate)
        directories.append(root)
        return directories


__all__ = ["SourceScanner"]
