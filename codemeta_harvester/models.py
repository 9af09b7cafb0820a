"""Core data models shared across harvester components."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

MAINLINE_BRANCHES = frozenset(
    {"main", "master", "develop", "development", "devel", "trunk", "HEAD"}
)


def is_release_ref(name: Optional[str]) -> bool:
    """Return True when ``name`` is not one of the conventional mainline branches."""
    if not name:
        return False
    return name not in MAINLINE_BRANCHES


@dataclass(frozen=True)
class Ref:
    """A git reference resolved once per harvest run."""

    name: str
    kind: str
    target: Optional[str] = None

    @property
    def released(self) -> bool:
        return is_release_ref(self.name)

    @property
    def checkout_target(self) -> str:
        return self.target or self.name


@dataclass(frozen=True)
class SourceMatch:
    """A metadata source found by the presence scanner."""

    kind: str
    path: Path
    rank: int


@dataclass
class ProjectContext:
    """Everything an extractor may know about the project being harvested."""

    identifier: str
    root: Path
    repository: Optional[Path]
    staging_dir: Path
    source_url: Optional[str] = None
    ref: Optional[Ref] = None
    offline: bool = False

    @property
    def released(self) -> bool:
        return self.ref is not None and self.ref.released


@dataclass
class PartialRecord:
    """One rank-tagged contribution staged during a harvest run."""

    rank: int
    kind: str
    identifier: str
    sequence: int
    payload: str
    path: Optional[Path] = None

    @property
    def slot(self) -> str:
        return f"{self.rank:02d}-{self.sequence:03d}-{self.kind}"


@dataclass
class FinalRecord:
    """The reconciled metadata record for a project."""

    identifier: str
    data: Dict[str, Any]
    path: Optional[Path] = None
    sources: List[str] = field(default_factory=list)
