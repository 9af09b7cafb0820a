"""Exception hierarchy shared by the harvester pipeline.

Three severities exist. ``FatalError`` halts the whole run, ``ProjectError``
aborts the current project while a batch continues, and ``ExtractionError``
only drops a single contribution unless strict mode escalates it.
"""

from __future__ import annotations


class HarvestError(RuntimeError):
    """Base class for all harvester failures."""


class FatalError(HarvestError):
    """Raised when the run cannot continue at all."""


class DependencyError(FatalError):
    """Raised when a required external program is missing."""


class CacheError(FatalError):
    """Raised when the cache or output directories cannot be prepared."""


class ConfigError(FatalError):
    """Raised when a configuration file or option cannot be used."""


class ProjectError(HarvestError):
    """Raised when the current project has to be abandoned."""

    def __init__(self, identifier: str, message: str) -> None:
        super().__init__(f"{identifier}: {message}")
        self.identifier = identifier


class CloneError(ProjectError):
    """Raised when the initial clone of a repository fails."""


class FetchError(ProjectError):
    """Raised when updating an existing cache entry fails."""


class CheckoutError(ProjectError):
    """Raised when the resolved ref cannot be checked out."""


class NoSourcesError(ProjectError):
    """Raised when no usable metadata source remains for a project."""


class ReconcileError(ProjectError):
    """Raised when merging partial records into the final record fails."""


class StrictModeError(ProjectError):
    """Raised when a recoverable failure occurs while strict mode is active."""


class ExtractionError(HarvestError):
    """Raised by extractors when a single source cannot be converted."""


class AugmentError(HarvestError):
    """Raised when a service endpoint cannot be folded into a final record."""


__all__ = [
    "AugmentError",
    "CacheError",
    "CheckoutError",
    "CloneError",
    "ConfigError",
    "DependencyError",
    "ExtractionError",
    "FatalError",
    "FetchError",
    "HarvestError",
    "NoSourcesError",
    "ProjectError",
    "ReconcileError",
    "StrictModeError",
]
