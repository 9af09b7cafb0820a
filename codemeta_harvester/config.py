"""Configuration loading for harvester projects and run options."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

import yaml

from .errors import ConfigError

_CONFIG_SUFFIXES = (".yml", ".yaml")


@dataclass
class ProjectConfig:
    """Harvest settings for one project, read from a YAML file."""

    identifier: str
    source: str
    root: Optional[str] = None
    scandirs: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)
    ref: Optional[str] = None
    path: Optional[Path] = None


@dataclass
class ReconcileOptions:
    """Options passed through to the reconciliation step."""

    indent: int = 2
    sort_keys: bool = False
    accumulate: List[str] = field(default_factory=list)
    drop: List[str] = field(default_factory=list)


@dataclass
class HarvestOptions:
    """Run-wide flags shared by every project in a harvest."""

    cache_dir: Path
    output_dir: Path
    base_uri: Optional[str] = None
    regenerate: bool = False
    ignore_existing: bool = False
    strict: bool = False
    keep_intermediate: bool = False
    stdout: bool = False
    offline: bool = False
    identifier: Optional[str] = None
    reconcile: ReconcileOptions = field(default_factory=ReconcileOptions)

    @property
    def staging_dir(self) -> Path:
        return self.cache_dir / "staging"


def default_cache_dir() -> Path:
    """Return the cache root honoring CODEMETA_HARVESTER_CACHE and XDG_CACHE_HOME."""
    explicit = os.environ.get("CODEMETA_HARVESTER_CACHE")
    if explicit:
        return Path(explicit).expanduser()
    xdg = os.environ.get("XDG_CACHE_HOME")
    base = Path(xdg).expanduser() if xdg else Path.home() / ".cache"
    return base / "codemeta-harvester"


def load_project_config(config_path: Path) -> ProjectConfig:
    """Load a single project configuration file."""
    path = config_path.expanduser()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read {path}: {exc}") from exc

    try:
        data = yaml.safe_load(text) if text.strip() else {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")

    identifier = _as_str(data.get("identifier")) or _identifier_from_path(path)
    source = _as_str(data.get("source"))
    if not source:
        raise ConfigError(f"{path.name} does not define a source repository")

    return ProjectConfig(
        identifier=identifier,
        source=source,
        root=_as_str(data.get("root")),
        scandirs=_as_str_list(data.get("scandirs")),
        services=_as_str_list(data.get("services")),
        ref=_as_str(data.get("ref")),
        path=path.resolve(),
    )


def collect_config_files(targets: Iterable[str | Path]) -> List[Path]:
    """Expand targets into configuration files; directories yield their YAML files."""
    files: List[Path] = []
    for target in targets:
        path = Path(target).expanduser()
        if path.is_dir():
            files.extend(
                sorted(
                    child
                    for child in path.iterdir()
                    if child.is_file() and child.suffix.lower() in _CONFIG_SUFFIXES
                )
            )
        elif path.is_file():
            files.append(path)
        else:
            raise ConfigError(f"Configuration target not found: {target}")
    return files


def load_project_configs(targets: Iterable[str | Path]) -> List[ProjectConfig]:
    """Load every configuration named by ``targets`` in order."""
    return [load_project_config(path) for path in collect_config_files(targets)]


def parse_reconcile_options(text: Optional[str]) -> ReconcileOptions:
    """Parse ``key=value`` tokens given through ``--opts``."""
    options = ReconcileOptions()
    if not text:
        return options

    try:
        tokens = shlex.split(text)
    except ValueError as exc:
        raise ConfigError(f"Invalid reconciliation options '{text}': {exc}") from exc

    for token in tokens:
        if "=" not in token:
            raise ConfigError(f"Invalid reconciliation option '{token}', expected key=value")
        key, value = token.split("=", 1)
        key = key.strip().lower()
        value = value.strip()
        if key == "indent":
            indent = _as_int(value)
            if indent is None or indent < 0:
                raise ConfigError(f"Invalid indent value '{value}'")
            options.indent = indent
        elif key == "sort-keys":
            flag = _as_bool(value)
            if flag is None:
                raise ConfigError(f"Invalid sort-keys value '{value}'")
            options.sort_keys = flag
        elif key == "accumulate":
            options.accumulate.extend(_split_fields(value))
        elif key == "drop":
            options.drop.extend(_split_fields(value))
        else:
            raise ConfigError(f"Unknown reconciliation option '{key}'")
    return options


def _identifier_from_path(path: Path) -> str:
    name = path.name
    for suffix in _CONFIG_SUFFIXES:
        if name.lower().endswith(suffix):
            return name[: -len(suffix)]
    return path.stem


def _split_fields(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (str, int, float)):
        text = str(value).strip()
        return text or None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float)) and str(item).strip()]
    return []


__all__ = [
    "HarvestOptions",
    "ProjectConfig",
    "ReconcileOptions",
    "collect_config_files",
    "default_cache_dir",
    "load_project_config",
    "load_project_configs",
    "parse_reconcile_options",
]
