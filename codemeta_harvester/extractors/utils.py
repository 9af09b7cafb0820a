"""Shared helper utilities for extractor implementations."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse

from ..errors import ExtractionError

CODEMETA_CONTEXT = "https://w3id.org/codemeta/3.0"
SPDX_BASE = "http://spdx.org/licenses/"

_PERSON_PATTERN = re.compile(
    r"^(?P<name>[^<(]+?)\s*(?:<(?P<email>[^>]+)>)?\s*(?:\((?P<url>[^)]+)\))?\s*$"
)

# Common license names mapped to SPDX identifiers
_LICENSE_ALIASES = {
    "mit": "MIT",
    "mit license": "MIT",
    "apache": "Apache-2.0",
    "apache 2": "Apache-2.0",
    "apache 2.0": "Apache-2.0",
    "apache-2": "Apache-2.0",
    "apache license 2.0": "Apache-2.0",
    "apache license, version 2.0": "Apache-2.0",
    "apache software license": "Apache-2.0",
    "the apache software license, version 2.0": "Apache-2.0",
    "bsd": "BSD-3-Clause",
    "bsd license": "BSD-3-Clause",
    "new bsd license": "BSD-3-Clause",
    "simplified bsd license": "BSD-2-Clause",
    "gpl": "GPL-3.0-only",
    "gplv2": "GPL-2.0-only",
    "gplv3": "GPL-3.0-only",
    "gpl-2": "GPL-2.0-only",
    "gpl-3": "GPL-3.0-only",
    "gpl (>= 2)": "GPL-2.0-or-later",
    "gpl (>= 3)": "GPL-3.0-or-later",
    "gnu general public license v3 (gplv3)": "GPL-3.0-only",
    "gnu general public license v3 or later (gplv3+)": "GPL-3.0-or-later",
    "lgpl": "LGPL-3.0-only",
    "lgplv3": "LGPL-3.0-only",
    "agpl": "AGPL-3.0-only",
    "agplv3": "AGPL-3.0-only",
    "mpl 2.0": "MPL-2.0",
    "mozilla public license 2.0": "MPL-2.0",
    "eupl": "EUPL-1.2",
    "isc": "ISC",
    "unlicense": "Unlicense",
}

_SPDX_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.+-]*$")


def read_text(path: Path) -> str:
    """Read a source file, converting I/O problems into extraction failures."""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise ExtractionError(f"Unable to read {path}: {exc}") from exc


def parse_person(value: Any, *, role_type: str = "Person") -> Optional[Dict[str, Any]]:
    """Turn ``"Name <email> (url)"`` strings or name/email mappings into schema.org persons."""
    name: Optional[str] = None
    email: Optional[str] = None
    url: Optional[str] = None
    if isinstance(value, str):
        match = _PERSON_PATTERN.match(value.strip())
        if not match:
            return None
        name = match.group("name").strip().strip(",")
        email = match.group("email")
        url = match.group("url")
    elif isinstance(value, dict):
        name = _clean(value.get("name"))
        email = _clean(value.get("email"))
        url = _clean(value.get("url") or value.get("homepage"))
    if not name:
        return None

    person: Dict[str, Any] = {"@type": role_type}
    parts = name.split()
    if role_type == "Person" and len(parts) > 1:
        person["givenName"] = " ".join(parts[:-1])
        person["familyName"] = parts[-1]
    elif role_type == "Person":
        person["givenName"] = name
    else:
        person["name"] = name
    if email:
        person["email"] = email.strip()
    if url:
        person["url"] = url.strip()
    return person


def parse_people(values: Iterable[Any]) -> List[Dict[str, Any]]:
    people: List[Dict[str, Any]] = []
    for value in values:
        person = parse_person(value)
        if person is not None and person not in people:
            people.append(person)
    return people


def license_url(value: Any) -> Optional[str]:
    """Return an SPDX license URL for a license name or identifier."""
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if cleaned.startswith(("http://", "https://")):
        return cleaned
    alias = _LICENSE_ALIASES.get(cleaned.lower())
    if alias:
        return SPDX_BASE + alias
    if _SPDX_PATTERN.match(cleaned):
        return SPDX_BASE + cleaned
    return None


def normalize_repository_url(url: Optional[str]) -> Optional[str]:
    """Normalise git remotes (ssh, git+https, trailing .git) to browsable https URLs."""
    if not url:
        return None
    candidate = url.strip()
    if candidate.startswith("git+"):
        candidate = candidate[4:]
    if candidate.startswith("git@"):
        candidate = "https://" + candidate[4:].replace(":", "/", 1)
    elif candidate.startswith("ssh://git@"):
        candidate = "https://" + candidate[len("ssh://git@"):]
    elif candidate.startswith("git://"):
        candidate = "https://" + candidate[len("git://"):]
    if candidate.endswith(".git"):
        candidate = candidate[:-4]
    return candidate.rstrip("/")


def hosted_file_url(repository: Optional[str], ref: Optional[str], relative_path: str) -> str:
    """Return a web URL for a file in a hosted repository, or the relative path."""
    normalized = normalize_repository_url(repository)
    relative = relative_path.replace("\\", "/").lstrip("/")
    if not normalized:
        return relative
    host = (urlparse(normalized).hostname or "").lower()
    revision = ref or "HEAD"
    if host == "github.com" or host.endswith(".github.com"):
        return f"{normalized}/blob/{revision}/{relative}"
    if "gitlab" in host:
        return f"{normalized}/-/blob/{revision}/{relative}"
    if "codeberg.org" in host:
        return f"{normalized}/src/commit/{revision}/{relative}"
    return relative


def software_requirement(name: str, version: Optional[str] = None) -> Dict[str, Any]:
    requirement: Dict[str, Any] = {"@type": "SoftwareApplication", "name": name, "identifier": name}
    if version:
        requirement["version"] = version
    return requirement


def split_keywords(value: Any) -> List[str]:
    if isinstance(value, str):
        return [item.strip() for item in re.split(r"[,;]", value) if item.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


def compact(record: Dict[str, Any]) -> Dict[str, Any]:
    """Drop empty values so they never override real data during merging."""
    return {key: value for key, value in record.items() if value not in (None, "", [], {})}


def _clean(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


__all__ = [
    "CODEMETA_CONTEXT",
    "SPDX_BASE",
    "compact",
    "hosted_file_url",
    "license_url",
    "normalize_repository_url",
    "parse_people",
    "parse_person",
    "read_text",
    "software_requirement",
    "split_keywords",
]
