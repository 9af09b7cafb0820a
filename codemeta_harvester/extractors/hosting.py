"""Extractor querying the REST API of the hosting service (GitHub, GitLab)."""

from __future__ import annotations

import os
from typing import Any, Dict, Iterable, Optional, Tuple
from urllib.parse import quote, urlparse

import requests

from .base import Contribution, Extractor
from .utils import compact, license_url, normalize_repository_url
from ..catalog import hosting_service
from ..errors import ExtractionError
from ..logging import get_logger
from ..models import ProjectContext, SourceMatch

GITHUB_API = "https://api.github.com"
GITLAB_API = "https://gitlab.com/api/v4"


def repository_path(url: str) -> Optional[str]:
    """Return ``owner/name`` (or the full GitLab namespace) of a hosted repository URL."""
    normalized = normalize_repository_url(url)
    if not normalized:
        return None
    path = urlparse(normalized).path.strip("/")
    return path or None


class HostingApiExtractor(Extractor):
    """Fetches description, topics, license and tracker links from the hosting API."""

    def __init__(self, session: requests.Session | None = None, timeout: float | None = None) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self.logger = get_logger("extractors.hosting")

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        if not context.source_url:
            return []
        service = hosting_service(context.source_url)
        path = repository_path(context.source_url)
        if service is None or path is None:
            return []

        if service == "github.com":
            url, headers = self._github_request(path)
            record = self._from_github(self._get(url, headers))
        else:
            url, headers = self._gitlab_request(path)
            record = self._from_gitlab(self._get(url, headers))
        return [compact(record)]

    def _get(self, url: str, headers: Dict[str, str]) -> Dict[str, Any]:
        self.logger.debug("Querying hosting API %s", url)
        try:
            response = self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ExtractionError(f"Request to {url} failed: {exc}") from exc
        if response.status_code != 200:
            raise ExtractionError(f"{url} returned HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise ExtractionError(f"{url} did not return JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ExtractionError(f"{url} returned an unexpected payload")
        return payload

    @staticmethod
    def _github_request(path: str) -> Tuple[str, Dict[str, str]]:
        headers = {"Accept": "application/vnd.github+json"}
        token = os.environ.get("GITHUB_TOKEN")
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return f"{GITHUB_API}/repos/{path}", headers

    @staticmethod
    def _gitlab_request(path: str) -> Tuple[str, Dict[str, str]]:
        headers: Dict[str, str] = {}
        token = os.environ.get("GITLAB_TOKEN")
        if token:
            headers["PRIVATE-TOKEN"] = token
        return f"{GITLAB_API}/projects/{quote(path, safe='')}", headers

    @staticmethod
    def _from_github(payload: Dict[str, Any]) -> Dict[str, Any]:
        html_url = payload.get("html_url")
        license_info = payload.get("license") if isinstance(payload.get("license"), dict) else {}
        spdx = license_info.get("spdx_id")
        record: Dict[str, Any] = {
            "description": payload.get("description"),
            "keywords": [topic for topic in payload.get("topics") or [] if isinstance(topic, str)],
            "license": license_url(spdx) if spdx and spdx != "NOASSERTION" else None,
            "url": payload.get("homepage") or None,
            "dateCreated": (payload.get("created_at") or "")[:10] or None,
        }
        if html_url and payload.get("has_issues", True):
            record["issueTracker"] = f"{html_url}/issues"
        owner = payload.get("owner") if isinstance(payload.get("owner"), dict) else {}
        if owner.get("type") == "Organization" and owner.get("login"):
            record["producer"] = compact(
                {"@type": "Organization", "name": owner["login"], "url": owner.get("html_url")}
            )
        return record

    @staticmethod
    def _from_gitlab(payload: Dict[str, Any]) -> Dict[str, Any]:
        web_url = payload.get("web_url")
        topics = payload.get("topics") or payload.get("tag_list") or []
        record: Dict[str, Any] = {
            "description": payload.get("description"),
            "keywords": [topic for topic in topics if isinstance(topic, str)],
            "dateCreated": (payload.get("created_at") or "")[:10] or None,
        }
        if web_url and payload.get("issues_enabled", True):
            record["issueTracker"] = f"{web_url}/-/issues"
        return record


__all__ = ["HostingApiExtractor", "repository_path"]
