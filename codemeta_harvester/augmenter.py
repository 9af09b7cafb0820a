"""Folds metadata scraped from running service endpoints into final records."""

from __future__ import annotations

import json
from html.parser import HTMLParser
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import requests

from .errors import AugmentError
from .extractors.utils import compact
from .logging import get_logger
from .reconciler import Reconciler, merge_records

Scraper = Callable[[str], Mapping[str, Any]]


class _PageMetadataParser(HTMLParser):
    """Collects ``<title>``, the meta description and OpenGraph properties."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.title: Optional[str] = None
        self.meta: Dict[str, str] = {}
        self._in_title = False
        self._title_parts: List[str] = []

    def handle_starttag(self, tag: str, attrs: List[tuple]) -> None:
        if tag == "title":
            self._in_title = True
            return
        if tag != "meta":
            return
        values = {name.lower(): value for name, value in attrs if name and value is not None}
        key = values.get("property") or values.get("name")
        content = values.get("content")
        if key and content:
            self.meta.setdefault(key.lower(), content.strip())

    def handle_endtag(self, tag: str) -> None:
        if tag == "title" and self._in_title:
            self._in_title = False
            self.title = " ".join("".join(self._title_parts).split()) or None

    def handle_data(self, data: str) -> None:
        if self._in_title:
            self._title_parts.append(data)


def parse_service_page(html: str, url: str) -> Dict[str, Any]:
    """Describe the web application served at ``url`` from its landing page."""
    parser = _PageMetadataParser()
    parser.feed(html)
    parser.close()
    application = compact(
        {
            "@type": "WebApplication",
            "name": parser.meta.get("og:title") or parser.title,
            "description": parser.meta.get("og:description") or parser.meta.get("description"),
            "url": parser.meta.get("og:url") or url,
        }
    )
    return {"targetProduct": [application]}


class ServiceAugmenter:
    """Merges what a service endpoint advertises about itself into a record."""

    def __init__(
        self,
        scraper: Scraper | None = None,
        session: requests.Session | None = None,
        reconciler: Reconciler | None = None,
        timeout: float | None = None,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self._scraper = scraper or self._fetch_page
        self.reconciler = reconciler or Reconciler()
        self.logger = get_logger("augmenter")

    def augment(self, identifier: str, record_path: Path, url: str) -> Dict[str, Any]:
        """Fold ``url`` into the record stored at ``record_path`` and rewrite it."""
        try:
            base = json.loads(record_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise AugmentError(f"{identifier}: cannot read {record_path}: {exc}") from exc
        if not isinstance(base, dict):
            raise AugmentError(f"{identifier}: {record_path} does not hold a JSON object")

        merged = self.augment_record(identifier, base, url)
        try:
            self.reconciler.write(self.reconciler.render(merged), record_path)
        except OSError as exc:
            raise AugmentError(f"{identifier}: cannot rewrite {record_path}: {exc}") from exc
        return merged

    def augment_record(self, identifier: str, record: Mapping[str, Any], url: str) -> Dict[str, Any]:
        """Return ``record`` with the metadata scraped from ``url`` merged in."""
        self.logger.info("Augmenting %s with service %s", identifier, url)
        try:
            partial = self._scraper(url)
        except AugmentError:
            raise
        except (requests.RequestException, ValueError) as exc:
            raise AugmentError(f"{identifier}: service {url} failed: {exc}") from exc
        if not isinstance(partial, Mapping):
            raise AugmentError(f"{identifier}: service {url} produced no metadata")
        return merge_records(record, partial, self.reconciler.accumulate)

    def augment_all(
        self,
        identifier: str,
        urls: Sequence[str],
        *,
        record_path: Path | None = None,
        record: Mapping[str, Any] | None = None,
    ) -> tuple[Dict[str, Any] | None, List[str]]:
        """Apply every service URL in order; returns the last record and the failed URLs.

        Each URL starts from the record the previous one produced. A failing URL
        is logged and skipped.
        """
        current = dict(record) if record is not None else None
        failed: List[str] = []
        for url in urls:
            try:
                if record_path is not None:
                    current = self.augment(identifier, record_path, url)
                else:
                    current = self.augment_record(identifier, current or {}, url)
            except AugmentError as exc:
                self.logger.error("%s", exc)
                failed.append(url)
        return current, failed

    def _fetch_page(self, url: str) -> Dict[str, Any]:
        response = self.session.get(url, timeout=self.timeout)
        if response.status_code != 200:
            raise AugmentError(f"service {url} returned HTTP {response.status_code}")
        return parse_service_page(response.text, url)


__all__ = ["ServiceAugmenter", "parse_service_page"]
