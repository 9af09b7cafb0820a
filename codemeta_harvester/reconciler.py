"""Priority-based reconciliation of partial records into the final record."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, TextIO

from .config import ReconcileOptions
from .errors import NoSourcesError, ReconcileError
from .extractors.utils import CODEMETA_CONTEXT
from .git.checkout import parse_version_tag
from .logging import get_logger
from .models import FinalRecord, PartialRecord

ACCUMULATING_FIELDS = ("softwareHelp", "targetProduct")


@dataclass
class OverrideFields:
    """Authoritative fields applied after every extracted contribution."""

    identifier: Optional[str] = None
    code_repository: Optional[str] = None
    released: bool = False
    ref_name: Optional[str] = None
    base_uri: Optional[str] = None


def order_records(records: Iterable[PartialRecord]) -> List[PartialRecord]:
    """Arrange records lowest precedence first: rank descending, then staging order.

    The merge applies records in this order, so the numerically lowest rank is
    applied last and wins every conflict. Within one rank the later staged
    record wins.
    """
    return sorted(records, key=lambda record: (-record.rank, record.sequence))


def merge_records(
    base: Mapping[str, Any],
    update: Mapping[str, Any],
    accumulate: Sequence[str] = ACCUMULATING_FIELDS,
) -> Dict[str, Any]:
    """Overlay ``update`` onto ``base`` and return the merged copy."""
    merged = dict(base)
    for key, value in update.items():
        if key == "@context" and key in merged:
            merged[key] = _merge_context(merged[key], value)
        elif key in accumulate and key in merged:
            merged[key] = _merge_list(merged[key], value)
        else:
            merged[key] = value
    return merged


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return list(value) if isinstance(value, list) else [value]


def _merge_context(current: Any, incoming: Any) -> Any:
    contexts = _as_list(current)
    for item in _as_list(incoming):
        if item not in contexts:
            contexts.append(item)
    return contexts[0] if len(contexts) == 1 else contexts


def _identity(item: Any) -> Any:
    if isinstance(item, dict):
        return item.get("url") or item.get("@id") or json.dumps(item, sort_keys=True, default=str)
    return item


def _merge_list(current: Any, incoming: Any) -> List[Any]:
    items = _as_list(current)
    seen = {_identity(item) for item in items}
    for item in _as_list(incoming):
        key = _identity(item)
        if key in seen:
            continue
        seen.add(key)
        items.append(item)
    return items


class Reconciler:
    """Merges staged partial records and override fields into one CodeMeta record."""

    def __init__(self, options: ReconcileOptions | None = None) -> None:
        self.options = options or ReconcileOptions()
        self.logger = get_logger("reconciler")

    @property
    def accumulate(self) -> List[str]:
        fields = list(ACCUMULATING_FIELDS)
        fields.extend(name for name in self.options.accumulate if name not in fields)
        return fields

    def reconcile(
        self,
        identifier: str,
        records: Sequence[PartialRecord],
        overrides: OverrideFields,
        output: Path | None = None,
        *,
        stream: TextIO | None = None,
    ) -> FinalRecord:
        """Merge ``records`` and write the result to ``output`` or ``stream``."""
        if not records:
            self._remove(output)
            raise NoSourcesError(identifier, "no metadata sources")

        ordered = order_records(records)
        self.logger.debug(
            "Merge order for %s: %s",
            identifier,
            ", ".join(f"{record.rank}:{record.kind}" for record in ordered),
        )
        try:
            data: Dict[str, Any] = {}
            for record in ordered:
                contribution = json.loads(record.payload)
                if not isinstance(contribution, dict):
                    raise ValueError(f"{record.slot} is not a JSON object")
                data = merge_records(data, contribution, self.accumulate)
            data = self.apply_overrides(data, overrides)
            text = self.render(data)
            if output is not None:
                self.write(text, output)
            elif stream is not None:
                stream.write(text)
        except (OSError, TypeError, ValueError) as exc:
            self._remove(output)
            raise ReconcileError(identifier, f"merge failed: {exc}") from exc

        if output is not None:
            self.logger.info("Wrote %s", output)
        return FinalRecord(
            identifier=identifier,
            data=data,
            path=output,
            sources=[record.kind for record in ordered],
        )

    def apply_overrides(self, data: Mapping[str, Any], overrides: OverrideFields) -> Dict[str, Any]:
        result = dict(data)
        result.setdefault("@context", CODEMETA_CONTEXT)
        result.setdefault("@type", "SoftwareSourceCode")
        if overrides.identifier:
            result["identifier"] = overrides.identifier
        if overrides.code_repository:
            result["codeRepository"] = overrides.code_repository
        if overrides.released and "version" not in result and overrides.ref_name:
            if parse_version_tag(overrides.ref_name) is not None:
                result["version"] = overrides.ref_name.lstrip("vV")
        if overrides.base_uri and overrides.identifier:
            node_id = _join_uri(overrides.base_uri, overrides.identifier)
            if overrides.released and result.get("version"):
                node_id = f"{node_id}/{result['version']}"
            result["@id"] = node_id
        for name in self.options.drop:
            result.pop(name, None)
        return result

    def render(self, data: Mapping[str, Any]) -> str:
        return (
            json.dumps(
                data,
                indent=self.options.indent,
                sort_keys=self.options.sort_keys,
                ensure_ascii=False,
            )
            + "\n"
        )

    def write(self, text: str, output: Path) -> None:
        """Write ``text`` atomically so a failed write never leaves partial output."""
        output.parent.mkdir(parents=True, exist_ok=True)
        handle, temp_name = tempfile.mkstemp(
            prefix=f".{output.name}.", suffix=".tmp", dir=str(output.parent)
        )
        try:
            with os.fdopen(handle, "w", encoding="utf-8") as stream:
                stream.write(text)
            os.replace(temp_name, output)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise

    def _remove(self, output: Path | None) -> None:
        if output is not None and output.exists():
            self.logger.debug("Removing stale output %s", output)
            output.unlink()


def _join_uri(base: str, identifier: str) -> str:
    if base.endswith(("/", "#")):
        return f"{base}{identifier}"
    return f"{base}/{identifier}"


__all__ = ["ACCUMULATING_FIELDS", "OverrideFields", "Reconciler", "merge_records", "order_records"]
