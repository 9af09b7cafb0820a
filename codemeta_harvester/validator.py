"""Structural validation of staged partial records."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

from .models import PartialRecord


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a single partial record."""

    valid: bool
    reason: Optional[str] = None


class PartialRecordValidator:
    """Accepts a partial record only when its payload parses as a JSON object."""

    def validate(self, record: PartialRecord) -> ValidationResult:
        try:
            data = json.loads(record.payload)
        except (TypeError, ValueError) as exc:
            return ValidationResult(False, f"not valid JSON: {exc}")
        if not isinstance(data, dict):
            return ValidationResult(False, f"expected a JSON object, got {type(data).__name__}")
        return ValidationResult(True)


__all__ = ["PartialRecordValidator", "ValidationResult"]
