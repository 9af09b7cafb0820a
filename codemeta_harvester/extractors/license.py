"""License file extractor recognising well-known license texts."""

from __future__ import annotations

import re
from typing import Iterable, Optional, Sequence, Tuple

from .base import Contribution, Extractor
from .utils import SPDX_BASE, read_text
from ..logging import get_logger
from ..models import ProjectContext, SourceMatch

# Ordered: more specific texts must be checked before the licenses they embed.
_LICENSE_MARKERS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("AGPL-3.0-only", ("gnu affero general public license", "version 3")),
    ("LGPL-3.0-only", ("gnu lesser general public license", "version 3")),
    ("LGPL-2.1-only", ("gnu lesser general public license", "version 2.1")),
    ("GPL-3.0-only", ("gnu general public license", "version 3")),
    ("GPL-2.0-only", ("gnu general public license", "version 2")),
    ("Apache-2.0", ("apache license", "version 2.0")),
    ("MPL-2.0", ("mozilla public license", "2.0")),
    ("EUPL-1.2", ("european union public licence", "v. 1.2")),
    ("MIT", ("permission is hereby granted, free of charge",)),
    ("BSD-3-Clause", ("redistribution and use in source and binary forms", "neither the name")),
    ("BSD-2-Clause", ("redistribution and use in source and binary forms",)),
    ("ISC", ("permission to use, copy, modify, and/or distribute this software",)),
    ("Unlicense", ("this is free and unencumbered software released into the public domain",)),
    ("CC0-1.0", ("creative commons legal code", "cc0 1.0 universal")),
)


def detect_license(text: str) -> Optional[str]:
    """Return the SPDX identifier of a license text, or None when unrecognised."""
    normalized = re.sub(r"\s+", " ", text.lower())
    for spdx, markers in _LICENSE_MARKERS:
        if all(marker in normalized for marker in markers):
            return spdx
    return None


class LicenseFileExtractor(Extractor):
    """Sets ``license`` when the license file matches a known text."""

    def __init__(self) -> None:
        self.logger = get_logger("extractors.license")

    def extract(self, source: SourceMatch, context: ProjectContext) -> Iterable[Contribution]:
        spdx = detect_license(read_text(source.path))
        if spdx is None:
            self.logger.info("License text in %s not recognised", source.path.name)
            return []
        return [{"license": SPDX_BASE + spdx}]


__all__ = ["LicenseFileExtractor", "detect_license"]
