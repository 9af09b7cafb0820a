from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from codemeta_harvester.config import HarvestOptions
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable checkout builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def harvest_options(tmp_path: Path) -> HarvestOptions:
    """Run options writing into isolated cache and output directories."""
    return HarvestOptions(cache_dir=tmp_path / "cache", output_dir=tmp_path / "out")


@pytest.fixture(autouse=True)
def _reset_harvester_logger() -> Iterator[None]:
    """Detach handlers the CLI installs so later tests never write to closed streams."""
    yield
    logger = logging.getLogger("codemeta_harvester")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
