"""FastAPI application entrypoint for codemeta-harvester service mode."""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..config import HarvestOptions, ProjectConfig, default_cache_dir
from ..errors import ConfigError, FatalError, ProjectError
from ..harvester import Harvester, ProjectOutcome

HarvesterFactory = Callable[[bool], Harvester]


class HarvestRequest(BaseModel):
    identifier: str
    source: str
    root: Optional[str] = None
    scandirs: List[str] = Field(default_factory=list)
    services: List[str] = Field(default_factory=list)
    ref: Optional[str] = None
    strict: bool = False


class HarvestResponse(BaseModel):
    identifier: str
    record: Dict[str, Any]
    output: Optional[str] = None
    failed_services: List[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str


def _default_harvester(strict: bool) -> Harvester:
    cache_dir = default_cache_dir()
    options = HarvestOptions(
        cache_dir=cache_dir,
        output_dir=cache_dir / "records",
        strict=strict,
    )
    return Harvester(options)


def create_app(harvester_factory: HarvesterFactory = _default_harvester) -> FastAPI:
    """Create the FastAPI application exposing harvest operations."""

    app = FastAPI(title="CodeMeta Harvester", version=__version__)
    project_locks: Dict[str, threading.Lock] = {}
    registry_lock = threading.Lock()

    def _project_lock(identifier: str) -> threading.Lock:
        # One cache entry per identifier; harvests of the same project run one at a time.
        with registry_lock:
            return project_locks.setdefault(identifier, threading.Lock())

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/harvest", response_model=HarvestResponse)
    async def harvest(payload: HarvestRequest) -> HarvestResponse:
        identifier = payload.identifier.strip()
        source = payload.source.strip()
        if not identifier or not source:
            raise ConfigError("identifier and source must not be empty")

        config = ProjectConfig(
            identifier=identifier,
            source=source,
            root=payload.root,
            scandirs=list(payload.scandirs),
            services=list(payload.services),
            ref=payload.ref,
        )
        harvester = harvester_factory(payload.strict)

        def _run() -> ProjectOutcome:
            with _project_lock(identifier):
                harvester.prepare_output_dir()
                return harvester.harvest_project(config)

        loop = asyncio.get_running_loop()
        outcome = await loop.run_in_executor(None, _run)
        return HarvestResponse(
            identifier=outcome.identifier,
            record=outcome.record.data if outcome.record is not None else {},
            output=str(outcome.output) if outcome.output is not None else None,
            failed_services=outcome.failed_services,
        )

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(FatalError)
    async def fatal_error_handler(_: Any, exc: FatalError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.exception_handler(ProjectError)
    async def project_error_handler(_: Any, exc: ProjectError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc), "identifier": exc.identifier},
        )

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    app = create_app()
    uvicorn.run(app, host=host, port=port)
