"""Pipeline orchestration: checkout, scan, extract, validate, reconcile, augment."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, TextIO

from .augmenter import ServiceAugmenter
from .catalog import EXPLICIT_KIND, ScanHints
from .config import HarvestOptions, ProjectConfig
from .errors import CacheError, ExtractionError, NoSourcesError, ProjectError, StrictModeError
from .extractors import Extractor, discover_extractors
from .extractors.utils import normalize_repository_url
from .git.checkout import CheckoutManager
from .logging import get_logger, project_log
from .models import FinalRecord, PartialRecord, ProjectContext, Ref, SourceMatch
from .reconciler import OverrideFields, Reconciler
from .source_scanner import SourceScanner
from .staging import StagingArea
from .validator import PartialRecordValidator


@dataclass
class ProjectOutcome:
    """Result of harvesting one project."""

    identifier: str
    record: Optional[FinalRecord] = None
    output: Optional[Path] = None
    error: Optional[str] = None
    failed_services: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


class Harvester:
    """Runs the harvest pipeline for one project at a time."""

    def __init__(
        self,
        options: HarvestOptions,
        *,
        checkout_manager: CheckoutManager | None = None,
        scanner: SourceScanner | None = None,
        extractors: Optional[Mapping[str, Extractor]] = None,
        validator: PartialRecordValidator | None = None,
        reconciler: Reconciler | None = None,
        augmenter: ServiceAugmenter | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self.options = options
        self.checkout = checkout_manager or CheckoutManager(options.cache_dir)
        self.scanner = scanner or SourceScanner()
        self.extractors: Dict[str, Extractor] = (
            dict(extractors) if extractors is not None else discover_extractors()
        )
        self.validator = validator or PartialRecordValidator()
        self.reconciler = reconciler or Reconciler(options.reconcile)
        self.augmenter = augmenter or ServiceAugmenter(reconciler=self.reconciler)
        self.stream = stream or sys.stdout
        self.logger = get_logger("harvester")

    # ------------------------------------------------------------------
    # Entry points

    def run_batch(self, configs: Iterable[ProjectConfig]) -> List[ProjectOutcome]:
        """Harvest every configured project; one failure never stops the others."""
        if not self.options.stdout:
            self.prepare_output_dir()

        outcomes: List[ProjectOutcome] = []
        for config in configs:
            log_file = None
            if not self.options.stdout:
                log_file = self.options.output_dir / f"{config.identifier}.harvest.log"
            with project_log(log_file):
                try:
                    outcome = self.harvest_project(config)
                except ProjectError as exc:
                    self.logger.error("Harvest of %s failed: %s", config.identifier, exc)
                    outcome = ProjectOutcome(identifier=config.identifier, error=str(exc))
            outcomes.append(outcome)

        failed = [outcome.identifier for outcome in outcomes if not outcome.ok]
        self.logger.info(
            "Harvested %d of %d project(s)", len(outcomes) - len(failed), len(outcomes)
        )
        if failed:
            self.logger.warning("Failed project(s): %s", ", ".join(failed))
        return outcomes

    def harvest_project(self, config: ProjectConfig) -> ProjectOutcome:
        """Harvest a configured remote project into ``<outputdir>/<id>.codemeta.json``."""
        identifier = config.identifier
        output = None if self.options.stdout else self.output_path(identifier)
        self.logger.info("Harvesting %s from %s", identifier, config.source)
        try:
            checkout, ref = self.checkout.ensure_checkout(identifier, config.source, config.ref)
            root = checkout / config.root if config.root else checkout
            record = self._harvest(
                identifier,
                root=root,
                repository=checkout,
                source_url=normalize_repository_url(config.source) or config.source,
                ref=ref,
                scandirs=config.scandirs,
                output=output,
            )
            failed_services = self._augment(identifier, record, config.services, output)
        except ProjectError:
            self._remove_output(output)
            raise

        if output is None:
            self.stream.write(self.reconciler.render(record.data))
        return ProjectOutcome(
            identifier=identifier,
            record=record,
            output=output,
            failed_services=failed_services,
        )

    def harvest_local(self, path: str | Path = ".") -> ProjectOutcome:
        """Harvest a working directory in place.

        The record is built in the cache and installed as ``codemeta.json``
        when none existed or regeneration was requested; otherwise it is
        printed.
        """
        root = Path(path).expanduser().resolve()
        identifier = self.options.identifier or root.name
        installed = root / "codemeta.json"
        existed = installed.exists()
        output = None if self.options.stdout else self.options.cache_dir / f"{identifier}.codemeta.json"

        repository = root if (root / ".git").exists() else None
        ref = self.checkout.describe(root) if repository is not None else None
        remote = self.checkout.remote_url(root) if repository is not None else None
        if ref is not None:
            self.logger.info("Working copy of %s is at %s (%s)", identifier, ref.name, ref.kind)

        try:
            record = self._harvest(
                identifier,
                root=root,
                repository=repository,
                source_url=normalize_repository_url(remote),
                ref=ref,
                scandirs=(),
                output=output,
            )
        except ProjectError:
            self._remove_output(output)
            raise

        text = self.reconciler.render(record.data)
        if output is not None and (not existed or self.options.regenerate):
            self.reconciler.write(text, installed)
            self.logger.info("Installed %s", installed)
            return ProjectOutcome(identifier=identifier, record=record, output=installed)

        self.stream.write(text)
        return ProjectOutcome(identifier=identifier, record=record, output=output)

    def output_path(self, identifier: str) -> Path:
        return self.options.output_dir / f"{identifier}.codemeta.json"

    # ------------------------------------------------------------------
    # Pipeline

    def _harvest(
        self,
        identifier: str,
        *,
        root: Path,
        repository: Optional[Path],
        source_url: Optional[str],
        ref: Optional[Ref],
        scandirs: Sequence[str],
        output: Optional[Path],
    ) -> FinalRecord:
        staging = StagingArea(
            self.options.staging_dir, identifier, keep=self.options.keep_intermediate
        )
        try:
            staging.reset()
        except OSError as exc:
            raise CacheError(f"Unable to prepare staging area {staging.directory}: {exc}") from exc

        context = ProjectContext(
            identifier=identifier,
            root=root,
            repository=repository,
            staging_dir=staging.directory,
            source_url=source_url,
            ref=ref,
            offline=self.options.offline,
        )
        try:
            try:
                sources = self.scanner.scan(
                    root,
                    scandirs,
                    ScanHints(repository=repository, source_url=source_url, offline=self.options.offline),
                )
            except NotADirectoryError as exc:
                raise NoSourcesError(identifier, str(exc)) from exc

            if not self._short_circuit(sources, staging, context):
                for match in sources:
                    if match.kind == EXPLICIT_KIND:
                        continue
                    self._dispatch(match, staging, context)

            candidates = self._validate(staging, identifier)
            return self.reconciler.reconcile(
                identifier,
                candidates,
                self._overrides(context),
                output,
            )
        finally:
            staging.cleanup()

    def _short_circuit(
        self,
        sources: Sequence[SourceMatch],
        staging: StagingArea,
        context: ProjectContext,
    ) -> bool:
        """Stage the explicit record alone when it exists and is well-formed."""
        explicit = next((match for match in sources if match.kind == EXPLICIT_KIND), None)
        if explicit is None:
            return False
        if self.options.regenerate or self.options.ignore_existing:
            self.logger.info("Ignoring existing %s for %s", explicit.path.name, context.identifier)
            return False

        staged = self._dispatch(explicit, staging, context)
        if staged and all(self.validator.validate(record).valid for record in staged):
            self.logger.info(
                "Using existing %s for %s; skipping automatic extraction",
                explicit.path.name,
                context.identifier,
            )
            return True
        self.logger.warning(
            "Existing %s for %s is not usable; falling back to automatic extraction",
            explicit.path.name,
            context.identifier,
        )
        return False

    def _dispatch(
        self,
        match: SourceMatch,
        staging: StagingArea,
        context: ProjectContext,
    ) -> List[PartialRecord]:
        extractor = self.extractors.get(match.kind)
        if extractor is None:
            self.logger.warning("No extractor registered for %s sources", match.kind)
            return []

        staging.clear_slot(match.rank, match.kind)
        self.logger.debug("Running %s extractor on %s", match.kind, match.path)
        try:
            contributions = list(extractor.extract(match, context))
        except ExtractionError as exc:
            self._recoverable(context.identifier, f"{match.kind} extraction failed: {exc}")
            return []
        except Exception as exc:
            # Third-party extractors may raise anything; treat it like an extraction failure.
            self._recoverable(
                context.identifier,
                f"{match.kind} extractor raised {exc.__class__.__name__}: {exc}",
            )
            return []

        staged: List[PartialRecord] = []
        for contribution in contributions:
            if not isinstance(contribution, (str, Mapping)):
                self._recoverable(
                    context.identifier,
                    f"{match.kind} extractor produced a {type(contribution).__name__}",
                )
                continue
            staged.append(staging.stage(match.rank, match.kind, contribution))
        if not staged:
            self.logger.debug("%s extractor contributed nothing", match.kind)
        return staged

    def _validate(self, staging: StagingArea, identifier: str) -> List[PartialRecord]:
        for record in staging.records():
            result = self.validator.validate(record)
            if result.valid:
                continue
            staging.discard(record)
            self._recoverable(
                identifier,
                f"discarding invalid {record.kind} record {record.slot}: {result.reason}",
            )
        return staging.records()

    def _overrides(self, context: ProjectContext) -> OverrideFields:
        return OverrideFields(
            identifier=context.identifier,
            code_repository=context.source_url,
            released=context.released,
            ref_name=context.ref.name if context.ref is not None else None,
            base_uri=self.options.base_uri,
        )

    def _augment(
        self,
        identifier: str,
        record: FinalRecord,
        services: Sequence[str],
        output: Optional[Path],
    ) -> List[str]:
        if not services:
            return []
        data, failed = self.augmenter.augment_all(
            identifier,
            services,
            record_path=output,
            record=record.data if output is None else None,
        )
        if data is not None:
            record.data = data
        if failed and self.options.strict:
            raise StrictModeError(identifier, f"service augmentation failed for {', '.join(failed)}")
        return failed

    def _recoverable(self, identifier: str, message: str) -> None:
        if self.options.strict:
            raise StrictModeError(identifier, message)
        self.logger.error("%s: %s", identifier, message)

    def prepare_output_dir(self) -> None:
        try:
            self.options.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheError(
                f"Unable to create output directory {self.options.output_dir}: {exc}"
            ) from exc

    def _remove_output(self, output: Optional[Path]) -> None:
        if output is not None and output.exists():
            self.logger.info("Removing stale output %s", output)
            output.unlink()


__all__ = ["Harvester", "ProjectOutcome"]
