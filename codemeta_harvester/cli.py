"""CLI entrypoint for codemeta-harvester."""

from __future__ import annotations

import argparse
import shutil
import sys
from pathlib import Path

from .config import (
    HarvestOptions,
    default_cache_dir,
    load_project_configs,
    parse_reconcile_options,
)
from .errors import CacheError, DependencyError, FatalError, ProjectError
from .harvester import Harvester
from .logging import configure_logging, flush_diagnostics, get_logger

EXIT_PROJECT_FAILED = 1
EXIT_FATAL = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codemeta-harvester",
        description=(
            "Harvest software metadata from a repository and reconcile it into "
            "a single codemeta.json record."
        ),
    )
    parser.add_argument(
        "targets",
        nargs="*",
        metavar="TARGET",
        help=(
            "Project configuration files or directories holding them. Without "
            "targets the current directory is harvested in place."
        ),
    )
    parser.add_argument(
        "--regen",
        action="store_true",
        help="Ignore an existing codemeta.json and overwrite it with the rebuilt record.",
    )
    parser.add_argument(
        "--ignore",
        action="store_true",
        help="Ignore an existing codemeta.json for this run only.",
    )
    parser.add_argument("--baseuri", help="Base URI used to build the record @id.")
    parser.add_argument(
        "--opts",
        help="Reconciliation options as key=value tokens (indent, sort-keys, accumulate, drop).",
    )
    parser.add_argument("--identifier", help="Project identifier in local mode.")
    parser.add_argument(
        "--cache-dir",
        type=Path,
        help="Directory holding checkouts and the staging area.",
    )
    parser.add_argument(
        "--outputdir",
        type=Path,
        default=Path("."),
        help="Directory receiving <id>.codemeta.json and <id>.harvest.log (batch mode).",
    )
    parser.add_argument("--debug", action="store_true", help="Enable verbose diagnostic logging.")
    parser.add_argument(
        "--keep",
        action="store_true",
        help="Keep staged partial records after the run.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort a project on the first sub-extraction failure.",
    )
    parser.add_argument(
        "--stdout",
        action="store_true",
        help="Print the final record instead of writing a file.",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Skip sources that need network access.",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Run the HTTP service instead of harvesting.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Service bind address.")
    parser.add_argument("--port", type=int, default=8000, help="Service port.")
    return parser


def _build_options(args: argparse.Namespace) -> HarvestOptions:
    return HarvestOptions(
        cache_dir=(args.cache_dir or default_cache_dir()).expanduser(),
        output_dir=args.outputdir.expanduser(),
        base_uri=args.baseuri,
        regenerate=bool(args.regen),
        ignore_existing=bool(args.ignore),
        strict=bool(args.strict),
        keep_intermediate=bool(args.keep),
        stdout=bool(args.stdout),
        offline=bool(args.offline),
        identifier=args.identifier,
        reconcile=parse_reconcile_options(args.opts),
    )


def _require_git() -> None:
    if shutil.which("git") is None:
        raise DependencyError("git executable not found on PATH")


def _prepare_cache(options: HarvestOptions) -> None:
    try:
        options.cache_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise CacheError(f"Unable to create cache directory {options.cache_dir}: {exc}") from exc


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for codemeta-harvester."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(debug=bool(args.debug))
    logger = get_logger("cli")

    if args.serve:
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return

    try:
        options = _build_options(args)
        configs = load_project_configs(args.targets) if args.targets else []
        _require_git()
        _prepare_cache(options)
        harvester = Harvester(options)
        if args.targets:
            outcomes = harvester.run_batch(configs)
            failures = sum(1 for outcome in outcomes if not outcome.ok)
        else:
            try:
                harvester.harvest_local(Path.cwd())
                failures = 0
            except ProjectError as exc:
                logger.error("Harvest failed: %s", exc)
                failures = 1
    except FatalError as exc:
        logger.error("%s", exc)
        flush_diagnostics()
        parser.exit(EXIT_FATAL, f"codemeta-harvester: {exc}\n")

    if failures:
        parser.exit(
            EXIT_PROJECT_FAILED,
            f"codemeta-harvester: {failures} project(s) failed. Run with --debug for details.\n",
        )


if __name__ == "__main__":
    main(sys.argv[1:])
