"""Cache entries and checkouts of project repositories."""

from __future__ import annotations

import re
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence, Tuple

from ..errors import CacheError, CheckoutError, CloneError, FetchError
from ..logging import get_logger
from ..models import Ref

_VERSION_TAG = re.compile(r"^v?(\d+(?:\.\d+)*)$")
_FALLBACK_BRANCHES = ("main", "master")


def parse_version_tag(tag: str) -> Optional[Tuple[int, ...]]:
    """Return the numeric components of a semantic version tag, or None."""
    match = _VERSION_TAG.match(tag.strip())
    if not match:
        return None
    return tuple(int(part) for part in match.group(1).split("."))


def latest_version_tag(tags: Iterable[str]) -> Optional[str]:
    """Pick the highest version tag, comparing components numerically."""
    best: Optional[str] = None
    best_key: Optional[Tuple[int, ...]] = None
    for tag in tags:
        key = parse_version_tag(tag)
        if key is None:
            continue
        if best_key is None or key > best_key:
            best, best_key = tag.strip(), key
    return best


class CheckoutManager:
    """Maintains one working copy per project identifier under the cache directory."""

    def __init__(self, cache_dir: Path, runner: Callable[..., str] | None = None) -> None:
        self.cache_dir = cache_dir
        self.checkouts_dir = cache_dir / "checkouts"
        self._runner = runner or self._default_runner
        self.logger = get_logger("checkout")

    def entry_path(self, identifier: str) -> Path:
        return self.checkouts_dir / identifier

    def ensure_checkout(
        self,
        identifier: str,
        source_url: str,
        ref: str | None = None,
    ) -> Tuple[Path, Ref]:
        """Clone or update the cache entry and check out the resolved ref."""
        entry = self.entry_path(identifier)
        if self._is_valid_entry(entry):
            self._fetch(identifier, entry)
        else:
            self._clone(identifier, source_url, entry)

        resolved = self.resolve_ref(identifier, entry, ref)
        self._checkout(identifier, entry, resolved)
        return entry, resolved

    def resolve_ref(self, identifier: str, repo: Path, ref: str | None) -> Ref:
        """Resolve an explicit ref, or fall back to the latest version tag or default branch."""
        if ref:
            return self._classify_ref(repo, ref)

        tags = self._run(["git", "tag", "--list"], cwd=repo, capture_output=True)
        tag = latest_version_tag(line for line in tags.splitlines() if line.strip())
        if tag is not None:
            self.logger.info("Resolved %s to latest version tag %s", identifier, tag)
            return Ref(name=tag, kind="tag")

        branch = self.default_branch(repo)
        if branch is None:
            raise CheckoutError(identifier, "unable to determine the default branch")
        self.logger.info("No version tags for %s; using default branch %s", identifier, branch)
        return Ref(name=branch, kind="branch", target=f"origin/{branch}")

    def default_branch(self, repo: Path) -> Optional[str]:
        try:
            head = self._run(
                ["git", "symbolic-ref", "--short", "refs/remotes/origin/HEAD"],
                cwd=repo,
                capture_output=True,
            ).strip()
        except subprocess.CalledProcessError:
            head = ""
        if head:
            return head.split("/", 1)[1] if head.startswith("origin/") else head
        for candidate in _FALLBACK_BRANCHES:
            if self._ref_exists(repo, f"refs/remotes/origin/{candidate}"):
                return candidate
        return None

    def describe(self, path: Path) -> Optional[Ref]:
        """Return the ref currently checked out in a local working copy."""
        if not (path / ".git").exists():
            return None
        try:
            tag = self._run(
                ["git", "describe", "--tags", "--exact-match"], cwd=path, capture_output=True
            ).strip()
        except subprocess.CalledProcessError:
            tag = ""
        if tag:
            return Ref(name=tag, kind="tag")
        try:
            branch = self._run(
                ["git", "rev-parse", "--abbrev-ref", "HEAD"], cwd=path, capture_output=True
            ).strip()
            if branch and branch != "HEAD":
                return Ref(name=branch, kind="branch")
            commit = self._run(["git", "rev-parse", "HEAD"], cwd=path, capture_output=True).strip()
        except subprocess.CalledProcessError:
            return None
        return Ref(name=commit, kind="commit") if commit else None

    def remote_url(self, path: Path) -> Optional[str]:
        if not (path / ".git").exists():
            return None
        try:
            url = self._run(
                ["git", "remote", "get-url", "origin"], cwd=path, capture_output=True
            ).strip()
        except subprocess.CalledProcessError:
            return None
        return url or None

    # ------------------------------------------------------------------
    # Internals

    @staticmethod
    def _is_valid_entry(entry: Path) -> bool:
        return (entry / ".git").is_dir()

    def _clone(self, identifier: str, source_url: str, entry: Path) -> None:
        try:
            self.checkouts_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheError(f"Unable to create cache directory {self.checkouts_dir}: {exc}") from exc

        if entry.exists():
            self.logger.warning("Discarding incomplete cache entry %s", entry)
            shutil.rmtree(entry)

        # Clone next to the entry and rename on success so a failed clone never looks valid.
        partial = self.checkouts_dir / f".{identifier}.partial"
        if partial.exists():
            shutil.rmtree(partial)

        self.logger.info("Cloning %s into %s", source_url, entry)
        try:
            self._run(
                ["git", "clone", "--filter=blob:none", "--no-checkout", source_url, str(partial)],
                cwd=self.checkouts_dir,
            )
        except (subprocess.CalledProcessError, OSError) as exc:
            shutil.rmtree(partial, ignore_errors=True)
            raise CloneError(identifier, f"clone of {source_url} failed: {exc}") from exc
        partial.rename(entry)

    def _fetch(self, identifier: str, entry: Path) -> None:
        self.logger.info("Updating cached checkout %s", entry)
        try:
            self._run(["git", "fetch", "--tags", "--force", "--prune", "origin"], cwd=entry)
        except (subprocess.CalledProcessError, OSError) as exc:
            raise FetchError(identifier, f"fetch in {entry} failed: {exc}") from exc

    def _checkout(self, identifier: str, entry: Path, ref: Ref) -> None:
        self.logger.info("Checking out %s (%s) for %s", ref.name, ref.kind, identifier)
        try:
            self._run(["git", "checkout", "--force", "--detach", ref.checkout_target], cwd=entry)
        except (subprocess.CalledProcessError, OSError) as exc:
            raise CheckoutError(identifier, f"checkout of {ref.name} failed: {exc}") from exc

    def _classify_ref(self, repo: Path, ref: str) -> Ref:
        if self._ref_exists(repo, f"refs/tags/{ref}"):
            return Ref(name=ref, kind="tag")
        if self._ref_exists(repo, f"refs/remotes/origin/{ref}"):
            return Ref(name=ref, kind="branch", target=f"origin/{ref}")
        return Ref(name=ref, kind="commit")

    def _ref_exists(self, repo: Path, refname: str) -> bool:
        try:
            self._run(
                ["git", "rev-parse", "--verify", "--quiet", refname],
                cwd=repo,
                capture_output=True,
            )
        except subprocess.CalledProcessError:
            return False
        return True

    def _run(
        self,
        args: Sequence[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        self.logger.debug("Running %s in %s", " ".join(args), cwd)
        return self._runner(args, cwd=cwd, capture_output=capture_output)

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=capture_output,
        )
        return completed.stdout if capture_output else ""


__all__ = ["CheckoutManager", "latest_version_tag", "parse_version_tag"]
