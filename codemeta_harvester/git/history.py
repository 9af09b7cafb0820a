"""Facts derived from a repository's commit history."""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional

_SHORTLOG_LINE = re.compile(r"^\s*(\d+)\s+(.+?)(?:\s+<([^>]*)>)?\s*$")
_BOT_MARKERS = ("[bot]", "dependabot", "renovate", "github-actions", "pre-commit-ci")


@dataclass(frozen=True)
class Contributor:
    """An author appearing in the commit history."""

    name: str
    email: Optional[str]
    commits: int


class GitHistory:
    """Reads contributors and commit dates through the git CLI."""

    def __init__(self, runner: Callable[..., str] | None = None) -> None:
        self._runner = runner or self._default_runner

    def contributors(self, repo: Path) -> List[Contributor]:
        """Return authors ordered by commit count, most active first."""
        output = self._run(["git", "shortlog", "-sne", "HEAD"], cwd=repo)
        contributors: List[Contributor] = []
        seen: set[str] = set()
        for line in output.splitlines():
            match = _SHORTLOG_LINE.match(line)
            if not match:
                continue
            name = match.group(2).strip()
            email = (match.group(3) or "").strip() or None
            if _looks_like_bot(name, email):
                continue
            key = (email or name).lower()
            if key in seen:
                continue
            seen.add(key)
            contributors.append(Contributor(name=name, email=email, commits=int(match.group(1))))
        contributors.sort(key=lambda item: (-item.commits, item.name.lower()))
        return contributors

    def first_commit_date(self, repo: Path) -> Optional[str]:
        output = self._run(["git", "log", "--reverse", "--format=%aI", "HEAD"], cwd=repo)
        for line in output.splitlines():
            if line.strip():
                return line.strip()[:10]
        return None

    def last_commit_date(self, repo: Path) -> Optional[str]:
        output = self._run(["git", "log", "-1", "--format=%aI", "HEAD"], cwd=repo).strip()
        return output[:10] or None

    def remote_url(self, repo: Path) -> Optional[str]:
        try:
            output = self._run(["git", "remote", "get-url", "origin"], cwd=repo).strip()
        except subprocess.CalledProcessError:
            return None
        return output or None

    def _run(self, args: Iterable[str], *, cwd: Path) -> str:
        return self._runner(args, cwd=cwd, capture_output=True)

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


def _looks_like_bot(name: str, email: Optional[str]) -> bool:
    haystack = f"{name} {email or ''}".lower()
    return any(marker in haystack for marker in _BOT_MARKERS)


__all__ = ["Contributor", "GitHistory"]
