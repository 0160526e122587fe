"""Git subprocess helpers and diff sources."""

from __future__ import annotations

from pathlib import Path
from subprocess import CalledProcessError, run
from typing import Protocol


class GitError(RuntimeError):
    """Raised when git command execution fails."""


# Explicit prefixes override diff.noprefix and diff.mnemonicPrefix.
DIFF_FORMAT_ARGS = ("-U0", "--no-color", "--no-ext-diff", "--src-prefix=a/", "--dst-prefix=b/")
STAGED_DIFF_ARGS = ("diff", "--cached", *DIFF_FORMAT_ARGS)


class DiffSource(Protocol):
    """Anything that can produce unified diff text."""

    label: str

    def read_diff(self) -> str:
        """Return zero-context unified diff text."""


class StagedDiffSource:
    """Staged (index) changes of a repository."""

    label = "git_staged"

    def __init__(self, repo: Path) -> None:
        self.repo = repo

    def read_diff(self) -> str:
        return get_staged_diff(self.repo)


class RangeDiffSource:
    """Changes between two revisions."""

    label = "git_range"

    def __init__(self, repo: Path, base: str, head: str) -> None:
        self.repo = repo
        self.base = base
        self.head = head

    def read_diff(self) -> str:
        return get_diff_between(self.repo, self.base, self.head)


class TextDiffSource:
    """Diff text supplied directly, e.g. from a file or stdin."""

    def __init__(self, text: str, label: str = "text") -> None:
        self.text = text
        self.label = label

    def read_diff(self) -> str:
        return self.text


def is_inside_work_tree(repo: Path) -> bool:
    """Return True when ``repo`` is inside a git working tree."""
    try:
        return _run_git(repo, ["rev-parse", "--is-inside-work-tree"]).strip() == "true"
    except GitError:
        return False


def has_staged_changes(repo: Path) -> bool:
    """Return True when the index differs from HEAD."""
    try:
        run(
            ["git", "diff", "--cached", "--quiet"],
            cwd=repo,
            check=True,
            capture_output=True,
            text=True,
        )
    except CalledProcessError as exc:
        if exc.returncode == 1:
            return True
        stderr = (exc.stderr or "").strip()
        raise GitError(stderr or "failed to check for staged changes") from exc
    except OSError as exc:
        raise GitError(f"failed to run git: {exc}") from exc
    return False


def get_staged_diff(repo: Path) -> str:
    """Return staged changes with no context lines."""
    return _run_git(repo, list(STAGED_DIFF_ARGS))


def get_diff_between(repo: Path, base: str, head: str) -> str:
    """Return diff between two revisions with no context lines."""
    return _run_git(repo, ["diff", *DIFF_FORMAT_ARGS, f"{base}..{head}"])


def _run_git(repo: Path, args: list[str]) -> str:
    # Bytes mode keeps lone carriage returns inside diff lines intact.
    try:
        completed = run(
            ["git", *args],
            cwd=repo,
            check=True,
            capture_output=True,
        )
    except CalledProcessError as exc:
        stderr = (exc.stderr or b"").decode("utf-8", errors="replace").strip()
        raise GitError(stderr or f"git {' '.join(args)} failed") from exc
    except OSError as exc:
        raise GitError(f"failed to run git: {exc}") from exc

    return completed.stdout.decode("utf-8", errors="replace")
