"""Commit history access: cloning, lazy iteration and early-stopping walks."""

from __future__ import annotations

import enum
import logging
import tempfile
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import git

from gitimages.errors import TraversalError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Commit:
    """A commit in the walked history.

    Attributes:
        hexsha: Full 40-character hex hash.
        summary: First line of the commit message.
    """

    hexsha: str
    summary: str = ""

    @property
    def short(self) -> str:
        return self.hexsha[:12]


class WalkControl(enum.Enum):
    """Returned by a walk visitor to keep going or to stop the walk."""

    CONTINUE = "continue"
    STOP = "stop"


class WalkState(enum.Enum):
    """Lifecycle of a history walk."""

    NOT_STARTED = "not-started"
    WALKING = "walking"
    FOUND = "found"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


@dataclass(frozen=True)
class WalkResult:
    """Terminal state of a completed walk and how many commits were visited."""

    state: WalkState
    visited: int


def walk_commits(
    commits: Iterable[Commit],
    visit: Callable[[Commit], WalkControl],
) -> WalkResult:
    """Call *visit* for each commit until it returns :attr:`WalkControl.STOP`.

    Commits are pulled from *commits* one at a time, so nothing past the
    stopping commit is ever produced. Exceptions raised by the iterator or
    by *visit* propagate unchanged.

    Returns:
        A :class:`WalkResult` in state ``FOUND`` (stopped by the visitor)
        or ``EXHAUSTED`` (ran out of commits).
    """
    visited = 0
    for commit in commits:
        visited += 1
        if visit(commit) is WalkControl.STOP:
            return WalkResult(WalkState.FOUND, visited)
    return WalkResult(WalkState.EXHAUSTED, visited)


def iter_commits(repo: git.Repo, rev: str | None = None) -> Iterator[Commit]:
    """Lazily yield commits reachable from *rev*, most recent first.

    *rev* defaults to the checked-out ``HEAD``. A repository without any
    commit yields nothing.

    Raises:
        TraversalError: If git fails while producing the history.
    """
    if rev is None and not repo.head.is_valid():
        logger.debug("Repository at %s has no commits", repo.working_dir)
        return
    try:
        for commit in repo.iter_commits(rev):
            yield Commit(hexsha=commit.hexsha, summary=commit.summary)
    except (git.GitCommandError, ValueError) as exc:
        raise TraversalError(
            f"failed to get commit objects from repository {repo.working_dir!r}: {exc}"
        ) from exc


@contextmanager
def open_repository(location: str, branch: str | None = None) -> Iterator[git.Repo]:
    """Open a local working copy, or clone a remote one into a temporary directory.

    The temporary clone is removed when the context exits.

    Raises:
        TraversalError: If the repository cannot be opened or cloned.
    """
    if Path(location).is_dir():
        try:
            repo = git.Repo(location)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError) as exc:
            raise TraversalError(f"{location!r} is not a git repository") from exc
        with repo:
            yield repo
        return

    with clone_repository(location, branch) as repo:
        yield repo


@contextmanager
def clone_repository(url: str, branch: str | None = None) -> Iterator[git.Repo]:
    """Clone *url* (optionally a single *branch*) into a temporary directory."""
    with tempfile.TemporaryDirectory(prefix="gitimages") as tmp:
        logger.info("Cloning %s to %s", url, tmp)
        kwargs = {"branch": branch} if branch else {}
        try:
            repo = git.Repo.clone_from(url, tmp, **kwargs)
        except git.GitCommandError as exc:
            raise TraversalError(f"unable to clone {url!r}: {exc}") from exc
        with repo:
            yield repo
