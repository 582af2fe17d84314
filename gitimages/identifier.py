"""Find the most recent published image that corresponds to a commit."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import git

from gitimages.history import Commit, WalkControl, WalkState, iter_commits, walk_commits
from gitimages.matchers.base import BaseMatcher

logger = logging.getLogger(__name__)


class ImageIdentifier:
    """Walk a commit history, most recent first, asking a matcher for each commit.

    :attr:`state` follows ``NOT_STARTED -> WALKING -> FOUND | EXHAUSTED | FAILED``.
    """

    def __init__(self, matcher: BaseMatcher) -> None:
        self.matcher = matcher
        self.state = WalkState.NOT_STARTED
        self.visited = 0

    def find_most_recent_image(
        self,
        source: git.Repo | Iterable[Commit],
        rev: str | None = None,
    ) -> str:
        """Return the tag matched by the newest matching commit.

        Args:
            source: A repository, or commits already in most-recent-first order.
            rev: Revision to start from when *source* is a repository.

        Returns:
            The matched tag, or ``""`` when no commit has a matching tag.
        """
        commits = iter_commits(source, rev) if isinstance(source, git.Repo) else source
        found = ""

        def visit(commit: Commit) -> WalkControl:
            nonlocal found
            logger.debug("Checking commit %s %s", commit.short, commit.summary)
            tag = self.matcher.identify(commit)
            if tag:
                found = tag
                return WalkControl.STOP
            return WalkControl.CONTINUE

        self.state = WalkState.WALKING
        self.visited = 0
        try:
            result = walk_commits(commits, visit)
        except Exception:
            self.state = WalkState.FAILED
            raise
        self.state = result.state
        self.visited = result.visited

        if found:
            logger.info("Identified %r after %d commit(s)", found, result.visited)
        else:
            logger.info("No image matched any of %d commit(s)", result.visited)
        return found


def find_most_recent_image(
    source: git.Repo | Iterable[Commit],
    matcher: BaseMatcher,
    rev: str | None = None,
) -> str:
    """Shortcut for ``ImageIdentifier(matcher).find_most_recent_image(source, rev)``."""
    return ImageIdentifier(matcher).find_most_recent_image(source, rev)
