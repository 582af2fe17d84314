"""Tests for commit history access and walking."""

from unittest.mock import MagicMock, patch

import git
import pytest

from gitimages.errors import TraversalError
from gitimages.history import (
    Commit,
    WalkControl,
    WalkState,
    clone_repository,
    iter_commits,
    open_repository,
    walk_commits,
)


class TestWalkCommits:
    """Test the early-stopping walk."""

    def test_stop_signal_ends_walk(self):
        seen = []

        def visit(commit):
            seen.append(commit)
            return WalkControl.STOP if commit.hexsha == "b" else WalkControl.CONTINUE

        result = walk_commits([Commit("a"), Commit("b"), Commit("c")], visit)
        assert result.state is WalkState.FOUND
        assert result.visited == 2
        assert [c.hexsha for c in seen] == ["a", "b"]

    def test_exhausted(self):
        result = walk_commits([Commit("a"), Commit("b")], lambda c: WalkControl.CONTINUE)
        assert result.state is WalkState.EXHAUSTED
        assert result.visited == 2

    def test_empty(self):
        visit = MagicMock()
        result = walk_commits([], visit)
        assert result.state is WalkState.EXHAUSTED
        assert result.visited == 0
        visit.assert_not_called()

    def test_visitor_error_is_not_a_stop(self):
        def visit(commit):
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            walk_commits([Commit("a")], visit)


class TestIterCommits:
    """Test reading history from a real repository."""

    def test_most_recent_first(self, repo):
        commits = list(iter_commits(repo))
        assert [c.summary for c in commits] == ["third", "second", "first"]
        assert commits[0].hexsha == repo.head.commit.hexsha
        assert len(commits[0].hexsha) == 40

    def test_from_revision(self, repo):
        commits = list(iter_commits(repo, "master~1"))
        assert [c.summary for c in commits] == ["second", "first"]

    def test_is_lazy(self, repo):
        it = iter_commits(repo)
        assert next(it).summary == "third"

    def test_empty_repository(self, tmp_path):
        empty = git.Repo.init(tmp_path / "empty")
        assert list(iter_commits(empty)) == []

    def test_unknown_revision(self, repo):
        with pytest.raises(TraversalError, match="failed to get commit objects"):
            list(iter_commits(repo, "does-not-exist"))

    def test_short_hash(self):
        assert Commit("0123456789abcdef" * 2).short == "0123456789ab"


class TestOpenRepository:
    """Test opening local and remote repositories."""

    def test_local_working_copy(self, repo):
        with open_repository(repo.working_dir) as opened:
            assert opened.head.commit.hexsha == repo.head.commit.hexsha

    def test_local_directory_not_a_repository(self, tmp_path):
        with pytest.raises(TraversalError, match="not a git repository"):
            with open_repository(str(tmp_path)):
                pass

    def test_clone_of_local_repository(self, repo):
        url = f"file://{repo.working_dir}"
        with clone_repository(url, "master") as cloned:
            workdir = cloned.working_dir
            summaries = [c.summary for c in iter_commits(cloned, "master")]
        assert summaries == ["third", "second", "first"]
        assert workdir != repo.working_dir

    @patch("gitimages.history.git.Repo.clone_from")
    def test_remote_is_cloned(self, mock_clone):
        with open_repository("https://example.com/org/app.git", "main") as cloned:
            assert cloned is mock_clone.return_value

        args, kwargs = mock_clone.call_args
        assert args[0] == "https://example.com/org/app.git"
        assert kwargs == {"branch": "main"}

    @patch("gitimages.history.git.Repo.clone_from")
    def test_clone_without_branch(self, mock_clone):
        with clone_repository("https://example.com/org/app.git"):
            pass
        _, kwargs = mock_clone.call_args
        assert kwargs == {}

    @patch("gitimages.history.git.Repo.clone_from")
    def test_clone_failure(self, mock_clone):
        mock_clone.side_effect = git.GitCommandError("clone", 128, "repository not found")
        with pytest.raises(TraversalError, match="unable to clone"):
            with clone_repository("https://example.com/missing.git"):
                pass
