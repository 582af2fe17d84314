import git
import pytest

ACTOR = git.Actor("Test", "test@example.com")


@pytest.fixture
def repo(tmp_path):
    """A repository with three commits on master: first, second, third."""
    r = git.Repo.init(tmp_path / "repo", initial_branch="master")
    for i, message in enumerate(["first", "second", "third"]):
        path = tmp_path / "repo" / "file.txt"
        path.write_text(message, encoding="utf-8")
        r.index.add(["file.txt"])
        r.index.commit(
            message,
            author=ACTOR,
            committer=ACTOR,
            author_date=f"2024-01-0{i + 1}T10:00:00",
            commit_date=f"2024-01-0{i + 1}T10:00:00",
        )
    yield r
    r.close()


@pytest.fixture
def hashes(repo):
    """Commit hashes of :func:`repo`, keyed by commit message."""
    return {c.summary: c.hexsha for c in repo.iter_commits("master")}
