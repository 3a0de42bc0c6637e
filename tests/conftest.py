"""Shared fixtures: throwaway git repositories for integration tests."""

import shutil
import subprocess

import pytest


def git(repo, *args):
    result = subprocess.run(
        ["git", *args],
        cwd=str(repo),
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def git_repo(tmp_path):
    """A repository with one commit, checked out on branch ``feature``."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "config", "user.email", "gitwatch@example.com")
    git(repo, "config", "user.name", "gitwatch tests")
    git(repo, "config", "commit.gpgsign", "false")
    (repo / "README.md").write_text("hello\n")
    git(repo, "add", "README.md")
    git(repo, "commit", "-q", "-m", "initial")
    git(repo, "checkout", "-q", "-b", "feature")
    return repo


@pytest.fixture
def bare_remote(tmp_path, git_repo):
    """A bare repository registered as ``origin`` of ``git_repo``."""
    remote = tmp_path / "remote.git"
    git(tmp_path, "init", "-q", "--bare", str(remote))
    git(git_repo, "remote", "add", "origin", str(remote))
    return remote


@pytest.fixture
def git_cmd():
    """Run a git command in a repository and return its stdout."""
    return git
