"""
Git Layer - All Git repository interactions.

Handles staging, committing and pushing for automatic commits, the diff
and diff statistics used for commit messages, and the one-time push
target resolution done at startup.
"""

import os
import shutil
import subprocess
from typing import List, Optional


# Show non-ASCII paths verbatim in diff headers and stats
QUOTE_PATH_OFF = ["-c", "core.quotePath=false"]


class GitError(Exception):
    """Exception raised for Git operation failures."""
    pass


class GitNotFoundError(GitError):
    """Exception raised when the git binary is not available."""
    pass


class GitRepositoryError(GitError):
    """Exception raised for Git repository state issues."""
    pass


class GitCommitError(GitError):
    """Exception raised for Git commit operation failures."""
    pass


class GitPushError(GitError):
    """Exception raised for Git push operation failures."""
    pass


def run_git(args: List[str], cwd: Optional[str] = None, git_bin: str = "git",
            strip: bool = True) -> str:
    """Run git command and handle errors with detailed error reporting.

    Returns:
        str: The command's stdout

    Raises:
        GitNotFoundError: If the git binary cannot be executed
        GitRepositoryError: If ``cwd`` is missing or not inside a repository
        GitCommitError: If there is nothing to commit
        GitError: For any other failure
    """
    try:
        result = subprocess.run(
            [git_bin] + args,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=True
        )
    except FileNotFoundError:
        if cwd is not None and not os.path.isdir(cwd):
            raise GitRepositoryError(f"Working directory does not exist: {cwd}")
        raise GitNotFoundError(f"Required command '{git_bin}' not found")
    except subprocess.CalledProcessError as e:
        # Parse stderr for specific error types, also check stdout
        error_msg = e.stderr.strip() if e.stderr else ""
        if not error_msg and e.stdout:
            error_msg = e.stdout.strip()
        if not error_msg:
            error_msg = str(e)

        if "not a git repository" in error_msg.lower():
            raise GitRepositoryError(f"Not a Git repository: {cwd or os.getcwd()}")

        if "nothing to commit" in error_msg.lower() or "working tree clean" in error_msg.lower():
            raise GitCommitError("No changes to commit")

        raise GitError(f"Git command failed: {' '.join(args)}\nError: {error_msg}")
    return result.stdout.strip() if strip else result.stdout


def is_command(name: str) -> bool:
    """Check whether ``name`` resolves to an executable."""
    return shutil.which(name) is not None


def resolve_push_command(remote: str, branch: str, head_ref: Optional[str]) -> Optional[List[str]]:
    """Decide the ``git push`` arguments for the session.

    Args:
        remote: remote name; empty disables pushing
        branch: remote branch to push to; empty means a default push
        head_ref: output of ``git symbolic-ref HEAD``, ``None`` when detached

    Returns:
        The argument list following ``git``, or ``None`` for no push
    """
    if not remote:
        return None
    if not branch:
        return ["push", remote]
    if head_ref is None:
        return ["push", remote, branch]

    current = head_ref
    if current.startswith("refs/heads/"):
        current = current[len("refs/heads/"):]
    return ["push", remote, f"{current}:{branch}"]


class CommitExecutor:
    """Stage, commit and push within one working directory.

    Args:
        repo_dir: directory git commands run in
        add_args: pathspec passed to ``git add`` (``--all .`` or one file)
        git_bin: git executable
    """

    def __init__(self, repo_dir: str, add_args: List[str], git_bin: str = "git"):
        self.repo_dir = repo_dir
        self.add_args = list(add_args)
        self.git_bin = git_bin

    def _git(self, args: List[str], strip: bool = True) -> str:
        return run_git(args, cwd=self.repo_dir, git_bin=self.git_bin, strip=strip)

    def ensure_repo(self) -> str:
        """Return the work tree root, or raise if not inside a repository."""
        try:
            return self._git(["rev-parse", "--show-toplevel"])
        except GitRepositoryError:
            raise
        except GitError as e:
            raise GitRepositoryError(f"Not a Git repository: {self.repo_dir} ({e})")

    def head_ref(self) -> Optional[str]:
        """Return the symbolic ref of HEAD, or ``None`` when detached."""
        try:
            ref = self._git(["symbolic-ref", "-q", "HEAD"])
        except GitRepositoryError:
            raise
        except GitError:
            return None
        return ref or None

    def stage(self) -> None:
        try:
            self._git(["add"] + self.add_args)
        except GitError as e:
            raise GitCommitError(f"Failed to stage changes: {e}")

    def has_staged_changes(self) -> bool:
        """Check whether the index differs from HEAD."""
        try:
            self._git(["diff", "--cached", "--quiet"])
        except GitNotFoundError:
            raise
        except GitError:
            # --quiet exits non-zero when there are differences
            return True
        return False

    def diff(self, color: bool = False) -> str:
        """Staged changes as a zero-context unified diff."""
        color_arg = "--color=always" if color else "--no-color"
        return self._git(QUOTE_PATH_OFF + ["diff", "--cached", "-U0", color_arg], strip=False)

    def diff_stat(self) -> str:
        return self._git(QUOTE_PATH_OFF + ["diff", "--cached", "--stat", "--no-color"], strip=False)

    def commit(self, message: str) -> str:
        """Commit the index and return the new commit hash."""
        try:
            self._git(["commit", "-m", message])
        except GitCommitError:
            raise
        except GitError as e:
            raise GitCommitError(f"Failed to commit changes: {e}")
        return self._git(["rev-parse", "HEAD"])

    def push(self, push_args: List[str]) -> None:
        try:
            self._git(push_args)
        except GitError as e:
            raise GitPushError(f"Failed to push: {e}")


def push_command_for(executor: CommitExecutor, remote: str, branch: str) -> Optional[List[str]]:
    """Resolve the push command once, from the HEAD state at startup."""
    if not remote:
        return None
    head_ref = executor.head_ref() if branch else None
    return resolve_push_command(remote, branch, head_ref)
