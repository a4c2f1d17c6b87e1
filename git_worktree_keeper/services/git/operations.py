"""Git operations service"""

import os
from typing import List, Optional, Tuple

import git

from git_worktree_keeper.constants import BASE_REF_CANDIDATES, DETACHED_MARKER
from git_worktree_keeper.exceptions import GitOperationError, NotInRepositoryError
from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)


def _command_error_message(e: git.exc.GitCommandError) -> str:
    """Readable message out of a GitCommandError (stderr first, exit code otherwise)."""
    stderr = (e.stderr if hasattr(e, "stderr") and e.stderr else "").strip()
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip().strip("'").strip()
    status = e.status if hasattr(e, "status") else "unknown"
    if stderr:
        return f"exit {status}: {stderr}"
    return f"exit code {status}"


class GitOperations:
    """Thin wrapper over the git CLI for everything worktree-related.

    Every call spawns a git subprocess through GitPython's command wrapper.
    A fresh ``git.Git`` is created per call so instances are safe to share
    between loader threads.
    """

    def __init__(self, repo_path: str):
        """Initialize the service.

        Args:
            repo_path: Directory commands run in unless a ``cwd`` is given
        """
        self.repo_path = repo_path
        self.remote_name = "origin"

    def _get_git(self, cwd: Optional[str] = None) -> git.Git:
        return git.Git(cwd or self.repo_path)

    def run(self, *args: str, cwd: Optional[str] = None) -> str:
        """Run ``git <args>`` and return stdout (stripped).

        Raises:
            GitOperationError: if git exits non-zero or cannot be started
        """
        try:
            return self._get_git(cwd).execute(["git", *args])
        except git.exc.GitCommandError as e:
            raise GitOperationError(" ".join(args[:2]), message=_command_error_message(e)) from e
        except (git.exc.GitCommandNotFound, OSError) as e:
            raise GitOperationError(" ".join(args[:2]), message=str(e)) from e

    def try_run(self, *args: str, cwd: Optional[str] = None) -> Optional[str]:
        """Like run(), but returns None instead of raising."""
        try:
            return self.run(*args, cwd=cwd)
        except GitOperationError as e:
            logger.debug(f"git {' '.join(args)} failed: {e}")
            return None

    # Repository layout

    def root(self, cwd: Optional[str] = None) -> str:
        """Top-level directory of the worktree containing ``cwd``."""
        out = self.try_run("rev-parse", "--show-toplevel", cwd=cwd)
        if not out:
            raise NotInRepositoryError(cwd or self.repo_path)
        return out.strip()

    def common_git_dir(self, cwd: Optional[str] = None) -> str:
        """Absolute path of the git directory shared by all worktrees."""
        base = cwd or self.repo_path
        path = self.run("rev-parse", "--git-common-dir", cwd=base).strip()
        if not os.path.isabs(path):
            path = os.path.normpath(os.path.join(os.path.abspath(base), path))
        return path

    def primary_worktree_path(self, cwd: Optional[str] = None) -> str:
        """The main worktree: the directory holding the common git dir."""
        path = os.path.dirname(self.common_git_dir(cwd))
        if not os.path.isdir(path):
            raise GitOperationError("find_primary", message="primary worktree not found")
        return path

    def remote_url(self, cwd: Optional[str] = None) -> Optional[str]:
        out = self.try_run("remote", "get-url", self.remote_name, cwd=cwd)
        if out and out.strip():
            return out.strip()
        return None

    # Branches

    def branch_at(self, path: str) -> str:
        """Branch checked out at ``path``; "HEAD" for a detached worktree."""
        out = self.try_run("branch", "--show-current", cwd=path)
        if out and out.strip():
            return out.strip()
        from git_worktree_keeper.services.git.worktrees import parse_worktree_list

        listing = self.run("worktree", "list", "--porcelain", cwd=path)
        target = os.path.normpath(path)
        for wt in parse_worktree_list(listing):
            if os.path.normpath(wt.path) == target:
                return wt.branch
        raise GitOperationError("branch_at", message=f"branch not found for {path}")

    def branch_exists(self, branch: str, cwd: Optional[str] = None) -> bool:
        return self.try_run("rev-parse", "--verify", "--quiet", f"refs/heads/{branch}", cwd=cwd) is not None

    def verify_ref(self, ref: str, cwd: Optional[str] = None) -> bool:
        return self.try_run("rev-parse", "--verify", ref, cwd=cwd) is not None

    def detect_base_ref(self, cwd: Optional[str] = None) -> Optional[str]:
        """Reference the "ahead of base" check counts commits against.

        origin/HEAD when set, then the first conventional name that exists,
        then the current branch as a last resort.
        """
        out = self.try_run("symbolic-ref", "--quiet", "--short", "refs/remotes/origin/HEAD", cwd=cwd)
        if out and out.strip():
            return out.strip()
        for candidate in BASE_REF_CANDIDATES:
            if self.verify_ref(candidate, cwd=cwd):
                return candidate
        try:
            branch = self.branch_at(cwd or self.repo_path)
        except GitOperationError:
            return None
        if branch and branch != DETACHED_MARKER:
            return branch
        return None

    def primary_branch(self, cwd: Optional[str] = None) -> Optional[str]:
        """Default branch name new worktrees start from."""
        base = self.detect_base_ref(cwd)
        if base and base.startswith(f"{self.remote_name}/"):
            local = base[len(self.remote_name) + 1:]
            if self.branch_exists(local, cwd=cwd):
                return local
        return base

    def rename_branch(self, path: str, new_branch: str) -> None:
        """Rename the branch checked out at ``path``."""
        self.run("branch", "-m", new_branch, cwd=path)

    def delete_branch(self, branch: str, force: bool = True, cwd: Optional[str] = None) -> None:
        self.run("branch", "-D" if force else "-d", branch, cwd=cwd)

    def fetch_branch(self, branch: str, cwd: Optional[str] = None) -> bool:
        return self.try_run("fetch", self.remote_name, branch, cwd=cwd) is not None

    # Worktree mutation

    def add_worktree(self, path: str, branch: str, new_branch: bool = False,
                     base_ref: Optional[str] = None, cwd: Optional[str] = None) -> None:
        if new_branch:
            args = ["worktree", "add", path, "-b", branch]
            if base_ref:
                args.append(base_ref)
        else:
            args = ["worktree", "add", path, branch]
        self.run(*args, cwd=cwd)

    def move_worktree(self, old_path: str, new_path: str, cwd: Optional[str] = None) -> None:
        self.run("worktree", "move", old_path, new_path, cwd=cwd)

    # Working tree state

    def has_working_changes(self, path: str) -> bool:
        """True if ``git status --porcelain`` reports anything."""
        return self.run("status", "--porcelain", cwd=path).strip() != ""

    def commits_ahead(self, path: str, base_ref: str) -> int:
        """Commits reachable from HEAD at ``path`` but not from ``base_ref``."""
        out = self.run("rev-list", "--count", f"{base_ref}..HEAD", cwd=path)
        return int(out.strip())

    def ignored_files(self, root: str) -> List[str]:
        """Untracked files git ignores under ``root`` (root-relative)."""
        out = self.run("ls-files", "--others", "-i", "--exclude-standard", cwd=root)
        return [line.strip() for line in out.splitlines() if line.strip()]

    # Config

    def config_get(self, key: str, cwd: Optional[str] = None) -> Optional[str]:
        out = self.try_run("config", "--get", key, cwd=cwd)
        return out.strip() if out is not None else None

    def config_get_all(self, key: str, cwd: Optional[str] = None) -> List[str]:
        """All values of a multi-valued key (empty list when unset)."""
        out = self.try_run("config", "--get-all", key, cwd=cwd)
        if not out:
            return []
        return [line for line in out.splitlines() if line.strip()]

    def config_set(self, key: str, value: str, cwd: Optional[str] = None) -> None:
        self.run("config", key, value, cwd=cwd)

    def config_get_regexp(self, pattern: str, cwd: Optional[str] = None) -> List[Tuple[str, str]]:
        out = self.try_run("config", "--get-regexp", pattern, cwd=cwd)
        if not out:
            return []
        pairs = []
        for line in out.splitlines():
            key, _, value = line.partition(" ")
            pairs.append((key, value))
        return pairs
