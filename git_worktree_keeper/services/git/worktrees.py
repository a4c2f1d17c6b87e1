"""Worktree listing and removal service for git-worktree-keeper."""

import os
from threading import Lock
from typing import List, Optional

from git_worktree_keeper.models.worktree import Worktree
from git_worktree_keeper.exceptions import GitOperationError, WorktreeNotFoundError
from git_worktree_keeper.services.git.operations import GitOperations
from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)


def parse_worktree_list(output: str) -> List[Worktree]:
    """Parse `git worktree list --porcelain`.

    Format (blank line between worktrees)::

        worktree /path/to/worktree
        HEAD <sha>
        branch refs/heads/<name>      # or "detached"

    A worktree without a ``branch`` line is reported with branch "HEAD".
    """
    worktrees: List[Worktree] = []
    path = ""
    branch = ""
    for line in output.split("\n"):
        line = line.strip()
        if not line:
            if path:
                worktrees.append(Worktree(path=path, branch=branch))
            path, branch = "", ""
            continue
        if line.startswith("worktree "):
            path = line.split(" ", 1)[1]
        elif line.startswith("HEAD "):
            # Overwritten by a later branch line; stays for detached worktrees
            branch = "HEAD"
        elif line.startswith("branch "):
            ref = line.split(" ", 1)[1]
            if ref.startswith("refs/heads/"):
                ref = ref[len("refs/heads/"):]
            branch = ref

    if path:
        worktrees.append(Worktree(path=path, branch=branch))
    return worktrees


class WorktreeService:
    """Service for listing and removing git worktrees."""

    def __init__(self, git_ops: GitOperations):
        """Initialize the worktree service.

        Args:
            git_ops: Git command wrapper bound to the repository
        """
        self.git_ops = git_ops
        self._worktrees: Optional[List[Worktree]] = None
        self._cache_lock = Lock()

    def clear_cache(self):
        """Clear the worktree listing cache."""
        with self._cache_lock:
            self._worktrees = None

    def list_worktrees(self, refresh: bool = False) -> List[Worktree]:
        """All worktrees of the repository, primary first.

        Raises:
            GitOperationError: if git cannot list worktrees
        """
        with self._cache_lock:
            if self._worktrees is not None and not refresh:
                return list(self._worktrees)

        output = self.git_ops.run("worktree", "list", "--porcelain")
        worktrees = parse_worktree_list(output)

        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")

        with self._cache_lock:
            self._worktrees = worktrees
        return list(worktrees)

    def find_by_branch(self, branch: str) -> str:
        """Path of the worktree on ``branch``.

        Raises:
            WorktreeNotFoundError: if no worktree has that branch checked out
        """
        for wt in self.list_worktrees():
            if wt.branch == branch:
                return wt.path
        raise WorktreeNotFoundError(branch)

    def current_worktree_path(self, cwd: str) -> str:
        """Worktree whose directory is the longest prefix of ``cwd``."""
        cwd = os.path.normpath(cwd)
        best = ""
        for wt in self.list_worktrees():
            path = os.path.normpath(wt.path)
            if (cwd == path or cwd.startswith(path + os.sep)) and len(path) > len(best):
                best = path
        if not best:
            raise GitOperationError("current_worktree", message="could not determine current worktree")
        return best

    def remove_worktree(self, path: str, force: bool = False) -> tuple[bool, Optional[str]]:
        """Remove a worktree at the specified path.

        Args:
            path: Path to the worktree directory
            force: Force removal even if working tree is dirty or locked

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        args = ["worktree", "remove", path]
        if force:
            args.append("--force")
        try:
            self.git_ops.run(*args)
        except GitOperationError as e:
            logger.error(f"Failed to remove worktree at {path}: {e}")
            return False, str(e)

        logger.info(f"Removed worktree at {path}")
        self.clear_cache()
        return True, None

    def prune_worktrees(self) -> tuple[bool, Optional[str]]:
        """Prune metadata of worktrees whose directories are gone.

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        try:
            self.git_ops.run("worktree", "prune")
        except GitOperationError as e:
            logger.error(f"Failed to prune worktrees: {e}")
            return False, str(e)

        logger.info("Pruned orphaned worktree metadata")
        self.clear_cache()
        return True, None
