"""Deterministic placement of worktree directories."""

import os
from pathlib import Path
from typing import Optional, Tuple, Union, TYPE_CHECKING
from urllib.parse import urlparse

from git_worktree_keeper.constants import LOCAL_NAMESPACE, WORKTREES_DIR_NAME
from git_worktree_keeper.exceptions import GitOperationError, InvalidBranchNameError, UnsupportedRemoteError
from git_worktree_keeper.services.git.operations import GitOperations
from git_worktree_keeper.logging_config import get_logger

if TYPE_CHECKING:
    from git_worktree_keeper.config import Config

logger = get_logger(__name__)


def parse_remote_url(url: str) -> Tuple[str, str, str]:
    """Split a remote URL into (host, organization, repository).

    Handles scp-style ``git@host:org/repo.git`` and ``https://``, ``http://``,
    ``git://`` URLs.

    Raises:
        UnsupportedRemoteError: for anything else
    """
    url = url.strip()
    if url.startswith("git@"):
        # Handle SSH URL format (git@github.com:org/repo.git)
        at = url.find("@")
        colon = url.find(":")
        if colon > at > 0:
            host = url[at + 1:colon]
            parts = url[colon + 1:].split("/")
            if len(parts) >= 2:
                return host, parts[0], _strip_git_suffix(parts[1])

    if url.startswith(("https://", "http://", "git://")):
        parsed = urlparse(url)
        parts = parsed.path.strip("/").split("/")
        if parsed.hostname and len(parts) >= 2:
            return parsed.hostname, parts[0], _strip_git_suffix(parts[1])

    raise UnsupportedRemoteError(url)


def _strip_git_suffix(name: str) -> str:
    return name[:-4] if name.endswith(".git") else name


def flatten_branch(branch: str) -> str:
    """Leaf directory name for a branch: nested namespaces become hyphens."""
    return branch.replace("/", "-")


class PathPlanner:
    """Computes where a branch's worktree lives on disk.

    Remote-identified repositories go to ``~/.worktrees/<host>/<org>/<repo>``;
    repositories without a usable origin go to
    ``~/.worktrees/local/<repo path relative to home>``. The leaf is the
    flattened branch name, so the path depends only on the branch and the
    repository identity.
    """

    def __init__(self, git_ops: GitOperations, config: Optional[Union["Config", dict]] = None):
        self.git_ops = git_ops
        self.config = config or {}

    def _worktrees_root(self) -> Path:
        override = self.config.get("worktree_base")
        if override:
            return Path(os.path.expanduser(override))
        return Path.home() / WORKTREES_DIR_NAME

    def base_path(self, cwd: Optional[str] = None) -> str:
        """Directory that holds every worktree of the repository at ``cwd``."""
        worktrees_root = self._worktrees_root()

        remote = self.git_ops.remote_url(cwd)
        if remote:
            try:
                host, org, repo = parse_remote_url(remote)
                return str(worktrees_root / host / org / repo)
            except UnsupportedRemoteError as e:
                logger.debug(f"{e}; using local layout")

        # Linked worktrees share the primary worktree's identity
        try:
            root = self.git_ops.primary_worktree_path(cwd)
        except GitOperationError:
            root = self.git_ops.root(cwd)
        home = str(Path.home())
        rel = root
        if root.startswith(home + os.sep):
            rel = root[len(home) + 1:]
        return str(worktrees_root / LOCAL_NAMESPACE / rel.lstrip(os.sep))

    def compute_path(self, branch: str, cwd: Optional[str] = None) -> str:
        """Absolute worktree directory for ``branch`` (creates the base directory).

        Raises:
            InvalidBranchNameError: for an empty branch or a path that would be
                empty or the filesystem root
        """
        if not branch or not branch.strip():
            raise InvalidBranchNameError(branch, "branch required")

        base = self.base_path(cwd)
        os.makedirs(base, exist_ok=True)

        path = os.path.normpath(os.path.join(base, flatten_branch(branch)))
        if path in ("", os.sep) or os.path.dirname(path) != os.path.normpath(base):
            raise InvalidBranchNameError(branch)
        return path
