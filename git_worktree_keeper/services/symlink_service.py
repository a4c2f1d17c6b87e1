"""Mirroring of ignored files from the primary worktree as symlinks."""

import os
import re
import shutil
import tempfile
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Union, TYPE_CHECKING

from rich.console import Console

from git_worktree_keeper.constants import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_SYMLINK_PATTERNS
from git_worktree_keeper.exceptions import GitWorktreeKeeperError, SymlinkSyncError
from git_worktree_keeper.services.git.operations import GitOperations
from git_worktree_keeper.logging_config import get_logger

if TYPE_CHECKING:
    from git_worktree_keeper.config import Config

console = Console(stderr=True)
logger = get_logger(__name__)


def _translate_segment(segment: str) -> str:
    """Regex for one path segment; ``*`` and ``?`` stay inside the segment."""
    out = []
    i, n = 0, len(segment)
    while i < n:
        c = segment[i]
        i += 1
        if c == "*":
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = segment.find("]", i + 1 if i < n and segment[i] in "!^" else i)
            if j == -1:
                out.append(re.escape(c))
                continue
            body = segment[i:j]
            if body[:1] in ("!", "^"):
                body = "^" + body[1:]
            out.append(f"[{body}]")
            i = j + 1
        else:
            out.append(re.escape(c))
    return "".join(out)


@lru_cache(maxsize=128)
def compile_glob(pattern: str) -> Pattern[str]:
    """Compile a ``**``-aware glob into a regex.

    ``**`` as a whole segment matches any number of segments, including
    zero; elsewhere ``*`` and ``?`` never match ``/``.
    """
    segments = pattern.split("/")
    parts = []
    for idx, segment in enumerate(segments):
        last = idx == len(segments) - 1
        if segment == "**":
            parts.append(".*" if last else "(?:[^/]*/)*")
        else:
            parts.append(_translate_segment(segment) + ("" if last else "/"))
    return re.compile("".join(parts), re.DOTALL)


def glob_match(pattern: str, path: str) -> bool:
    return compile_glob(pattern).fullmatch(path) is not None


def match_any(path: str, patterns: Iterable[str]) -> bool:
    return any(glob_match(p, path) for p in patterns)


def replace_with_symlink(src: str, dst: str) -> None:
    """Point ``dst`` at ``src``, removing whatever ``dst`` was."""
    os.makedirs(os.path.dirname(dst), exist_ok=True)
    if os.path.lexists(dst):
        if os.path.isdir(dst) and not os.path.islink(dst):
            shutil.rmtree(dst)
        else:
            os.remove(dst)
    os.symlink(src, dst)


class SymlinkSynchronizer:
    """Links ignored-but-useful files (env files, editor settings, local notes)
    from the primary worktree into another worktree.
    """

    def __init__(self, git_ops: GitOperations, config: Optional[Union["Config", dict]] = None,
                 verbose: bool = True):
        self.git_ops = git_ops
        self.config = config or {}
        self.verbose = verbose
        include = self.config.get("symlink_patterns")
        exclude = self.config.get("exclude_patterns")
        self.include_patterns: List[str] = list(DEFAULT_SYMLINK_PATTERNS if include is None else include)
        self.exclude_patterns: List[str] = list(DEFAULT_EXCLUDE_PATTERNS if exclude is None else exclude)

    def candidates(self, primary_root: str) -> List[str]:
        """Ignored files under ``primary_root`` that should be mirrored (root-relative)."""
        selected = []
        for rel in self.git_ops.ignored_files(primary_root):
            if match_any(rel, self.exclude_patterns):
                continue
            if not match_any("/" + rel, self.include_patterns):
                continue
            selected.append(rel)
        return selected

    def sync(self, primary_root: str, target: str) -> int:
        """Create the symlinks in ``target``; returns how many were made.

        Raises:
            GitOperationError: if git cannot list ignored files
            SymlinkSyncError: on the first filesystem failure, with the count so far
        """
        created = 0
        for rel in self.candidates(primary_root):
            src = os.path.join(primary_root, rel)
            dst = os.path.join(target, rel)
            if not os.path.lexists(src):
                logger.debug(f"Skipping vanished source {src}")
                continue

            actual_src = os.path.realpath(src)
            try:
                replace_with_symlink(actual_src, dst)
            except OSError as e:
                raise SymlinkSyncError(dst, created, str(e)) from e

            if self.verbose:
                console.print(f"Created symlink: {dst} -> {actual_src}", highlight=False, soft_wrap=True)
            logger.debug(f"Created symlink: {dst} -> {actual_src}")
            created += 1
        return created


def link_into_primary(path: str, worktree_root: str, primary_root: str) -> str:
    """Move ``path`` into the primary worktree and leave a symlink in its place.

    Returns the new location inside the primary worktree.
    """
    if not os.path.lexists(path):
        raise GitWorktreeKeeperError(f"File not found: {path}")
    if os.path.normpath(worktree_root) == os.path.normpath(primary_root):
        raise GitWorktreeKeeperError("You are in the primary worktree; nothing to link")
    if not path.startswith(worktree_root + os.sep):
        raise GitWorktreeKeeperError(f"Path must be within current worktree: {worktree_root}")

    dst = os.path.join(primary_root, os.path.relpath(path, worktree_root))
    if os.path.lexists(dst):
        raise GitWorktreeKeeperError(f"Destination already exists: {dst}")

    try:
        os.makedirs(os.path.dirname(dst), exist_ok=True)
        shutil.move(path, dst)
    except OSError as e:
        raise GitWorktreeKeeperError(f"Failed to move {path} to {dst}: {e}") from e
    try:
        os.symlink(dst, path)
    except OSError as e:
        # Restore the file to the worktree
        shutil.move(dst, path)
        raise GitWorktreeKeeperError(f"Failed to create symlink {path}: {e}") from e
    logger.info(f"Linked {path} -> {dst}")
    return dst


def materialize_symlink(path: str) -> str:
    """Replace the symlink at ``path`` with a copy of its target.

    Returns the link's original target.
    """
    if not os.path.islink(path):
        raise GitWorktreeKeeperError(f"Not a symlink: {path}")

    target = os.readlink(path)
    abs_target = target if os.path.isabs(target) else os.path.normpath(
        os.path.join(os.path.dirname(path), target)
    )
    if not os.path.exists(abs_target):
        raise GitWorktreeKeeperError(f"Symlink target does not exist: {abs_target}")

    # Fresh staging directory beside the link: same filesystem for the rename
    try:
        staging = tempfile.mkdtemp(prefix=".gwk-unlink-", dir=os.path.dirname(path))
    except OSError as e:
        raise GitWorktreeKeeperError(f"Failed to unlink {path}: {e}") from e
    copy = os.path.join(staging, os.path.basename(path))
    try:
        if os.path.isdir(abs_target):
            shutil.copytree(abs_target, copy)
        else:
            shutil.copy2(abs_target, copy)
        os.remove(path)
        os.rename(copy, path)
    except OSError as e:
        raise GitWorktreeKeeperError(f"Failed to unlink {path}: {e}") from e
    finally:
        shutil.rmtree(staging, ignore_errors=True)
    logger.info(f"Unlinked {path} (copied from {target})")
    return target
