"""Path helpers shared by the worktree services."""

import os
from typing import Optional

from git_worktree_keeper.constants import ENV_CALLER_CWD
from git_worktree_keeper.exceptions import GitWorktreeKeeperError


def resolve_abs(path: str) -> str:
    """Absolute, normalised form of ``path`` (relative paths resolve against the cwd)."""
    if not path:
        raise GitWorktreeKeeperError("empty path")
    if os.path.isabs(path):
        return os.path.normpath(path)
    return os.path.normpath(os.path.join(os.getcwd(), path))


def same_path(a: Optional[str], b: Optional[str]) -> bool:
    """Lexical comparison of two paths after normalisation."""
    if not a or not b:
        return False
    return os.path.normpath(a) == os.path.normpath(b)


def same_dir(a: str, b: str) -> bool:
    """True if ``a`` and ``b`` name the same physical location.

    Checked in order: string equality, device/inode identity, resolved-symlink
    identity. Any one match is sufficient.
    """
    if a == b:
        return True
    try:
        if os.path.samefile(a, b):
            return True
    except OSError:
        pass
    try:
        return os.path.realpath(a, strict=True) == os.path.realpath(b, strict=True)
    except OSError:
        return False


def caller_cwd() -> str:
    """Directory the user invoked the command from.

    Shell wrappers export ``GWK_CALLER_CWD`` because they run the tool from a
    subshell whose cwd may differ.
    """
    value = os.environ.get(ENV_CALLER_CWD)
    if value:
        if os.path.isabs(value):
            return os.path.normpath(value)
        return os.path.abspath(value)
    return os.getcwd()


def relative_within(root: str, path: str) -> Optional[str]:
    """Path of ``path`` relative to ``root``, or None if it lies outside.

    Returns "." when both are the same directory.
    """
    root = os.path.normpath(root)
    path = os.path.normpath(path)
    if path == root:
        return "."
    if path.startswith(root + os.sep):
        return os.path.relpath(path, root)
    return None
