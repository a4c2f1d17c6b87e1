"""Utility functions for git-worktree-keeper.

This package provides utility modules:
- threading: worker-count sizing for the status loader
- paths: path comparison and caller working-directory helpers
"""

from .threading import (
    gil_enabled,
    get_optimal_worker_count,
    get_threading_info,
)
from .paths import same_dir, same_path, caller_cwd, relative_within, resolve_abs

__all__ = [
    # Threading
    "gil_enabled",
    "get_optimal_worker_count",
    "get_threading_info",
    # Paths
    "same_dir",
    "same_path",
    "caller_cwd",
    "relative_within",
    "resolve_abs",
]
