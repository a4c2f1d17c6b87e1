"""Data models for git-worktree-keeper."""

from .branch import BranchStatus, PRInfo
from .worktree import Worktree, WorktreeEntry, RelocationPlan
from .collection import WorktreeCollection

__all__ = [
    "BranchStatus",
    "PRInfo",
    "Worktree",
    "WorktreeEntry",
    "RelocationPlan",
    "WorktreeCollection",
]
