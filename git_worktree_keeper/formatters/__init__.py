"""Formatting utilities for git-worktree-keeper.

- status: status labels and their colours
"""

from .status import entry_status, status_text

__all__ = [
    "entry_status",
    "status_text",
]
