"""Status formatting utilities."""

from rich.text import Text

from git_worktree_keeper.constants import STATUS_COLORS
from git_worktree_keeper.models.worktree import WorktreeEntry


def status_text(label: str) -> Text:
    """
    Status label as coloured Rich text.

    Args:
        label: Display label as stored on an entry ("MERGED", "LOADING", ...)

    Returns:
        Text styled with the label's colour (unstyled for unknown labels)
    """
    return Text(label, style=STATUS_COLORS.get(label, ""))


def entry_status(entry: WorktreeEntry) -> str:
    """Status shown for an entry; the primary worktree never shows one."""
    return "" if entry.is_primary else entry.status
