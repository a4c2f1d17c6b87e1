"""Services implementing worktree placement, status resolution and relocation."""
