"""Shared constants for git-worktree-keeper."""

from dataclasses import dataclass
from typing import List


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # 0 means auto-width


# Columns for both the `list` table and the picker
COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("branch", "Branch", 30),
    ColumnDefinition("status", "Status", 11),
    ColumnDefinition("assignees", "Assignees", 20),
    ColumnDefinition("path", "Path", 0),
]


# Worktree placement
WORKTREES_DIR_NAME = ".worktrees"
LOCAL_NAMESPACE = "local"
DETACHED_LABEL = "(detached)"
DETACHED_MARKER = "HEAD"


# Git config keys (all multi-valued keys are read with --get-all)
CONFIG_NAMESPACE = "gwk"
CONFIG_KEY_WORKTREE_BASE = "gwk.worktree.base"
CONFIG_KEY_HOOKS_BACKGROUND = "gwk.hooks.background"
CONFIG_KEY_NEW_OPEN_EDITOR = "gwk.new.open-editor"
CONFIG_KEY_REVIEW_PROVIDER = "gwk.review.provider"
CONFIG_KEY_GITHUB_TOKEN = "gwk.github.token"
CONFIG_KEY_SYMLINK_INCLUDE = "gwk.symlink.include"
CONFIG_KEY_SYMLINK_EXCLUDE = "gwk.symlink.exclude"
CONFIG_KEY_PICKER_SHOW_PATH = "gwk.picker.show-path"

# Short spellings accepted by `config get/set`
CONFIG_KEY_ALIASES = {
    "new.open-editor": CONFIG_KEY_NEW_OPEN_EDITOR,
    "hooks.background": CONFIG_KEY_HOOKS_BACKGROUND,
    "hooks-background": CONFIG_KEY_HOOKS_BACKGROUND,
    "hooks.post-create": "gwk.hooks.post-create",
    "post-create": "gwk.hooks.post-create",
    "worktree.base": CONFIG_KEY_WORKTREE_BASE,
    "review.provider": CONFIG_KEY_REVIEW_PROVIDER,
}

REVIEW_PROVIDERS = ["auto", "gh", "api", "none"]


# Environment
ENV_CALLER_CWD = "GWK_CALLER_CWD"
ENV_HOOK_NAME = "GWK_HOOK_NAME"
ENV_PREV_BRANCH = "GWK_PREV_BRANCH"
ENV_NEW_BRANCH = "GWK_NEW_BRANCH"
ENV_BRANCH = "GWK_BRANCH"
ENV_WORKTREE_PATH = "GWK_WORKTREE_PATH"


# Lifecycle hooks
HOOK_POST_CREATE = "post-create"
HOOK_POST_CHECKOUT = "post-checkout"
HOOK_POST_REMOVE = "post-remove"
HOOK_LOG_PREFIX = "gwk-hook-"


# Ignored files mirrored from the primary worktree
DEFAULT_SYMLINK_PATTERNS: List[str] = [
    "**/.vscode/*",
    "**/.claude/*",
    "**/.env*",
    "**/.github/prompts/*.local.prompt.md",
    "**/.ignored/**",
    "**/.serena/**",
    "**/CLAUDE.local.md",
    "**/AGENTS.local.md",
]

DEFAULT_EXCLUDE_PATTERNS: List[str] = ["**/node_modules/*"]


# Base refs tried, in order, when origin/HEAD is not set
BASE_REF_CANDIDATES = ["origin/main", "origin/master", "main", "master"]


# Picker
STATUS_LOADING = "LOADING"
RELOAD_DELAY_SECONDS = 0.06


# Status colours (Rich/Textual colour names); closed and merged stay distinguishable
STATUS_COLORS = {
    "MERGED": "magenta",
    "CLOSED": "red",
    "OPENED": "green",
    "IN PROGRESS": "yellow",
    "NOT STARTED": "dim",
    STATUS_LOADING: "dim italic",
}


# Picker mark column (multi-select mode)
SYMBOL_MARKED = "✓"
SYMBOL_UNMARKED = " "
SYMBOL_CURRENT = " *"
