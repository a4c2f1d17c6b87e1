"""Configuration handling for git-worktree-keeper"""

from dataclasses import dataclass, field, fields
from typing import List, Optional, TYPE_CHECKING

from git_worktree_keeper.constants import (
    CONFIG_KEY_ALIASES,
    CONFIG_KEY_GITHUB_TOKEN,
    CONFIG_KEY_HOOKS_BACKGROUND,
    CONFIG_KEY_PICKER_SHOW_PATH,
    CONFIG_KEY_REVIEW_PROVIDER,
    CONFIG_KEY_SYMLINK_EXCLUDE,
    CONFIG_KEY_SYMLINK_INCLUDE,
    CONFIG_KEY_WORKTREE_BASE,
    CONFIG_NAMESPACE,
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_SYMLINK_PATTERNS,
    REVIEW_PROVIDERS,
)
from git_worktree_keeper.exceptions import ConfigError

if TYPE_CHECKING:
    from git_worktree_keeper.services.git.operations import GitOperations


def _is_true(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def normalize_config_key(key: str) -> str:
    """Full git config key for a short spelling (``hooks.background`` -> ``gwk.hooks.background``)."""
    if key in CONFIG_KEY_ALIASES:
        return CONFIG_KEY_ALIASES[key]
    if not key.startswith(f"{CONFIG_NAMESPACE}."):
        return f"{CONFIG_NAMESPACE}.{key}"
    return key


@dataclass
class Config:
    """Configuration for git-worktree-keeper with validation."""

    # Placement
    worktree_base: Optional[str] = None  # None = ~/.worktrees

    # Hooks
    hooks_background: bool = False

    # Review status
    review_provider: str = "auto"  # auto, gh, api, none
    github_token: Optional[str] = None

    # Symlink mirroring
    symlink_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_SYMLINK_PATTERNS))
    exclude_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))

    # Picker
    show_path: bool = False

    # Execution modes
    verbose: bool = False
    debug: bool = False
    workers: Optional[int] = None  # None = one per processor

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_review_provider()
        self._validate_workers()

    def _validate_review_provider(self):
        """Validate review_provider is one of allowed values."""
        self.review_provider = (self.review_provider or "auto").strip().lower()
        if self.review_provider not in REVIEW_PROVIDERS:
            raise ConfigError(
                f"review_provider must be one of {REVIEW_PROVIDERS}, got '{self.review_provider}'"
            )

    def _validate_workers(self):
        """Validate workers is positive when given."""
        if self.workers is not None and self.workers <= 0:
            raise ConfigError(f"workers must be positive, got {self.workers}")

    def to_dict(self) -> dict:
        """Convert config to a plain dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def get(self, key: str, default=None):
        """Get config value by key (dict-style access used by the services)."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)

    @classmethod
    def from_git(cls, git_ops: "GitOperations", **overrides) -> "Config":
        """Load settings from the repository's git config.

        Keyword overrides (command-line flags) win over stored values.
        """
        values = {
            "worktree_base": git_ops.config_get(CONFIG_KEY_WORKTREE_BASE),
            "hooks_background": _is_true(git_ops.config_get(CONFIG_KEY_HOOKS_BACKGROUND)),
            "review_provider": git_ops.config_get(CONFIG_KEY_REVIEW_PROVIDER) or "auto",
            "github_token": git_ops.config_get(CONFIG_KEY_GITHUB_TOKEN),
            "symlink_patterns": list(DEFAULT_SYMLINK_PATTERNS)
            + git_ops.config_get_all(CONFIG_KEY_SYMLINK_INCLUDE),
            "exclude_patterns": list(DEFAULT_EXCLUDE_PATTERNS)
            + git_ops.config_get_all(CONFIG_KEY_SYMLINK_EXCLUDE),
            "show_path": _is_true(git_ops.config_get(CONFIG_KEY_PICKER_SHOW_PATH)),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(values)
