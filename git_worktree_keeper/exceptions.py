"""Custom exceptions for git-worktree-keeper"""

from typing import Optional


class GitWorktreeKeeperError(Exception):
    """Base exception for all git-worktree-keeper errors."""
    pass


class GitOperationError(GitWorktreeKeeperError):
    """Exception raised for errors in Git operations."""

    def __init__(self, operation: str, branch: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.branch = branch
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class NotInRepositoryError(GitWorktreeKeeperError):
    """Exception raised when a command runs outside a git repository."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Not in a git repository: {path}")


class WorktreeNotFoundError(GitWorktreeKeeperError):
    """Exception raised when no worktree is checked out on a branch."""

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(f"No worktree found for branch: {branch}")


class InvalidBranchNameError(GitWorktreeKeeperError):
    """Exception raised when a branch name cannot be mapped to a worktree path."""

    def __init__(self, branch: str, reason: str = "invalid worktree path"):
        self.branch = branch
        self.reason = reason
        super().__init__(f"Invalid branch name '{branch}': {reason}")


class UnsupportedRemoteError(GitWorktreeKeeperError):
    """Exception raised when the origin URL cannot be parsed."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Unsupported remote: {url}")


class ConfigError(GitWorktreeKeeperError):
    """Exception raised for invalid configuration values."""
    pass


class SymlinkSyncError(GitWorktreeKeeperError):
    """Exception raised when mirroring ignored files stops partway.

    ``created`` holds the number of links made before the failure.
    """

    def __init__(self, path: str, created: int, message: Optional[str] = None):
        self.path = path
        self.created = created
        error_msg = f"Failed to create symlink {path} (created {created} before failure)"
        if message:
            error_msg += f": {message}"
        super().__init__(error_msg)


class HookExecutionError(GitWorktreeKeeperError):
    """Exception raised when a foreground hook command exits non-zero."""

    def __init__(self, hook: str, command: str, returncode: int):
        self.hook = hook
        self.command = command
        self.returncode = returncode
        super().__init__(f"Hook '{hook}' command '{command}' exited with status {returncode}")


class RelocationError(GitWorktreeKeeperError):
    """Base exception for rejected worktree moves."""
    pass


class InvalidInputError(RelocationError):
    """Exception raised for empty or identical branch names."""
    pass


class PrimaryWorktreeProtectedError(RelocationError):
    """Exception raised when attempting to move the primary worktree."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Cannot move primary worktree: {path}")


class DetachedWorktreeProtectedError(RelocationError):
    """Exception raised when attempting to move a worktree on a detached HEAD."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Cannot move detached worktree: {path}")


class BranchMismatchError(RelocationError):
    """Exception raised when a worktree is not on the branch the caller expected."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Worktree branch mismatch: expected {expected}, got {actual}")


class DestinationExistsError(RelocationError):
    """Exception raised when the relocation target is already occupied."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Destination already exists: {path}")
