"""Core worktree management functionality"""

import os
import subprocess
from typing import Callable, Dict, List, Optional, Tuple, Union

from rich.console import Console
from rich.table import Table

from git_worktree_keeper.config import Config, normalize_config_key
from git_worktree_keeper.constants import (
    COLUMNS,
    CONFIG_NAMESPACE,
    DETACHED_MARKER,
    ENV_BRANCH,
    ENV_HOOK_NAME,
    ENV_NEW_BRANCH,
    ENV_PREV_BRANCH,
    ENV_WORKTREE_PATH,
    HOOK_POST_CHECKOUT,
    HOOK_POST_CREATE,
    HOOK_POST_REMOVE,
)
from git_worktree_keeper.exceptions import (
    ConfigError,
    GitOperationError,
    GitWorktreeKeeperError,
    WorktreeNotFoundError,
)
from git_worktree_keeper.formatters import entry_status, status_text
from git_worktree_keeper.models.collection import WorktreeCollection
from git_worktree_keeper.models.worktree import Worktree, WorktreeEntry
from git_worktree_keeper.services.branch_status_service import BranchStatusResolver
from git_worktree_keeper.services.git import GitOperations, WorktreeService
from git_worktree_keeper.services.hook_service import HookRunner
from git_worktree_keeper.services.path_planner import PathPlanner
from git_worktree_keeper.services.refresh_service import (
    StatusLoader,
    StatusRefreshCoordinator,
    build_entries,
)
from git_worktree_keeper.services.relocation_service import RelocationService
from git_worktree_keeper.services.review_service import create_review_provider
from git_worktree_keeper.services.symlink_service import (
    SymlinkSynchronizer,
    link_into_primary,
    materialize_symlink,
)
from git_worktree_keeper.utils.paths import caller_cwd, relative_within, resolve_abs, same_path
from git_worktree_keeper.logging_config import get_logger

# stdout carries only the directory a shell wrapper should cd into
console = Console(stderr=True)
logger = get_logger(__name__)


class WorktreeKeeper:
    """Main class for managing the worktrees of one repository."""

    def __init__(self, repo_path: str, config: Optional[Union[Config, dict]] = None,
                 tui_mode: bool = False):
        """Initialize WorktreeKeeper.

        Args:
            repo_path: Directory inside the repository (usually the caller's cwd)
            config: Configuration; loaded from git config when omitted
            tui_mode: If True, suppresses Rich console output while the picker runs
        """
        self.repo_path = repo_path
        self.tui_mode = tui_mode

        self.git_ops = GitOperations(repo_path)
        self.root = self.git_ops.root()

        if config is None:
            self.config = Config.from_git(self.git_ops)
        elif isinstance(config, dict):
            self.config = Config.from_dict(config)
        else:
            self.config = config
        self.verbose = self.config.get("verbose", False)
        self.debug_mode = self.config.get("debug", False)

        # Initialize services
        self.worktree_service = WorktreeService(self.git_ops)
        self.path_planner = PathPlanner(self.git_ops, self.config)
        self.symlinks = SymlinkSynchronizer(self.git_ops, self.config, verbose=self.verbose)
        self.hooks = HookRunner(self.git_ops)
        self.relocation = RelocationService(
            self.git_ops, self.worktree_service, self.path_planner, verbose=not tui_mode
        )
        self.coordinator = StatusRefreshCoordinator(self.config.get("workers"))
        self._resolver: Optional[BranchStatusResolver] = None

    def _console_print(self, *args, **kwargs):
        """Print to stderr only when not in TUI mode."""
        if not self.tui_mode:
            console.print(*args, **kwargs)

    @property
    def resolver(self) -> BranchStatusResolver:
        """Status resolver shared by everything this invocation shows."""
        if self._resolver is None:
            provider = create_review_provider(self.config, self.git_ops)
            logger.debug(f"Review provider: {provider.name}")
            self._resolver = BranchStatusResolver(self.git_ops, provider, self.config)
        return self._resolver

    def close(self):
        """Release provider connections."""
        if self._resolver is not None:
            self._resolver.close()

    # Locations

    def primary_path(self) -> Optional[str]:
        try:
            return self.git_ops.primary_worktree_path()
        except GitOperationError as e:
            logger.debug(f"Primary worktree not found: {e}")
            return None

    def current_path(self) -> Optional[str]:
        try:
            return self.worktree_service.current_worktree_path(caller_cwd())
        except GitOperationError:
            return None

    def landing_path(self, target: str) -> str:
        """``target`` plus the caller's subdirectory within the current worktree, when it exists there."""
        rel = relative_within(self.root, caller_cwd()) or "."
        if rel != ".":
            candidate = os.path.join(target, rel)
            if os.path.isdir(candidate):
                return candidate
        return target

    # Creation

    def _hook_background(self, override: Optional[bool]) -> bool:
        return self.config.get("hooks_background", False) if override is None else override

    def new_worktree(self, branch: str, from_ref: Optional[str] = None, from_current: bool = False,
                     hook_background: Optional[bool] = None) -> str:
        """Create a worktree on a new branch; returns the directory to land in."""
        try:
            self.worktree_service.find_by_branch(branch)
        except WorktreeNotFoundError:
            pass
        else:
            raise GitWorktreeKeeperError(f"Worktree already exists for branch: {branch}")
        if self.git_ops.branch_exists(branch):
            raise GitWorktreeKeeperError(f"Branch already exists: {branch}")

        base_ref = from_ref
        symlink_source: Optional[str] = None
        if from_current:
            base_ref = self.git_ops.branch_at(self.root)
            symlink_source = self.root
        elif from_ref:
            try:
                symlink_source = self.worktree_service.find_by_branch(from_ref)
            except WorktreeNotFoundError:
                symlink_source = None
        if not base_ref:
            base_ref = self.git_ops.primary_branch()

        path = self.path_planner.compute_path(branch)
        self.git_ops.add_worktree(path, branch, new_branch=True, base_ref=base_ref)
        self.worktree_service.clear_cache()
        self._console_print(f"[green]Created branch[/green] {branch} from {base_ref or 'HEAD'}",
                            highlight=False)
        self._console_print(f"Worktree at {path}", highlight=False)

        self._post_create(branch, path, symlink_source, hook_background)
        return path

    def add_worktree(self, branch: str, hook_background: Optional[bool] = None) -> str:
        """Create a worktree for an existing (possibly remote-only) branch."""
        if not self.git_ops.fetch_branch(branch):
            logger.debug(f"Could not fetch {branch} from origin")

        path = self.path_planner.compute_path(branch)
        self.git_ops.add_worktree(path, branch)
        self.worktree_service.clear_cache()
        self._console_print(f"Worktree at {path}", highlight=False)

        self._post_create(branch, path, None, hook_background)
        return path

    def _post_create(self, branch: str, path: str, symlink_source: Optional[str],
                     hook_background: Optional[bool]) -> None:
        source = symlink_source or self.primary_path() or self.root
        if not same_path(source, path):
            count = self.symlinks.sync(source, path)
            logger.info(f"Created {count} symlink(s) in {path}")

        self._run_post_create_hook(branch, path, hook_background)

    def _run_post_create_hook(self, branch: str, path: str, hook_background: Optional[bool]) -> bool:
        return self.run_hook(path, HOOK_POST_CREATE, {
            ENV_HOOK_NAME: HOOK_POST_CREATE,
            ENV_BRANCH: branch,
            ENV_WORKTREE_PATH: path,
        }, self._hook_background(hook_background))

    def setup(self, hook_background: Optional[bool] = None, run_hooks: bool = True) -> int:
        """Re-run post-create setup (symlinks, then the post-create hook) on the current worktree.

        Returns the number of symlinks created.
        """
        current = self.current_path() or self.root
        primary = self.primary_path()
        if not primary:
            raise GitOperationError("find_primary", message="primary worktree not found")
        if same_path(current, primary):
            raise GitWorktreeKeeperError("You are in the primary worktree; setup is for secondary worktrees")

        count = self.symlinks.sync(primary, current)
        if run_hooks:
            self._run_post_create_hook(self.git_ops.branch_at(current), current, hook_background)
        return count

    def run_hook(self, path: str, hook_name: str, env: Dict[str, str], background: bool) -> bool:
        """Run a hook and report the outcome on stderr; errors are never raised."""
        ran, error = self.hooks.run(path, hook_name, env, background=background)
        if not ran:
            return False
        log_file = self.hooks.log_file(path, hook_name)
        if error is not None:
            self._console_print(
                f"[yellow]Warning: {hook_name} hook completed with errors (see {log_file})[/yellow]"
            )
        elif background:
            self._console_print(f"[dim]{hook_name} hook started in background (log: {log_file})[/dim]")
        else:
            self._console_print(f"[dim]{hook_name} hook executed[/dim]")
        return True

    # Browsing

    def build_collection(self, exclude: Optional[Callable[[Worktree], bool]] = None,
                         show_path: Optional[bool] = None) -> WorktreeCollection:
        worktrees = self.worktree_service.list_worktrees()
        entries = build_entries(worktrees, self.primary_path(), self.current_path(), skip=exclude)
        if show_path is None:
            show_path = self.config.get("show_path", False)
        return WorktreeCollection(entries, show_path=show_path)

    def start_loader(self, collection: WorktreeCollection) -> StatusLoader:
        return self.coordinator.start_loader(collection, self.resolver)

    def pick(self, collection: WorktreeCollection, multi: bool = False,
             prompt: str = "Select worktree") -> Optional[List[WorktreeEntry]]:
        """Show the picker while statuses load in the background."""
        if not collection.base:
            raise GitWorktreeKeeperError("No worktrees available for selection")
        from git_worktree_keeper.tui import pick_worktrees

        loader = self.start_loader(collection)
        return pick_worktrees(collection, multi=multi, prompt=prompt, loader=loader)

    def go(self, branch: Optional[str] = None, show_path: Optional[bool] = None) -> Optional[str]:
        """Directory to switch to; None when the picker was cancelled."""
        if branch:
            target = self.worktree_service.find_by_branch(branch)
        else:
            current = self.current_path()
            collection = self.build_collection(
                exclude=lambda wt: same_path(wt.path, current), show_path=show_path
            )
            chosen = self.pick(collection)
            if not chosen:
                return None
            target = chosen[0].path

        current = self.current_path() or self.root
        prev_branch = self._branch_or_empty(current)
        new_branch = self._branch_or_empty(target)

        landing = self.landing_path(target)
        if prev_branch and new_branch:
            self._console_print(f"Switched from \\[{prev_branch}] to \\[{new_branch}]", highlight=False)
        else:
            self._console_print(f"Switched to worktree: {target}", highlight=False)

        self.run_hook(target, HOOK_POST_CHECKOUT, {
            ENV_HOOK_NAME: HOOK_POST_CHECKOUT,
            ENV_PREV_BRANCH: prev_branch,
            ENV_NEW_BRANCH: new_branch,
        }, self._hook_background(None))
        return landing

    def run_in_worktree(self, command: List[str], branch: Optional[str] = None,
                        show_path: Optional[bool] = None) -> Optional[int]:
        """Run ``command`` inside a worktree picked by branch or from the picker.

        The command inherits the terminal. Returns its exit code, or None
        when the picker was cancelled.
        """
        if not command:
            raise GitWorktreeKeeperError("command required after '--'")
        if branch:
            path = self.worktree_service.find_by_branch(branch)
        else:
            chosen = self.pick(self.build_collection(show_path=show_path),
                               prompt="Select worktree to run command")
            if not chosen:
                return None
            path = chosen[0].path

        logger.info(f"Running {command} in {path}")
        try:
            result = subprocess.run(command, cwd=path, check=False)
        except OSError as e:
            raise GitWorktreeKeeperError(f"Failed to run {command[0]}: {e}") from e
        return result.returncode

    def _branch_or_empty(self, path: str) -> str:
        try:
            return self.git_ops.branch_at(path)
        except GitOperationError:
            return ""

    def list_worktrees(self) -> List[WorktreeEntry]:
        """Every worktree with its resolved status (blocks until resolved)."""
        collection = self.build_collection()
        loader = self.start_loader(collection)
        loader.wait()
        return list(collection.base)

    def display_worktrees(self, entries: List[WorktreeEntry]) -> None:
        table = Table(show_header=True, header_style="bold")
        for col in COLUMNS:
            table.add_column(col.label)
        for entry in entries:
            branch = entry.display_branch + (" *" if entry.is_current else "")
            assignees = f"@{entry.assignees_display}" if entry.assignees else ""
            table.add_row(branch, status_text(entry_status(entry)), assignees, entry.path)
        console.print(table)

    # Removal

    def remove_worktree(self, path: str, force: bool = False,
                        hook_background: Optional[bool] = None) -> None:
        """Remove the worktree at ``path``, then its branch, then run post-remove.

        Raises:
            GitOperationError: if git refuses to remove the worktree
        """
        branch = self._branch_or_empty(path)
        self._console_print(f"Removing worktree: {path}", highlight=False)
        success, error = self.worktree_service.remove_worktree(path, force=force)
        if not success:
            raise GitOperationError("worktree remove", branch or None, error)

        if branch and branch != DETACHED_MARKER:
            try:
                self.git_ops.delete_branch(branch, force=True)
                self._console_print(f"[green]Deleted branch:[/green] {branch}", highlight=False)
            except GitOperationError as e:
                logger.warning(f"Failed to delete branch {branch}: {e}")
                self._console_print(f"[yellow]Failed to delete branch: {branch}[/yellow]", highlight=False)

        primary = self.primary_path()
        if primary:
            self.run_hook(primary, HOOK_POST_REMOVE, {
                ENV_HOOK_NAME: HOOK_POST_REMOVE,
                ENV_BRANCH: branch,
                ENV_WORKTREE_PATH: path,
            }, self._hook_background(hook_background))

    def remove_branches(self, branches: List[str], force: bool = False,
                        hook_background: Optional[bool] = None) -> Tuple[int, List[str]]:
        """Remove the worktrees of ``branches``; returns (removed, failed branch names)."""
        current = self.current_path()
        removed, failed = 0, []
        for branch in branches:
            try:
                path = self.worktree_service.find_by_branch(branch)
                if same_path(path, current):
                    raise GitWorktreeKeeperError(f"Cannot remove current worktree for branch: {branch}")
                self.remove_worktree(path, force=force, hook_background=hook_background)
            except GitWorktreeKeeperError as e:
                logger.error(str(e))
                self._console_print(f"[red]Failed to remove worktree for branch: {branch}[/red]",
                                    highlight=False)
                failed.append(branch)
                continue
            removed += 1
            self._console_print(f"[green]Removed worktree for branch:[/green] {branch}", highlight=False)
        return removed, failed

    def remove_interactive(self, force: bool = False, hook_background: Optional[bool] = None,
                           show_path: Optional[bool] = None) -> Optional[Tuple[int, List[str]]]:
        """Pick worktrees to remove; None when the picker was cancelled."""
        current = self.current_path()
        primary = self.primary_path()
        collection = self.build_collection(
            exclude=lambda wt: same_path(wt.path, current) or same_path(wt.path, primary),
            show_path=show_path,
        )
        chosen = self.pick(collection, multi=True,
                           prompt="Select worktree(s) to remove (SPACE to mark, ENTER to confirm)")
        if not chosen:
            return None

        removed, failed = 0, []
        for entry in chosen:
            try:
                self.remove_worktree(entry.path, force=force, hook_background=hook_background)
            except GitWorktreeKeeperError as e:
                self._console_print(f"[red]Failed to remove worktree: {entry.path}\n  {e}[/red]",
                                    highlight=False)
                failed.append(entry.path)
                continue
            removed += 1
            self._console_print(f"[green]Removed worktree:[/green] {entry.path}", highlight=False)
        return removed, failed

    def print_summary(self, removed: int, failed: List[str], noun: str = "worktree") -> None:
        if failed:
            self._console_print(
                f"Removed {removed} {noun}(s), [red]{len(failed)} failed[/red]", highlight=False
            )
        else:
            self._console_print(f"[green]Removed {removed} {noun}(s)[/green]", highlight=False)

    def clean(self) -> None:
        """Prune metadata of worktrees whose directories are gone."""
        success, error = self.worktree_service.prune_worktrees()
        if not success:
            raise GitOperationError("worktree prune", message=error)

    # Relocation

    def move(self, old_branch: str, new_branch: str) -> str:
        return self.relocation.move(old_branch, new_branch)

    # Symlinks

    def sync(self) -> int:
        """Mirror ignored files from the primary worktree into the current one."""
        current = self.current_path() or self.root
        primary = self.primary_path()
        if not primary:
            raise GitOperationError("find_primary", message="primary worktree not found")
        if same_path(current, primary):
            raise GitWorktreeKeeperError("You are in the primary worktree; nothing to sync")
        return self.symlinks.sync(primary, current)

    def link(self, path: str) -> str:
        primary = self.primary_path()
        if not primary:
            raise GitOperationError("find_primary", message="primary worktree not found")
        return link_into_primary(resolve_abs(path), self.root, primary)

    def unlink(self, path: str) -> str:
        return materialize_symlink(resolve_abs(path))

    # Configuration

    def config_get(self, key: str) -> str:
        full_key = normalize_config_key(key)
        value = self.git_ops.config_get(full_key)
        if value is None:
            raise ConfigError(f"Key not found: {key}")
        return value

    def config_set(self, key: str, value: str) -> str:
        full_key = normalize_config_key(key)
        self.git_ops.config_set(full_key, value)
        return full_key

    def config_list(self) -> List[Tuple[str, str]]:
        return self.git_ops.config_get_regexp(f"^{CONFIG_NAMESPACE}\\.")
