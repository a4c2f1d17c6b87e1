"""Lifecycle hook execution (post-create, post-checkout, post-remove)."""

import os
import shlex
import subprocess
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from git_worktree_keeper.constants import CONFIG_NAMESPACE, HOOK_LOG_PREFIX, HOOK_POST_CHECKOUT
from git_worktree_keeper.exceptions import HookExecutionError
from git_worktree_keeper.services.git.operations import GitOperations
from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)


def config_key_for_hook(name: str) -> str:
    """Git config key holding the commands of hook ``name``."""
    if name == HOOK_POST_CHECKOUT:
        return f"{CONFIG_NAMESPACE}.hooks.postCheckout"
    return f"{CONFIG_NAMESPACE}.hooks.{name}"


def _timestamp() -> str:
    return datetime.now(timezone.utc).astimezone().isoformat(timespec="seconds")


class HookRunner:
    """Runs the shell commands configured for a hook inside a worktree.

    Commands come from the multi-valued git config key
    ``gwk.hooks.<name>`` and run through ``sh -c`` with the worktree as the
    working directory. Output is appended to ``<worktree>/gwk-hook-<name>.log``,
    each command preceded by a timestamped header.
    """

    def __init__(self, git_ops: GitOperations):
        self.git_ops = git_ops

    @staticmethod
    def log_file(worktree_path: str, hook_name: str) -> str:
        return os.path.join(worktree_path, f"{HOOK_LOG_PREFIX}{hook_name}.log")

    def commands(self, worktree_path: str, hook_name: str) -> List[str]:
        key = config_key_for_hook(hook_name)
        return [c for c in self.git_ops.config_get_all(key, cwd=worktree_path) if c.strip()]

    def run(
        self,
        worktree_path: str,
        hook_name: str,
        env: Optional[Dict[str, str]] = None,
        background: bool = False,
    ) -> Tuple[bool, Optional[Exception]]:
        """Run hook ``hook_name``.

        Returns:
            Tuple of (ran, error). ``ran`` is False when no commands are
            configured. ``error`` is only ever set for foreground runs: the
            first failing command stops the sequence.
        """
        cmds = self.commands(worktree_path, hook_name)
        if not cmds:
            logger.debug(f"No {hook_name} hook configured")
            return False, None

        full_env = dict(os.environ)
        full_env.update(env or {})
        log_path = self.log_file(worktree_path, hook_name)

        if background:
            return self._run_background(worktree_path, hook_name, cmds, full_env, log_path)
        return self._run_foreground(worktree_path, hook_name, cmds, full_env, log_path)

    def _run_foreground(self, worktree_path: str, hook_name: str, cmds: List[str],
                        env: Dict[str, str], log_path: str) -> Tuple[bool, Optional[Exception]]:
        try:
            log = open(log_path, "a")
        except OSError as e:
            logger.error(f"Cannot open hook log {log_path}: {e}")
            return False, e

        ran = False
        with log:
            for cmd in cmds:
                log.write(f"\n=== {_timestamp()}: {cmd} ===\n")
                log.flush()
                logger.debug(f"Running {hook_name} hook: {cmd}")
                try:
                    result = subprocess.run(
                        ["sh", "-c", cmd],
                        cwd=worktree_path,
                        env=env,
                        stdin=subprocess.DEVNULL,
                        stdout=log,
                        stderr=subprocess.STDOUT,
                        check=False,
                    )
                except OSError as e:
                    logger.error(f"Failed to start {hook_name} hook command '{cmd}': {e}")
                    return True, e
                ran = True
                if result.returncode != 0:
                    error = HookExecutionError(hook_name, cmd, result.returncode)
                    logger.warning(str(error))
                    return True, error
        return ran, None

    def _run_background(self, worktree_path: str, hook_name: str, cmds: List[str],
                        env: Dict[str, str], log_path: str) -> Tuple[bool, Optional[Exception]]:
        ran = False
        for cmd in cmds:
            header = f"=== {_timestamp()}: {cmd} ==="
            wrapped = (
                f"{{ echo ''; echo {shlex.quote(header)}; {cmd}\n}} "
                f">> {shlex.quote(log_path)} 2>&1"
            )
            try:
                subprocess.Popen(
                    ["sh", "-c", wrapped],
                    cwd=worktree_path,
                    env=env,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    start_new_session=True,
                )
            except OSError as e:
                logger.warning(f"Failed to start {hook_name} hook command '{cmd}': {e}")
                continue
            logger.debug(f"Started {hook_name} hook in background: {cmd}")
            ran = True
        return ran, None
