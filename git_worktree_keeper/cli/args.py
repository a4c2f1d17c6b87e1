"""Command-line argument parsing for git-worktree-keeper."""

import argparse
import sys

from git_worktree_keeper.__version__ import __version__


RUN_USAGE = "gwk run [branch] -- <command> [args...]"


def _add_hook_mode(parser: argparse.ArgumentParser, hook: str):
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--hook-bg",
        dest="hook_background",
        action="store_const",
        const=True,
        help=f"Run {hook} hook in background",
    )
    group.add_argument(
        "--hook-fg",
        dest="hook_background",
        action="store_const",
        const=False,
        help=f"Run {hook} hook in foreground (override config)",
    )
    return group


def _add_verbose(parser: argparse.ArgumentParser) -> None:
    # SUPPRESS keeps the global -v when the sub-command flag is absent
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Show each symlink created",
    )


def _add_show_path(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--show-path",
        action="store_true",
        default=None,
        help="Display worktree paths in the picker",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all sub-commands."""
    parser = argparse.ArgumentParser(
        prog="gwk",
        description="Git worktree manager: one directory per branch, with live review status",
        epilog="Commands that change directory print the target path on stdout; "
        "wrap them in a shell function that cds into it. "
        "Review status uses the gh CLI, or the GitHub API when GITHUB_TOKEN or gwk.github.token is set.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--version", action="version", version=f"git-worktree-keeper {__version__}")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="Number of parallel status lookups (default: one per CPU)",
    )

    sub = parser.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    p = sub.add_parser("new", help="Create new worktree with a new branch")
    p.add_argument("branch")
    source = p.add_mutually_exclusive_group()
    source.add_argument("--from", dest="from_ref", metavar="REF",
                        help="Create from specific ref (branch, tag, or commit)")
    source.add_argument("--from-current", action="store_true", help="Create from current branch")
    _add_hook_mode(p, "post-create")
    _add_verbose(p)

    p = sub.add_parser("add", help="Create new worktree for an existing branch")
    p.add_argument("branch")
    _add_hook_mode(p, "post-create")
    _add_verbose(p)

    p = sub.add_parser("setup", help="Run post-create setup (symlinks + hooks) on current worktree")
    hooks = _add_hook_mode(p, "post-create")
    hooks.add_argument("--no-hooks", action="store_true", help="Skip post-create hooks")
    _add_verbose(p)

    p = sub.add_parser("run", help="Run a command in a worktree picked by branch or picker",
                       usage=RUN_USAGE)
    p.add_argument("branch", nargs="?")
    _add_show_path(p)

    p = sub.add_parser("go", help="Pick a worktree (or name its branch) and print its path")
    p.add_argument("branch", nargs="?")
    _add_show_path(p)

    p = sub.add_parser("rm", help="Remove worktree(s) by picker or by branch names")
    p.add_argument("branches", nargs="*", metavar="branch")
    p.add_argument("--force", action="store_true", help="Force remove")
    _add_show_path(p)
    _add_hook_mode(p, "post-remove")

    p = sub.add_parser("mv", help="Rename a branch and relocate its worktree directory")
    p.add_argument("old_branch")
    p.add_argument("new_branch")

    p = sub.add_parser("sync", help="Sync symlinks from primary worktree to current worktree")
    _add_verbose(p)

    p = sub.add_parser("link", help="Move file to primary worktree and create symlink")
    p.add_argument("path")

    p = sub.add_parser("unlink", help="Replace symlink with a real file/dir by copying its target")
    p.add_argument("path")

    sub.add_parser("list", help="List worktrees with their status")
    sub.add_parser("clean", help="Clean up stale worktree references")

    p = sub.add_parser("config", help="Manage gwk configuration")
    config_sub = p.add_subparsers(dest="config_command", metavar="<action>")
    config_sub.required = True
    g = config_sub.add_parser("get", help="Get configuration value")
    g.add_argument("key")
    s = config_sub.add_parser("set", help="Set configuration value")
    s.add_argument("key")
    s.add_argument("value")
    config_sub.add_parser("list", help="List all gwk configuration")

    return parser


def _split_run_command(argv):
    """Split ``run ... -- <command>`` into the gwk arguments and the command."""
    if "--" in argv:
        idx = argv.index("--")
        if "run" in argv[:idx]:
            return argv[:idx], argv[idx + 1:]
    return argv, None


def parse_args(argv=None):
    """Parse command-line arguments."""
    if argv is None:
        argv = sys.argv[1:]
    own_args, command = _split_run_command(list(argv))

    parser = build_parser()
    args = parser.parse_args(own_args)
    if args.command == "run":
        if command is None:
            parser.error(f"command required: use '{RUN_USAGE}'")
        if not command:
            parser.error("command required after '--'")
    args.run_args = command or []
    return args
