"""Command-line interface for git-worktree-keeper"""

import os
import sys
from rich.console import Console

from git_worktree_keeper.cli.args import parse_args
from git_worktree_keeper.config import Config
from git_worktree_keeper.core import WorktreeKeeper
from git_worktree_keeper.exceptions import GitWorktreeKeeperError
from git_worktree_keeper.services.git import GitOperations
from git_worktree_keeper.logging_config import setup_logging
from git_worktree_keeper.utils.paths import caller_cwd

console = Console(stderr=True)


def _uses_picker(args) -> bool:
    if args.command in ("go", "run"):
        return not args.branch
    return args.command == "rm" and not args.branches


def _print_path(path: str) -> None:
    """The one stdout line a shell wrapper reads to cd."""
    print(path)


def run_command(keeper: WorktreeKeeper, args) -> int:
    """Dispatch a parsed command. Returns the exit code."""
    command = args.command

    if command == "new":
        path = keeper.new_worktree(args.branch, from_ref=args.from_ref,
                                   from_current=args.from_current,
                                   hook_background=args.hook_background)
        _print_path(keeper.landing_path(path))

    elif command == "add":
        path = keeper.add_worktree(args.branch, hook_background=args.hook_background)
        _print_path(keeper.landing_path(path))

    elif command == "go":
        landing = keeper.go(args.branch, show_path=args.show_path)
        if landing is None:
            console.print("[yellow]Selection cancelled[/yellow]")
            return 1
        _print_path(landing)

    elif command == "rm":
        if args.branches:
            removed, failed = keeper.remove_branches(args.branches, force=args.force,
                                                     hook_background=args.hook_background)
        else:
            result = keeper.remove_interactive(force=args.force, hook_background=args.hook_background,
                                               show_path=args.show_path)
            if result is None:
                console.print("[yellow]Selection cancelled[/yellow]")
                return 1
            removed, failed = result
        keeper.print_summary(removed, failed)
        if failed:
            console.print(f"[red]Failed: {', '.join(failed)}[/red]")
            return 1

    elif command == "mv":
        _print_path(keeper.move(args.old_branch, args.new_branch))

    elif command == "sync":
        count = keeper.sync()
        console.print(f"Synced {count} symlink(s)")

    elif command == "setup":
        keeper.setup(hook_background=args.hook_background, run_hooks=not args.no_hooks)
        console.print("[green]Setup complete[/green]")

    elif command == "run":
        code = keeper.run_in_worktree(args.run_args, branch=args.branch, show_path=args.show_path)
        if code is None:
            console.print("[yellow]Selection cancelled[/yellow]")
            return 1
        return code

    elif command == "link":
        dst = keeper.link(args.path)
        console.print(f"Linked: {os.path.abspath(args.path)} -> {dst}", highlight=False)

    elif command == "unlink":
        target = keeper.unlink(args.path)
        console.print(f"Unlinked: {os.path.abspath(args.path)} (copied from: {target})", highlight=False)

    elif command == "list":
        keeper.display_worktrees(keeper.list_worktrees())

    elif command == "clean":
        keeper.clean()
        console.print("Pruned stale worktree references")

    elif command == "config":
        if args.config_command == "get":
            print(keeper.config_get(args.key))
        elif args.config_command == "set":
            full_key = keeper.config_set(args.key, args.value)
            console.print(f"Set {full_key} = {args.value}", highlight=False)
        else:
            pairs = keeper.config_list()
            if not pairs:
                console.print("No gwk configuration found")
            for key, value in pairs:
                print(f"{key} = {value}")

    return 0


def main(argv=None):
    """Main entry point for the application."""
    parsed_args = None
    keeper = None
    try:
        parsed_args = parse_args(argv)

        # The picker owns the terminal; logs go to the file only
        setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug,
                      tui_mode=_uses_picker(parsed_args))

        cwd = caller_cwd()
        config = Config.from_git(
            GitOperations(cwd),
            verbose=parsed_args.verbose,
            debug=parsed_args.debug,
            workers=parsed_args.workers,
        )

        if parsed_args.debug:
            console.print("[yellow]Debug mode enabled[/yellow]")

            from git_worktree_keeper.utils.threading import get_threading_info
            threading_info = get_threading_info()
            console.print("[yellow]Threading Information:[/yellow]")
            console.print(f"  Python version: {threading_info['python_version']}")
            console.print(f"  Threading mode: {threading_info['mode']}")
            console.print(f"  CPU count: {threading_info['cpu_count']}")
            console.print(f"  Optimal workers: {threading_info['optimal_workers']}")

            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                if key == "github_token" and value:
                    value = "***"
                console.print(f"  {key}: {value}")

        keeper = WorktreeKeeper(cwd, config)
        return run_command(keeper, parsed_args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except GitWorktreeKeeperError as e:
        console.print(f"[red]Error: {e}[/red]", highlight=False)
        if parsed_args is not None and parsed_args.debug:
            console.print_exception()
        return 1
    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/red]", highlight=False)
        if parsed_args is not None and parsed_args.debug:
            console.print_exception()
        return 1
    finally:
        if keeper is not None:
            keeper.close()


if __name__ == "__main__":
    sys.exit(main())
