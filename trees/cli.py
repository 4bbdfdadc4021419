"""Command line interface: list, add, remove, merge and pull worktrees."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from trees import tui
from trees.git import (
    GitError,
    WorktreeInfo,
    change_directory,
    create_worktree,
    get_branches,
    get_worktree_commit_hash,
    get_worktrees,
    merge_worktrees,
    pull_all_worktrees,
    remove_worktree,
)
from trees.shells import UnsupportedShellError, shell_script

_PROG = "trees-bin"
_VERSION = "1.0.0"
_CREATE_BRANCH = "Create new branch"
_CREATE_WORKTREE = "Create new worktree"
_OPTION_SEPARATOR = " -> "


def _add_global_options(parser: argparse.ArgumentParser, *, suppress: bool) -> None:
    parser.add_argument(
        "-p",
        "--path",
        metavar="PATH",
        default=argparse.SUPPRESS if suppress else "./",
        help="Set repo path",
    )
    parser.add_argument(
        "--dir-only",
        action="store_true",
        default=argparse.SUPPRESS if suppress else False,
        help="Output only directory paths (for shell integration)",
    )


def build_parser() -> argparse.ArgumentParser:
    """The argument parser; global options are accepted before or after a command."""
    parser = argparse.ArgumentParser(prog=_PROG, description="git worktrees simplified")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {_VERSION}")
    _add_global_options(parser, suppress=False)

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands = {
        "list": "List worktrees",
        "add": "Add a new worktree",
        "rm": "Remove a worktree",
        "merge": "Merge two worktrees",
        "pull": "Pull updates for all worktrees",
        "shell": "Show shell integration script",
    }
    for name, help_text in commands.items():
        sub = subparsers.add_parser(name, help=help_text, description=help_text)
        _add_global_options(sub, suppress=True)
        if name == "shell":
            sub.add_argument("shell", help="Shell type (zsh, bash, fish)")
    return parser


def format_worktree_option(worktree: WorktreeInfo) -> str:
    """Selector entry for a worktree: ``name -> path (branch)`` plus a dirty mark."""
    status = " (dirty)" if worktree.is_dirty else ""
    return (
        f"{worktree.name}{_OPTION_SEPARATOR}{worktree.path} ({worktree.branch}){status}"
    )


def _name_from_option(option: str) -> str:
    return option.split(_OPTION_SEPARATOR, 1)[0]


def _branch_from_selection(selection: str) -> str:
    parts = selection.split(": ")
    return parts[1] if len(parts) > 1 else selection


def _branch_choices(repo_path: str) -> list[str]:
    local, remote = get_branches(repo_path)
    return [
        *(f"local: {name}" for name in local),
        *(f"remote: {name}" for name in remote),
        _CREATE_BRANCH,
    ]


def _find(worktrees: Sequence[WorktreeInfo], name: str) -> WorktreeInfo | None:
    return next((wt for wt in worktrees if wt.name == name), None)


def _say(message: str, dir_only: bool) -> None:
    if not dir_only:
        print(message)


def _cmd_list(repo_path: str, dir_only: bool) -> None:
    worktrees = get_worktrees(repo_path)
    if not worktrees:
        _say("No worktrees found", dir_only)
        return
    if dir_only:
        print(worktrees[0].path)
        return
    for worktree in worktrees:
        try:
            commit_hash = get_worktree_commit_hash(worktree.path)
        except GitError:
            commit_hash = "unknown"
        branch_display = "" if worktree.branch == "detached" else f" [{worktree.branch}]"
        print(f"{worktree.path} {commit_hash} {branch_display}")


def _cmd_add(repo_path: str, dir_only: bool) -> None:
    selected = tui.select_branch(_branch_choices(repo_path))
    if selected is None:
        _say("No branch selected, exiting", dir_only)
        return
    if selected == _CREATE_BRANCH:
        branch_name = tui.create_new_branch()
        if branch_name is None:
            _say("No branch name provided, exiting", dir_only)
            return
        _say(f"Creating new branch: {branch_name}", dir_only)
    else:
        branch_name = _branch_from_selection(selected)
        _say(f"Selected branch: {branch_name}", dir_only)

    _say(f"Creating worktree for branch: {branch_name}", dir_only)
    worktree_name = create_worktree(repo_path, branch_name)
    worktree = _find(get_worktrees(repo_path), worktree_name)
    if worktree is None:
        return
    if dir_only:
        print(worktree.path)
    else:
        change_directory(worktree.path)


def _cmd_rm(repo_path: str) -> None:
    worktrees = get_worktrees(repo_path)
    if not worktrees:
        print("No worktrees found")
        return
    selected = tui.select_worktree([format_worktree_option(wt) for wt in worktrees])
    if selected is None:
        return
    name = _name_from_option(selected)
    worktree = _find(worktrees, name)
    if worktree is None:
        return
    if worktree.is_dirty and not tui.confirm_deletion(name):
        print("Deletion cancelled")
        return
    remove_worktree(repo_path, name)


def _cmd_merge(repo_path: str) -> None:
    worktrees = get_worktrees(repo_path)
    if not worktrees:
        print("No worktrees found")
        return
    options = [format_worktree_option(wt) for wt in worktrees]

    print("Select source worktree (to merge FROM):")
    source = tui.select_worktree(options)
    if source is None:
        print("No source worktree selected, exiting")
        return

    print("Select target worktree (to merge INTO):")
    target = tui.select_worktree(options)
    if target is None:
        print("No target worktree selected, exiting")
        return

    merge_worktrees(repo_path, _name_from_option(source), _name_from_option(target))


def _current_dir() -> str:
    try:
        return str(Path.cwd().resolve(strict=True))
    except OSError:
        return "."


def _cmd_default(repo_path: str, dir_only: bool) -> None:
    worktrees = get_worktrees(repo_path)
    if not worktrees:
        return
    current = _current_dir()
    available = [wt for wt in worktrees if wt.path != current]
    if not available:
        return
    if dir_only:
        print(available[0].path)
        return

    options = [format_worktree_option(wt) for wt in available]
    options.append(_CREATE_WORKTREE)
    selected = tui.select_worktree(options)
    if selected is None:
        return

    if selected != _CREATE_WORKTREE:
        worktree = _find(available, _name_from_option(selected))
        if worktree is not None:
            print(worktree.path)
        return

    branch_selected = tui.select_branch(_branch_choices(repo_path))
    if branch_selected is None:
        return
    if branch_selected == _CREATE_BRANCH:
        branch_name = tui.create_new_branch()
        if branch_name is None:
            return
    else:
        branch_name = _branch_from_selection(branch_selected)

    worktree_name = create_worktree(repo_path, branch_name)
    worktree = _find(get_worktrees(repo_path), worktree_name)
    if worktree is not None:
        print(worktree.path)


def _dispatch(args: argparse.Namespace) -> None:
    repo_path: str = args.path
    dir_only: bool = args.dir_only
    if not Path(repo_path).exists():
        raise GitError("need an existing repo, set --path or cd to git repo")

    if args.command == "list":
        _cmd_list(repo_path, dir_only)
    elif args.command == "add":
        _cmd_add(repo_path, dir_only)
    elif args.command == "rm":
        _cmd_rm(repo_path)
    elif args.command == "merge":
        _cmd_merge(repo_path)
    elif args.command == "pull":
        pull_all_worktrees(repo_path)
    elif args.command == "shell":
        print(shell_script(args.shell))
    else:
        _cmd_default(repo_path, dir_only)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the process exit status."""
    args = build_parser().parse_args(argv)
    try:
        _dispatch(args)
    except (GitError, UnsupportedShellError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())