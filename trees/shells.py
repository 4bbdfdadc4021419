"""Shell integration scripts that let ``trees`` change the current directory."""

from __future__ import annotations

from typing import Callable, Iterable, Tuple

SUPPORTED_SHELLS = ("zsh", "bash", "fish")

_BINARY = "trees-bin"

# Subcommands offered for completion, with their descriptions.
_COMMANDS = (
    ("add", "Add a new worktree"),
    ("list", "List worktrees"),
    ("rm", "Remove a worktree"),
    ("merge", "Merge two worktrees"),
    ("pull", "Pull updates for all worktrees"),
)

# First arguments that run the binary directly instead of asking for a directory.
_PASSTHROUGH = (
    "add",
    "rm",
    "merge",
    "pull",
    "list",
    "--help",
    "-h",
    "help",
    "--version",
    "-V",
    "--dir-only",
)

_Line = Tuple[int, str]


class UnsupportedShellError(ValueError):
    """Raised when no integration script exists for a shell."""


def _render(lines: Iterable[_Line]) -> str:
    return "\n".join(("    " * depth + text) if text else "" for depth, text in lines)


def _header(shell: str) -> list[_Line]:
    return [
        (0, f"# Trees {shell} integration"),
        (0, f'# Usage: eval "$({_BINARY} shell {shell})"'),
        (0, ""),
    ]


def _posix_wrapper() -> list[_Line]:
    pattern = "|".join(_PASSTHROUGH)
    return [
        (0, "trees() {"),
        (1, "local DIR"),
        (1, "local STATUS"),
        (1, "if [ $# -gt 0 ]; then"),
        (2, 'case "$1" in'),
        (3, f"{pattern})"),
        (4, f'{_BINARY} "$@"'),
        (4, "STATUS=$?"),
        (4, "return $STATUS"),
        (4, ";;"),
        (3, "*)"),
        (4, f'DIR=$({_BINARY} "$@" --dir-only)'),
        (4, "STATUS=$?"),
        (4, ";;"),
        (2, "esac"),
        (1, "else"),
        (2, f"DIR=$({_BINARY} --dir-only)"),
        (2, "STATUS=$?"),
        (1, "fi"),
        (1, 'if [ -n "$DIR" ]; then'),
        (2, '\\cd "$DIR"'),
        (1, "else"),
        (2, "( exit $STATUS )"),
        (1, "fi"),
        (0, "}"),
    ]


def _zsh_script() -> str:
    values = [(4, f"'{name}[{desc}]' \\") for name, desc in _COMMANDS]
    values[-1] = (values[-1][0], values[-1][1][: -len(" \\")])
    file_commands = "|".join(name for name, _ in _COMMANDS if name != "pull")
    completion: list[_Line] = [
        (0, ""),
        (0, "_trees() {"),
        (1, 'local curcontext="$curcontext" state line'),
        (1, "typeset -A opt_args"),
        (0, ""),
        (1, "_arguments -C \\"),
        (2, "'1: :->cmds' \\"),
        (2, "'*:: :->args'"),
        (0, ""),
        (1, 'case "$state" in'),
        (2, "cmds)"),
        (3, "_values 'trees commands' \\"),
        *values,
        (3, ";;"),
        (2, "args)"),
        (3, 'case "$line[1]" in'),
        (4, f"{file_commands})"),
        (5, "_files"),
        (5, ";;"),
        (3, "esac"),
        (3, ";;"),
        (1, "esac"),
        (0, "}"),
        (0, ""),
        (0, "compdef _trees trees"),
    ]
    return _render(_header("zsh") + _posix_wrapper() + completion)


def _bash_script() -> str:
    words = " ".join(name for name, _ in _COMMANDS)
    completion: list[_Line] = [
        (0, ""),
        (0, "_trees_completion() {"),
        (1, "local cur prev opts"),
        (1, "COMPREPLY=()"),
        (1, 'cur="${COMP_WORDS[COMP_CWORD]}"'),
        (1, 'prev="${COMP_WORDS[COMP_CWORD-1]}"'),
        (0, ""),
        (1, f'opts="{words}"'),
        (0, ""),
        (1, "if [[ ${cur} == * ]] ; then"),
        (2, 'COMPREPLY=( $(compgen -W "${opts}" -- ${cur}) )'),
        (1, "fi"),
        (0, "}"),
        (0, ""),
        (0, "complete -F _trees_completion trees"),
    ]
    return _render(_header("bash") + _posix_wrapper() + completion)


def _fish_script() -> str:
    cases = " ".join(f'"{word}"' for word in _PASSTHROUGH)
    wrapper: list[_Line] = [
        (0, "function trees"),
        (1, "set DIR"),
        (1, "set STATUS"),
        (1, "if [ $argv[1] ]"),
        (2, "switch $argv[1]"),
        (3, f"case {cases}"),
        (4, f"{_BINARY} $argv"),
        (4, "set STATUS $status"),
        (4, "return $STATUS"),
        (3, 'case "*"'),
        (4, f"set DIR ({_BINARY} $argv --dir-only)"),
        (4, "set STATUS $status"),
        (2, "end"),
        (1, "else"),
        (2, f"set DIR ({_BINARY} --dir-only)"),
        (2, "set STATUS $status"),
        (1, "end"),
        (1, 'if [ -n "$DIR" ]'),
        (2, '\\cd "$DIR"'),
        (1, "else"),
        (2, "exit $STATUS"),
        (1, "end"),
        (0, "end"),
    ]
    words = " ".join(name for name, _ in _COMMANDS)
    completion: list[_Line] = [
        (0, ""),
        (0, f'complete -c trees -f -a "{words}" -d "Git worktree management"'),
    ]
    completion.extend(
        (0, f'complete -c trees -n "__fish_seen_subcommand_from {name}" -f -d "{desc}"')
        for name, desc in _COMMANDS
    )
    return _render(_header("fish") + wrapper + completion)


_BUILDERS: dict[str, Callable[[], str]] = {
    "zsh": _zsh_script,
    "bash": _bash_script,
    "fish": _fish_script,
}


def shell_script(shell: str) -> str:
    """The integration script for ``shell`` (zsh, bash or fish)."""
    try:
        builder = _BUILDERS[shell]
    except KeyError:
        raise UnsupportedShellError(
            f"Unsupported shell: {shell}. Supported shells: {', '.join(SUPPORTED_SHELLS)}"
        ) from None
    return builder()