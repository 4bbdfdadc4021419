"""Interactive selection of worktrees and branches, with a plain-text fallback."""

from __future__ import annotations

import curses
import os
import re
import sys
from contextlib import contextmanager
from typing import Iterator, Sequence

_MAX_HEIGHT = 15
_NUMBER = re.compile(r"\+?[0-9]+")
_ENTER_KEYS = ("\n", "\r", curses.KEY_ENTER)
_CANCEL_KEYS = ("\x1b", "\x03", "\x07")
_UP_KEYS = (curses.KEY_UP, "\x10", "\x0b")
_DOWN_KEYS = (curses.KEY_DOWN, "\x0e", "\x0a\x00")
_BACKSPACE_KEYS = (curses.KEY_BACKSPACE, "\x7f", "\b")


class _TuiUnavailable(Exception):
    """No interactive terminal is available for the selector."""


def calculate_height(item_count: int) -> int:
    """Lines used by the selector: the items plus prompt and padding, at most 15."""
    return min(item_count + 2, _MAX_HEIGHT)


def _fuzzy_match(query: str, item: str) -> bool:
    """Whether the characters of ``query`` appear in ``item`` in order, ignoring case."""
    remaining = iter(item.lower())
    return all(char in remaining for char in query.lower())


@contextmanager
def _terminal() -> Iterator[None]:
    """Point standard input and output at the controlling terminal while drawing."""
    if not sys.stdin.isatty():
        raise _TuiUnavailable("standard input is not a terminal")
    try:
        tty = os.open("/dev/tty", os.O_RDWR)
    except OSError as exc:
        raise _TuiUnavailable("no controlling terminal") from exc
    sys.stdout.flush()
    saved_in, saved_out = os.dup(0), os.dup(1)
    try:
        os.dup2(tty, 0)
        os.dup2(tty, 1)
        yield
    finally:
        os.dup2(saved_in, 0)
        os.dup2(saved_out, 1)
        for fd in (saved_in, saved_out, tty):
            os.close(fd)


def _selector(stdscr, items: Sequence[str], height: int) -> list[str]:
    try:
        curses.curs_set(1)
    except curses.error:
        pass
    query = ""
    cursor = 0
    while True:
        matches = [item for item in items if _fuzzy_match(query, item)]
        cursor = max(0, min(cursor, len(matches) - 1))
        rows, cols = stdscr.getmaxyx()
        width = max(cols - 1, 1)
        visible = max(min(height, rows) - 1, 0)
        start = max(0, cursor - visible + 1)

        stdscr.erase()
        prompt = f"> {query}"
        stdscr.addnstr(0, 0, prompt, width)
        for row, item in enumerate(matches[start:start + visible], start=1):
            attr = curses.A_REVERSE if start + row - 1 == cursor else curses.A_NORMAL
            stdscr.addnstr(row, 0, item, width, attr)
        stdscr.move(0, min(len(prompt), width))
        stdscr.refresh()

        try:
            key = stdscr.get_wch()
        except KeyboardInterrupt:
            return []
        if key in _ENTER_KEYS:
            return [matches[cursor]] if matches else []
        if key in _CANCEL_KEYS:
            return []
        if key in _UP_KEYS:
            cursor -= 1
        elif key in _DOWN_KEYS:
            cursor += 1
        elif key in _BACKSPACE_KEYS:
            query = query[:-1]
            cursor = 0
        elif isinstance(key, str) and key.isprintable():
            query += key
            cursor = 0


def _run_tui(items: Sequence[str]) -> list[str]:
    """Run the fuzzy selector; an empty list means nothing was chosen."""
    height = calculate_height(len(items))
    os.environ.setdefault("ESCDELAY", "25")
    with _terminal():
        return curses.wrapper(_selector, list(items), height)


def _has_usable_term() -> bool:
    return os.environ.get("TERM") not in (None, "dumb")


def _select(items: Sequence[str], empty_message: str) -> str | None:
    if not items:
        print(empty_message)
        return None
    if not _has_usable_term():
        return fallback_selection(items)
    try:
        selected = _run_tui(items)
    except (_TuiUnavailable, curses.error, OSError):
        return fallback_selection(items)
    return selected[0] if selected else None


def select_worktree(worktrees: Sequence[str]) -> str | None:
    """Let the user pick one worktree entry; None if nothing was picked."""
    return _select(worktrees, "No worktrees found")


def select_branch(branches: Sequence[str]) -> str | None:
    """Let the user pick one branch entry; None if nothing was picked."""
    return _select(branches, "No branches found")


def _read_line(prompt: str) -> str:
    print(prompt, end="", flush=True)
    return sys.stdin.readline()


def create_new_branch() -> str | None:
    """Ask for a new branch name; None if the answer is blank."""
    name = _read_line("Enter new branch name: ").strip()
    return name or None


def confirm_deletion(worktree_name: str) -> bool:
    """Ask whether a worktree should really be deleted."""
    options = [f"Yes - Delete {worktree_name}", "No - Cancel"]
    try:
        selected = _run_tui(options)
    except (_TuiUnavailable, curses.error, OSError):
        return fallback_confirmation(worktree_name)
    return bool(selected) and selected[0].startswith("Yes")


def fallback_selection(items: Sequence[str]) -> str | None:
    """Numbered-list selection read from standard input."""
    print("Select an option:")
    for number, item in enumerate(items, start=1):
        print(f"{number}. {item}")
    answer = _read_line(f"Enter number (1-{len(items)}): ").strip()
    choice = int(answer) if _NUMBER.fullmatch(answer) else 0
    if 0 < choice <= len(items):
        return items[choice - 1]
    return None


def fallback_confirmation(worktree_name: str) -> bool:
    """Yes/no confirmation read from standard input; the default is no."""
    answer = _read_line(f"Are you sure you want to delete {worktree_name}? (y/N): ")
    return answer.strip().lower() in ("y", "yes")