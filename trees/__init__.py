"""Git worktrees simplified: list, add, remove, merge and pull worktrees."""

__version__ = "1.0.0"