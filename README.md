# trees

Work with git worktrees without memorising the `git worktree` commands.
`trees` lists the worktrees of a repository and creates, removes, merges and
updates them from an interactive menu.

New worktrees are created beside the main repository and named
`<repo>-<branch>`. Any `/` in the branch name becomes a `-`, so branch
`feat/login` in repository `app` gets the directory `../app-feat-login`.
If the branch does not exist yet, it is created from the current `HEAD`.

## Installation

```sh
pip install .
```

This installs the `trees-bin` command. It runs `git`, which must be on your
`PATH`.

## Commands

```sh
trees-bin list          # list worktrees: path, short commit hash, [branch]
trees-bin add           # pick a local or remote branch (or create one) and add a worktree
trees-bin rm            # pick a worktree and remove it (asks first if it is dirty)
trees-bin merge         # pick a source and a target worktree and merge source into target
trees-bin pull          # fetch every remote, then pull each clean worktree that is behind
trees-bin shell zsh     # print the shell integration script (zsh, bash or fish)
trees-bin               # pick a worktree other than the current directory, or create one
trees-bin --version     # print the version
```

Global options, accepted before or after the command:

- `-p PATH`, `--path PATH` — the repository to work on (default `./`).
  For listing, this may be the main repository or any of its worktrees.
- `--dir-only` — print only directory paths, for use by shell integration.
  With `list` or with no command, it prints the path of the first worktree
  (with no command, the first one that is not the current directory) without
  showing a menu. With `add`, it prints the new worktree's path.

Worktrees with uncommitted or untracked changes are marked `(dirty)` in the
menus. `merge` refuses to run if either worktree is dirty; `pull` skips dirty
worktrees.

The menus are a fuzzy-search list drawn on the terminal: type to filter, use
the arrow keys to move, Enter to choose and Escape to cancel. When `TERM` is
unset or `dumb`, or no terminal is available, they become a numbered list and
you type the number of your choice.

## Shell integration

A program cannot change its parent shell's directory, so `trees` ships a small
shell function, `trees`, that does it for you. Add one of these to your
shell's startup file:

```sh
eval "$(trees-bin shell zsh)"    # ~/.zshrc
eval "$(trees-bin shell bash)"   # ~/.bashrc
trees-bin shell fish | source    # ~/.config/fish/config.fish
```

Then `trees` with no arguments runs `trees-bin --dir-only` and moves you into
the first worktree that is not the current directory. The subcommands
(`trees add`, `trees list`, `trees rm`, `trees merge`, `trees pull`) and the
help and version options run `trees-bin` directly and leave your directory
unchanged. Tab completion for the subcommands is set up as well.

## What it does not do

- It does not delete branches: `rm` removes only the worktree directory.
- Merge conflicts are left for you to resolve in the target worktree; `trees`
  reports git's output and stops.
- Only worktrees that sit beside the main repository are found by name;
  others are listed with their name in place of a path.