"""Git worktree operations: discovery, creation, removal, merging and pulling."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

_HEAD_PREFIX = "ref: refs/heads/"
_GITDIR_PREFIX = "gitdir: "


class GitError(Exception):
    """Raised when a git operation fails."""


@dataclass
class WorktreeInfo:
    """A worktree known to a repository."""

    name: str
    path: str
    branch: str
    is_dirty: bool


def sanitize_branch_name(branch_name: str) -> str:
    """Make a branch name usable as part of a directory name."""
    return branch_name.replace("/", "-")


def worktree_name_for(repo_name: str, branch_name: str) -> str:
    """Name of the worktree directory created for a branch."""
    return f"{repo_name}-{sanitize_branch_name(branch_name)}"


def _run(args: list[str], cwd: str | os.PathLike | None = None,
         env: dict[str, str] | None = None) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            ["git", *args],
            cwd=cwd,
            env=env,
            capture_output=True,
            text=True,
            errors="replace",
        )
    except OSError as exc:
        raise GitError(f"failed to run git {' '.join(args)}: {exc}") from exc


def _canonical(path: str | os.PathLike) -> Path:
    try:
        return Path(path).resolve(strict=True)
    except OSError as exc:
        raise GitError(f"Failed to canonicalize path: {path}") from exc


def _open_repo(path: str | os.PathLike) -> Path:
    """Check that ``path`` is a repository itself and return its common git dir."""
    repo_dir = _canonical(path)
    env = {**os.environ, "GIT_CEILING_DIRECTORIES": str(repo_dir.parent)}
    result = _run(["rev-parse", "--git-common-dir"], cwd=repo_dir, env=env)
    if result.returncode != 0:
        raise GitError(f"failed to open git repo: {path}")
    common = Path(result.stdout.strip())
    if not common.is_absolute():
        common = repo_dir / common
    return common.resolve()


def _worktree_names(common_dir: Path) -> list[str]:
    worktrees_dir = common_dir / "worktrees"
    if not worktrees_dir.is_dir():
        return []
    return sorted(entry.name for entry in worktrees_dir.iterdir() if entry.is_dir())


def _read_text(path: Path, what: str) -> str:
    try:
        return path.read_text()
    except OSError as exc:
        raise GitError(f"Failed to read {what} at {str(path)!r}") from exc


def find_main_repo_path(path: str) -> str:
    """Find the main repository path from any worktree or the main repository itself."""
    resolved = _canonical(path)
    git_file = resolved / ".git"
    if not git_file.is_file():
        return str(resolved)
    content = _read_text(git_file, ".git file")
    if not content.startswith(_GITDIR_PREFIX):
        return str(resolved)
    gitdir = content[len(_GITDIR_PREFIX):].strip()
    # .git/worktrees/<name> -> .git/worktrees -> .git -> main repo
    current = Path(gitdir)
    for _ in range(3):
        parent = current.parent
        if parent == current:
            raise GitError(f"Invalid gitdir path: {gitdir}")
        current = parent
    return str(current)


def get_worktree_path(repo_path: str, worktree_name: str) -> str | None:
    """Find a worktree as a sibling directory of the repository, or return None."""
    try:
        repo_dir = Path(repo_path).resolve(strict=True)
    except OSError:
        return None
    candidate = repo_dir.parent / worktree_name
    if not candidate.exists():
        return None
    try:
        return str(candidate.resolve(strict=True))
    except OSError:
        return str(candidate)


def get_worktree_branch(worktree_path: str) -> str:
    """Branch checked out in a worktree, ``detached`` or ``unknown``."""
    git_path = Path(worktree_path) / ".git"
    if git_path.is_file():
        content = _read_text(git_path, ".git file")
        if not content.startswith(_GITDIR_PREFIX):
            return "unknown"
        head_path = Path(content[len(_GITDIR_PREFIX):].strip()) / "HEAD"
    else:
        head_path = git_path / "HEAD"
    head = _read_text(head_path, "HEAD file")
    if head.startswith(_HEAD_PREFIX):
        return head[len(_HEAD_PREFIX):].strip()
    return "detached"


def is_worktree_dirty(worktree_path: str) -> bool:
    """Whether a worktree has uncommitted or untracked changes."""
    _open_repo(worktree_path)
    result = _run(["status", "--porcelain", "--untracked-files=normal"], cwd=worktree_path)
    if result.returncode != 0:
        raise GitError(f"Failed to get status: {result.stderr.strip()}")
    return bool(result.stdout.strip())


def get_worktree_commit_hash(worktree_path: str) -> str:
    """First 8 characters of the commit checked out in a worktree."""
    _open_repo(worktree_path)
    result = _run(["rev-parse", "--verify", "HEAD^{commit}"], cwd=worktree_path)
    if result.returncode != 0:
        raise GitError("failed to get head")
    return result.stdout.strip()[:8]


def get_worktrees(repo_path: str) -> list[WorktreeInfo]:
    """The main repository followed by its additional worktrees."""
    main_repo_path = find_main_repo_path(repo_path)
    common_dir = _open_repo(main_repo_path)

    def branch_of(path: str) -> str:
        try:
            return get_worktree_branch(path)
        except GitError:
            return "unknown"

    def dirty(path: str) -> bool:
        try:
            return is_worktree_dirty(path)
        except GitError:
            return False

    infos = [
        WorktreeInfo(
            name="main",
            path=str(_canonical(main_repo_path)),
            branch=branch_of(main_repo_path),
            is_dirty=dirty(main_repo_path),
        )
    ]
    for name in _worktree_names(common_dir):
        path = get_worktree_path(main_repo_path, name)
        infos.append(
            WorktreeInfo(
                name=name,
                path=path if path is not None else name,
                branch=branch_of(path) if path is not None else "unknown",
                is_dirty=dirty(path) if path is not None else False,
            )
        )
    return infos


def _strip_repeated(text: str, prefix: str) -> str:
    while prefix and text.startswith(prefix):
        text = text[len(prefix):]
    return text


def _refs(repo_path: str, namespace: str) -> list[str]:
    result = _run(["for-each-ref", "--format=%(refname)", namespace], cwd=repo_path)
    if result.returncode != 0:
        raise GitError(f"failed to get branches: {result.stderr.strip()}")
    return [line[len(namespace):] for line in result.stdout.splitlines()
            if line.startswith(namespace)]


def get_branches(repo_path: str) -> tuple[list[str], list[str]]:
    """Local and remote branch names; remote names lose their ``origin/`` prefix."""
    _open_repo(repo_path)
    local = [
        _strip_repeated(name, "origin/")
        for name in _refs(repo_path, "refs/heads/")
        if name != "origin/HEAD"
    ]
    remote = [
        _strip_repeated(name, "origin/")
        for name in _refs(repo_path, "refs/remotes/")
        if name != "origin/HEAD"
    ]
    return local, remote


def _branch_exists(repo_path: str, branch_name: str) -> bool:
    result = _run(["show-ref", "--verify", "--quiet", f"refs/heads/{branch_name}"],
                  cwd=repo_path)
    return result.returncode == 0


def create_worktree(repo_path: str, branch_name: str) -> str:
    """Create ``../<repo>-<branch>`` checked out on ``branch_name``; return its name."""
    path = _canonical(repo_path)
    if path.parent == path:
        raise GitError("failed to get parent directory")
    repo_name = path.name or "repo"
    worktree_name = worktree_name_for(repo_name, branch_name)
    new_folder = path.parent / worktree_name

    print(f"Creating worktree with name: '{worktree_name}'")
    print(f'Worktree directory: "{new_folder}"')

    if new_folder.exists():
        raise GitError(
            f"Worktree directory '{worktree_name}' already exists. "
            "Please remove it first or use a different branch name."
        )

    common_dir = _open_repo(repo_path)
    if worktree_name in _worktree_names(common_dir):
        raise GitError(
            f"Worktree '{worktree_name}' already exists in the repository. "
            "Please remove it first."
        )

    if _branch_exists(repo_path, branch_name):
        print(f"Branch '{branch_name}' already exists, using existing branch.")
    else:
        if _run(["rev-parse", "--verify", "HEAD^{commit}"], cwd=repo_path).returncode != 0:
            raise GitError("failed to get head")
        result = _run(["branch", branch_name], cwd=repo_path)
        if result.returncode == 0:
            print(f"Branch '{branch_name}' created.")
        elif "already exists" in result.stderr:
            print(f"Branch '{branch_name}' already exists, using existing branch.")
        else:
            raise GitError(
                f"Failed to create branch '{branch_name}': {result.stderr.strip()}"
            )

    result = _run(["worktree", "add", "--force", str(new_folder), branch_name],
                  cwd=repo_path)
    if result.returncode != 0:
        raise GitError(
            f"Failed to create worktree '{worktree_name}': {result.stderr.strip()}"
        )

    print(f'Worktree created at "{new_folder}"')
    return worktree_name


def remove_worktree(repo_path: str, worktree_name: str) -> None:
    """Forcefully remove a worktree found next to the repository."""
    worktree_path = get_worktree_path(repo_path, worktree_name)
    if worktree_path is None:
        raise GitError(f"Could not find worktree path for {worktree_name}")
    result = _run(["worktree", "remove", "--force", worktree_path], cwd=repo_path)
    if result.returncode != 0:
        raise GitError(f"Failed to remove worktree: {worktree_path}\n{result.stderr}")
    print(f"Worktree '{worktree_name}' removed successfully")


def change_directory(path: str) -> None:
    """Change the process working directory."""
    try:
        os.chdir(path)
    except OSError as exc:
        raise GitError(f"failed to change directory to: {path}") from exc
    print(f"Changed directory to: {path}")


def merge_worktrees(repo_path: str, source: str, target: str) -> None:
    """Merge the branch of worktree ``source`` into worktree ``target``."""
    source_path = get_worktree_path(repo_path, source)
    if source_path is None:
        raise GitError(f"Could not find worktree path for {source}")
    target_path = get_worktree_path(repo_path, target)
    if target_path is None:
        raise GitError(f"Could not find worktree path for {target}")

    if is_worktree_dirty(source_path):
        raise GitError(
            f"Source worktree '{source}' has uncommitted changes. "
            "Please commit or stash them first."
        )
    if is_worktree_dirty(target_path):
        raise GitError(
            f"Target worktree '{target}' has uncommitted changes. "
            "Please commit or stash them first."
        )

    source_branch = get_worktree_branch(source_path)
    target_branch = get_worktree_branch(target_path)
    print(f"Merging '{source}' ({source_branch}) into '{target}' ({target_branch})")

    result = _run(["merge", source_branch], cwd=target_path)
    if result.returncode != 0:
        raise GitError(f"Failed to merge worktrees: {result.stdout}\n{result.stderr}")
    print(f"Successfully merged '{source}' into '{target}'")


def pull_all_worktrees(repo_path: str) -> None:
    """Fetch every remote, then pull each clean worktree that is behind."""
    _open_repo(repo_path)
    result = _run(["remote"], cwd=repo_path)
    if result.returncode != 0:
        raise GitError("Failed to get remotes")
    for name in filter(None, (line.strip() for line in result.stdout.splitlines())):
        fetched = _run(["fetch", name], cwd=repo_path)
        if fetched.returncode != 0:
            raise GitError(
                f"Failed to fetch from remote '{name}': {fetched.stderr.strip()}"
            )
        print(f"Fetched from remote '{name}'")
    print("Fetched all remote branches")

    for worktree in get_worktrees(repo_path):
        if worktree.is_dirty:
            print(f"Skipping worktree '{worktree.name}' - has uncommitted changes")
            continue
        status = _run(["status", "--porcelain", "--branch"], cwd=worktree.path)
        if "[behind" not in status.stdout:
            print(f"Worktree '{worktree.name}' is up to date")
            continue
        print(f"Pulling updates for worktree '{worktree.name}' (branch: {worktree.branch})")
        pulled = _run(["pull"], cwd=worktree.path)
        if pulled.returncode == 0:
            print(f"Successfully pulled updates for worktree '{worktree.name}'")
        else:
            print(f"Failed to pull updates for worktree '{worktree.name}': {pulled.stderr}")