import os
import subprocess
from pathlib import Path

import pytest

from trees.git import (
    GitError,
    WorktreeInfo,
    change_directory,
    create_worktree,
    find_main_repo_path,
    get_branches,
    get_worktree_branch,
    get_worktree_commit_hash,
    get_worktree_path,
    get_worktrees,
    is_worktree_dirty,
    merge_worktrees,
    remove_worktree,
    sanitize_branch_name,
    worktree_name_for,
)

_GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test User",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test User",
    "GIT_COMMITTER_EMAIL": "test@example.com",
}


def _git(cwd, *args):
    env = {**os.environ, **_GIT_ENV}
    result = subprocess.run(
        ["git", "-c", "commit.gpgsign=false", *args],
        cwd=cwd, env=env, capture_output=True, text=True,
    )
    assert result.returncode == 0, result.stderr
    return result.stdout


@pytest.fixture
def repo(tmp_path):
    path = tmp_path / "repo"
    path.mkdir()
    _git(path, "init")
    _git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    (path / "README.md").write_text("# Test Repository\n")
    _git(path, "add", "README.md")
    _git(path, "commit", "-m", "Initial commit")
    return path.resolve()


def test_branch_name_sanitization():
    assert sanitize_branch_name("feat/shell-integration") == "feat-shell-integration"


def test_worktree_name_format():
    assert worktree_name_for("trees", "feat/shell-integration") == "trees-feat-shell-integration"


def test_multiple_slashes_sanitization():
    assert sanitize_branch_name("feature/user/authentication") == "feature-user-authentication"


def test_get_worktree_branch_head_branch(tmp_path):
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("ref: refs/heads/feature/test\n")
    assert get_worktree_branch(str(tmp_path)) == "feature/test"


def test_get_worktree_branch_head_detached(tmp_path):
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("e1e1e1e1e1e1e1e1e1e1e1e1e1e1e1e1e1e1e1e1\n")
    assert get_worktree_branch(str(tmp_path)) == "detached"


def test_get_worktree_branch_via_gitdir_file(tmp_path):
    admin = tmp_path / "main" / ".git" / "worktrees" / "wt"
    admin.mkdir(parents=True)
    (admin / "HEAD").write_text("ref: refs/heads/topic\n")
    wt = tmp_path / "wt"
    wt.mkdir()
    (wt / ".git").write_text(f"gitdir: {admin}\n")
    assert get_worktree_branch(str(wt)) == "topic"


def test_get_worktree_branch_unknown_git_file(tmp_path):
    (tmp_path / ".git").write_text("garbage\n")
    assert get_worktree_branch(str(tmp_path)) == "unknown"


def test_get_worktree_branch_missing_head(tmp_path):
    with pytest.raises(GitError):
        get_worktree_branch(str(tmp_path))


def test_find_main_repo_path_from_gitdir_file(tmp_path):
    admin = tmp_path / "main" / ".git" / "worktrees" / "wt"
    admin.mkdir(parents=True)
    wt = tmp_path / "wt"
    wt.mkdir()
    (wt / ".git").write_text(f"gitdir: {admin}\n")
    assert find_main_repo_path(str(wt)) == str(tmp_path / "main")


def test_find_main_repo_path_plain_directory(tmp_path):
    assert find_main_repo_path(str(tmp_path)) == str(tmp_path.resolve())


def test_find_main_repo_path_missing(tmp_path):
    with pytest.raises(GitError):
        find_main_repo_path(str(tmp_path / "nope"))


def test_get_worktree_path(tmp_path):
    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()
    (tmp_path / "repo-x").mkdir()
    assert get_worktree_path(str(repo_dir), "repo-x") == str((tmp_path / "repo-x").resolve())
    assert get_worktree_path(str(repo_dir), "repo-y") is None
    assert get_worktree_path(str(tmp_path / "missing"), "repo-x") is None


def test_is_worktree_dirty_clean(repo):
    assert is_worktree_dirty(str(repo)) is False


def test_is_worktree_dirty_untracked(repo):
    (repo / "new.txt").write_text("x")
    assert is_worktree_dirty(str(repo)) is True


def test_is_worktree_dirty_not_a_repo(tmp_path):
    with pytest.raises(GitError):
        is_worktree_dirty(str(tmp_path))


def test_commit_hash(repo):
    full = _git(repo, "rev-parse", "HEAD").strip()
    assert get_worktree_commit_hash(str(repo)) == full[:8]


def test_get_branches(repo):
    _git(repo, "branch", "feature")
    local, remote = get_branches(str(repo))
    assert sorted(local) == ["feature", "main"]
    assert remote == []


def test_get_worktrees_main_only(repo):
    assert get_worktrees(str(repo)) == [
        WorktreeInfo(name="main", path=str(repo), branch="main", is_dirty=False)
    ]


def test_get_worktrees_not_a_repo(tmp_path):
    with pytest.raises(GitError):
        get_worktrees(str(tmp_path))


def test_create_worktree_and_list(repo):
    name = create_worktree(str(repo), "feat/x")
    assert name == "repo-feat-x"
    folder = repo.parent / "repo-feat-x"
    assert folder.is_dir()
    worktrees = get_worktrees(str(repo))
    assert [w.name for w in worktrees] == ["main", "repo-feat-x"]
    assert worktrees[1].path == str(folder.resolve())
    assert worktrees[1].branch == "feat/x"
    assert find_main_repo_path(str(folder)) == str(repo)
    assert get_worktrees(str(folder))[0].path == str(repo)


def test_create_worktree_existing_directory(repo):
    (repo.parent / "repo-dup").mkdir()
    with pytest.raises(GitError, match="already exists"):
        create_worktree(str(repo), "dup")


def test_remove_worktree(repo):
    create_worktree(str(repo), "gone")
    remove_worktree(str(repo), "repo-gone")
    assert not (repo.parent / "repo-gone").exists()
    assert [w.name for w in get_worktrees(str(repo))] == ["main"]


def test_remove_worktree_missing(repo):
    with pytest.raises(GitError, match="Could not find worktree path"):
        remove_worktree(str(repo), "repo-missing")


def test_merge_worktrees_missing(repo):
    with pytest.raises(GitError, match="Could not find worktree path for nope"):
        merge_worktrees(str(repo), "nope", "other")


def test_merge_worktrees_dirty_source(repo):
    create_worktree(str(repo), "a")
    create_worktree(str(repo), "b")
    (repo.parent / "repo-a" / "dirty.txt").write_text("x")
    with pytest.raises(GitError, match="Source worktree 'repo-a' has uncommitted"):
        merge_worktrees(str(repo), "repo-a", "repo-b")


def test_merge_worktrees_success(repo):
    create_worktree(str(repo), "src")
    create_worktree(str(repo), "dst")
    src = repo.parent / "repo-src"
    (src / "feature.txt").write_text("feature\n")
    _git(src, "add", "feature.txt")
    _git(src, "commit", "-m", "feature")
    merge_worktrees(str(repo), "repo-src", "repo-dst")
    assert (repo.parent / "repo-dst" / "feature.txt").read_text() == "feature\n"


def test_change_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = tmp_path / "sub"
    target.mkdir()
    change_directory(str(target))
    assert Path.cwd().resolve() == target.resolve()


def test_change_directory_missing(tmp_path):
    with pytest.raises(GitError):
        change_directory(str(tmp_path / "missing"))