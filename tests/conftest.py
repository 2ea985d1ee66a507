"""Pytest configuration and fixtures for merge resolver tests."""

import subprocess
from pathlib import Path

import pytest

from merge_logging import setup_logging


@pytest.fixture(autouse=True)
def configure_logging(tmp_path):
    """Route the resolver's log file into the test's temp directory."""
    setup_logging(tmp_path / "logs", "DEBUG")


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point config lookups at a file that does not exist yet."""
    monkeypatch.setenv("GIT_MERGE_RESOLVER_CONFIG", str(tmp_path / "config" / "config.json"))


def run_git(repo: Path, *args: str, check: bool = True) -> str:
    result = subprocess.run(["git", *args], cwd=repo, capture_output=True, text=True)
    if check and result.returncode != 0:
        raise AssertionError(f"git {' '.join(args)} failed: {result.stderr}")
    return result.stdout.strip()


def _write_tree(repo: Path, files: dict):
    """Apply a {path: content} snapshot; content None deletes the path."""
    for name, content in files.items():
        target = repo / name
        if content is None:
            if target.exists():
                target.unlink()
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content)
    run_git(repo, "add", "-A")


@pytest.fixture
def git():
    """Run a git command in a repository and return its stdout."""
    return run_git


@pytest.fixture
def make_conflict(tmp_path):
    """Build a repository stuck in a conflicted merge of ``feature`` into ``main``.

    Each argument maps paths to content for one commit: ``base`` is the
    common ancestor, ``ours`` is committed on main and ``theirs`` on
    feature. Paths missing from a side are left as in base; ``None``
    deletes them.
    """

    def factory(base: dict, ours: dict, theirs: dict) -> Path:
        repo = tmp_path / "repo"
        repo.mkdir()
        run_git(repo, "init", "-q")
        run_git(repo, "config", "user.name", "Test User")
        run_git(repo, "config", "user.email", "test@example.com")
        run_git(repo, "config", "commit.gpgsign", "false")
        run_git(repo, "symbolic-ref", "HEAD", "refs/heads/main")

        _write_tree(repo, {"README.md": "# test\n", **base})
        run_git(repo, "commit", "-q", "-m", "base")

        run_git(repo, "checkout", "-q", "-b", "feature")
        _write_tree(repo, theirs)
        run_git(repo, "commit", "-q", "-m", "theirs")

        run_git(repo, "checkout", "-q", "main")
        _write_tree(repo, ours)
        run_git(repo, "commit", "-q", "-m", "ours")

        run_git(repo, "merge", "--no-edit", "feature", check=False)
        assert (repo / ".git" / "MERGE_HEAD").exists(), "merge did not stop on a conflict"
        return repo

    return factory


@pytest.fixture
def simple_conflict(make_conflict):
    """One modify/modify conflict: ``A,B,C`` vs ``A,X,C`` vs ``A,B,Y``."""
    return make_conflict(
        base={"letters.txt": "A\nB\nC\n"},
        ours={"letters.txt": "A\nX\nC\n"},
        theirs={"letters.txt": "A\nB\nY\n"},
    )
