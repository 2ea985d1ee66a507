"""Thin subprocess wrapper around the git plumbing the resolver needs."""

import os
import re
import stat
import subprocess
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from merge_errors import BackendError
from merge_logging import get_logger

log = get_logger("git")

# Files git keeps in the git dir while a merge is in progress
MERGE_STATE_FILES = ("MERGE_HEAD", "MERGE_MSG", "MERGE_MODE", "AUTO_MERGE")

NULL_SHA = "0" * 40

_MERGE_MSG_BRANCH = re.compile(r"^Merge (?:remote-tracking )?branch '([^']+)'")


@dataclass
class IndexEntry:
    mode: str
    sha: str


@dataclass
class ConflictEntry:
    """An unmerged path and its index stages (1=ancestor, 2=ours, 3=theirs)."""
    path: str
    stages: dict[int, IndexEntry] = field(default_factory=dict)

    def has_stage(self, stage: int) -> bool:
        return stage in self.stages


@dataclass
class WorktreeSnapshot:
    """Working tree state of one path: content, permission bits, or a symlink target."""
    data: bytes
    mode: int
    link_target: str | None = None


class GitRepository:
    """Runs git commands against one working tree."""

    def __init__(self, repo_path: Path | None = None):
        start = Path(repo_path or Path.cwd())
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            cwd=start,
        )
        if result.returncode != 0:
            raise BackendError(
                f"Not a git repository: {start}",
                command=["git", "rev-parse", "--show-toplevel"],
                stderr=result.stderr.strip(),
            )
        self.repo_path = Path(result.stdout.strip())
        self._git_dir: Path | None = None

    # -- command runner ------------------------------------------------------

    def _run(
        self,
        args: list[str],
        input: bytes | None = None,
        index_file: Path | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        command = ["git", *args]
        env = None
        if index_file is not None:
            env = {**os.environ, "GIT_INDEX_FILE": str(index_file)}
        result = subprocess.run(
            command,
            input=input,
            capture_output=True,
            cwd=self.repo_path,
            env=env,
        )
        log.debug("run: %s -> %d", " ".join(command), result.returncode)
        if check and result.returncode != 0:
            stderr = result.stderr.decode("utf-8", "replace").strip()
            log.debug("stderr: %s", stderr)
            raise BackendError(f"git {args[0]} failed: {stderr}", command=command, stderr=stderr)
        return result

    def _output(self, args: list[str], **kwargs) -> str:
        return self._run(args, **kwargs).stdout.decode("utf-8", "replace").strip()

    # -- repository state ----------------------------------------------------

    @property
    def git_dir(self) -> Path:
        if self._git_dir is None:
            self._git_dir = Path(self._output(["rev-parse", "--absolute-git-dir"]))
        return self._git_dir

    @property
    def index_path(self) -> Path:
        return self.git_dir / "index"

    def head(self) -> str:
        return self._output(["rev-parse", "--verify", "HEAD"])

    def merge_heads(self) -> list[str]:
        merge_head = self.git_dir / "MERGE_HEAD"
        if not merge_head.exists():
            return []
        return [line.strip() for line in merge_head.read_text().splitlines() if line.strip()]

    def is_merge_in_progress(self) -> bool:
        return (self.git_dir / "MERGE_HEAD").exists()

    def merge_message(self) -> str:
        """Prepared merge commit message with git's comment lines removed."""
        merge_msg = self.git_dir / "MERGE_MSG"
        if not merge_msg.exists():
            return ""
        lines = [
            line for line in merge_msg.read_text(errors="replace").splitlines()
            if not line.startswith("#")
        ]
        return "\n".join(lines).strip()

    def ours_label(self) -> str:
        """Current branch name, or the short HEAD sha when detached."""
        name = self._output(["rev-parse", "--abbrev-ref", "HEAD"], check=False)
        if name and name != "HEAD":
            return name
        return self._output(["rev-parse", "--short", "HEAD"], check=False) or "HEAD"

    def theirs_label(self) -> str:
        """Name of the branch being merged in."""
        match = _MERGE_MSG_BRANCH.match(self.merge_message())
        if match:
            return match.group(1)
        heads = self.merge_heads()
        if not heads:
            return "MERGE_HEAD"
        name = self._output(["name-rev", "--name-only", heads[0]], check=False)
        if name and name != "undefined":
            return name
        return heads[0][:7]

    # -- index ---------------------------------------------------------------

    def unmerged_entries(self, index_file: Path | None = None) -> list[ConflictEntry]:
        """Conflicted paths in index order, parsed from ``git ls-files -u -z``."""
        raw = self._run(["ls-files", "-u", "-z"], index_file=index_file).stdout
        entries: dict[str, ConflictEntry] = {}
        for record in raw.split(b"\0"):
            if not record:
                continue
            meta, _, path_bytes = record.partition(b"\t")
            mode, sha, stage = meta.decode().split()
            path = path_bytes.decode("utf-8", "surrogateescape")
            entry = entries.setdefault(path, ConflictEntry(path))
            entry.stages[int(stage)] = IndexEntry(mode, sha)
        return list(entries.values())

    def read_blob(self, sha: str) -> bytes:
        return self._run(["cat-file", "blob", sha]).stdout

    def hash_blob(self, data: bytes, path: str) -> str:
        """Store content in the object database, applying the path's filters."""
        return self._output(["hash-object", "-w", "--stdin", f"--path={path}"], input=data)

    def update_index_info(self, records: list[str], index_file: Path | None = None):
        """Feed ``mode sha\\tpath`` records to ``git update-index --index-info``.

        A record with mode 0 and the null sha removes every stage of the path.
        """
        payload = "".join(record + "\0" for record in records).encode("utf-8", "surrogateescape")
        self._run(["update-index", "-z", "--index-info"], input=payload, index_file=index_file)

    def write_tree(self, index_file: Path | None = None) -> str:
        return self._output(["write-tree"], index_file=index_file)

    def commit_tree(self, tree: str, parents: list[str], message: str) -> str:
        args = ["commit-tree", tree]
        for parent in parents:
            args += ["-p", parent]
        args += ["-F", "-"]
        return self._output(args, input=message.encode("utf-8"))

    def update_ref(self, ref: str, new: str, old: str | None = None):
        args = ["update-ref", "-m", "commit (merge): resolved conflicts", ref, new]
        if old:
            args.append(old)
        self._run(args)

    def refresh_index(self):
        self._run(["update-index", "-q", "--refresh"], check=False)

    @contextmanager
    def locked_index(self):
        """Stage index changes in ``index.lock`` and swap it in on success.

        The lock file starts as a copy of the live index. Commands run with
        ``index_file=`` the yielded path. If the block raises, the lock file
        is removed and the live index is never touched.
        """
        index = self.index_path
        lock = index.with_name(index.name + ".lock")
        try:
            fd = os.open(lock, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            raise BackendError(f"Index is locked by another git process: {lock}")
        committed = False
        try:
            with os.fdopen(fd, "wb") as handle:
                if index.exists():
                    handle.write(index.read_bytes())
            yield lock
            os.replace(lock, index)
            committed = True
        finally:
            if not committed:
                lock.unlink(missing_ok=True)

    # -- merge state ---------------------------------------------------------

    def clear_merge_state(self):
        for name in MERGE_STATE_FILES:
            (self.git_dir / name).unlink(missing_ok=True)

    def abort_merge(self):
        self._run(["merge", "--abort"])

    # -- working tree --------------------------------------------------------

    def worktree_path(self, path: str) -> Path:
        return self.repo_path / path

    def snapshot_worktree_file(self, path: str) -> WorktreeSnapshot | None:
        """Capture a path exactly as it sits on disk, without following symlinks."""
        target = self.worktree_path(path)
        try:
            info = target.lstat()
        except FileNotFoundError:
            return None
        if stat.S_ISLNK(info.st_mode):
            return WorktreeSnapshot(b"", info.st_mode, link_target=os.readlink(target))
        if not stat.S_ISREG(info.st_mode):
            return None
        return WorktreeSnapshot(target.read_bytes(), info.st_mode)

    def restore_worktree_file(self, path: str, snapshot: WorktreeSnapshot | None):
        """Put back what ``snapshot_worktree_file`` saw; None means the path did not exist."""
        target = self.worktree_path(path)
        if target.is_symlink() or target.exists():
            target.unlink()
        if snapshot is None:
            return
        target.parent.mkdir(parents=True, exist_ok=True)
        if snapshot.link_target is not None:
            os.symlink(snapshot.link_target, target)
            return
        target.write_bytes(snapshot.data)
        target.chmod(stat.S_IMODE(snapshot.mode))

    def write_worktree_file(self, path: str, data: bytes, mode: str = "100644"):
        """Write content for an index mode: regular, executable or symlink."""
        target = self.worktree_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.is_symlink() or (mode == "120000" and target.exists()):
            target.unlink()
        if mode == "120000":
            os.symlink(os.fsdecode(data), target)
            return
        target.write_bytes(data)
        if mode == "100755":
            target.chmod(stat.S_IMODE(target.stat().st_mode) | 0o111)
        else:
            target.chmod(stat.S_IMODE(target.stat().st_mode) & ~0o111)

    def remove_worktree_file(self, path: str):
        self.worktree_path(path).unlink(missing_ok=True)
