"""Repository synchronizer: builds a session from git's conflict state and writes it back."""

from git_backend import NULL_SHA, ConflictEntry, GitRepository, WorktreeSnapshot
from merge_config import DEFAULT_CONFIG
from merge_errors import BackendError, EncodingError, UnresolvedConflicts
from merge_logging import get_logger
from merge_models import ConflictFile, ConflictKind, ResolutionMode, Side, empty_resolution
from merge_sections import build_sections, split_lines
from merge_session import ResolutionSession

log = get_logger("sync")

STAGE_SIDES = {1: Side.ANCESTOR, 2: Side.OURS, 3: Side.THEIRS}

GITLINK_MODE = "160000"


def classify(entry: ConflictEntry) -> ConflictKind:
    """Conflict kind from which index stages are present."""
    ours, theirs = entry.has_stage(2), entry.has_stage(3)
    if ours and theirs:
        return ConflictKind.MODIFY_MODIFY if entry.has_stage(1) else ConflictKind.ADD_ADD
    if ours:
        return ConflictKind.MODIFY_DELETE
    if theirs:
        return ConflictKind.DELETE_MODIFY
    raise BackendError(f"{entry.path}: deleted on both sides, nothing to resolve")


def decode_text(path: str, data: bytes | None) -> str:
    """Decode stage content as UTF-8 text, rejecting anything that looks binary."""
    if data is None:
        return ""
    if b"\0" in data:
        raise EncodingError(path, "contains NUL bytes")
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EncodingError(path, str(e))


class RepositorySynchronizer:
    """Moves resolution state between a ResolutionSession and a git repository."""

    def __init__(self, repo: GitRepository, config: dict | None = None):
        self.repo = repo
        self.config = {**DEFAULT_CONFIG, **(config or {})}

    @property
    def default_mode(self) -> ResolutionMode:
        try:
            return ResolutionMode(str(self.config.get("default_mode", "block")).lower())
        except ValueError:
            return ResolutionMode.BLOCK

    def is_merge_in_progress(self) -> bool:
        return self.repo.is_merge_in_progress()

    # -- load ----------------------------------------------------------------

    def load(self) -> ResolutionSession:
        """Read every conflicted path and build a fresh session."""
        heads = self.repo.merge_heads()
        if not heads:
            raise BackendError("No merge in progress")
        if len(heads) > 1:
            raise BackendError(f"Octopus merges are not supported ({len(heads)} merge heads)")
        entries = self.repo.unmerged_entries()
        if not entries:
            raise BackendError("Merge in progress but no conflicted paths remain")

        ours_label = self.config.get("marker_ours") or self.repo.ours_label()
        theirs_label = self.config.get("marker_theirs") or self.repo.theirs_label()
        files = [self._load_file(entry, ours_label, theirs_label) for entry in entries]
        description = self.repo.merge_message().splitlines()
        session = ResolutionSession(
            files=files,
            ours_label=ours_label,
            theirs_label=theirs_label,
            description=description[0] if description else "",
            result_height=int(self.config.get("result_height") or 20),
        )
        log.info(
            "Loaded merge %s <- %s: %d file(s), %d conflict section(s)",
            ours_label, theirs_label, len(files), session.unresolved_sections(),
        )
        return session

    def _load_file(self, entry: ConflictEntry, ours_label: str, theirs_label: str) -> ConflictFile:
        kind = classify(entry)
        if any(stage.mode == GITLINK_MODE for stage in entry.stages.values()):
            raise BackendError(f"{entry.path}: submodule conflicts are not supported")

        blobs = {side: None for side in STAGE_SIDES.values()}
        for stage, side in STAGE_SIDES.items():
            if entry.has_stage(stage):
                blobs[side] = self.repo.read_blob(entry.stages[stage].sha)
        index_mode = (entry.stages.get(2) or entry.stages.get(3)).mode

        conflict = ConflictFile(
            path=entry.path,
            kind=kind,
            resolution=empty_resolution(self.default_mode),
            blobs=blobs,
            index_mode=index_mode,
            ours_label=ours_label,
            theirs_label=theirs_label,
        )
        try:
            texts = {side: decode_text(entry.path, data) for side, data in blobs.items()}
        except EncodingError as e:
            log.info("%s; whole-file resolution only", e)
            conflict.binary = True
            conflict.set_mode(ResolutionMode.FILE)
            return conflict

        ancestor = split_lines(texts[Side.ANCESTOR]) if entry.has_stage(1) else None
        conflict.sections = build_sections(
            ancestor, split_lines(texts[Side.OURS]), split_lines(texts[Side.THEIRS])
        )
        log.debug(
            "%s: %s, %d section(s), %d conflicting",
            entry.path, kind.value, len(conflict.sections), len(conflict.conflict_indices()),
        )
        return conflict

    # -- finalize ------------------------------------------------------------

    def finalize(self, session: ResolutionSession, message: str | None = None) -> str:
        """Write every resolution, stage it, and record the merge commit.

        Nothing in the repository changes unless the whole sequence succeeds:
        index updates are staged in ``index.lock`` and working tree files are
        restored if any later step fails. Returns the new commit sha.
        """
        unresolved = session.unresolved_paths()
        if unresolved:
            log.warning("Finalize refused, unresolved: %s", ", ".join(unresolved))
            raise UnresolvedConflicts(unresolved)
        heads = self.repo.merge_heads()
        if not heads:
            raise BackendError("No merge in progress")
        message = message or self.repo.merge_message() or self.config.get("commit_message")
        head = self.repo.head()
        plans = [(conflict, conflict.resolved_bytes()) for conflict in session.files]

        backups: dict[str, WorktreeSnapshot | None] = {}
        try:
            with self.repo.locked_index() as staging:
                records = []
                for conflict, data in plans:
                    # Drop every stage of the path before adding the resolved entry
                    records.append(f"0 {NULL_SHA}\t{conflict.path}")
                    if data is not None:
                        sha = self.repo.hash_blob(data, conflict.path)
                        records.append(f"{conflict.index_mode} {sha}\t{conflict.path}")
                self.repo.update_index_info(records, index_file=staging)

                leftover = [entry.path for entry in self.repo.unmerged_entries(index_file=staging)]
                if leftover:
                    raise UnresolvedConflicts(leftover)

                tree = self.repo.write_tree(index_file=staging)
                commit = self.repo.commit_tree(tree, [head, *heads], message)
                self._write_worktree(plans, backups)
                self.repo.update_ref("HEAD", commit, head)
        except UnresolvedConflicts:
            self._restore_worktree(backups)
            raise
        except BackendError as e:
            log.error("Finalize failed: %s", e)
            self._restore_worktree(backups)
            raise
        except OSError as e:
            log.error("Finalize failed writing the working tree: %s", e)
            self._restore_worktree(backups)
            raise BackendError(f"Cannot write working tree: {e}") from e

        self.repo.refresh_index()
        self.repo.clear_merge_state()
        log.info("Committed merge %s (%d file(s))", commit[:12], len(plans))
        return commit

    def _write_worktree(self, plans: list, backups: dict):
        for conflict, data in plans:
            backups[conflict.path] = self.repo.snapshot_worktree_file(conflict.path)
            if data is None:
                self.repo.remove_worktree_file(conflict.path)
            else:
                self.repo.write_worktree_file(conflict.path, data, conflict.index_mode)

    def _restore_worktree(self, backups: dict):
        for path, snapshot in backups.items():
            self.repo.restore_worktree_file(path, snapshot)

    # -- abort ---------------------------------------------------------------

    def abort(self):
        """Throw the merge away, restoring the pre-merge index and working tree."""
        if not self.repo.is_merge_in_progress():
            raise BackendError("No merge in progress")
        try:
            self.repo.abort_merge()
        except BackendError as e:
            log.error("Abort failed: %s", e)
            raise
        log.info("Merge aborted")
