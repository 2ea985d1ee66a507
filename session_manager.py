"""Session recovery: keeps one resolution session alive across visits to the conflict view."""

from merge_errors import BackendError
from merge_logging import get_logger
from merge_session import ResolutionSession
from merge_sync import RepositorySynchronizer

log = get_logger("session")


class ConflictSessionManager:
    """Owns the in-memory ResolutionSession for a repository.

    The session is rebuilt from the repository only when a merge is in
    progress and none exists yet. Leaving the conflict view never drops it;
    only a successful finalize or a confirmed abort does.
    """

    def __init__(self, synchronizer: RepositorySynchronizer):
        self.synchronizer = synchronizer
        self.session: ResolutionSession | None = None
        self.in_conflict_view = False

    def session_exists(self) -> bool:
        return self.session is not None

    def merge_in_progress(self) -> bool:
        return self.synchronizer.is_merge_in_progress()

    def ensure_session(self) -> ResolutionSession | None:
        """Return the live session, loading one from disk if a merge awaits resolution."""
        if self.session is None and self.merge_in_progress():
            log.info("Recovering resolution session from repository state")
            self.session = self.synchronizer.load()
        return self.session

    def enter_conflict_view(self) -> ResolutionSession | None:
        session = self.ensure_session()
        self.in_conflict_view = session is not None
        return session

    def leave_conflict_view(self):
        self.in_conflict_view = False

    def finalize(self, message: str | None = None) -> str:
        if self.session is None:
            raise BackendError("No resolution session to finalize")
        commit = self.synchronizer.finalize(self.session, message)
        self._discard()
        return commit

    def abort(self, confirmed: bool = False) -> bool:
        """Abort the merge. Does nothing unless the operator confirmed."""
        if not confirmed:
            return False
        self.synchronizer.abort()
        self._discard()
        return True

    def _discard(self):
        self.session = None
        self.in_conflict_view = False
