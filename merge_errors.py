"""Error kinds raised by the merge resolution engine."""


class MergeError(Exception):
    """Base class for every failure surfaced to the operator."""


class BackendError(MergeError):
    """Repository not in the expected state, or a git read/write failed."""

    def __init__(self, message: str, command: list[str] | None = None, stderr: str = ""):
        self.command = command or []
        self.stderr = stderr.strip()
        detail = f"{message}: {self.stderr}" if self.stderr else message
        super().__init__(detail)


class UnresolvedConflicts(MergeError):
    """Finalize refused because some paths still carry conflicts."""

    def __init__(self, paths: list[str]):
        self.paths = list(paths)
        listing = ", ".join(self.paths)
        super().__init__(f"{len(self.paths)} unresolved file(s): {listing}")


class EncodingError(MergeError):
    """A conflicted file cannot be decoded as text."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot decode {path} as text" + (f" ({reason})" if reason else ""))
