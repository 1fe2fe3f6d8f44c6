from __future__ import annotations

from typing import Optional


class BundleKeeperError(RuntimeError):
    """Base class for every failure raised by bundlekeeper."""


class ContainerError(BundleKeeperError):
    def __init__(self, container: str, reason: str) -> None:
        self.container = container
        self.reason = reason
        super().__init__(f"{container}: {reason}")


class InvalidContainerFormat(ContainerError):
    pass


class MetadataMissing(ContainerError):
    """The gzip extra field holds no bundle metadata subfield.

    Recoverable: callers fall back to a filename-derived title.
    """


class TitleNotFound(ContainerError):
    pass


class TruncatedArchive(ContainerError):
    pass


class MalformedSize(ContainerError):
    def __init__(self, container: str, raw: bytes) -> None:
        self.raw = raw
        super().__init__(container, f"cannot parse octal size field {raw!r}")


class SessionConflict(BundleKeeperError):
    def __init__(self, title: Optional[str], session_path: str) -> None:
        self.title = title
        self.session_path = session_path
        super().__init__(
            f"An install of {title or 'an unknown bundle'} is still pending ({session_path}); "
            "finish it or purge it first"
        )


class VcsOperationFailed(BundleKeeperError):
    def __init__(self, operation: str, paths: list[str], detail: str = "") -> None:
        self.operation = operation
        self.paths = list(paths)
        self.detail = detail
        msg = f"VCS {operation} failed for {len(self.paths)} path(s)"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class ExtractionError(BundleKeeperError):
    pass
