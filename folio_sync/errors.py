"""Exception types for folio-sync."""


class FolioError(Exception):
    """Base class for folio-sync errors."""


class BackendError(FolioError):
    """The remote store rejected a call or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(FolioError):
    """The remote store answered with a payload we cannot parse."""


class UnknownProjectError(FolioError):
    """A child entity references a project that is not in the store."""
