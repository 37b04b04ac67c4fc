"""Error taxonomy for pamsync.

Error handling philosophy:
- Identifier parse failures are per-document and recovered locally
  (the document is skipped, the batch continues)
- Remote write/read failures abort the current collection and the sync
- Local persistence failures abort the sync
- Every error's ``str()`` is a human-readable message suitable for
  the ``sync_error`` surface
"""

from typing import Optional


class PamSyncError(Exception):
    """Base for all pamsync errors."""

    pass


class NotAuthenticatedError(PamSyncError):
    """Raised when a sync is attempted without a signed-in user."""

    def __init__(self, message: str = "User is not authenticated"):
        super().__init__(message)


class SyncInProgressError(PamSyncError):
    """Raised when a full sync is requested while another is running."""

    def __init__(self, message: str = "A sync is already in progress"):
        super().__init__(message)


class IdentifierParseError(PamSyncError, ValueError):
    """A remote key is not a well-formed local identifier."""

    def __init__(self, value: object, reason: str = "not a canonical UUID string"):
        super().__init__(f"Invalid remote key {value!r}: {reason}")
        self.value = value
        self.reason = reason


class RemoteWriteError(PamSyncError):
    """Writing a document to a remote collection failed."""

    def __init__(self, collection: str, cause: BaseException, remote_key: Optional[str] = None):
        target = f"{collection}/{remote_key}" if remote_key else collection
        super().__init__(f"Failed to upload {target}: {cause}")
        self.collection = collection
        self.remote_key = remote_key
        self.cause = cause


class RemoteReadError(PamSyncError):
    """Fetching a remote collection failed."""

    def __init__(self, collection: str, cause: BaseException):
        super().__init__(f"Failed to download {collection}: {cause}")
        self.collection = collection
        self.cause = cause


class DocumentDecodeError(PamSyncError):
    """A remote payload does not match its collection's document schema."""

    def __init__(self, collection: str, remote_key: Optional[str], cause: BaseException):
        super().__init__(f"Malformed document {collection}/{remote_key or '?'}: {cause}")
        self.collection = collection
        self.remote_key = remote_key
        self.cause = cause


class LocalPersistenceError(PamSyncError):
    """Committing changes to the local entity store failed."""

    def __init__(self, cause: BaseException):
        super().__init__(f"Failed to save local data: {cause}")
        self.cause = cause
