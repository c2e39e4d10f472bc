"""Custom exception hierarchy."""

from __future__ import annotations


class CdcError(Exception):
    """Base exception for all library errors."""

    pass


class StoreError(CdcError):
    """Failure reported by the partition metadata store.

    Store errors are fatal to the current unit of work. The surrounding
    scheduling layer is expected to retry the partition with the same
    restriction.
    """

    def __init__(self, message: str, token: str | None = None) -> None:
        super().__init__(message)
        self.token = token


class PartitionNotFoundError(StoreError):
    """Partition token does not exist in the metadata table."""

    pass


class InvalidStateTransitionError(StoreError):
    """Partition state update would move the lifecycle backwards."""

    def __init__(self, message: str, token: str | None = None, current=None, target=None) -> None:
        super().__init__(message, token=token)
        self.current = current
        self.target = target


class SchemaAdminError(StoreError):
    """Metadata table provisioning failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedRecordError(CdcError):
    """Change stream record cannot be processed.

    Raised for records whose shape or type does not match what the partition
    expects. Never skipped silently.
    """

    def __init__(self, message: str, token: str | None = None) -> None:
        super().__init__(message)
        self.token = token


class SourceError(CdcError):
    """Error from the upstream change stream source."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ThrottledError(SourceError):
    """Source explicitly signalled congestion."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class RestrictionError(CdcError, ValueError):
    """Invalid restriction or position construction."""

    pass
