"""Unit tests for the exception hierarchy."""

from laakhay.cdc.core import (
    CdcError,
    InvalidStateTransitionError,
    MalformedRecordError,
    PartitionNotFoundError,
    PartitionState,
    RestrictionError,
    SchemaAdminError,
    SourceError,
    StoreError,
    ThrottledError,
)


def test_throttled_error_with_retry_after():
    """ThrottledError is a 429 SourceError."""
    error = ThrottledError("slow down", retry_after=1.5)
    assert error.status_code == 429
    assert error.retry_after == 1.5
    assert isinstance(error, SourceError)
    assert isinstance(error, CdcError)


def test_invalid_state_transition_carries_states():
    """InvalidStateTransitionError keeps token and both states."""
    error = InvalidStateTransitionError(
        "regression",
        token="A",
        current=PartitionState.FINISHED,
        target=PartitionState.RUNNING,
    )
    assert error.token == "A"
    assert error.current is PartitionState.FINISHED
    assert error.target is PartitionState.RUNNING
    assert isinstance(error, StoreError)


def test_store_errors_share_base():
    """Store failures are catchable as StoreError."""
    assert issubclass(PartitionNotFoundError, StoreError)
    assert issubclass(SchemaAdminError, StoreError)
    assert SchemaAdminError("denied", status_code=403).status_code == 403


def test_malformed_record_is_not_retryable():
    """MalformedRecordError is neither a store nor a source error."""
    error = MalformedRecordError("bad record", token="A")
    assert error.token == "A"
    assert not isinstance(error, (StoreError, SourceError))


def test_restriction_error_is_value_error():
    """RestrictionError doubles as ValueError."""
    assert issubclass(RestrictionError, ValueError)
    assert issubclass(RestrictionError, CdcError)
