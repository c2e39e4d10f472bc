"""Unit tests for WebSocketChangeStreamSource."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
import websockets

from laakhay.cdc.core import (
    ROOT_PARTITION_TOKEN,
    MalformedRecordError,
    SourceError,
    ThrottledError,
)
from laakhay.cdc.io import WebSocketChangeStreamSource
from laakhay.cdc.models import DataChangeRecord, HeartbeatRecord, PartitionMetadata

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
END = datetime(2024, 1, 1, 0, 1, tzinfo=timezone.utc)


class FakeWebSocket:
    """Async-iterable websocket replaying fixed frames."""

    def __init__(self, frames) -> None:
        self._frames = [f if isinstance(f, (str, bytes, Exception)) else json.dumps(f) for f in frames]
        self.send = AsyncMock()

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._frames:
            raise StopAsyncIteration
        frame = self._frames.pop(0)
        if isinstance(frame, Exception):
            raise frame
        return frame


def connect_returning(ws):
    context = AsyncMock()
    context.__aenter__ = AsyncMock(return_value=ws)
    context.__aexit__ = AsyncMock(return_value=None)
    return context


@pytest.fixture
def partition():
    """Child partition spanning [START, END)."""
    return PartitionMetadata(
        token="A",
        parent_tokens=[ROOT_PARTITION_TOKEN],
        start_timestamp=START,
        end_timestamp=END,
        heartbeat_millis=2000,
    )


@pytest.fixture
def source():
    """Source under test."""
    return WebSocketChangeStreamSource("wss://cdc.example.com/stream", change_stream="Orders")


async def collect(source, partition):
    return [batch async for batch in source.read(partition, START, END)]


@pytest.mark.asyncio
async def test_sends_query_and_yields_batches(source, partition):
    """The query is sent once and record frames become batches."""
    ws = FakeWebSocket(
        [
            {
                "type": "records",
                "records": [
                    {
                        "record_type": "data_change",
                        "partition_token": "A",
                        "commit_timestamp": "2024-01-01T00:00:05Z",
                        "transaction_id": "tx-1",
                        "table_name": "Orders",
                        "mod_type": "INSERT",
                    },
                    {"record_type": "heartbeat", "timestamp": "2024-01-01T00:00:06Z"},
                ],
            },
            {"type": "records", "records": []},
            {"type": "end"},
        ]
    )
    with patch("websockets.connect", return_value=connect_returning(ws)):
        batches = await collect(source, partition)

    assert len(batches) == 2
    assert isinstance(batches[0][0], DataChangeRecord)
    assert isinstance(batches[0][1], HeartbeatRecord)
    assert batches[1] == []

    query = json.loads(ws.send.await_args.args[0])
    assert query["method"] == "read_change_stream"
    assert query["change_stream"] == "Orders"
    assert query["partition_token"] == "A"
    assert query["heartbeat_milliseconds"] == 2000
    assert query["start_timestamp"] == START.isoformat()


def test_root_query_has_no_token(source):
    """The root partition queries without a partition token."""
    root = PartitionMetadata(token=ROOT_PARTITION_TOKEN, start_timestamp=START, heartbeat_millis=5000)
    query = source.build_query(root, START, None)
    assert query["partition_token"] is None
    assert query["end_timestamp"] is None


@pytest.mark.asyncio
async def test_throttle_frame_raises_throttled(source, partition):
    """A 429 error frame becomes ThrottledError."""
    ws = FakeWebSocket([{"type": "error", "code": 429, "message": "slow down", "retry_after": 2}])
    with patch("websockets.connect", return_value=connect_returning(ws)):
        with pytest.raises(ThrottledError) as exc_info:
            await collect(source, partition)
    assert exc_info.value.retry_after == 2


@pytest.mark.asyncio
async def test_error_frame_raises_source_error(source, partition):
    """Other error frames become SourceError with their code."""
    ws = FakeWebSocket([{"type": "error", "code": 500, "message": "internal"}])
    with patch("websockets.connect", return_value=connect_returning(ws)):
        with pytest.raises(SourceError) as exc_info:
            await collect(source, partition)
    assert exc_info.value.status_code == 500
    assert not isinstance(exc_info.value, ThrottledError)


@pytest.mark.asyncio
async def test_close_without_end_is_source_error(source, partition):
    """A stream that ends without an end frame is incomplete."""
    ws = FakeWebSocket([{"type": "records", "records": []}])
    with patch("websockets.connect", return_value=connect_returning(ws)):
        with pytest.raises(SourceError, match="before query"):
            await collect(source, partition)


@pytest.mark.asyncio
async def test_connection_closed_is_source_error(source, partition):
    """A dropped connection surfaces as SourceError."""
    ws = FakeWebSocket([websockets.exceptions.ConnectionClosed(None, None)])
    with patch("websockets.connect", return_value=connect_returning(ws)):
        with pytest.raises(SourceError):
            await collect(source, partition)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "frame",
    [
        "not json",
        json.dumps([1, 2]),
        json.dumps({"type": "mystery"}),
        json.dumps({"type": "records", "records": [{"record_type": "unknown"}]}),
    ],
)
async def test_malformed_frames(source, partition, frame):
    """Frames that cannot be decoded are malformed."""
    ws = FakeWebSocket([frame])
    with patch("websockets.connect", return_value=connect_returning(ws)):
        with pytest.raises(MalformedRecordError):
            await collect(source, partition)
