"""WebSocket change stream source.

Each read() opens one connection for one partition query, sends the
query as a subscription message and yields record batches until the
server sends an end frame.

Frame format (JSON):
    {"type": "records", "records": [...]}              one batch
    {"type": "end"}                                    query complete
    {"type": "error", "code": 429, "message": "...",
     "retry_after": 1.5}                               query failed
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

import websockets
from pydantic import ValidationError

from ..core.exceptions import MalformedRecordError, SourceError, ThrottledError
from ..models.partition import PartitionMetadata
from ..models.records import parse_record
from .base import RecordBatch

logger = logging.getLogger(__name__)

THROTTLED_CODES = frozenset({429, 503})


class WebSocketChangeStreamSource:
    """ChangeStreamSource reading partition queries over a WebSocket."""

    def __init__(
        self,
        url: str,
        *,
        change_stream: str,
        ping_interval: float = 20.0,
        ping_timeout: float = 10.0,
    ) -> None:
        self.url = url
        self.change_stream = change_stream
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout

    def build_query(
        self,
        partition: PartitionMetadata,
        start_timestamp: datetime,
        end_timestamp: datetime | None,
    ) -> dict[str, Any]:
        """Subscription message for one partition query."""
        return {
            "method": "read_change_stream",
            "change_stream": self.change_stream,
            "partition_token": None if partition.is_root else partition.token,
            "start_timestamp": start_timestamp.isoformat(),
            "end_timestamp": end_timestamp.isoformat() if end_timestamp else None,
            "heartbeat_milliseconds": partition.heartbeat_millis,
        }

    async def read(
        self,
        partition: PartitionMetadata,
        start_timestamp: datetime,
        end_timestamp: datetime | None,
    ) -> AsyncIterator[RecordBatch]:
        token = partition.token
        query = self.build_query(partition, start_timestamp, end_timestamp)
        try:
            async with websockets.connect(
                self.url,
                ping_interval=self.ping_interval,
                ping_timeout=self.ping_timeout,
            ) as websocket:
                await websocket.send(json.dumps(query))
                logger.debug(f"[{token}] Querying change stream from {start_timestamp.isoformat()}")

                async for message in websocket:
                    frame = self._decode(token, message)
                    frame_type = frame.get("type")
                    if frame_type == "records":
                        yield self._parse_batch(token, frame.get("records") or [])
                    elif frame_type == "end":
                        logger.debug(f"[{token}] Change stream query complete")
                        return
                    elif frame_type == "error":
                        raise self._error(frame)
                    else:
                        raise MalformedRecordError(f"Unknown frame type: {frame_type!r}", token=token)
        except websockets.exceptions.ConnectionClosed as e:
            raise SourceError(f"Connection closed during query of {token}: {e}") from e
        except OSError as e:
            raise SourceError(f"Cannot connect to {self.url}: {e}") from e

        raise SourceError(f"Connection closed before query of {token} completed")

    @staticmethod
    def _decode(token: str, message: str | bytes) -> dict[str, Any]:
        try:
            frame = json.loads(message)
        except json.JSONDecodeError as e:
            raise MalformedRecordError(f"Invalid JSON frame: {e}", token=token) from e
        if not isinstance(frame, dict):
            raise MalformedRecordError("Frame is not a JSON object", token=token)
        return frame

    @staticmethod
    def _parse_batch(token: str, payloads: list[dict[str, Any]]) -> RecordBatch:
        try:
            return [parse_record(payload) for payload in payloads]
        except ValidationError as e:
            raise MalformedRecordError(f"Invalid change stream record: {e}", token=token) from e

    @staticmethod
    def _error(frame: dict[str, Any]) -> SourceError:
        code = frame.get("code")
        message = frame.get("message", "change stream query failed")
        if code in THROTTLED_CODES:
            return ThrottledError(message, retry_after=frame.get("retry_after"))
        return SourceError(message, status_code=code)
