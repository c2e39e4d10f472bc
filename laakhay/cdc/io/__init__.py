"""Change stream sources and schema administration clients."""

from .base import ChangeStreamSource, RecordBatch
from .schema_admin import HttpSchemaAdmin
from .ws_source import WebSocketChangeStreamSource

__all__ = [
    "ChangeStreamSource",
    "HttpSchemaAdmin",
    "RecordBatch",
    "WebSocketChangeStreamSource",
]
