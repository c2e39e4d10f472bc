"""Record and phase actions.

Architecture:
    Record actions handle one record each (heartbeat, data change, child
    partitions). Phase actions run one step of the partition lifecycle
    (query, wait for children, finish, wait for parents, delete, done).
    Every action claims its position on the restriction tracker before it
    touches the store; a rejected claim ends the unit of work with
    ProcessContinuation.stop().
"""

from .child_partitions import ChildPartitionsRecordAction
from .continuation import ProcessContinuation
from .data_change import DataChangeRecordAction, RecordEmitter
from .delete_partition import DeletePartitionAction
from .done import DoneAction
from .finish_partition import FinishPartitionAction
from .heartbeat import HeartbeatRecordAction
from .query_change_stream import QueryChangeStreamAction
from .wait_for_child_partitions import WaitForChildPartitionsAction
from .wait_for_parent_partitions import WaitForParentPartitionsAction

__all__ = [
    "ChildPartitionsRecordAction",
    "DataChangeRecordAction",
    "DeletePartitionAction",
    "DoneAction",
    "FinishPartitionAction",
    "HeartbeatRecordAction",
    "ProcessContinuation",
    "QueryChangeStreamAction",
    "RecordEmitter",
    "WaitForChildPartitionsAction",
    "WaitForParentPartitionsAction",
]
