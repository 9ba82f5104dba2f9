"""
Typed row records returned by the stat row source.

One frozen dataclass per statistic category. ``FIELDS`` maps each numeric
attribute to the field name it carries in the normalized record; the
remaining attributes (``database_name``, ``username``, ...) become tags.
"""

from dataclasses import dataclass
from typing import ClassVar, Dict


@dataclass(frozen=True)
class LocksRow:
    database_name: str
    mode: str
    type: str
    granted: bool
    count: int

    FIELDS: ClassVar[Dict[str, str]] = {"count": "lock_count"}


@dataclass(frozen=True)
class DiskSizesRow:
    database_name: str
    size: int

    FIELDS: ClassVar[Dict[str, str]] = {"size": "Size"}


@dataclass(frozen=True)
class ConnectionsRow:
    username: str
    idle: int
    idle_in_transaction: int
    unknown: int
    query_active: int
    waiting: int

    FIELDS: ClassVar[Dict[str, str]] = {
        "idle": "Idle",
        "idle_in_transaction": "IdleInTransaction",
        "unknown": "Unknown",
        "query_active": "QueryActive",
        "waiting": "Waiting",
    }


@dataclass(frozen=True)
class QueryAgesRow:
    database_name: str
    query_age: float
    transaction_age: float

    FIELDS: ClassVar[Dict[str, str]] = {
        "query_age": "QueryAge",
        "transaction_age": "TransactionAge",
    }


@dataclass(frozen=True)
class TransactionsRow:
    database_name: str
    committed: int
    rolledback: int

    FIELDS: ClassVar[Dict[str, str]] = {
        "committed": "Committed",
        "rolledback": "Rolledback",
    }


@dataclass(frozen=True)
class TempBytesRow:
    database_name: str
    temporary_bytes: int

    FIELDS: ClassVar[Dict[str, str]] = {"temporary_bytes": "TemporaryBytes"}


@dataclass(frozen=True)
class DiskIOsRow:
    database_name: str
    heap_blocks_read: int
    heap_blocks_hit: int
    index_blocks_read: int
    index_blocks_hit: int
    toast_blocks_read: int
    toast_blocks_hit: int
    toast_index_blocks_read: int
    toast_index_blocks_hit: int

    FIELDS: ClassVar[Dict[str, str]] = {
        "heap_blocks_read": "HeapBlocksRead",
        "heap_blocks_hit": "HeapBlocksHit",
        "index_blocks_read": "IndexBlocksRead",
        "index_blocks_hit": "IndexBlocksHit",
        "toast_blocks_read": "ToastBlocksRead",
        "toast_blocks_hit": "ToastBlocksHit",
        "toast_index_blocks_read": "ToastIndexBlocksRead",
        "toast_index_blocks_hit": "ToastIndexBlocksHit",
    }


@dataclass(frozen=True)
class IndexIOsRow:
    database_name: str
    index_blocks_read: int
    index_blocks_hit: int

    FIELDS: ClassVar[Dict[str, str]] = {
        "index_blocks_read": "IndexBlocksRead",
        "index_blocks_hit": "IndexBlocksHit",
    }


@dataclass(frozen=True)
class SequencesIOsRow:
    database_name: str
    blocks_read: int
    blocks_hit: int

    FIELDS: ClassVar[Dict[str, str]] = {
        "blocks_read": "BlocksRead",
        "blocks_hit": "BlocksHit",
    }


@dataclass(frozen=True)
class ScanTypesRow:
    database_name: str
    sequential_scans: int
    index_scans: int

    FIELDS: ClassVar[Dict[str, str]] = {
        "sequential_scans": "SequentialScans",
        "index_scans": "IndexScans",
    }


@dataclass(frozen=True)
class RowAccessesRow:
    database_name: str
    sequential_tuples_read: int
    index_tuples_fetched: int
    inserted_tuples: int
    updated_tuples: int
    deleted_tuples: int
    hot_updated_tuples: int

    FIELDS: ClassVar[Dict[str, str]] = {
        "sequential_tuples_read": "SequentialTuplesRead",
        "index_tuples_fetched": "IndexTuplesFetched",
        "inserted_tuples": "InsertedTuples",
        "updated_tuples": "UpdatedTuples",
        "deleted_tuples": "DeletedTuples",
        "hot_updated_tuples": "HotUpdatedTuples",
    }


@dataclass(frozen=True)
class SizeBreakdownRow:
    database_name: str
    table_size: int
    index_size: int
    toast_size: int
    total_size: int

    FIELDS: ClassVar[Dict[str, str]] = {
        "table_size": "TableSize",
        "index_size": "IndexSize",
        "toast_size": "ToastSize",
        "total_size": "TotalSize",
    }
