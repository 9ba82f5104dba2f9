"""Statistic category registry and the fixed collection phases."""

from enum import Enum
from typing import Tuple, Type

from . import rows


class StatScope(Enum):
    """Where a statistic is fetched from."""

    CLUSTER = "cluster"
    PER_DATABASE = "per_database"


class StatCategory(Enum):
    """
    The fixed statistic kinds.

    Each member carries its scope, output measurement name, row type and the
    name of the stat row source operation that fetches it.
    """

    LOCKS = ("locks", StatScope.CLUSTER, "postgresql2-locks", rows.LocksRow)
    DISK_SIZE = ("disk_size", StatScope.CLUSTER, "postgresql2-disk-size", rows.DiskSizesRow)
    CONNECTIONS = ("connections", StatScope.CLUSTER, "postgresql2-connections", rows.ConnectionsRow)
    QUERY_AGES = ("query_ages", StatScope.CLUSTER, "postgresql2-query-ages", rows.QueryAgesRow)
    TRANSACTIONS = ("transactions", StatScope.CLUSTER, "postgresql2-query-transactions", rows.TransactionsRow)
    TEMP_BYTES = ("temp_bytes", StatScope.CLUSTER, "postgresql2-query-temp-bytes", rows.TempBytesRow)
    DISK_IO = ("disk_io", StatScope.PER_DATABASE, "postgresql2-disk-ios", rows.DiskIOsRow)
    INDEX_IO = ("index_io", StatScope.PER_DATABASE, "postgresql2-index-ios", rows.IndexIOsRow)
    SEQUENCES_IO = ("sequences_io", StatScope.PER_DATABASE, "postgresql2-sequences-ios", rows.SequencesIOsRow)
    SCAN_TYPES = ("scan_types", StatScope.PER_DATABASE, "postgresql2-scan-types", rows.ScanTypesRow)
    ROW_ACCESSES = ("row_accesses", StatScope.PER_DATABASE, "postgresql2-row-accesses", rows.RowAccessesRow)
    SIZE_BREAKDOWN = ("size_breakdown", StatScope.PER_DATABASE, "postgresql2-size-breakdown", rows.SizeBreakdownRow)

    def __init__(self, label: str, scope: StatScope, measurement: str, row_type: Type):
        self.label = label
        self.scope = scope
        self.measurement = measurement
        self.row_type = row_type

    @property
    def fetch_method(self) -> str:
        """Name of the stat row source operation for this category."""
        return self.label

    @property
    def is_cluster_scoped(self) -> bool:
        return self.scope is StatScope.CLUSTER

    @classmethod
    def from_label(cls, label: str) -> "StatCategory":
        """
        Look up a category by its label (e.g. "sequences_io").

        Raises:
            ValueError: If no category has that label
        """
        for category in cls:
            if category.label == label:
                return category
        raise ValueError(f"Unknown statistic category: {label}")


# Fetch order is part of the collection contract.
GLOBAL_PHASE: Tuple[StatCategory, ...] = (
    StatCategory.LOCKS,
    StatCategory.DISK_SIZE,
    StatCategory.CONNECTIONS,
    StatCategory.QUERY_AGES,
    StatCategory.TRANSACTIONS,
    StatCategory.TEMP_BYTES,
)

LOCAL_PHASE: Tuple[StatCategory, ...] = (
    StatCategory.DISK_IO,
    StatCategory.INDEX_IO,
    StatCategory.SEQUENCES_IO,
    StatCategory.SCAN_TYPES,
    StatCategory.ROW_ACCESSES,
    StatCategory.SIZE_BREAKDOWN,
)

PHASES: Tuple[Tuple[str, Tuple[StatCategory, ...]], ...] = (
    ("global", GLOBAL_PHASE),
    ("local", LOCAL_PHASE),
)
