"""
Normalization of raw statistic rows into time-series records.

Every function here is pure: no I/O, no clock, no state. Normalizing the same
row twice yields equal records.
"""

from typing import Any, Callable, Dict, Iterable, List

from .categories import StatCategory
from .errors import NormalizationError
from .rows import ConnectionsRow, DiskSizesRow, LocksRow
from ..utils.metrics import NormalizedRecord


def _fields_of(row: Any) -> Dict[str, Any]:
    return {name: getattr(row, attr) for attr, name in row.FIELDS.items()}


def _bool_tag(value: bool) -> str:
    return "true" if value else "false"


def normalize_locks(row: LocksRow) -> NormalizedRecord:
    """Locks keep the granted flag as a tag, not a field."""
    return NormalizedRecord(
        measurement=StatCategory.LOCKS.measurement,
        tags={
            "database_name": row.database_name,
            "mode": row.mode,
            "type": row.type,
            "granted": _bool_tag(row.granted),
        },
        fields=_fields_of(row),
    )


def normalize_connections(row: ConnectionsRow) -> NormalizedRecord:
    """Connections are keyed by user, not by database."""
    return NormalizedRecord(
        measurement=StatCategory.CONNECTIONS.measurement,
        tags={"username": row.username},
        fields=_fields_of(row),
    )


def normalize_disk_size(row: DiskSizesRow) -> NormalizedRecord:
    return NormalizedRecord(
        measurement=StatCategory.DISK_SIZE.measurement,
        tags={"database_name": row.database_name},
        fields={"Size": row.size},
    )


def _passthrough(category: StatCategory) -> Callable[[Any], NormalizedRecord]:
    def normalize(row: Any) -> NormalizedRecord:
        return NormalizedRecord(
            measurement=category.measurement,
            tags={"database_name": row.database_name},
            fields=_fields_of(row),
        )

    normalize.__name__ = f"normalize_{category.label}"
    return normalize


NORMALIZERS: Dict[StatCategory, Callable[[Any], NormalizedRecord]] = {
    category: _passthrough(category) for category in StatCategory
}
NORMALIZERS.update({
    StatCategory.LOCKS: normalize_locks,
    StatCategory.CONNECTIONS: normalize_connections,
    StatCategory.DISK_SIZE: normalize_disk_size,
})


def normalize_row(category: StatCategory, row: Any) -> NormalizedRecord:
    """
    Convert one raw row of a category into a normalized record.

    Args:
        category: Statistic category the row belongs to
        row: Typed row returned by the stat row source

    Returns:
        NormalizedRecord: The record to forward to the sink

    Raises:
        NormalizationError: If the row is not of the category's row type
    """
    if not isinstance(row, category.row_type):
        raise NormalizationError(
            f"{category.label}: expected {category.row_type.__name__}, "
            f"got {type(row).__name__}"
        )
    return NORMALIZERS[category](row)


def normalize_rows(category: StatCategory, rows: Iterable[Any]) -> List[NormalizedRecord]:
    """Normalize a sequence of rows, one record per row, order preserved."""
    return [normalize_row(category, row) for row in rows]
