"""
Stat row source: queries the PostgreSQL statistics views.

Cluster-scoped categories run on the shared collector connection.
Database-scoped categories open a short-lived connection to every database in
the target scope, because the pg_stat_user_* and pg_statio_user_* views only
describe the database a session is connected to.
"""

import logging
from typing import Any, Callable, List, Optional, Protocol, Sequence

import psycopg2
import psycopg2.extensions

from .categories import StatCategory
from .errors import FetchError, NormalizationError
from .scope import TargetScope
from .rows import (
    ConnectionsRow,
    DiskIOsRow,
    DiskSizesRow,
    IndexIOsRow,
    LocksRow,
    QueryAgesRow,
    RowAccessesRow,
    ScanTypesRow,
    SequencesIOsRow,
    SizeBreakdownRow,
    TempBytesRow,
    TransactionsRow,
)


class StatRowSource(Protocol):
    """Fetch operations for every statistic category."""

    def locks(self, connection: Any) -> Sequence[LocksRow]: ...
    def disk_size(self, connection: Any) -> Sequence[DiskSizesRow]: ...
    def connections(self, connection: Any) -> Sequence[ConnectionsRow]: ...
    def query_ages(self, connection: Any) -> Sequence[QueryAgesRow]: ...
    def transactions(self, connection: Any) -> Sequence[TransactionsRow]: ...
    def temp_bytes(self, connection: Any) -> Sequence[TempBytesRow]: ...
    def disk_io(self, connection: Any, scope: TargetScope) -> Sequence[DiskIOsRow]: ...
    def index_io(self, connection: Any, scope: TargetScope) -> Sequence[IndexIOsRow]: ...
    def sequences_io(self, connection: Any, scope: TargetScope) -> Sequence[SequencesIOsRow]: ...
    def scan_types(self, connection: Any, scope: TargetScope) -> Sequence[ScanTypesRow]: ...
    def row_accesses(self, connection: Any, scope: TargetScope) -> Sequence[RowAccessesRow]: ...
    def size_breakdown(self, connection: Any, scope: TargetScope) -> Sequence[SizeBreakdownRow]: ...


def _sum_columns(relation: str, *columns: str) -> str:
    totals = ",\n    ".join(f"COALESCE(sum({column}), 0)::bigint" for column in columns)
    return f"SELECT\n    {totals}\nFROM {relation}"


DATABASES_SQL = """
SELECT datname
FROM pg_database
WHERE datallowconn
  AND NOT datistemplate
  AND has_database_privilege(oid, 'CONNECT')
ORDER BY datname
"""

LOCKS_SQL = """
SELECT d.datname, l.mode, l.locktype, l.granted, count(*)
FROM pg_locks l
JOIN pg_database d ON d.oid = l.database
GROUP BY d.datname, l.mode, l.locktype, l.granted
ORDER BY d.datname, l.mode, l.locktype, l.granted
"""

DISK_SIZE_SQL = """
SELECT datname, pg_database_size(oid)
FROM pg_database
WHERE datallowconn
  AND NOT datistemplate
  AND has_database_privilege(oid, 'CONNECT')
ORDER BY datname
"""

CONNECTIONS_SQL = """
SELECT
    usename,
    count(*) FILTER (WHERE state = 'idle'),
    count(*) FILTER (WHERE state = 'idle in transaction'),
    count(*) FILTER (WHERE state IS NULL
                     OR state NOT IN ('idle', 'idle in transaction', 'active')),
    count(*) FILTER (WHERE state = 'active'
                     AND wait_event_type IS DISTINCT FROM 'Lock'),
    count(*) FILTER (WHERE wait_event_type = 'Lock')
FROM pg_stat_activity
WHERE usename IS NOT NULL
GROUP BY usename
ORDER BY usename
"""

QUERY_AGES_SQL = """
SELECT
    datname,
    COALESCE(max(extract(epoch FROM now() - query_start))
             FILTER (WHERE state = 'active'), 0)::float8,
    COALESCE(max(extract(epoch FROM now() - xact_start)), 0)::float8
FROM pg_stat_activity
WHERE datname IS NOT NULL
  AND pid <> pg_backend_pid()
GROUP BY datname
ORDER BY datname
"""

TRANSACTIONS_SQL = """
SELECT datname, xact_commit, xact_rollback
FROM pg_stat_database
WHERE datname IS NOT NULL
ORDER BY datname
"""

TEMP_BYTES_SQL = """
SELECT datname, temp_bytes
FROM pg_stat_database
WHERE datname IS NOT NULL
ORDER BY datname
"""

DISK_IO_SQL = _sum_columns(
    "pg_statio_user_tables",
    "heap_blks_read", "heap_blks_hit",
    "idx_blks_read", "idx_blks_hit",
    "toast_blks_read", "toast_blks_hit",
    "tidx_blks_read", "tidx_blks_hit",
)

INDEX_IO_SQL = _sum_columns("pg_statio_user_indexes", "idx_blks_read", "idx_blks_hit")

SEQUENCES_IO_SQL = _sum_columns("pg_statio_user_sequences", "blks_read", "blks_hit")

SCAN_TYPES_SQL = _sum_columns("pg_stat_user_tables", "seq_scan", "idx_scan")

ROW_ACCESSES_SQL = _sum_columns(
    "pg_stat_user_tables",
    "seq_tup_read", "idx_tup_fetch",
    "n_tup_ins", "n_tup_upd", "n_tup_del", "n_tup_hot_upd",
)

SIZE_BREAKDOWN_SQL = """
SELECT
    COALESCE(sum(pg_relation_size(c.oid)), 0)::bigint,
    COALESCE(sum(pg_indexes_size(c.oid)), 0)::bigint,
    COALESCE(sum(CASE WHEN c.reltoastrelid <> 0
                      THEN pg_total_relation_size(c.reltoastrelid)
                      ELSE 0 END), 0)::bigint,
    COALESCE(sum(pg_total_relation_size(c.oid)), 0)::bigint
FROM pg_stat_user_tables t
JOIN pg_class c ON c.oid = t.relid
"""


def database_dsn(address: str, database_name: str) -> str:
    """Rebuild a connection address so it targets a specific database."""
    return psycopg2.extensions.make_dsn(address, dbname=database_name)


class PgStatsFetcher:
    """
    psycopg2 implementation of the stat row source.

    Args:
        connector: Callable opening a connection from a DSN; defaults to
            psycopg2.connect
        logger: Optional logger instance
    """

    def __init__(
        self,
        connector: Optional[Callable[[str], Any]] = None,
        logger: logging.Logger = None
    ):
        self.connector = connector or psycopg2.connect
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Cluster-scoped statistics
    # ------------------------------------------------------------------

    def locks(self, connection) -> List[LocksRow]:
        return self._query_cluster(StatCategory.LOCKS, connection, LOCKS_SQL)

    def disk_size(self, connection) -> List[DiskSizesRow]:
        return self._query_cluster(StatCategory.DISK_SIZE, connection, DISK_SIZE_SQL)

    def connections(self, connection) -> List[ConnectionsRow]:
        return self._query_cluster(StatCategory.CONNECTIONS, connection, CONNECTIONS_SQL)

    def query_ages(self, connection) -> List[QueryAgesRow]:
        return self._query_cluster(StatCategory.QUERY_AGES, connection, QUERY_AGES_SQL)

    def transactions(self, connection) -> List[TransactionsRow]:
        return self._query_cluster(StatCategory.TRANSACTIONS, connection, TRANSACTIONS_SQL)

    def temp_bytes(self, connection) -> List[TempBytesRow]:
        return self._query_cluster(StatCategory.TEMP_BYTES, connection, TEMP_BYTES_SQL)

    # ------------------------------------------------------------------
    # Database-scoped statistics
    # ------------------------------------------------------------------

    def disk_io(self, connection, scope: TargetScope) -> List[DiskIOsRow]:
        return self._query_each_database(StatCategory.DISK_IO, connection, scope, DISK_IO_SQL)

    def index_io(self, connection, scope: TargetScope) -> List[IndexIOsRow]:
        return self._query_each_database(StatCategory.INDEX_IO, connection, scope, INDEX_IO_SQL)

    def sequences_io(self, connection, scope: TargetScope) -> List[SequencesIOsRow]:
        return self._query_each_database(StatCategory.SEQUENCES_IO, connection, scope, SEQUENCES_IO_SQL)

    def scan_types(self, connection, scope: TargetScope) -> List[ScanTypesRow]:
        return self._query_each_database(StatCategory.SCAN_TYPES, connection, scope, SCAN_TYPES_SQL)

    def row_accesses(self, connection, scope: TargetScope) -> List[RowAccessesRow]:
        return self._query_each_database(StatCategory.ROW_ACCESSES, connection, scope, ROW_ACCESSES_SQL)

    def size_breakdown(self, connection, scope: TargetScope) -> List[SizeBreakdownRow]:
        return self._query_each_database(StatCategory.SIZE_BREAKDOWN, connection, scope, SIZE_BREAKDOWN_SQL)

    def list_databases(self, connection, scope: TargetScope) -> List[str]:
        """
        List connectable databases in scope.

        Raises:
            FetchError: If the catalog query fails (category left unset)
        """
        try:
            with connection.cursor() as cursor:
                cursor.execute(DATABASES_SQL)
                names = [record[0] for record in cursor.fetchall()]
        except psycopg2.Error as e:
            raise FetchError(None, e) from e

        return scope.select(names)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _query_cluster(self, category: StatCategory, connection, sql: str) -> list:
        try:
            with connection.cursor() as cursor:
                cursor.execute(sql)
                records = cursor.fetchall()
        except psycopg2.Error as e:
            raise FetchError(category, e) from e

        return [self._build_row(category, record) for record in records]

    def _query_each_database(
        self,
        category: StatCategory,
        connection,
        scope: TargetScope,
        sql: str
    ) -> list:
        try:
            database_names = self.list_databases(connection, scope)
        except FetchError as e:
            raise e.with_category(category) from e.cause

        rows = []
        for database_name in database_names:
            self.logger.debug(f"Fetching {category.label} from database {database_name}")
            try:
                db_connection = self.connector(database_dsn(scope.address, database_name))
                try:
                    with db_connection.cursor() as cursor:
                        cursor.execute(sql)
                        record = cursor.fetchone()
                finally:
                    db_connection.close()
            except psycopg2.Error as e:
                raise FetchError(category, e) from e

            if record is not None:
                rows.append(self._build_row(category, (database_name,) + tuple(record)))

        return rows

    @staticmethod
    def _build_row(category: StatCategory, record: Sequence[Any]):
        try:
            return category.row_type(*record)
        except TypeError as e:
            raise NormalizationError(
                f"{category.label}: row shape {len(record)} does not match "
                f"{category.row_type.__name__}: {e}"
            ) from e
