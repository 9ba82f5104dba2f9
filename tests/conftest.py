"""Shared pytest configuration and fixtures."""

import pytest

from pgstat_collector.sinks.accumulator import RecordAccumulator
from pgstat_collector.stats.categories import StatCategory
from pgstat_collector.stats.errors import FetchError
from pgstat_collector.stats.scope import TargetScope
from pgstat_collector.stats import rows
from pgstat_collector.utils.logger import setup_logger


SAMPLE_ROWS = {
    StatCategory.LOCKS: [
        rows.LocksRow(database_name="app", mode="RowExclusiveLock", type="relation", granted=True, count=3),
    ],
    StatCategory.DISK_SIZE: [
        rows.DiskSizesRow(database_name="app", size=8_000_000),
        rows.DiskSizesRow(database_name="postgres", size=7_500_000),
    ],
    StatCategory.CONNECTIONS: [
        rows.ConnectionsRow(username="app_user", idle=2, idle_in_transaction=0, unknown=0, query_active=1, waiting=0),
    ],
    StatCategory.QUERY_AGES: [
        rows.QueryAgesRow(database_name="app", query_age=1.5, transaction_age=4.25),
    ],
    StatCategory.TRANSACTIONS: [
        rows.TransactionsRow(database_name="app", committed=1200, rolledback=7),
    ],
    StatCategory.TEMP_BYTES: [
        rows.TempBytesRow(database_name="app", temporary_bytes=65536),
    ],
    StatCategory.DISK_IO: [
        rows.DiskIOsRow(
            database_name="app",
            heap_blocks_read=10, heap_blocks_hit=900,
            index_blocks_read=5, index_blocks_hit=400,
            toast_blocks_read=1, toast_blocks_hit=20,
            toast_index_blocks_read=0, toast_index_blocks_hit=3,
        ),
    ],
    StatCategory.INDEX_IO: [
        rows.IndexIOsRow(database_name="app", index_blocks_read=5, index_blocks_hit=400),
    ],
    StatCategory.SEQUENCES_IO: [
        rows.SequencesIOsRow(database_name="app", blocks_read=2, blocks_hit=50),
    ],
    StatCategory.SCAN_TYPES: [
        rows.ScanTypesRow(database_name="app", sequential_scans=12, index_scans=340),
    ],
    StatCategory.ROW_ACCESSES: [
        rows.RowAccessesRow(
            database_name="app",
            sequential_tuples_read=1000, index_tuples_fetched=250,
            inserted_tuples=30, updated_tuples=12, deleted_tuples=1, hot_updated_tuples=9,
        ),
    ],
    StatCategory.SIZE_BREAKDOWN: [
        rows.SizeBreakdownRow(database_name="app", table_size=4096, index_size=2048, toast_size=0, total_size=6144),
    ],
}


class FakeStatSource:
    """
    In-memory stat row source recording every call.

    Args:
        results: Rows returned per category
        fail_at: Category whose fetch raises FetchError
    """

    def __init__(self, results=None, fail_at=None):
        self.results = SAMPLE_ROWS if results is None else results
        self.fail_at = fail_at
        self.calls = []

    def _fetch(self, category, args):
        self.calls.append((category, args))
        if category is self.fail_at:
            raise FetchError(category, RuntimeError(f"relation for {category.label} does not exist"))
        return list(self.results.get(category, []))

    def __getattr__(self, name):
        try:
            category = StatCategory.from_label(name)
        except ValueError:
            raise AttributeError(name) from None
        return lambda *args: self._fetch(category, args)


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test")


@pytest.fixture
def sample_rows():
    return SAMPLE_ROWS


@pytest.fixture
def fake_source():
    return FakeStatSource()


@pytest.fixture
def make_source():
    """Factory for stat sources with custom results or a failing category."""
    return FakeStatSource


@pytest.fixture
def accumulator():
    return RecordAccumulator()


@pytest.fixture
def target_scope():
    return TargetScope(address="host=localhost user=postgres dbname=postgres")
