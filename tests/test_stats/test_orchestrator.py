"""Tests for the collection orchestrator."""

import logging

import pytest

from pgstat_collector.stats.categories import GLOBAL_PHASE, LOCAL_PHASE, StatCategory
from pgstat_collector.stats.errors import FetchError
from pgstat_collector.stats.orchestrator import (
    CollectionOrchestrator,
    CompatibilityPolicy,
    PGBOUNCER_INCOMPATIBLE,
)
from pgstat_collector.utils.metrics import NormalizedRecord
from pgstat_collector.utils.status import CycleStatus


ALL_MEASUREMENTS = [
    "postgresql2-locks",
    "postgresql2-disk-size",
    "postgresql2-connections",
    "postgresql2-query-ages",
    "postgresql2-query-transactions",
    "postgresql2-query-temp-bytes",
    "postgresql2-disk-ios",
    "postgresql2-index-ios",
    "postgresql2-sequences-ios",
    "postgresql2-scan-types",
    "postgresql2-row-accesses",
    "postgresql2-size-breakdown",
]

CONNECTION = object()


def test_full_cycle_order(fake_source, accumulator, target_scope):
    """A successful cycle forwards every measurement in the fixed order."""
    orchestrator = CollectionOrchestrator(fake_source)

    outcome = orchestrator.gather(accumulator, CONNECTION, target_scope)

    assert outcome.status == CycleStatus.COMPLETE
    assert outcome.succeeded
    assert outcome.error is None
    assert accumulator.measurements() == ALL_MEASUREMENTS
    assert outcome.forwarded == list(GLOBAL_PHASE + LOCAL_PHASE)
    assert outcome.records_forwarded == len(accumulator) == 13


def test_fetch_calls_are_scope_correct(fake_source, accumulator, target_scope):
    """Cluster fetches get only the connection; local fetches also get the scope."""
    CollectionOrchestrator(fake_source).gather(accumulator, CONNECTION, target_scope)

    for category, args in fake_source.calls:
        if category in GLOBAL_PHASE:
            assert args == (CONNECTION,)
        else:
            assert args == (CONNECTION, target_scope)

    assert [category for category, _ in fake_source.calls] == list(GLOBAL_PHASE + LOCAL_PHASE)


def test_fail_fast_at_query_ages(make_source, accumulator, target_scope):
    """Failure at the 4th category leaves exactly three measurements forwarded."""
    source = make_source(fail_at=StatCategory.QUERY_AGES)

    outcome = CollectionOrchestrator(source).gather(accumulator, CONNECTION, target_scope)

    assert outcome.status == CycleStatus.FAILED
    assert outcome.failed_category is StatCategory.QUERY_AGES
    assert isinstance(outcome.error, FetchError)
    assert outcome.error.category is StatCategory.QUERY_AGES
    assert accumulator.measurements() == [
        "postgresql2-locks",
        "postgresql2-disk-size",
        "postgresql2-connections",
    ]
    # Nothing after the failing category is attempted
    assert [category for category, _ in source.calls] == list(GLOBAL_PHASE[:4])


def test_failure_in_local_phase_keeps_global_records(make_source, accumulator, target_scope):
    source = make_source(fail_at=StatCategory.SCAN_TYPES)

    outcome = CollectionOrchestrator(source).gather(accumulator, CONNECTION, target_scope)

    assert outcome.failed_category is StatCategory.SCAN_TYPES
    assert accumulator.measurements() == ALL_MEASUREMENTS[:9]
    assert StatCategory.ROW_ACCESSES not in [c for c, _ in source.calls]


def test_raise_for_failure(make_source, accumulator, target_scope):
    source = make_source(fail_at=StatCategory.LOCKS)
    outcome = CollectionOrchestrator(source).gather(accumulator, CONNECTION, target_scope)

    with pytest.raises(FetchError, match="locks fetch failed"):
        outcome.raise_for_failure()
    assert len(accumulator) == 0


def test_unlabelled_fetch_error_gets_category(accumulator, target_scope):
    """An error raised without a category is annotated with the failing one."""

    class CatalogFailure:
        def locks(self, connection):
            return []

        def disk_size(self, connection):
            raise FetchError(None, RuntimeError("permission denied for pg_database"))

    outcome = CollectionOrchestrator(CatalogFailure()).gather(accumulator, CONNECTION, target_scope)

    assert outcome.failed_category is StatCategory.DISK_SIZE
    assert outcome.error.category is StatCategory.DISK_SIZE
    assert "permission denied" in str(outcome.error)


def test_lock_scenario_end_to_end(make_source, accumulator, target_scope, sample_rows):
    source = make_source(results={StatCategory.LOCKS: sample_rows[StatCategory.LOCKS]})

    CollectionOrchestrator(source).gather(accumulator, CONNECTION, target_scope)

    assert accumulator.records == [
        NormalizedRecord(
            measurement="postgresql2-locks",
            tags={"database_name": "app", "mode": "RowExclusiveLock", "type": "relation", "granted": "true"},
            fields={"lock_count": 3},
        )
    ]


def test_connections_scenario_end_to_end(make_source, accumulator, target_scope, sample_rows):
    source = make_source(results={StatCategory.CONNECTIONS: sample_rows[StatCategory.CONNECTIONS]})

    CollectionOrchestrator(source).gather(accumulator, CONNECTION, target_scope)

    (record,) = accumulator.records
    assert record.tags == {"username": "app_user"}
    assert "database_name" not in record.tags
    assert record.fields == {"Idle": 2, "IdleInTransaction": 0, "Unknown": 0, "QueryActive": 1, "Waiting": 0}


def test_empty_categories_still_count_as_forwarded(make_source, accumulator, target_scope):
    outcome = CollectionOrchestrator(make_source(results={})).gather(accumulator, CONNECTION, target_scope)

    assert outcome.succeeded
    assert outcome.records_forwarded == 0
    assert len(outcome.forwarded) == 12


class TestCompatibility:
    """pgbouncer mode skips unsupported local categories."""

    def test_pgbouncer_skips_without_failing(self, fake_source, accumulator, target_scope):
        policy = CompatibilityPolicy.for_connection(pgbouncer=True)

        outcome = CollectionOrchestrator(fake_source, compatibility=policy).gather(
            accumulator, CONNECTION, target_scope
        )

        assert outcome.succeeded
        assert set(outcome.skipped) == PGBOUNCER_INCOMPATIBLE
        called = [category for category, _ in fake_source.calls]
        for category in PGBOUNCER_INCOMPATIBLE:
            assert category not in called
        assert "postgresql2-sequences-ios" not in accumulator.measurements()
        assert "postgresql2-size-breakdown" not in accumulator.measurements()

    def test_direct_connection_runs_everything(self):
        policy = CompatibilityPolicy.for_connection(pgbouncer=False)

        assert all(policy.allows(category) for category in StatCategory)

    def test_cluster_categories_never_skipped(self):
        policy = CompatibilityPolicy(skipped_categories=frozenset({StatCategory.LOCKS}))

        assert policy.allows(StatCategory.LOCKS)

    def test_extra_skipped_categories(self):
        policy = CompatibilityPolicy.for_connection(False, [StatCategory.ROW_ACCESSES])

        assert not policy.allows(StatCategory.ROW_ACCESSES)
        assert policy.allows(StatCategory.SIZE_BREAKDOWN)


def test_sink_error_does_not_abort_cycle(fake_source, target_scope, caplog):
    """A failing sink is logged; the cycle keeps going."""

    class FlakySink:
        def __init__(self):
            self.appended = []

        def append(self, measurement, fields, tags):
            if measurement == "postgresql2-locks":
                raise IOError("disk full")
            self.appended.append(measurement)

    sink = FlakySink()
    orchestrator = CollectionOrchestrator(fake_source, logger=logging.getLogger("test.orchestrator"))

    with caplog.at_level(logging.ERROR, logger="test.orchestrator"):
        outcome = orchestrator.gather(sink, CONNECTION, target_scope)

    assert outcome.succeeded
    assert "postgresql2-size-breakdown" in sink.appended
    assert "Sink rejected postgresql2-locks" in caplog.text
