"""Collection cycle orchestration: global phase, then local phase."""

import logging
import time
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, Optional

from .categories import PHASES, StatCategory
from .errors import FetchError
from .fetcher import StatRowSource
from .normalizer import normalize_rows
from .scope import TargetScope
from ..sinks.base import Sink
from ..utils.metrics import CollectionOutcome, NormalizedRecord
from ..utils.status import CycleStatus


# Catalog queries a transaction-pooling proxy cannot serve reliably.
PGBOUNCER_INCOMPATIBLE: FrozenSet[StatCategory] = frozenset({
    StatCategory.SEQUENCES_IO,
    StatCategory.SIZE_BREAKDOWN,
})


@dataclass(frozen=True)
class CompatibilityPolicy:
    """
    Decides which database-scoped categories may run on this connection.

    Cluster-scoped categories are always collected.
    """

    pgbouncer: bool = False
    skipped_categories: FrozenSet[StatCategory] = frozenset()

    @classmethod
    def for_connection(
        cls,
        pgbouncer: bool,
        extra_skipped: Iterable[StatCategory] = ()
    ) -> "CompatibilityPolicy":
        skipped = set(extra_skipped)
        if pgbouncer:
            skipped |= PGBOUNCER_INCOMPATIBLE
        return cls(pgbouncer=pgbouncer, skipped_categories=frozenset(skipped))

    def allows(self, category: StatCategory) -> bool:
        if category.is_cluster_scoped:
            return True
        return category not in self.skipped_categories


class CollectionOrchestrator:
    """
    Runs one collection cycle against a stat row source.

    Categories are fetched strictly in order; each one is normalized and
    forwarded to the sink before the next is fetched. The first fetch error
    stops the cycle. Records already forwarded are kept.
    """

    def __init__(
        self,
        source: StatRowSource,
        compatibility: Optional[CompatibilityPolicy] = None,
        logger: logging.Logger = None
    ):
        """
        Initialize orchestrator.

        Args:
            source: Stat row source providing one fetch operation per category
            compatibility: Policy for skipping unsupported local categories
            logger: Optional logger instance
        """
        self.source = source
        self.compatibility = compatibility or CompatibilityPolicy()
        self.logger = logger or logging.getLogger(__name__)

    def gather(self, sink: Sink, connection: Any, target_scope: TargetScope) -> CollectionOutcome:
        """
        Execute one collection cycle end to end.

        Args:
            sink: Receiver of normalized records
            connection: Ready-to-query connection handle
            target_scope: Databases the local phase collects from

        Returns:
            CollectionOutcome: COMPLETE, or FAILED with the failing category
        """
        start_time = time.monotonic()
        outcome = CollectionOutcome(status=CycleStatus.COMPLETE)

        for phase, categories in PHASES:
            self.logger.debug(f"Starting {phase} phase")

            for category in categories:
                if not self.compatibility.allows(category):
                    self.logger.info(
                        f"Skipping {category.label}: not supported on this connection",
                        extra={"category": category.label}
                    )
                    outcome.skipped.append(category)
                    continue

                try:
                    rows = self._fetch(category, connection, target_scope)
                except FetchError as e:
                    error = e.with_category(category)
                    self.logger.error(
                        f"Collection aborted at {category.label}: {error}",
                        extra={
                            "category": category.label,
                            "phase": phase,
                            "error_type": type(error.cause).__name__,
                        }
                    )
                    outcome.status = CycleStatus.FAILED
                    outcome.failed_category = category
                    outcome.error = error
                    outcome.duration = time.monotonic() - start_time
                    return outcome

                records = normalize_rows(category, rows)
                for record in records:
                    self._forward(sink, record)

                outcome.forwarded.append(category)
                outcome.records_forwarded += len(records)

        outcome.duration = time.monotonic() - start_time
        return outcome

    def _fetch(self, category: StatCategory, connection: Any, target_scope: TargetScope):
        fetch = getattr(self.source, category.fetch_method)
        if category.is_cluster_scoped:
            return fetch(connection)
        return fetch(connection, target_scope)

    def _forward(self, sink: Sink, record: NormalizedRecord) -> None:
        try:
            sink.append(record.measurement, record.fields, record.tags)
        except Exception as e:
            # Sink failures belong to the sink; keep the cycle going
            self.logger.error(
                f"Sink rejected {record.measurement} record: {e}",
                exc_info=True,
                extra={"measurement": record.measurement}
            )
