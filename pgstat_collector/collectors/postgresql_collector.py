"""PostgreSQL statistics collector."""

import asyncio
import logging

from ..config.models import PostgresqlConfig
from ..services.connection import ConnectionService
from ..sinks.base import Sink, TaggingSink
from ..stats.categories import StatCategory
from ..stats.fetcher import PgStatsFetcher, StatRowSource
from ..stats.orchestrator import CollectionOrchestrator, CompatibilityPolicy
from ..stats.scope import TargetScope
from ..utils.metrics import CollectionOutcome
from .base import BaseCollector, safe_collect


class PostgresqlCollector(BaseCollector):
    """Collects cluster and per-database statistics from one PostgreSQL server."""

    def __init__(
        self,
        config: PostgresqlConfig,
        logger: logging.Logger,
        connection_service: ConnectionService = None,
        source: StatRowSource = None
    ):
        """
        Initialize PostgreSQL collector.

        Args:
            config: PostgreSQL configuration
            logger: Logger instance
            connection_service: Shared connection holder (built from config if omitted)
            source: Stat row source (psycopg2 fetcher if omitted)
        """
        super().__init__(config, logger)

        self.connection_service = connection_service or ConnectionService(config, self.logger)
        self.source = source or PgStatsFetcher(
            connector=self.connection_service.open,
            logger=self.logger
        )
        self.target_scope = TargetScope(
            address=config.address,
            databases=tuple(config.databases),
            ignored_databases=tuple(config.ignored_databases),
        )
        self.orchestrator = CollectionOrchestrator(
            self.source,
            compatibility=CompatibilityPolicy.for_connection(
                config.pgbouncer,
                [StatCategory.from_label(label) for label in config.skip_categories]
            ),
            logger=self.logger
        )
        # One cycle at a time on the shared connection
        self._cycle_lock = asyncio.Lock()

    @safe_collect
    async def collect(self, sink: Sink) -> CollectionOutcome:
        """
        Run one collection cycle in a worker thread.

        Every record gets the "server" tag.

        Returns:
            CollectionOutcome: Result of the cycle
        """
        tagged_sink = TaggingSink(sink, {"server": self.connection_service.server_tag})

        async with self._cycle_lock:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, self._gather, tagged_sink)

    def _gather(self, sink: Sink) -> CollectionOutcome:
        connection = self.connection_service.get_connection()
        return self.orchestrator.gather(sink, connection, self.target_scope)

    def close(self) -> None:
        """Release the shared connection."""
        self.connection_service.close()
