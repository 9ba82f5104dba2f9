"""Main application entry point for the PostgreSQL statistics collector."""

import argparse
import asyncio
import logging
import os
import signal
import sys

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from .collectors.postgresql_collector import PostgresqlCollector
from .config.loader import ConfigLoader
from .config.models import CollectorSystemConfig, OutputConfig
from .sinks.writers import JsonLinesSink, LineProtocolSink
from .utils.logger import setup_logger
from .utils.metrics import CollectionOutcome


def build_sink(output: OutputConfig):
    """
    Create the record sink described by the output configuration.

    Returns:
        Tuple of (sink, stream); the stream must be closed by the caller
        unless it is stdout.
    """
    stream = open(output.path, "a", encoding="utf-8") if output.path else sys.stdout
    if output.format == "json":
        return JsonLinesSink(stream), stream
    return LineProtocolSink(stream), stream


class CollectorApp:
    """
    Main collector application.

    Runs collection cycles once or on a schedule, with graceful shutdown.
    """

    def __init__(
        self,
        config_path: str = "config/config.yaml",
        log_level: str = "INFO"
    ):
        """
        Initialize collector application.

        Args:
            config_path: Path to configuration file
            log_level: Logging level name
        """
        self.config_path = config_path
        self.logger = setup_logger("pgstat_collector", log_level)
        self.scheduler = None
        self.loop = None

        # Setup signal handlers for graceful shutdown
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        self.config = self._load_config()
        self.sink, self._stream = build_sink(self.config.output)
        self.collector = PostgresqlCollector(self.config.postgresql, self.logger)
        self.logger.info("Application initialized successfully")

    def _load_config(self) -> CollectorSystemConfig:
        """
        Load and validate configuration.

        Returns:
            CollectorSystemConfig: Loaded configuration

        Raises:
            SystemExit: If configuration is invalid
        """
        try:
            self.logger.info(f"Loading configuration from {self.config_path}")
            config = ConfigLoader.load_from_file(self.config_path)
            self.logger.info("Configuration loaded successfully")
            return config

        except FileNotFoundError:
            self.logger.error(
                f"Configuration file not found: {self.config_path}\n"
                "Please create config/config.yaml from config/config.example.yaml"
            )
            sys.exit(1)

        except Exception as e:
            self.logger.error(f"Failed to load configuration: {e}", exc_info=True)
            sys.exit(1)

    def _signal_handler(self, signum, frame):
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received {signal_name}, initiating graceful shutdown...")

        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.shutdown()

        sys.exit(0)

    async def run_collection_cycle(self) -> CollectionOutcome:
        """
        Execute one collection cycle and log its summary.

        Returns:
            CollectionOutcome: Result of the cycle
        """
        self.logger.info("Starting collection cycle")
        outcome = await self.collector.collect(self.sink)

        self.logger.log(
            outcome.status.to_log_level(),
            outcome.summary(),
            extra={
                "status": outcome.status.value,
                "records": outcome.records_forwarded,
                "failed_category": outcome.failed_category.label if outcome.failed_category else None,
            }
        )
        return outcome

    def _build_trigger(self):
        """Cron trigger when a schedule is configured, interval trigger otherwise."""
        schedule = self.config.collection.schedule
        if schedule:
            minute, hour, day, month, day_of_week = schedule.split()
            return CronTrigger(
                minute=minute,
                hour=hour,
                day=day,
                month=month,
                day_of_week=day_of_week
            )
        return IntervalTrigger(seconds=self.config.collection.interval)

    def start_scheduler(self):
        """
        Start scheduled collection with APScheduler.

        Runs indefinitely until interrupted (SIGTERM/SIGINT).
        """
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

        trigger = self._build_trigger()
        self.scheduler = AsyncIOScheduler(event_loop=self.loop)
        self.scheduler.add_job(
            self.run_collection_cycle,
            trigger=trigger,
            id='collection_cycle',
            name='PostgreSQL Statistics Collection',
            max_instances=1,  # Prevent overlapping cycles on the shared connection
            coalesce=True,
            misfire_grace_time=30
        )
        self.scheduler.start()
        self.logger.info(f"Scheduler started with trigger: {trigger}")

        # Run first cycle immediately on startup
        self.loop.run_until_complete(self.run_collection_cycle())

        try:
            self.logger.info("Scheduler running. Press Ctrl+C to exit.")
            self.loop.run_forever()
        except KeyboardInterrupt:
            self.logger.info("Received keyboard interrupt")
        finally:
            if self.scheduler and self.scheduler.running:
                self.scheduler.shutdown()
            self.shutdown()
            self.logger.info("Scheduler stopped")

    def shutdown(self) -> None:
        """Close the database connection and the output stream."""
        self.collector.close()
        if self._stream is not sys.stdout and not self._stream.closed:
            self._stream.close()


def main():
    """
    CLI entry point.

    Parses command-line arguments and starts the collector.
    """
    parser = argparse.ArgumentParser(
        description='Periodic PostgreSQL statistics collector',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Collect on the configured schedule (default)
  pgstat-collector

  # Run one collection cycle and exit
  pgstat-collector --run-once

  # Use custom config file
  pgstat-collector --config /path/to/config.yaml
        """
    )

    parser.add_argument(
        '--config',
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--run-once',
        action='store_true',
        help='Run one collection cycle and exit (no scheduler)'
    )

    parser.add_argument(
        '--log-level',
        default=os.getenv('LOG_LEVEL', 'INFO'),
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO or LOG_LEVEL env var)'
    )

    args = parser.parse_args()

    try:
        app = CollectorApp(config_path=args.config, log_level=args.log_level)

        if args.run_once:
            try:
                outcome = asyncio.run(app.run_collection_cycle())
            finally:
                app.shutdown()
            sys.exit(0 if outcome.succeeded else 1)
        else:
            app.start_scheduler()

    except Exception as e:
        logging.error(f"Application startup failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
