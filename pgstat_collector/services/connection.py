"""PostgreSQL connection service for the collector."""

import logging
import time
from typing import Callable, Optional

import psycopg2
import psycopg2.extensions

from ..config.models import PostgresqlConfig
from ..stats.errors import FetchError

# Connection parameters never exposed in the "server" tag
_SENSITIVE_PARAMS = ("password", "sslcert", "sslkey", "sslmode", "sslrootcert", "sslpassword")


def sanitize_address(address: str) -> str:
    """
    Strip credentials and SSL file parameters from a connection address.

    Both key/value strings and postgres:// URLs are accepted; the result is
    always a key/value string with keys in sorted order.

    Raises:
        psycopg2.ProgrammingError: If the address cannot be parsed
    """
    params = psycopg2.extensions.parse_dsn(address)
    kept = {k: v for k, v in params.items() if k not in _SENSITIVE_PARAMS}
    return " ".join(f"{k}={kept[k]}" for k in sorted(kept))


class ConnectionService:
    """
    Holds the single collector connection.

    The connection runs in autocommit mode so statistics views are not
    frozen inside one transaction snapshot. It is reopened when closed or
    when older than max_lifetime (0 keeps it forever).
    """

    def __init__(
        self,
        config: PostgresqlConfig,
        logger: logging.Logger = None,
        connect: Callable = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize connection service.

        Args:
            config: PostgreSQL configuration
            logger: Optional logger instance
            connect: psycopg2.connect compatible callable (for tests)
            clock: Monotonic clock used for max_lifetime
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._connect = connect or psycopg2.connect
        self._clock = clock
        self._connection = None
        self._opened_at: Optional[float] = None
        # Value of the "server" tag on every record
        self.server_tag = config.output_address or sanitize_address(config.address)

    def open(self, dsn: str):
        """
        Open a new autocommit connection to the given DSN.

        Used both for the shared connection and for the short-lived
        per-database connections of the local phase.
        """
        kwargs = {"connect_timeout": self.config.connect_timeout}
        # pgbouncer rejects the "options" startup parameter
        if self.config.statement_timeout and not self.config.pgbouncer:
            kwargs["options"] = f"-c statement_timeout={int(self.config.statement_timeout * 1000)}"

        connection = self._connect(dsn, **kwargs)
        connection.autocommit = True
        return connection

    def get_connection(self):
        """
        Return a ready-to-query connection, reconnecting when needed.

        Raises:
            FetchError: If the connection cannot be opened (no category)
        """
        if self._connection is not None and self._needs_recycle():
            self.close()

        if self._connection is None:
            self.logger.info(f"Connecting to {self.server_tag}")
            try:
                self._connection = self.open(self.config.address)
            except psycopg2.Error as e:
                raise FetchError(None, e) from e
            self._opened_at = self._clock()

        return self._connection

    def close(self) -> None:
        """Close the shared connection if open."""
        if self._connection is None:
            return
        try:
            self._connection.close()
        except psycopg2.Error as e:
            self.logger.warning(f"Error closing connection: {e}")
        finally:
            self._connection = None
            self._opened_at = None

    def _needs_recycle(self) -> bool:
        if self._connection.closed:
            self.logger.info("Connection closed by server, reconnecting")
            return True
        if self.config.max_lifetime and self._clock() - self._opened_at >= self.config.max_lifetime:
            self.logger.debug("Connection reached max_lifetime, recycling")
            return True
        return False
