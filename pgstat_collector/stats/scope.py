"""Target scope for database-local statistics."""

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .errors import ConfigurationError


@dataclass(frozen=True)
class TargetScope:
    """
    Which databases the local phase collects from, and how to reach them.

    Args:
        address: Connection address (key/value DSN or postgres:// URL)
        databases: Explicit allow-list; empty means all databases
        ignored_databases: Deny-list; cannot be combined with databases
    """

    address: str
    databases: Tuple[str, ...] = ()
    ignored_databases: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.databases and self.ignored_databases:
            raise ConfigurationError(
                "databases and ignored_databases are mutually exclusive"
            )
        # Accept lists from callers while keeping the dataclass hashable
        object.__setattr__(self, "databases", tuple(self.databases))
        object.__setattr__(self, "ignored_databases", tuple(self.ignored_databases))

    def includes(self, database_name: str) -> bool:
        if self.databases:
            return database_name in self.databases
        return database_name not in self.ignored_databases

    def select(self, database_names: Iterable[str]) -> List[str]:
        """Filter database names down to the ones in scope, order preserved."""
        return [name for name in database_names if self.includes(name)]
