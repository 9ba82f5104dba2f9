"""Exception hierarchy for statistics collection."""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .categories import StatCategory


class CollectorError(Exception):
    """Base class for all collector errors."""


class FetchError(CollectorError):
    """
    The stat row source failed to retrieve rows.

    Covers lost connections, permission errors, missing views and timeouts.
    Aborts the current collection cycle.
    """

    def __init__(self, category: Optional["StatCategory"], cause: BaseException):
        self.category = category
        self.cause = cause
        label = category.label if category is not None else "connection"
        super().__init__(f"{label} fetch failed: {cause}")

    def with_category(self, category: "StatCategory") -> "FetchError":
        """Return this error annotated with a category, if it has none yet."""
        if self.category is not None:
            return self
        annotated = FetchError(category, self.cause)
        annotated.__cause__ = self.__cause__ or self.cause
        return annotated


class NormalizationError(CollectorError):
    """A row or record does not match the fixed schema of its category."""


class ConfigurationError(CollectorError, ValueError):
    """Invalid configuration value."""
