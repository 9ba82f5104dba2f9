"""Base collector abstract class."""

from abc import ABC, abstractmethod
from typing import Any
import logging
from functools import wraps

from ..sinks.base import Sink
from ..stats.errors import FetchError
from ..utils.metrics import CollectionOutcome
from ..utils.status import CycleStatus


class BaseCollector(ABC):
    """Abstract base class for all collectors."""

    def __init__(self, config: Any, logger: logging.Logger):
        """
        Initialize base collector.

        Args:
            config: Collector-specific configuration
            logger: Logger instance
        """
        self.config = config
        self.logger = logger.getChild(self.__class__.__name__)

    @property
    def name(self) -> str:
        return self.__class__.__name__.lower().replace('collector', '')

    @abstractmethod
    async def collect(self, sink: Sink) -> CollectionOutcome:
        """
        Run one collection cycle, forwarding records to the sink.

        Returns:
            CollectionOutcome: Result of the cycle

        Note:
            Implementations should use @safe_collect so fetch errors raised
            outside the orchestrator (e.g. while connecting) become a FAILED
            outcome instead of an exception.
        """
        pass


def safe_collect(func):
    """
    Decorator turning fetch errors into a FAILED collection outcome.

    Any other exception propagates: a contract violation must fail loudly.

    Args:
        func: Collector method to wrap

    Returns:
        Wrapped coroutine function
    """
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except FetchError as e:
            self.logger.error(f"Collection failed: {e}", exc_info=True)
            return CollectionOutcome(
                status=CycleStatus.FAILED,
                failed_category=e.category,
                error=e
            )
    return wrapper
