"""Collection cycle status enumeration."""

import logging
from enum import Enum


class CycleStatus(Enum):
    """Final state of one collection cycle."""

    COMPLETE = "complete"
    FAILED = "failed"

    def to_log_level(self) -> int:
        """
        Map status to the logging level used for the cycle summary.

        Returns:
            int: logging level constant
        """
        return {
            CycleStatus.COMPLETE: logging.INFO,
            CycleStatus.FAILED: logging.ERROR,
        }[self]
