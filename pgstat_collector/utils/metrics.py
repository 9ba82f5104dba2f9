"""Record and outcome data structures for collectors."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union, TYPE_CHECKING

from .status import CycleStatus
from ..stats.errors import CollectorError, NormalizationError

if TYPE_CHECKING:
    from ..stats.categories import StatCategory

FieldValue = Union[int, float, str]


@dataclass(frozen=True)
class NormalizedRecord:
    """One time-series point: measurement name, tag set and field set."""

    measurement: str
    tags: Dict[str, str]
    fields: Dict[str, FieldValue]

    def __post_init__(self):
        """Enforce the record invariants."""
        if not self.measurement:
            raise NormalizationError("Record measurement name must not be empty")

        overlap = set(self.tags) & set(self.fields)
        if overlap:
            raise NormalizationError(
                f"{self.measurement}: keys used as both tag and field: {sorted(overlap)}"
            )

        for key, value in self.tags.items():
            if not isinstance(value, str):
                raise NormalizationError(
                    f"{self.measurement}: tag {key!r} must be a string, got {type(value).__name__}"
                )


@dataclass
class CollectionOutcome:
    """Result of one collection cycle."""

    status: CycleStatus
    forwarded: List["StatCategory"] = field(default_factory=list)
    skipped: List["StatCategory"] = field(default_factory=list)
    records_forwarded: int = 0
    failed_category: Optional["StatCategory"] = None
    error: Optional[CollectorError] = None
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is CycleStatus.COMPLETE

    def raise_for_failure(self) -> None:
        """
        Re-raise the error of a failed cycle.

        Raises:
            CollectorError: The error that aborted the cycle
        """
        if self.error is not None:
            raise self.error

    def summary(self) -> str:
        """Human-readable one-line summary."""
        message = (
            f"Cycle {self.status.value}: {len(self.forwarded)} categories, "
            f"{self.records_forwarded} records in {self.duration:.3f}s"
        )
        if self.skipped:
            message += f", skipped {', '.join(c.label for c in self.skipped)}"
        if self.error is not None:
            message += f", error: {self.error}"
        return message
