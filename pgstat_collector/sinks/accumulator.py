"""In-memory record accumulator."""

import threading
from typing import List, Mapping

from ..utils.metrics import NormalizedRecord


class RecordAccumulator:
    """Keeps every appended record in memory, in arrival order."""

    def __init__(self):
        self._records: List[NormalizedRecord] = []
        self._lock = threading.Lock()

    def append(self, measurement: str, fields: Mapping, tags: Mapping[str, str]) -> None:
        record = NormalizedRecord(measurement=measurement, tags=dict(tags), fields=dict(fields))
        with self._lock:
            self._records.append(record)

    @property
    def records(self) -> List[NormalizedRecord]:
        with self._lock:
            return list(self._records)

    def measurements(self) -> List[str]:
        """Distinct measurement names in first-seen order."""
        seen = []
        for record in self.records:
            if record.measurement not in seen:
                seen.append(record.measurement)
        return seen

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
