"""Sink interface and the tagging wrapper."""

from typing import Dict, Mapping, Protocol


class Sink(Protocol):
    """Append-only receiver of normalized records."""

    def append(self, measurement: str, fields: Mapping, tags: Mapping[str, str]) -> None: ...


class TaggingSink:
    """
    Adds constant tags (e.g. "server") to every record before forwarding.

    A record's own tags win over the constant ones, and a constant tag is
    dropped when the record already uses that key as a field.
    """

    def __init__(self, inner: Sink, tags: Dict[str, str]):
        self.inner = inner
        self.tags = dict(tags)

    def append(self, measurement: str, fields: Mapping, tags: Mapping[str, str]) -> None:
        merged = {k: v for k, v in self.tags.items() if k not in fields}
        merged.update(tags)
        self.inner.append(measurement, fields, merged)
