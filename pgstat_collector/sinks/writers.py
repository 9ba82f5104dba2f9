"""Stream sinks: InfluxDB line protocol and JSON lines."""

import json
import math
import numbers
import time
from typing import Callable, Mapping, Optional, TextIO


def _escape(value: str, specials: str) -> str:
    value = value.replace("\\", "\\\\").replace("\n", "\\n")
    for char in specials:
        value = value.replace(char, f"\\{char}")
    return value


def _format_field_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, numbers.Integral):
        return f"{int(value)}i"
    if isinstance(value, numbers.Real):
        return repr(float(value))
    text = _escape(str(value), '"')
    return f'"{text}"'


def _is_writable(value) -> bool:
    # Line protocol has no representation for NaN or infinity
    if isinstance(value, numbers.Real) and not isinstance(value, numbers.Integral):
        return math.isfinite(value)
    return True


def format_line(
    measurement: str,
    fields: Mapping,
    tags: Mapping[str, str],
    timestamp_ns: int
) -> Optional[str]:
    """
    Render one record in InfluxDB line protocol.

    Tags are sorted by key; tags with empty values are omitted. Newlines are
    escaped so a record never spans more than one line. Non-finite float
    fields are dropped.

    Returns:
        The line without a trailing newline, or None when no field is left
    """
    writable = {key: value for key, value in fields.items() if _is_writable(value)}
    if not writable:
        return None

    line = _escape(measurement, ", ")
    for key in sorted(tags):
        if tags[key] == "":
            continue
        line += f",{_escape(key, ',= ')}={_escape(tags[key], ',= ')}"

    field_set = ",".join(
        f"{_escape(key, ',= ')}={_format_field_value(writable[key])}"
        for key in sorted(writable)
    )
    return f"{line} {field_set} {timestamp_ns}"


class LineProtocolSink:
    """
    Writes each record as one line of InfluxDB line protocol.

    Args:
        stream: Text stream to write to
        clock: Returns the record timestamp in nanoseconds
    """

    def __init__(self, stream: TextIO, clock: Callable[[], int] = time.time_ns):
        self.stream = stream
        self.clock = clock

    def append(self, measurement: str, fields: Mapping, tags: Mapping[str, str]) -> None:
        line = format_line(measurement, fields, tags, self.clock())
        if line is None:
            return
        self.stream.write(line + "\n")
        self.stream.flush()


class JsonLinesSink:
    """Writes each record as one JSON object per line."""

    def __init__(self, stream: TextIO, clock: Callable[[], float] = time.time):
        self.stream = stream
        self.clock = clock

    def append(self, measurement: str, fields: Mapping, tags: Mapping[str, str]) -> None:
        document = {
            "measurement": measurement,
            "tags": dict(tags),
            "fields": dict(fields),
            "timestamp": self.clock(),
        }
        self.stream.write(json.dumps(document, default=str, sort_keys=True) + "\n")
        self.stream.flush()
