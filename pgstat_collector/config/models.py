"""Pydantic configuration models for the statistics collector."""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Literal, Optional
import re

import psycopg2
import psycopg2.extensions

from ..stats.categories import StatCategory


_NUMBER_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*$')
_DURATION_PART = r'(\d+(?:\.\d+)?)(ms|s|m|h)'
_DURATION_PATTERN = re.compile(rf'^\s*(?:{_DURATION_PART})+\s*$')
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value) -> float:
    """
    Parse a duration into seconds.

    Accepts numbers (seconds) or strings such as "500ms", "10s", "5m", "1h",
    and compound durations like "1h30m" or "1m30.5s".

    Raises:
        ValueError: If the value is not a valid non-negative duration
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ValueError(f"Duration must not be negative: {value}")
        return float(value)

    text = str(value)
    number = _NUMBER_PATTERN.match(text)
    if number:
        return float(number.group(1))
    if not _DURATION_PATTERN.match(text):
        raise ValueError(f"Invalid duration: {value!r} (expected e.g. '10s', '1h30m', '500ms')")
    return sum(
        float(amount) * _DURATION_UNITS[unit]
        for amount, unit in re.findall(_DURATION_PART, text)
    )


class PostgresqlConfig(BaseModel):
    """Connection and target-database configuration."""
    address: str = "host=localhost user=postgres sslmode=disable"
    output_address: Optional[str] = None  # "server" tag; derived from address if unset
    max_lifetime: float = 0.0  # Seconds, 0 = connection lives forever
    connect_timeout: int = Field(default=10, ge=1)
    statement_timeout: Optional[float] = None  # Seconds
    databases: List[str] = Field(default_factory=list)
    ignored_databases: List[str] = Field(default_factory=list)
    pgbouncer: bool = False
    skip_categories: List[str] = Field(default_factory=list)

    @field_validator('address')
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Address must be a libpq key/value string or a postgres:// URL."""
        try:
            psycopg2.extensions.parse_dsn(v)
        except psycopg2.ProgrammingError as e:
            raise ValueError(f'Invalid address: {e}') from e
        return v

    @field_validator('max_lifetime', 'statement_timeout', mode='before')
    @classmethod
    def validate_duration(cls, v):
        """Convert duration strings to seconds."""
        if v is None:
            return v
        return parse_duration(v)

    @field_validator('skip_categories')
    @classmethod
    def validate_categories(cls, v: List[str]) -> List[str]:
        """Only database-scoped categories can be skipped."""
        for label in v:
            category = StatCategory.from_label(label)
            if category.is_cluster_scoped:
                raise ValueError(f'Cluster-scoped category cannot be skipped: {label}')
        return v

    @model_validator(mode='after')
    def databases_exclusive(self) -> 'PostgresqlConfig':
        """databases and ignored_databases cannot be combined."""
        if self.databases and self.ignored_databases:
            raise ValueError('Use either databases or ignored_databases, not both')
        return self


class CollectionConfig(BaseModel):
    """Collection schedule configuration."""
    interval: float = 10.0  # Seconds between cycles when no cron schedule is set
    schedule: Optional[str] = None  # Cron syntax

    @field_validator('interval', mode='before')
    @classmethod
    def validate_interval(cls, v) -> float:
        seconds = parse_duration(v)
        if seconds <= 0:
            raise ValueError('Collection interval must be positive')
        return seconds

    @field_validator('schedule')
    @classmethod
    def validate_cron(cls, v: Optional[str]) -> Optional[str]:
        """Basic cron syntax validation."""
        if v is None:
            return v
        parts = v.split()
        if len(parts) != 5:
            raise ValueError('Cron expression must have 5 parts: minute hour day month weekday')
        return v


class OutputConfig(BaseModel):
    """Where normalized records are written."""
    format: Literal["line_protocol", "json"] = "line_protocol"
    path: Optional[str] = None  # stdout when unset


class CollectorSystemConfig(BaseModel):
    """Root configuration model for the collector."""
    postgresql: PostgresqlConfig = Field(default_factory=PostgresqlConfig)
    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
