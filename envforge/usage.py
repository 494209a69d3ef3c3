"""Printing of build-cache usage records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import IO, Iterable, Optional

_TAB_WIDTH = 8
_PADDING = 1
_DECIMAL_UNITS = ("", "kB", "MB", "GB", "TB", "PB", "EB")
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


@dataclass
class UsageInfo:
    """One record of build-cache disk usage."""

    id: str
    size: int = 0
    mutable: bool = False
    in_use: bool = False
    shared: bool = False
    created_at: datetime = _ZERO_TIME
    last_used_at: Optional[datetime] = None
    usage_count: int = 0
    description: str = ""
    record_type: str = ""
    parents: list[str] = field(default_factory=list)


def format_bytes(size: int) -> str:
    """Format a byte count with decimal units and two decimals (``1.50MB``)."""
    value = float(size)
    unit = 0
    while value >= 1000 and unit < len(_DECIMAL_UNITS) - 1:
        value /= 1000
        unit += 1
    if unit == 0:
        return f"{size}B"
    return f"{value:.2f}{_DECIMAL_UNITS[unit]}"


def _format_offset(dt: datetime) -> str:
    offset = dt.utcoffset()
    seconds = int(offset.total_seconds()) if offset is not None else 0
    sign = "-" if seconds < 0 else "+"
    seconds = abs(seconds)
    return f"{sign}{seconds // 3600:02d}{seconds % 3600 // 60:02d}"


def _format_time(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    text = (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"
    )
    if dt.microsecond:
        text += "." + f"{dt.microsecond:06d}".rstrip("0")
    offset = _format_offset(dt)
    name = dt.tzname()
    if not name or (name.startswith("UTC") and name != "UTC"):
        name = offset
    return f"{text} {offset} {name}"


def _format_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return _format_time(value)
    return str(value)


def _write_block(out: IO[str], rows: list[tuple[str, str]]) -> None:
    """Write key/value rows with the keys padded by tabs to a common tab stop."""
    if not rows:
        return
    cell_width = max(len(key) for key, _ in rows) + _PADDING
    column = -(-cell_width // _TAB_WIDTH) * _TAB_WIDTH
    for key, value in rows:
        tabs = -(-(column - len(key)) // _TAB_WIDTH)
        out.write(f"{key}{chr(9) * tabs}{value}\n")


def _verbose_rows(info: UsageInfo) -> Iterable[tuple[str, object]]:
    yield "ID", info.id
    if info.parents:
        yield "Parents", ";".join(info.parents)
    yield "Created at", info.created_at
    yield "Mutable", info.mutable
    yield "Reclaimable", not info.in_use
    yield "Shared", info.shared
    yield "Size", format_bytes(info.size)
    if info.description:
        yield "Description", info.description
    yield "Usage count", info.usage_count
    if info.last_used_at is not None:
        yield "Last used", info.last_used_at
    if info.record_type:
        yield "Type", info.record_type


def print_verbose(out: IO[str], usage: Iterable[UsageInfo]) -> None:
    """Write each record as an aligned block of ``key: value`` lines."""
    for info in usage:
        rows = [(f"{key}:", _format_value(value)) for key, value in _verbose_rows(info)]
        _write_block(out, rows)
        out.write("\n")
    out.flush()


def print_table_header(out: IO[str]) -> None:
    """Write the header line of the usage table."""
    out.write("ID\tRECLAIMABLE\tSIZE\tLAST ACCESSED\n")


def print_table_row(out: IO[str], info: UsageInfo) -> None:
    """Write one record as a usage table line; ``*`` marks mutable or shared."""
    record_id = info.id + "*" if info.mutable else info.id
    size = format_bytes(info.size)
    if info.shared:
        size += "*"
    reclaimable = _format_value(not info.in_use)
    out.write(f"{record_id:<71}\t{reclaimable:<11}\t{size}\t\n")