"""
FHIR primitive types: kinds, native Python representation, and the text
grammar used by the Tree Format.

Native representation (what a RecordInstance holds and what the Tagged-Object
format emits):

    boolean                         -> bool
    integer/positiveInt/unsignedInt -> int
    decimal                         -> decimal.Decimal
    base64Binary                    -> bytes
    date                            -> datetime.date | PartialDate
    dateTime                        -> datetime.datetime | datetime.date | PartialDate
    instant                         -> datetime.datetime (timezone-aware)
    time                            -> datetime.time
    everything else                 -> str

The grammars are the ones published with the base StructureDefinitions.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


class PrimitiveKind(str, Enum):
    BOOLEAN = "boolean"
    INTEGER = "integer"
    POSITIVE_INT = "positiveInt"
    UNSIGNED_INT = "unsignedInt"
    DECIMAL = "decimal"
    STRING = "string"
    CODE = "code"
    ID = "id"
    MARKDOWN = "markdown"
    URI = "uri"
    URL = "url"
    CANONICAL = "canonical"
    OID = "oid"
    UUID = "uuid"
    BASE64_BINARY = "base64Binary"
    DATE = "date"
    DATE_TIME = "dateTime"
    INSTANT = "instant"
    TIME = "time"
    XHTML = "xhtml"


PRIMITIVE_NAMES: frozenset[str] = frozenset(kind.value for kind in PrimitiveKind)

INTEGER_KINDS = frozenset(
    {PrimitiveKind.INTEGER, PrimitiveKind.POSITIVE_INT, PrimitiveKind.UNSIGNED_INT}
)
TEMPORAL_KINDS = frozenset(
    {PrimitiveKind.DATE, PrimitiveKind.DATE_TIME, PrimitiveKind.INSTANT, PrimitiveKind.TIME}
)
TEXT_KINDS = frozenset(
    {
        PrimitiveKind.STRING,
        PrimitiveKind.CODE,
        PrimitiveKind.ID,
        PrimitiveKind.MARKDOWN,
        PrimitiveKind.URI,
        PrimitiveKind.URL,
        PrimitiveKind.CANONICAL,
        PrimitiveKind.OID,
        PrimitiveKind.UUID,
        PrimitiveKind.XHTML,
    }
)

_TEXT_PATTERNS: dict[PrimitiveKind, re.Pattern[str]] = {
    PrimitiveKind.STRING: re.compile(r"[ \r\n\t\S]+"),
    PrimitiveKind.MARKDOWN: re.compile(r"[ \r\n\t\S]+"),
    PrimitiveKind.CODE: re.compile(r"[^\s]+( [^\s]+)*"),
    PrimitiveKind.ID: re.compile(r"[A-Za-z0-9\-\.]{1,64}"),
    PrimitiveKind.URI: re.compile(r"\S*"),
    PrimitiveKind.URL: re.compile(r"\S*"),
    PrimitiveKind.CANONICAL: re.compile(r"\S*"),
    PrimitiveKind.OID: re.compile(r"urn:oid:[0-2](\.(0|[1-9][0-9]*))+"),
    PrimitiveKind.UUID: re.compile(
        r"urn:uuid:[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
    ),
}

# Looser than the published grammar: dateTime may omit seconds and the time
# zone. kind_problem reports a missing zone.
_DATE_RE = re.compile(r"(?P<year>\d{4})(?:-(?P<month>\d{2})(?:-(?P<day>\d{2}))?)?")
_TIME_PART = (
    r"(?P<hour>\d{2}):(?P<minute>\d{2})(?::(?P<second>\d{2})(?:\.(?P<fraction>\d+))?)?"
)
_TZ_PART = r"(?P<tz>Z|[+-]\d{2}:\d{2})?"
_DATETIME_RE = re.compile(
    r"(?P<year>\d{4})(?:-(?P<month>\d{2})(?:-(?P<day>\d{2})(?:T" + _TIME_PART + _TZ_PART + r")?)?)?"
)
_TIME_RE = re.compile(_TIME_PART)
_DECIMAL_RE = re.compile(r"-?(0|[1-9][0-9]*)(\.[0-9]+)?([eE][+-]?[0-9]+)?")


@dataclass(frozen=True, order=True)
class PartialDate:
    """A date known only to year or year-month precision.

    Full dates are represented with ``datetime.date``; PartialDate never
    carries a day.
    """

    year: int
    month: int | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.year <= 9999:
            raise ValueError(f"year out of range: {self.year}")
        if self.month is not None and not 1 <= self.month <= 12:
            raise ValueError(f"month out of range: {self.month}")

    @property
    def precision(self) -> str:
        return "year" if self.month is None else "month"

    def isoformat(self) -> str:
        if self.month is None:
            return f"{self.year:04d}"
        return f"{self.year:04d}-{self.month:02d}"

    def __str__(self) -> str:
        return self.isoformat()


def kind_of(type_name: str) -> PrimitiveKind | None:
    """Return the PrimitiveKind for a declared type name, or None if complex."""
    try:
        return PrimitiveKind(type_name)
    except ValueError:
        return None


def choice_suffix(type_name: str) -> str:
    """Suffix used for a choice alternative: ``dateTime`` -> ``DateTime``."""
    return type_name[:1].upper() + type_name[1:]


# ---------------------------------------------------------------------------
# Temporal parsing / formatting
# ---------------------------------------------------------------------------

def _fraction_to_micro(fraction: str | None) -> int:
    if not fraction:
        return 0
    return int((fraction + "000000")[:6])


def _parse_tz(tz: str | None) -> timezone | None:
    if tz is None:
        return None
    if tz == "Z":
        return timezone.utc
    sign = -1 if tz[0] == "-" else 1
    hours, minutes = int(tz[1:3]), int(tz[4:6])
    if hours > 14 or minutes > 59:
        raise ValueError(f"time zone offset out of range: {tz}")
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def _date_value(year: str, month: str | None, day: str | None) -> date | PartialDate:
    if month is None:
        return PartialDate(int(year))
    if day is None:
        return PartialDate(int(year), int(month))
    return date(int(year), int(month), int(day))


def parse_date(text: str) -> date | PartialDate:
    match = _DATE_RE.fullmatch(text)
    if not match:
        raise ValueError(f"not a FHIR date: {text!r}")
    return _date_value(match["year"], match["month"], match["day"])


def parse_datetime(text: str) -> datetime | date | PartialDate:
    match = _DATETIME_RE.fullmatch(text)
    if not match:
        raise ValueError(f"not a FHIR dateTime: {text!r}")
    if match["hour"] is None:
        return _date_value(match["year"], match["month"], match["day"])
    second = int(match["second"] or 0)
    if second == 60:
        # leap second: clamp, datetime cannot represent it
        second = 59
    return datetime(
        int(match["year"]),
        int(match["month"]),
        int(match["day"]),
        int(match["hour"]),
        int(match["minute"]),
        second,
        _fraction_to_micro(match["fraction"]),
        tzinfo=_parse_tz(match["tz"]),
    )


def parse_instant(text: str) -> datetime:
    value = parse_datetime(text)
    if not isinstance(value, datetime):
        raise ValueError(f"instant requires a full date and time: {text!r}")
    return value


def parse_time(text: str) -> time:
    match = _TIME_RE.fullmatch(text)
    if not match:
        raise ValueError(f"not a FHIR time: {text!r}")
    second = min(int(match["second"] or 0), 59)
    return time(
        int(match["hour"]), int(match["minute"]), second, _fraction_to_micro(match["fraction"])
    )


def _format_fraction(micro: int) -> str:
    if not micro:
        return ""
    return "." + f"{micro:06d}".rstrip("0")


def _format_offset(value: datetime) -> str:
    offset = value.utcoffset()
    if offset is None:
        return ""
    if offset == timedelta(0):
        return "Z"
    total = int(offset.total_seconds())
    sign = "-" if total < 0 else "+"
    hours, minutes = divmod(abs(total) // 60, 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def format_time(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}" + _format_fraction(
        value.microsecond
    )


def format_datetime(value: datetime) -> str:
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}T"
        + format_time(value.time())
        + _format_offset(value)
    )


def format_date(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


# ---------------------------------------------------------------------------
# Tree (text) <-> native
# ---------------------------------------------------------------------------

def _decode_base64(text: str) -> bytes:
    compact = "".join(text.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid base64 content: {exc}") from exc


def _to_decimal(node: Any) -> Decimal:
    if isinstance(node, bool):
        raise ValueError("boolean is not a decimal")
    if isinstance(node, Decimal):
        return node
    if isinstance(node, (int, float)):
        return Decimal(repr(node)) if isinstance(node, float) else Decimal(node)
    if isinstance(node, str) and _DECIMAL_RE.fullmatch(node):
        try:
            return Decimal(node)
        except InvalidOperation as exc:
            raise ValueError(f"not a decimal: {node!r}") from exc
    raise ValueError(f"not a decimal: {node!r}")


def _to_int(node: Any) -> int:
    if isinstance(node, bool):
        raise ValueError("boolean is not an integer")
    if isinstance(node, int):
        return node
    if isinstance(node, Decimal) and node == node.to_integral_value():
        return int(node)
    if isinstance(node, str) and re.fullmatch(r"-?[0-9]+", node):
        return int(node)
    raise ValueError(f"not an integer: {node!r}")


def parse_text(kind: PrimitiveKind, node: Any) -> Any:
    """Decode a Tree Format scalar node into its native value.

    Raises ValueError when the node cannot represent a value of *kind*.
    """
    if kind is PrimitiveKind.BOOLEAN:
        if isinstance(node, bool):
            return node
        raise ValueError(f"not a boolean: {node!r}")
    if kind in INTEGER_KINDS:
        return _to_int(node)
    if kind is PrimitiveKind.DECIMAL:
        return _to_decimal(node)
    if not isinstance(node, str):
        raise ValueError(f"expected a string for {kind.value}, got {type(node).__name__}")
    if kind is PrimitiveKind.BASE64_BINARY:
        return _decode_base64(node)
    if kind is PrimitiveKind.DATE:
        return parse_date(node)
    if kind is PrimitiveKind.DATE_TIME:
        return parse_datetime(node)
    if kind is PrimitiveKind.INSTANT:
        return parse_instant(node)
    if kind is PrimitiveKind.TIME:
        return parse_time(node)
    return node


def to_text(value: Any) -> Any:
    """Encode a native value as a Tree Format scalar node.

    Dispatches on the runtime type so that values which do not match their
    declared kind still encode.
    """
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, date):
        return format_date(value)
    if isinstance(value, PartialDate):
        return value.isoformat()
    if isinstance(value, time):
        return format_time(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    return value


def coerce_native(kind: PrimitiveKind, value: Any) -> Any:
    """Accept a native value (or its text form) and normalise it for *kind*.

    Used by the Tagged-Object decoder and by RecordBuilder. Raises ValueError.
    """
    if isinstance(value, str) and kind not in TEXT_KINDS:
        if kind is PrimitiveKind.BOOLEAN and value in ("true", "false"):
            return value == "true"
        return parse_text(kind, value)
    if kind is PrimitiveKind.BOOLEAN:
        return parse_text(kind, value)
    if kind in INTEGER_KINDS:
        return _to_int(value)
    if kind is PrimitiveKind.DECIMAL:
        return _to_decimal(value)
    if kind is PrimitiveKind.BASE64_BINARY:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        raise ValueError(f"expected bytes, got {type(value).__name__}")
    if kind is PrimitiveKind.DATE:
        if isinstance(value, PartialDate) or (
            isinstance(value, date) and not isinstance(value, datetime)
        ):
            return value
        raise ValueError(f"expected a date, got {type(value).__name__}")
    if kind is PrimitiveKind.DATE_TIME:
        if isinstance(value, (date, PartialDate)):
            return value
        raise ValueError(f"expected a dateTime, got {type(value).__name__}")
    if kind is PrimitiveKind.INSTANT:
        if isinstance(value, datetime):
            return value
        raise ValueError(f"expected an instant, got {type(value).__name__}")
    if kind is PrimitiveKind.TIME:
        if isinstance(value, time):
            return value
        raise ValueError(f"expected a time, got {type(value).__name__}")
    if not isinstance(value, str):
        raise ValueError(f"expected a string for {kind.value}, got {type(value).__name__}")
    return value


def kind_problem(kind: PrimitiveKind, value: Any) -> str | None:
    """Describe why *value* is not a valid native value of *kind*, or None."""
    if kind is PrimitiveKind.BOOLEAN:
        return None if isinstance(value, bool) else f"expected boolean, got {type(value).__name__}"
    if kind in INTEGER_KINDS:
        if isinstance(value, bool) or not isinstance(value, int):
            return f"expected {kind.value}, got {type(value).__name__}"
        if not INT32_MIN <= value <= INT32_MAX:
            return f"{value} is outside the 32-bit integer range"
        if kind is PrimitiveKind.POSITIVE_INT and value < 1:
            return f"positiveInt must be >= 1, got {value}"
        if kind is PrimitiveKind.UNSIGNED_INT and value < 0:
            return f"unsignedInt must be >= 0, got {value}"
        return None
    if kind is PrimitiveKind.DECIMAL:
        if isinstance(value, Decimal):
            return None if value.is_finite() else f"decimal must be finite, got {value}"
        if isinstance(value, int) and not isinstance(value, bool):
            return None
        return f"expected decimal, got {type(value).__name__}"
    if kind is PrimitiveKind.BASE64_BINARY:
        return None if isinstance(value, (bytes, bytearray)) else "expected bytes"
    if kind is PrimitiveKind.DATE:
        if isinstance(value, PartialDate) or (
            isinstance(value, date) and not isinstance(value, datetime)
        ):
            return None
        return f"expected date, got {type(value).__name__}"
    if kind is PrimitiveKind.DATE_TIME:
        if isinstance(value, datetime):
            return None if value.tzinfo is not None else "dateTime with a time must have a time zone"
        if isinstance(value, (date, PartialDate)):
            return None
        return f"expected dateTime, got {type(value).__name__}"
    if kind is PrimitiveKind.INSTANT:
        if not isinstance(value, datetime):
            return f"expected instant, got {type(value).__name__}"
        return None if value.tzinfo is not None else "instant must have a time zone"
    if kind is PrimitiveKind.TIME:
        if isinstance(value, time) and value.tzinfo is None:
            return None
        return f"expected time, got {type(value).__name__}"
    if not isinstance(value, str):
        return f"expected {kind.value}, got {type(value).__name__}"
    pattern = _TEXT_PATTERNS.get(kind)
    if pattern is not None and not pattern.fullmatch(value):
        return f"{value!r} is not a valid {kind.value}"
    return None
