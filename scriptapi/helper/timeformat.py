"""Date and time helpers using the format strings provider scripts use.

Formats follow the familiar ``hh:mm`` / ``dd.MM.yyyy`` notation:

========  =============================================
``h``     hour without leading zero (12-hour with AP)
``hh``    hour with leading zero (12-hour with AP)
``H/HH``  hour, always 24-hour
``m/mm``  minute without / with leading zero
``s/ss``  second without / with leading zero
``d/dd``  day without / with leading zero
``M/MM``  month without / with leading zero
``yy``    two digit year (parsed as 19yy)
``yyyy``  four digit year
``AP/ap`` ``AM``/``PM`` or ``am``/``pm``
========  =============================================

Text in single quotes is copied literally.
"""

from __future__ import annotations

import datetime
import re

from scriptapi.utils import logger

log = logger.create_logger("Helper-Time")

_TOKENS = ("yyyy", "yy", "dd", "d", "MM", "M", "HH", "H", "hh", "h", "mm", "m", "ss", "s", "AP", "A", "ap", "a")

_TOKEN_PATTERNS = {
    "yyyy": r"\d{4}",
    "yy": r"\d{2}",
    "dd": r"\d{2}",
    "d": r"\d{1,2}",
    "MM": r"\d{2}",
    "M": r"\d{1,2}",
    "HH": r"\d{2}",
    "H": r"\d{1,2}",
    "hh": r"\d{2}",
    "h": r"\d{1,2}",
    "mm": r"\d{2}",
    "m": r"\d{1,2}",
    "ss": r"\d{2}",
    "s": r"\d{1,2}",
    "AP": r"[AaPp][Mm]",
    "A": r"[AaPp][Mm]",
    "ap": r"[AaPp][Mm]",
    "a": r"[AaPp][Mm]",
}

_FIELDS = {
    "yyyy": "year", "yy": "year2", "dd": "day", "d": "day", "MM": "month", "M": "month",
    "HH": "hour", "H": "hour", "hh": "hour", "h": "hour", "mm": "minute", "m": "minute",
    "ss": "second", "s": "second", "AP": "ampm", "A": "ampm", "ap": "ampm", "a": "ampm",
}

_DEFAULT_TIME_RE = re.compile(r"\d{1,2}:\d{2}")
_DEFAULT_DATE_RE = re.compile(r"\d{2,4}-\d{2}-\d{2}")


# ── Format tokenizer ────────────────────────────────────────────


def _tokenize(fmt: str) -> list[tuple[bool, str]]:
    """Split *fmt* into ``(is_token, text)`` pieces."""
    pieces: list[tuple[bool, str]] = []
    i = 0
    while i < len(fmt):
        if fmt[i] == "'":
            end = fmt.find("'", i + 1)
            if end == -1:
                end = len(fmt)
            # '' inside a format is a literal quote.
            pieces.append((False, fmt[i + 1:end] or "'"))
            i = end + 1
            continue
        token = next((t for t in _TOKENS if fmt.startswith(t, i)), None)
        if token is None:
            pieces.append((False, fmt[i]))
            i += 1
        else:
            pieces.append((True, token))
            i += len(token)
    return pieces


def _is_twelve_hour(pieces: list[tuple[bool, str]]) -> bool:
    return any(is_token and _FIELDS[text] == "ampm" for is_token, text in pieces)


def _compile(fmt: str) -> tuple[re.Pattern[str], list[str]]:
    """Build a regex with one group per format token."""
    pattern = []
    fields = []
    for is_token, text in _tokenize(fmt):
        if is_token:
            pattern.append(f"({_TOKEN_PATTERNS[text]})")
            fields.append(text)
        else:
            pattern.append(re.escape(text))
    return re.compile("".join(pattern)), fields


def _components(match: re.Match[str], fields: list[str]) -> dict[str, str]:
    return {_FIELDS[token]: value for token, value in zip(fields, match.groups(), strict=True)}


def _build_time(parts: dict[str, str], twelve_hour: bool) -> datetime.time | None:
    if "hour" not in parts:
        return None
    hour = int(parts["hour"])
    minute = int(parts.get("minute", 0))
    second = int(parts.get("second", 0))
    if twelve_hour and "ampm" in parts:
        if not 1 <= hour <= 12:
            return None
        hour = hour % 12 + (12 if parts["ampm"].lower() == "pm" else 0)
    try:
        return datetime.time(hour, minute, second)
    except ValueError:
        return None


def _build_date(parts: dict[str, str]) -> datetime.date | None:
    if "year" in parts:
        year = int(parts["year"])
    elif "year2" in parts:
        year = 1900 + int(parts["year2"])
    else:
        year = 1900
    try:
        return datetime.date(year, int(parts.get("month", 1)), int(parts.get("day", 1)))
    except ValueError:
        return None


# ── Parsing ─────────────────────────────────────────────────────


def parse_time(text: str, fmt: str = "hh:mm") -> datetime.time | None:
    """Parse *text*, which must match *fmt* exactly; ``None`` if invalid."""
    regex, fields = _compile(fmt)
    match = regex.fullmatch(text.strip())
    if match is None:
        return None
    return _build_time(_components(match, fields), _is_twelve_hour(_tokenize(fmt)))


def parse_date(text: str, fmt: str = "yyyy-MM-dd") -> datetime.date | None:
    """Parse *text*, which must match *fmt* exactly; ``None`` if invalid."""
    regex, fields = _compile(fmt)
    match = regex.fullmatch(text.strip())
    if match is None:
        return None
    return _build_date(_components(match, fields))


# ── Formatting ──────────────────────────────────────────────────


def format_qt(value: datetime.date | datetime.time | datetime.datetime, fmt: str) -> str:
    """Render *value* using *fmt*."""
    pieces = _tokenize(fmt)
    twelve_hour = _is_twelve_hour(pieces)
    out = []
    for is_token, text in pieces:
        if not is_token:
            out.append(text)
            continue
        out.append(_format_token(value, text, twelve_hour))
    return "".join(out)


def _format_token(value: datetime.date | datetime.time | datetime.datetime, token: str, twelve_hour: bool) -> str:
    field = _FIELDS[token]
    if field in ("year", "year2", "month", "day") and not isinstance(value, datetime.date):
        return ""
    if field in ("hour", "minute", "second", "ampm") and isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return ""
    if field == "year":
        return f"{value.year:04d}"  # type: ignore[union-attr]
    if field == "year2":
        return f"{value.year % 100:02d}"  # type: ignore[union-attr]
    if field == "ampm":
        label = "PM" if value.hour >= 12 else "AM"  # type: ignore[union-attr]
        return label if token in ("AP", "A") else label.lower()
    if field == "hour":
        hour = value.hour  # type: ignore[union-attr]
        if twelve_hour and token in ("h", "hh"):
            hour = hour % 12 or 12
        number = hour
    else:
        number = getattr(value, field)
    return f"{number:02d}" if len(token) == 2 else str(number)


def format_time(hour: int, minute: int, fmt: str = "hh:mm") -> str:
    """Format a time of day; returns ``""`` for an invalid hour or minute."""
    try:
        return format_qt(datetime.time(hour, minute), fmt)
    except ValueError:
        return ""


def format_date(year: int, month: int, day: int, fmt: str = "yyyy-MM-dd") -> str:
    """Format a calendar date; returns ``""`` for an invalid date."""
    try:
        return format_qt(datetime.date(year, month, day), fmt)
    except ValueError:
        return ""


def format_date_time(value: datetime.datetime, fmt: str = "yyyy-MM-dd hh:mm") -> str:
    return format_qt(value, fmt)


# ── Matching inside larger text ─────────────────────────────────


def match_time(text: str, fmt: str = "hh:mm") -> dict[str, int | bool]:
    """Find the first time in *text* written in *fmt*.

    Falls back to ``h:mm`` when *fmt* finds nothing.

    Returns:
        ``{"hour": h, "minute": m}`` or ``{"error": True}``.
    """
    regex, fields = _compile(fmt)
    match = regex.search(text)
    time: datetime.time | None = None
    if match is not None:
        time = _build_time(_components(match, fields), _is_twelve_hour(_tokenize(fmt)))
    elif fmt != "hh:mm":
        fallback = _DEFAULT_TIME_RE.search(text)
        if fallback is not None:
            time = parse_time(fallback.group(0), "h:mm")
    if time is None:
        log.debug("Could not match time", {"text": text[:100], "format": fmt})
        return {"error": True}
    return {"hour": time.hour, "minute": time.minute}


def match_date(text: str, fmt: str = "yyyy-MM-dd") -> datetime.date | None:
    """Find the first date in *text* written in *fmt*.

    Falls back to ``yyyy-MM-dd`` when *fmt* finds nothing.  Years
    before 1970 (two-digit years) are moved forward by a century.
    """
    regex, fields = _compile(fmt)
    match = regex.search(text)
    date: datetime.date | None = None
    if match is not None:
        date = _build_date(_components(match, fields))
    elif fmt != "yyyy-MM-dd":
        fallback = _DEFAULT_DATE_RE.search(text)
        if fallback is not None:
            date = parse_date(fallback.group(0), "yyyy-MM-dd")
    if date is None:
        log.debug("Could not match date", {"text": text[:100], "format": fmt})
        return None
    if date.year < 1970:
        try:
            date = date.replace(year=date.year + 100)
        except ValueError:
            # 29th of February in a year that is no leap year a century later.
            date = date.replace(year=date.year + 100, day=28)
    return date


# ── Arithmetic ──────────────────────────────────────────────────


def duration(time1: str, time2: str, fmt: str = "hh:mm") -> int:
    """Minutes from *time1* to *time2* on the same day; ``-1`` if either is invalid.

    The result is negative when *time2* is earlier than *time1*.
    """
    first = parse_time(time1, fmt)
    second = parse_time(time2, fmt)
    if first is None or second is None:
        return -1
    seconds = _seconds(second) - _seconds(first)
    return int(seconds / 60)


def add_mins_to_time(text: str, mins_to_add: int, fmt: str = "hh:mm") -> str:
    """Add minutes to a time string, wrapping at midnight; ``""`` if unparsable."""
    time = parse_time(text, fmt)
    if time is None:
        log.debug("Could not parse time", {"text": text, "format": fmt})
        return ""
    total = (_seconds(time) + mins_to_add * 60) % (24 * 3600)
    return format_qt(datetime.time(total // 3600, total % 3600 // 60, total % 60), fmt)


def add_days_to_date(
    value: str | datetime.date | datetime.datetime,
    days_to_add: int,
    fmt: str = "yyyy-MM-dd",
) -> str | datetime.date | datetime.datetime:
    """Add days to a date.

    Date and datetime objects are returned shifted; strings are parsed
    with *fmt* and formatted back, or returned unchanged when they do
    not match *fmt*.
    """
    if isinstance(value, datetime.date):
        return value + datetime.timedelta(days=days_to_add)
    date = parse_date(value, fmt)
    if date is None:
        log.debug("Could not parse date", {"text": value, "format": fmt})
        return value
    return format_qt(date + datetime.timedelta(days=days_to_add), fmt)


def _seconds(time: datetime.time) -> int:
    return time.hour * 3600 + time.minute * 60 + time.second
