#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
Time layout compiler for LogBench.

A time layout describes how a timestamp is printed in a log line. Three
dialects are understood:

- Go reference-time layouts, e.g. ``Jan _2 15:04:05.000000000``
- strftime layouts, e.g. ``%Y-%m-%d %H:%M:%S`` (any layout containing ``%``)
- epoch layouts: ``unix``, ``unixmilli``, ``unixmicro``, ``unixnano``,
  ``unix.milli``, ``unix.micro`` and ``unix.nano``

Each layout compiles into a regular expression matching every string the
layout formats a timestamp into, and can format and parse datetimes.
"""

import re
import time
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


# Token kinds
LITERAL = "literal"
MONTH_NAME = "month_name"
MONTH_ABBR = "month_abbr"
WEEKDAY_NAME = "weekday_name"
WEEKDAY_ABBR = "weekday_abbr"
YEAR = "year"
YEAR_SHORT = "year_short"
MONTH = "month"
MONTH_PAD = "month_pad"
DAY = "day"
DAY_PAD = "day_pad"
DAY_SPACE = "day_space"
YEARDAY = "yearday"
YEARDAY_SPACE = "yearday_space"
HOUR = "hour"
HOUR12 = "hour12"
HOUR12_PAD = "hour12_pad"
MINUTE = "minute"
MINUTE_PAD = "minute_pad"
SECOND = "second"
SECOND_PAD = "second_pad"
FRACTION = "fraction"
MICROSECOND = "microsecond"
AMPM_UPPER = "ampm_upper"
AMPM_LOWER = "ampm_lower"
ZONE_NAME = "zone_name"
ZONE_OFFSET = "zone_offset"

# Dialects
GO = "go"
STRFTIME = "strftime"
EPOCH = "epoch"

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June", "July",
    "August", "September", "October", "November", "December",
)
MONTH_ABBRS = tuple(name[:3] for name in MONTH_NAMES)
# Ordered like datetime.weekday()
WEEKDAY_NAMES = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)
WEEKDAY_ABBRS = tuple(name[:3] for name in WEEKDAY_NAMES)

# Year assumed when a layout has none; a leap year so "Feb 29" parses
DEFAULT_YEAR = 2000

TIMESTAMP_GROUP = "timestamp"

WELL_KNOWN_LAYOUTS: Dict[str, str] = {
    "ANSIC": "Mon Jan _2 15:04:05 2006",
    "UnixDate": "Mon Jan _2 15:04:05 MST 2006",
    "RubyDate": "Mon Jan 02 15:04:05 -0700 2006",
    "RFC822": "02 Jan 06 15:04 MST",
    "RFC822Z": "02 Jan 06 15:04 -0700",
    "RFC850": "Monday, 02-Jan-06 15:04:05 MST",
    "RFC1123": "Mon, 02 Jan 2006 15:04:05 MST",
    "RFC1123Z": "Mon, 02 Jan 2006 15:04:05 -0700",
    "RFC3339": "2006-01-02T15:04:05Z07:00",
    "RFC3339Nano": "2006-01-02T15:04:05.999999999Z07:00",
    "Kitchen": "3:04PM",
    "Stamp": "Jan _2 15:04:05",
    "StampMilli": "Jan _2 15:04:05.000",
    "StampMicro": "Jan _2 15:04:05.000000",
    "StampNano": "Jan _2 15:04:05.000000000",
    "DateTime": "2006-01-02 15:04:05",
    "DateOnly": "2006-01-02",
    "TimeOnly": "15:04:05",
}

# name -> (decimal exponent of the unit, printed with a fractional part)
EPOCH_LAYOUTS: Dict[str, Tuple[int, bool]] = {
    "unix": (0, False),
    "unixmilli": (3, False),
    "unixmicro": (6, False),
    "unixnano": (9, False),
    "unix.milli": (3, True),
    "unix.micro": (6, True),
    "unix.nano": (9, True),
}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Token:
    """One element of a tokenized layout."""
    kind: str
    text: str


# Go layout rules, tried in order at every position; the first match wins.
# Longer and zero-padded forms come before the shorter forms they contain.
_GO_RULES: List[Tuple["re.Pattern", str]] = [
    (re.compile(r"January"), MONTH_NAME),
    (re.compile(r"Jan"), MONTH_ABBR),
    (re.compile(r"Monday"), WEEKDAY_NAME),
    (re.compile(r"Mon"), WEEKDAY_ABBR),
    (re.compile(r"MST"), ZONE_NAME),
    (re.compile(r"2006"), YEAR),
    (re.compile(r"_(?=2006)"), LITERAL),
    (re.compile(r"__2"), YEARDAY_SPACE),
    (re.compile(r"_2"), DAY_SPACE),
    (re.compile(r"002"), YEARDAY),
    (re.compile(r"01"), MONTH_PAD),
    (re.compile(r"02"), DAY_PAD),
    (re.compile(r"03"), HOUR12_PAD),
    (re.compile(r"04"), MINUTE_PAD),
    (re.compile(r"05"), SECOND_PAD),
    (re.compile(r"06"), YEAR_SHORT),
    (re.compile(r"15"), HOUR),
    (re.compile(r"1"), MONTH),
    (re.compile(r"2"), DAY),
    (re.compile(r"3"), HOUR12),
    (re.compile(r"4"), MINUTE),
    (re.compile(r"5"), SECOND),
    (re.compile(r"PM"), AMPM_UPPER),
    (re.compile(r"pm"), AMPM_LOWER),
    (re.compile(r"[-Z](?:070000|07:00:00|0700|07:00|07)"), ZONE_OFFSET),
    (re.compile(r"[.,](?:0+|9+)(?![0-9])"), FRACTION),
]

_STRFTIME_DIRECTIVE = re.compile(r"%([aAbBdfHIjmMpSyYzZ%])")

_STRFTIME_KINDS = {
    "a": WEEKDAY_ABBR,
    "A": WEEKDAY_NAME,
    "b": MONTH_ABBR,
    "B": MONTH_NAME,
    "d": DAY_PAD,
    "f": MICROSECOND,
    "H": HOUR,
    "I": HOUR12_PAD,
    "j": YEARDAY,
    "m": MONTH_PAD,
    "M": MINUTE_PAD,
    "p": AMPM_UPPER,
    "S": SECOND_PAD,
    "y": YEAR_SHORT,
    "Y": YEAR,
    "z": ZONE_OFFSET,
    "Z": ZONE_NAME,
}


# Fixed offsets print as "UTC+01:00", which is not an abbreviation
_ZONE_ABBREVIATION = re.compile(r"[A-Z]{2,5}")


def _alternation(names) -> str:
    return "(?:" + "|".join(names) + ")"


_FRAGMENTS: Dict[str, str] = {
    MONTH_NAME: _alternation(MONTH_NAMES),
    MONTH_ABBR: _alternation(MONTH_ABBRS),
    WEEKDAY_NAME: _alternation(WEEKDAY_NAMES),
    WEEKDAY_ABBR: _alternation(WEEKDAY_ABBRS),
    YEAR: r"\d{4}",
    YEAR_SHORT: r"\d{2}",
    MONTH: r"\d{1,2}",
    MONTH_PAD: r"\d{2}",
    DAY: r"\d{1,2}",
    DAY_PAD: r"\d{2}",
    DAY_SPACE: r"(?:\d{2}| \d)",
    YEARDAY: r"\d{3}",
    YEARDAY_SPACE: r"(?:\d{3}| \d{2}|  \d)",
    HOUR: r"\d{2}",
    HOUR12: r"\d{1,2}",
    HOUR12_PAD: r"\d{2}",
    MINUTE: r"\d{1,2}",
    MINUTE_PAD: r"\d{2}",
    SECOND: r"\d{1,2}",
    SECOND_PAD: r"\d{2}",
    MICROSECOND: r"\d{1,6}",
    AMPM_UPPER: r"(?:AM|PM)",
    AMPM_LOWER: r"(?:am|pm)",
    ZONE_NAME: r"(?:[A-Z]{2,5}|[+-]\d{2}(?:\d{2})?)",
}


def _append_literal(tokens: List[Token], text: str):
    if tokens and tokens[-1].kind == LITERAL:
        tokens[-1] = Token(LITERAL, tokens[-1].text + text)
    else:
        tokens.append(Token(LITERAL, text))


def tokenize_layout(layout: str) -> List[Token]:
    """
    Split a Go reference-time layout into tokens.

    Args:
        layout: Go layout string, e.g. "2006-01-02T15:04:05Z07:00"

    Returns:
        Tokens in layout order; adjacent literal characters are merged
    """
    tokens: List[Token] = []
    pos = 0
    while pos < len(layout):
        for rule, kind in _GO_RULES:
            match = rule.match(layout, pos)
            if match:
                break
        else:
            _append_literal(tokens, layout[pos])
            pos += 1
            continue

        if kind == LITERAL:
            _append_literal(tokens, match.group())
        else:
            tokens.append(Token(kind, match.group()))
        pos = match.end()
    return tokens


def tokenize_strftime(layout: str) -> List[Token]:
    """Split a strftime layout into tokens; unknown directives stay literal."""
    tokens: List[Token] = []
    pos = 0
    for match in _STRFTIME_DIRECTIVE.finditer(layout):
        if match.start() > pos:
            _append_literal(tokens, layout[pos:match.start()])
        directive = match.group(1)
        if directive == "%":
            _append_literal(tokens, "%")
        else:
            tokens.append(Token(_STRFTIME_KINDS[directive], match.group()))
        pos = match.end()
    if pos < len(layout):
        _append_literal(tokens, layout[pos:])
    return tokens


def _zone_offset_pattern(text: str) -> str:
    if text == "%z":
        return r"(?:Z|[+-]\d{2}:?\d{2}(?::?\d{2}(?:\.\d{6})?)?)"
    numeric = "[+-]" + re.sub(r"\d\d", lambda m: r"\d{2}", text[1:])
    if text.startswith("Z"):
        return f"(?:Z|{numeric})"
    return numeric


def token_pattern(token: Token) -> str:
    """Regular expression fragment matching every value of a token."""
    if token.kind == LITERAL:
        return re.escape(token.text)
    if token.kind == FRACTION:
        separator = re.escape(token.text[0])
        digits = len(token.text) - 1
        if token.text[1] == "0":
            return f"{separator}\\d{{{digits}}}"
        return f"(?:{separator}\\d{{1,{digits}}})?"
    if token.kind == ZONE_OFFSET:
        return _zone_offset_pattern(token.text)
    return _FRAGMENTS[token.kind]


def _format_offset(text: str, offset: Optional[timedelta]) -> str:
    seconds = int(offset.total_seconds()) if offset is not None else 0
    if text.startswith("Z") and seconds == 0:
        return "Z"
    sign = "-" if seconds < 0 else "+"
    seconds = abs(seconds)
    parts = [seconds // 3600, seconds % 3600 // 60, seconds % 60]
    body = text[1:]
    count = len(body.replace(":", "")) // 2
    separator = ":" if ":" in body else ""
    return sign + separator.join(f"{value:02d}" for value in parts[:count])


def _parse_offset(value: str) -> timezone:
    if value == "Z":
        return timezone.utc
    sign = -1 if value[0] == "-" else 1
    digits = value[1:].replace(":", "")
    hours = int(digits[0:2])
    minutes = int(digits[2:4] or 0)
    seconds = int(digits[4:6] or 0)
    return timezone(sign * timedelta(hours=hours, minutes=minutes, seconds=seconds))


def _zone_from_name(name: str) -> timezone:
    if name in ("UTC", "GMT", "Z"):
        return timezone.utc
    if name[0] in "+-":
        return _parse_offset(name)
    if name == time.tzname[0]:
        return timezone(timedelta(seconds=-time.timezone), name)
    if time.daylight and name == time.tzname[1]:
        return timezone(timedelta(seconds=-time.altzone), name)
    # Unknown abbreviations carry no offset information
    logger.debug(f"Unknown time zone abbreviation '{name}', assuming UTC")
    return timezone.utc


def _format_go_token(token: Token, dt: datetime) -> str:
    kind = token.kind

    if kind == LITERAL:
        return token.text
    if kind == MONTH_NAME:
        return MONTH_NAMES[dt.month - 1]
    if kind == MONTH_ABBR:
        return MONTH_ABBRS[dt.month - 1]
    if kind == WEEKDAY_NAME:
        return WEEKDAY_NAMES[dt.weekday()]
    if kind == WEEKDAY_ABBR:
        return WEEKDAY_ABBRS[dt.weekday()]
    if kind == YEAR:
        return f"{dt.year:04d}"
    if kind == YEAR_SHORT:
        return f"{dt.year % 100:02d}"
    if kind == MONTH:
        return str(dt.month)
    if kind == MONTH_PAD:
        return f"{dt.month:02d}"
    if kind == DAY:
        return str(dt.day)
    if kind == DAY_PAD:
        return f"{dt.day:02d}"
    if kind == DAY_SPACE:
        return f"{dt.day:2d}"
    if kind == YEARDAY:
        return f"{dt.timetuple().tm_yday:03d}"
    if kind == YEARDAY_SPACE:
        return f"{dt.timetuple().tm_yday:3d}"
    if kind == HOUR:
        return f"{dt.hour:02d}"
    if kind == HOUR12:
        return str(dt.hour % 12 or 12)
    if kind == HOUR12_PAD:
        return f"{dt.hour % 12 or 12:02d}"
    if kind == MINUTE:
        return str(dt.minute)
    if kind == MINUTE_PAD:
        return f"{dt.minute:02d}"
    if kind == SECOND:
        return str(dt.second)
    if kind == SECOND_PAD:
        return f"{dt.second:02d}"
    if kind == AMPM_UPPER:
        return "PM" if dt.hour >= 12 else "AM"
    if kind == AMPM_LOWER:
        return "pm" if dt.hour >= 12 else "am"
    if kind == ZONE_NAME:
        name = dt.tzname()
        if name and _ZONE_ABBREVIATION.fullmatch(name):
            return name
        return _format_offset("-0700", dt.utcoffset())
    if kind == ZONE_OFFSET:
        return _format_offset(token.text, dt.utcoffset())
    if kind == FRACTION:
        digits = len(token.text) - 1
        # Python datetimes stop at microseconds, deeper digits are zero
        fraction = f"{dt.microsecond:06d}000"[:digits]
        if token.text[1] == "9":
            fraction = fraction.rstrip("0")
            if not fraction:
                return ""
        return token.text[0] + fraction
    raise ValueError(f"Cannot format token {token}")


class TimeLayout:
    """
    A time layout with its compiled regular expression.

    The layout is resolved once at construction: well-known Go layout names
    (e.g. "RFC3339") are expanded, the dialect is detected and the layout is
    tokenized.
    """

    def __init__(self, layout: str):
        """
        Compile a time layout.

        Args:
            layout: Go layout, strftime layout, epoch form or well-known name

        Raises:
            ValueError: if the layout is empty
        """
        if not layout:
            raise ValueError("Time layout must not be empty")

        self.source = layout
        self.layout = WELL_KNOWN_LAYOUTS.get(layout, layout)

        if self.layout in EPOCH_LAYOUTS:
            self.dialect = EPOCH
            self.tokens: List[Token] = []
            _, fractional = EPOCH_LAYOUTS[self.layout]
            self.pattern = r"\d+\.\d+" if fractional else r"\d+"
        else:
            if "%" in self.layout:
                self.dialect = STRFTIME
                self.tokens = tokenize_strftime(self.layout)
            else:
                self.dialect = GO
                self.tokens = tokenize_layout(self.layout)
            self.pattern = "".join(token_pattern(token) for token in self.tokens)

        self.regex = re.compile(self.pattern)
        self._captures: List[Tuple[str, Token]] = []
        self._parse_regex = self._build_parse_regex()

    def _build_parse_regex(self) -> "re.Pattern":
        parts = []
        for index, token in enumerate(self.tokens):
            if token.kind == LITERAL:
                parts.append(re.escape(token.text))
                continue
            name = f"t{index}"
            self._captures.append((name, token))
            parts.append(f"(?P<{name}>{token_pattern(token)})")
        return re.compile("".join(parts))

    def __repr__(self) -> str:
        return f"TimeLayout({self.source!r})"

    def format(self, dt: datetime) -> str:
        """
        Render a datetime in this layout.

        Naive datetimes are taken to be local time.
        """
        if dt.tzinfo is None:
            dt = dt.astimezone()

        if self.dialect == EPOCH:
            return self._format_epoch(dt)
        if self.dialect == STRFTIME:
            return dt.strftime(self.layout)
        return "".join(_format_go_token(token, dt) for token in self.tokens)

    def parse(self, text: str) -> datetime:
        """
        Parse a timestamp printed in this layout.

        Args:
            text: Timestamp text, exactly as located by the regex

        Returns:
            Timezone-aware datetime; layouts without zone information parse as UTC

        Raises:
            ValueError: if the text does not match the layout
        """
        if self.dialect == EPOCH:
            return self._parse_epoch(text)
        if self.dialect == STRFTIME:
            parsed = datetime.strptime(text, self.layout)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
        return self._parse_go(text)

    def _format_epoch(self, dt: datetime) -> str:
        exponent, fractional = EPOCH_LAYOUTS[self.layout]
        micros = (dt - _EPOCH) // timedelta(microseconds=1)
        nanos = micros * 1000
        if not fractional:
            return str(nanos // 10 ** (9 - exponent))
        seconds, remainder = divmod(nanos, 10 ** 9)
        fraction = remainder // 10 ** (9 - exponent)
        return f"{seconds}.{fraction:0{exponent}d}"

    def _parse_epoch(self, text: str) -> datetime:
        exponent, fractional = EPOCH_LAYOUTS[self.layout]
        if not self.regex.fullmatch(text):
            raise ValueError(f"'{text}' is not a '{self.layout}' timestamp")
        if fractional:
            seconds, _, fraction = text.partition(".")
            nanos = int(seconds) * 10 ** 9 + int(fraction[:9].ljust(9, "0"))
        else:
            nanos = int(text) * 10 ** (9 - exponent)
        return _EPOCH + timedelta(microseconds=nanos // 1000)

    def _parse_go(self, text: str) -> datetime:
        match = self._parse_regex.fullmatch(text)
        if match is None:
            raise ValueError(f"'{text}' does not match layout '{self.layout}'")

        year, month, day = DEFAULT_YEAR, 1, 1
        yearday: Optional[int] = None
        has_date = False
        hour = minute = second = microsecond = 0
        pm: Optional[bool] = None
        zone: Optional[timezone] = None
        offset: Optional[timezone] = None

        for name, token in self._captures:
            value = match.group(name)
            kind = token.kind
            if kind in (MONTH_NAME, MONTH_ABBR):
                names = MONTH_NAMES if kind == MONTH_NAME else MONTH_ABBRS
                month = names.index(value) + 1
                has_date = True
            elif kind == YEAR:
                year = int(value)
            elif kind == YEAR_SHORT:
                short = int(value)
                year = 1900 + short if short >= 69 else 2000 + short
            elif kind in (MONTH, MONTH_PAD):
                month = int(value)
                has_date = True
            elif kind in (DAY, DAY_PAD, DAY_SPACE):
                day = int(value)
                has_date = True
            elif kind in (YEARDAY, YEARDAY_SPACE):
                yearday = int(value)
            elif kind in (HOUR, HOUR12, HOUR12_PAD):
                hour = int(value)
            elif kind in (MINUTE, MINUTE_PAD):
                minute = int(value)
            elif kind in (SECOND, SECOND_PAD):
                second = int(value)
            elif kind == FRACTION:
                digits = value[1:]
                microsecond = int(digits[:6].ljust(6, "0")) if digits else 0
            elif kind in (AMPM_UPPER, AMPM_LOWER):
                pm = value.upper() == "PM"
            elif kind == ZONE_NAME:
                zone = _zone_from_name(value)
            elif kind == ZONE_OFFSET:
                offset = _parse_offset(value)

        if pm is not None:
            if hour > 12:
                raise ValueError(f"Hour {hour} out of range for 12-hour clock in '{text}'")
            if pm and hour < 12:
                hour += 12
            elif not pm and hour == 12:
                hour = 0

        tzinfo = offset or zone or timezone.utc
        if yearday is not None and not has_date:
            start = datetime(year, 1, 1, hour, minute, second, microsecond, tzinfo=tzinfo)
            return start + timedelta(days=yearday - 1)
        return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tzinfo)


def regex_from_layout(layout: str) -> "re.Pattern":
    """Compile a time layout straight into its regular expression."""
    return TimeLayout(layout).regex


@dataclass(frozen=True)
class CompiledMatcher:
    """
    Regular expression locating a timestamp inside a log line.

    When built from a boundary pattern the timestamp is the named group
    ``timestamp``; otherwise the whole match is the timestamp.
    """
    layout: TimeLayout
    regex: "re.Pattern"

    @property
    def pattern(self) -> str:
        return self.regex.pattern

    def search(self, text: str) -> Optional["re.Match"]:
        return self.regex.search(text)

    def starts_event(self, line: str) -> bool:
        """True if the line matches, i.e. begins a new logical event."""
        return self.regex.search(line) is not None

    def timestamp_span(self, match: "re.Match") -> Tuple[int, int]:
        """Start and end offsets of the timestamp within a match."""
        if TIMESTAMP_GROUP in self.regex.groupindex:
            return match.span(TIMESTAMP_GROUP)
        return match.span()

    def find_timestamp(self, text: str) -> Optional[Tuple[int, int]]:
        match = self.regex.search(text)
        if match is None:
            return None
        return self.timestamp_span(match)


def _skip_character_class(spec: str, pos: int) -> int:
    """Index just past the character class opened at pos, len(spec) if it never closes."""
    pos += 1
    if spec.startswith("^", pos):
        pos += 1
    # A leading "]" is a literal member of the class
    if spec.startswith("]", pos):
        pos += 1
    while pos < len(spec):
        char = spec[pos]
        if char == "\\":
            pos += 2
            continue
        if char == "]":
            return pos + 1
        pos += 1
    return len(spec)


def _find_timestamp_group(spec: str) -> Optional[Tuple[int, int, int]]:
    """
    Locate the first unescaped capturing group in a boundary pattern.

    Plain "(...)" and named "(?P<name>...)" groups capture. Other "(?" forms
    such as "(?:", lookarounds and inline flags are skipped, as are character
    classes and "\\(" / "\\)" literal parentheses.

    Returns:
        (open, content, close) indexes of the opening parenthesis, the first
        character of the group content and the closing parenthesis, or None
        without a group

    Raises:
        ValueError: if the group is never closed
    """
    start = content = None
    pos = 0
    while pos < len(spec):
        char = spec[pos]
        if char == "\\":
            pos += 2
            continue
        if char == "[":
            pos = _skip_character_class(spec, pos)
            continue
        if char == "(":
            if spec.startswith("(?P<", pos):
                name_end = spec.find(">", pos)
                if name_end < 0:
                    raise ValueError(f"Unterminated group name in time layout '{spec}'")
                start, content = pos, name_end + 1
                break
            if not spec.startswith("(?", pos):
                start, content = pos, pos + 1
                break
        pos += 1

    if start is None:
        return None

    pos = content
    while pos < len(spec):
        char = spec[pos]
        if char == "\\":
            pos += 2
            continue
        if char == ")":
            return start, content, pos
        pos += 1
    raise ValueError(f"Unterminated timestamp group in time layout '{spec}'")


def _unescape_parentheses(layout: str) -> str:
    return layout.replace("\\(", "(").replace("\\)", ")")


def compile_matcher(spec: str) -> CompiledMatcher:
    """
    Build a timestamp matcher from a time layout or a boundary pattern.

    A plain layout such as "2006-01-02 15:04:05" compiles on its own. A
    boundary pattern marks the timestamp with one capturing group, e.g.
    "^\\[(2006-01-02 15:04:05)\\] " : only the group content is treated as a
    layout and its pattern is spliced back in place of the group. A named
    group "(?P<name>...)" works the same way and is renamed to "timestamp".

    Args:
        spec: Time layout, optionally wrapped in a boundary pattern

    Returns:
        CompiledMatcher for the layout

    Raises:
        ValueError: on an unterminated group or an invalid resulting pattern
    """
    group = _find_timestamp_group(spec)
    if group is None:
        layout = TimeLayout(_unescape_parentheses(spec))
        return CompiledMatcher(layout=layout, regex=layout.regex)

    start, content, end = group
    layout = TimeLayout(_unescape_parentheses(spec[content:end]))
    pattern = f"{spec[:start]}(?P<{TIMESTAMP_GROUP}>{layout.pattern}){spec[end + 1:]}"
    try:
        regex = re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid timestamp pattern '{spec}': {e}") from e

    logger.debug(f"Compiled timestamp pattern '{spec}' into '{pattern}'")
    return CompiledMatcher(layout=layout, regex=regex)
