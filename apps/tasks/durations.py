"""
Duration parsing and formatting

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import re
from collections import namedtuple
from datetime import timedelta

from django.utils.dateparse import parse_duration as django_parse_duration

MAX_ASSIGNABLE_MINUTES = 24 * 60

TimeInput = namedtuple('TimeInput', ['hours', 'minutes', 'total_minutes'])

SECONDS_RE = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*(?:s|secs?|seconds?)\s*$', re.IGNORECASE)
HMS_RE = re.compile(r'^\s*(\d+):(\d{1,2}):(\d{1,2}(?:\.\d+)?)\s*$')


def parse_duration(value):
    """
    Normalise a stored pause/elapsed duration to a ``timedelta``.

    Accepts ``None``, a ``timedelta``, legacy numeric milliseconds,
    ``"<n> seconds"``, ``"HH:MM:SS"`` and interval text such as
    ``"1 day 02:03:04"``. Unparseable input raises ``ValueError``.
    """
    if value is None or value == '':
        return timedelta(0)
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a duration: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(milliseconds=value)

    text = str(value).strip()

    match = SECONDS_RE.match(text)
    if match:
        return timedelta(seconds=float(match.group(1)))

    match = HMS_RE.match(text)
    if match:
        hours, minutes, seconds = match.groups()
        return timedelta(hours=int(hours), minutes=int(minutes), seconds=float(seconds))

    if text.isdigit():
        return timedelta(milliseconds=int(text))

    parsed = django_parse_duration(text)
    if parsed is None:
        raise ValueError(f"Not a duration: {value!r}")
    return parsed


def format_duration(value):
    """``"2h 5m"``, ``"5m 3s"`` or ``"3s"``."""
    total_seconds = int(parse_duration(value).total_seconds())
    hours, remainder = divmod(max(total_seconds, 0), 3600)
    minutes, seconds = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def format_duration_hms(value):
    total_seconds = max(int(parse_duration(value).total_seconds()), 0)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_minutes(total_minutes):
    hours, minutes = divmod(int(total_minutes), 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def from_total_minutes(total_minutes):
    hours, minutes = divmod(int(total_minutes), 60)
    return TimeInput(hours, minutes, int(total_minutes))


def parse_time_string(text):
    """
    Parse an allotted time entered by an admin.

    ``"2h 30m"``, ``"2h"``, ``"1.5h"``, ``"90m"`` and plain ``"90"``
    (minutes) are understood; anything else gives zero minutes.
    """
    clean = (text or '').strip().lower()

    match = re.search(r'(\d+)h\s*(\d+)m?', clean)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        return TimeInput(hours, minutes, hours * 60 + minutes)

    match = re.search(r'(\d+(?:\.\d+)?)h', clean)
    if match:
        return from_total_minutes(round(float(match.group(1)) * 60))

    match = re.search(r'(\d+)m', clean)
    if match:
        return from_total_minutes(int(match.group(1)))

    if clean.isdigit():
        return from_total_minutes(int(clean))

    return TimeInput(0, 0, 0)


def validate_time_input(hours, minutes):
    """Return an error message for an invalid allotted time, or ``None``."""
    if hours < 0 or minutes < 0:
        return 'Time values cannot be negative'
    if minutes >= 60:
        return 'Minutes must be less than 60'

    total = hours * 60 + minutes
    if total == 0:
        return 'Time must be greater than 0'
    if total > MAX_ASSIGNABLE_MINUTES:
        return 'Time cannot exceed 24 hours'
    return None
