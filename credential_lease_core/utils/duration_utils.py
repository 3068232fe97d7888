"""
Duration parsing for TTL fields.

TTL values arrive either as integer seconds or as duration strings such as
"90", "1m", "5h" or "1h30m". Everything is normalized to whole seconds.
"""

import re
from datetime import timedelta
from typing import Union

from ..exceptions import ErrorCode, validation_failed

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}

_PART_PATTERN = re.compile(r"(\d+)([smhd])")
_FULL_PATTERN = re.compile(r"^(?:\d+[smhd])+$")

DurationInput = Union[int, float, str, timedelta]


def parse_duration_seconds(value: DurationInput, field: str = "duration") -> int:
    """
    Convert a duration-like input to whole seconds.

    Args:
        value: int/float seconds, a timedelta, or a string ("120", "2m", "1h30m")
        field: Field name used in the validation error

    Returns:
        Non-negative number of seconds

    Raises:
        ValidationError: If the value is negative, of the wrong type, or unparsable
    """
    if isinstance(value, bool):
        raise validation_failed(field, value, "must be a duration", ErrorCode.TYPE_MISMATCH)

    if isinstance(value, timedelta):
        seconds = int(value.total_seconds())
    elif isinstance(value, (int, float)):
        seconds = int(value)
    elif isinstance(value, str):
        seconds = _parse_duration_string(value.strip(), field)
    else:
        raise validation_failed(field, value, "must be a duration", ErrorCode.TYPE_MISMATCH)

    if seconds < 0:
        raise validation_failed(
            field, value, "must not be negative", ErrorCode.CONSTRAINT_VIOLATION
        )

    return seconds


def _parse_duration_string(text: str, field: str) -> int:
    if not text:
        raise validation_failed(field, text, "must not be empty", ErrorCode.INVALID_FORMAT)

    if re.fullmatch(r"-?\d+", text):
        return int(text)

    if not _FULL_PATTERN.match(text):
        raise validation_failed(
            field, text, "is not a valid duration", ErrorCode.INVALID_FORMAT
        )

    return sum(int(amount) * _UNIT_SECONDS[unit] for amount, unit in _PART_PATTERN.findall(text))
