"""Conversion between Vault duration strings and integer seconds."""

import re

ONE_MINUTE_SECONDS = 60
ONE_HOUR_SECONDS = 60 * ONE_MINUTE_SECONDS

UNIT_SECONDS = {"h": ONE_HOUR_SECONDS, "m": ONE_MINUTE_SECONDS, "s": 1}

duration_component_regex = re.compile(r"(\d+)([hms])")
duration_regex = re.compile(r"^(?:\d+[hms])+$")


def format_duration(seconds: int) -> str:
    """Render a number of seconds in the short form Vault accepts.

    Zero components are dropped, so 600 becomes "10m" and 5400 becomes "1h30m".

    :param seconds: A non-negative number of seconds.
    :type seconds: int

    :returns: The duration string.

    :rtype: str
    """
    if seconds < 0:
        msg = f"Durations can not be negative, got {seconds}"
        raise ValueError(msg)
    if seconds == 0:
        return "0s"
    hours, remainder = divmod(seconds, ONE_HOUR_SECONDS)
    minutes, secs = divmod(remainder, ONE_MINUTE_SECONDS)
    components = []
    for amount, unit in ((hours, "h"), (minutes, "m"), (secs, "s")):
        if amount:
            components.append(f"{amount}{unit}")
    return "".join(components)


def parse_duration(value: str | float) -> int:
    """Convert a duration string (or bare seconds) into integer seconds.

    :param value: Seconds as a whole number or digit string, or a string such as
        "1h30m". Numbers coming from the Pulumi engine are floats.
    :type value: str | float

    :returns: The number of seconds represented by the value.

    :rtype: int
    """
    if isinstance(value, int | float) and not isinstance(value, bool):
        if value < 0 or (isinstance(value, float) and not value.is_integer()):
            msg = f"Invalid duration {value!r}"
            raise ValueError(msg)
        return int(value)
    if not isinstance(value, str):
        msg = f"Invalid duration {value!r}"
        raise ValueError(msg)
    value = value.strip()
    if not value:
        return 0
    if value.isdigit():
        return int(value)
    if not duration_regex.match(value):
        msg = f"Invalid duration {value!r}"
        raise ValueError(msg)
    return sum(
        int(amount) * UNIT_SECONDS[unit]
        for amount, unit in duration_component_regex.findall(value)
    )
