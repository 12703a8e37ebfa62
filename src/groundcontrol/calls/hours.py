"""
Calling hours by UTC offset.
"""

from datetime import datetime, timedelta

from groundcontrol.shared.clock import as_utc

# Continental US, Alaska and Hawaii standard offsets, in hours.
US_UTC_OFFSETS = (-10, -9, -8, -7, -6, -5, -4)
FIRST_CALL_HOUR = 9
LAST_CALL_HOUR = 21


def callable_utc_offsets(now: datetime, development: bool = False) -> list[int]:
    """UTC offsets where the local time is within calling hours (09:00 to 21:00).

    Development mode allows every offset.
    """
    if development:
        return list(US_UTC_OFFSETS)

    utc_now = as_utc(now)
    offsets = []
    for offset in US_UTC_OFFSETS:
        local = utc_now + timedelta(hours=offset)
        if FIRST_CALL_HOUR <= local.hour < LAST_CALL_HOUR:
            offsets.append(offset)
    return offsets
