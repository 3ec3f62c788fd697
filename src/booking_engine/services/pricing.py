from datetime import date

from booking_engine.utils.datetime_normaliser import to_calendar_date


def count_nights(check_in: date, check_out: date) -> int:
    """Whole calendar days between check-in and check-out, never less than one."""
    nights = (to_calendar_date(check_out) - to_calendar_date(check_in)).days
    return max(1, nights)


def compute_total(nightly_rate: int, check_in: date, check_out: date) -> int:
    if isinstance(nightly_rate, bool) or not isinstance(nightly_rate, int):
        raise ValueError("nightly_rate must be an integer amount of minor units")
    if nightly_rate < 0:
        raise ValueError("nightly_rate cannot be negative")
    return count_nights(check_in, check_out) * nightly_rate
