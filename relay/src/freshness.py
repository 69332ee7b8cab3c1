"""Freshness policy shared by the price store and its readers.

An observation is fresh while its age is strictly below the staleness
threshold; an age exactly equal to the threshold is already stale.
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_threshold(staleness_threshold: float | timedelta) -> timedelta:
    """Normalize a threshold given in seconds or as a timedelta.

    :param staleness_threshold: Seconds (int/float) or timedelta.
    :returns: Threshold as timedelta.
    """
    if isinstance(staleness_threshold, timedelta):
        return staleness_threshold
    return timedelta(seconds=staleness_threshold)


def is_fresh(
    timestamp: datetime,
    now: datetime,
    staleness_threshold: float | timedelta,
) -> bool:
    """Check whether an observation taken at ``timestamp`` is still usable.

    :param timestamp: When the observation was taken.
    :param now: Reference time for the check.
    :param staleness_threshold: Maximum age (seconds or timedelta), exclusive.
    :returns: True iff ``now - timestamp < staleness_threshold``.
    """
    return now - timestamp < as_threshold(staleness_threshold)
