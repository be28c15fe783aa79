"""
Time period definitions for composite (aggregated) satellite products.

Each THREDDS dataset directory ends in a time period token, e.g. ``.../k490/8day``. The token determines the nominal
cadence of the aggregation, which drives the end-time -> centered-time conversion and the gap threshold of time
series.

Attributes
----------
TIME_PERIODS : OrderedDict
    token -> :class:`TimePeriod`
SECONDS_PER_HOUR, SECONDS_PER_DAY : int
"""

from collections import OrderedDict, namedtuple

import numpy as np

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400

TimePeriod = namedtuple("TimePeriod", ["token", "label", "title", "n_hours"])

TIME_PERIODS = OrderedDict(
    (p.token, p)
    for p in [
        TimePeriod("hday", "pass", "Single Scans", 0),
        TimePeriod("25hour", "25 hour", "25 Hour Composite", 25),
        TimePeriod("33hour", "33 hour", "33 Hour Composite", 33),
        TimePeriod("1day", "1 day", "1 Day Composite", 24),
        TimePeriod("3day", "3 day", "3 Day Composite", 3 * 24),
        TimePeriod("4day", "4 day", "4 Day Composite", 4 * 24),
        TimePeriod("5day", "5 day", "5 Day Composite", 5 * 24),
        TimePeriod("7day", "7 day", "7 Day Composite", 7 * 24),
        TimePeriod("8day", "8 day", "8 Day Composite", 8 * 24),
        TimePeriod("10day", "10 day", "10 Day Composite", 10 * 24),
        TimePeriod("14day", "14 day", "14 Day Composite", 14 * 24),
        TimePeriod("mday", "1 month", "1 Month Composite", 30 * 24),
        TimePeriod("3month", "3 month", "3 Month Composite", 90 * 24),
        TimePeriod("1year", "1 year", "1 Year Composite", 365 * 24),
    ]
)

_BY_LABEL = {p.label: p for p in TIME_PERIODS.values()}


def get_time_period(token):
    """TimePeriod for a catalog token, e.g. '8day'.

    Raises
    ------
    KeyError
    """
    return TIME_PERIODS[token]


def get_time_period_by_label(label):
    """TimePeriod for a label, e.g. '8 day'.

    Raises
    ------
    KeyError
    """
    return _BY_LABEL[label]


def override_time_period(period, internal_name):
    """Apply the 25/33 hour override.

    Some archives store 25 and 33 hour composites in the single scan (``hday``) directory. The dataset's internal
    name tells them apart: a name ending in ``24h`` or ``25h`` is a 25 hour composite, ``33h`` is a 33 hour
    composite.

    Parameters
    ----------
    period : TimePeriod
        Period derived from the catalog token
    internal_name : str
        Logical name of the dataset, e.g. 'TQNux1025h'

    Returns
    -------
    TimePeriod
    """
    if period.n_hours != 0:
        return period
    if internal_name.endswith("24h") or internal_name.endswith("25h"):
        return TIME_PERIODS["25hour"]
    if internal_name.endswith("33h"):
        return TIME_PERIODS["33hour"]
    return period


def centering_offset(n_hours, midnight_correction=True):
    """Seconds to subtract from a raw end time to get the centered time.

    Parameters
    ----------
    n_hours : int
        Nominal cadence in hours. 0 means single scans, which are not adjusted.
    midnight_correction : bool, optional
        Whole-day composites used to store their end time as 23:59:59 of the last day. When True, one second is
        added so the end time becomes midnight before half of the cadence is subtracted. Default True.

    Returns
    -------
    float
    """
    if n_hours == 0:
        return 0.0
    offset = n_hours * SECONDS_PER_HOUR / 2.0
    if n_hours % 24 == 0 and midnight_correction:
        offset -= 1.0
    return offset


def end_to_centered(end_seconds, n_hours, midnight_correction=True):
    """Convert raw end times (epoch seconds) to centered times.

    Parameters
    ----------
    end_seconds : float, np.ndarray
    n_hours : int
    midnight_correction : bool, optional

    Returns
    -------
    float, np.ndarray
    """
    offset = centering_offset(n_hours, midnight_correction)
    if offset == 0:
        return end_seconds
    return np.subtract(end_seconds, offset)


def centered_to_end(centered_seconds, n_hours, midnight_correction=True):
    """Inverse of :func:`end_to_centered`."""
    offset = centering_offset(n_hours, midnight_correction)
    if offset == 0:
        return centered_seconds
    return np.add(centered_seconds, offset)


def expected_gap_seconds(n_hours):
    """A time series gap longer than this means data is missing.

    Parameters
    ----------
    n_hours : int

    Returns
    -------
    int
        1 hour for single scans and 25/33 hour composites, 1 day for n-day composites, 32 days for monthly and
        longer composites.
    """
    if n_hours == 0 or n_hours % 24 != 0:
        return SECONDS_PER_HOUR
    if n_hours < 30 * 24:
        return SECONDS_PER_DAY
    return 32 * SECONDS_PER_DAY


def time_long_name(period):
    """long_name of the centered time column of a time series."""
    if period.n_hours > 0:
        return "Centered Time of %s Composites" % period.label
    return "Centered Time"
