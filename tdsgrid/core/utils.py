"""
Utils Summary
"""

import os
import re
import datetime
import logging
import numbers

import traitlets as tl
import numpy as np
import pandas as pd  # Core dependency of xarray

from tdsgrid.core.settings import settings

# create log for module
_log = logging.getLogger(__name__)

EPOCH = np.datetime64("1970-01-01T00:00:00", "us")

SECONDS_PER_UNIT = {
    "millisecond": 0.001,
    "msec": 0.001,
    "ms": 0.001,
    "second": 1.0,
    "sec": 1.0,
    "s": 1.0,
    "minute": 60.0,
    "min": 60.0,
    "hour": 3600.0,
    "hr": 3600.0,
    "h": 3600.0,
    "day": 86400.0,
    "d": 86400.0,
}

_TIME_UNITS_RE = re.compile(r"^\s*(\w+?)s?\s+since\s+(.+?)\s*$", re.IGNORECASE)


def common_doc(doc_dict):
    """Decorator: replaces commond fields in a function docstring

    Parameters
    -----------
    doc_dict : dict
        Dictionary of parameters that will be used to format a doctring. e.g. func.__doc__.format(**doc_dict)
    """

    def _decorator(func):
        if func.__doc__ is None:
            return func

        func.__doc__ = func.__doc__.format(**doc_dict)
        return func

    return _decorator


def create_logfile(
    filename=settings["LOG_FILE_PATH"],
    level=logging.INFO,
    format="[%(asctime)s] %(name)s.%(funcName)s[%(lineno)d] - %(levelname)s - %(message)s",
):
    """Convience method to create a log file that only logs
    tdsgrid related messages

    Parameters
    ----------
    filename : str, optional
        Filename of the log file. Defaults to ``settings['LOG_FILE_PATH']``
    level : int, optional
        Log level to use (0 - 50). Defaults to ``logging.INFO`` (20)
        See https://docs.python.org/3/library/logging.html#levels
    format : str, optional
        String format for log messages.
        See https://docs.python.org/3/library/logging.html#logrecord-attributes

    Returns
    -------
    logging.Logger, logging.Handler, logging.Formatter
        Returns the constructed logger, handler, and formatter for the log file
    """
    # get logger for tdsgrid module only
    log = logging.getLogger("tdsgrid")
    log.setLevel(level)

    # Create directory if it doesn't exist
    os.makedirs(os.path.dirname(filename), exist_ok=True)

    handler = logging.FileHandler(filename, "a")
    formatter = logging.Formatter(format)
    handler.setFormatter(formatter)
    log.addHandler(handler)

    _log.info("Logging to file {}".format(filename))

    return log, handler, formatter


class ArrayTrait(tl.TraitType):
    """A coercing numpy array trait."""

    def __init__(self, ndim=None, dtype=None, default_value=None, *args, **kwargs):
        self.ndim = ndim
        self.dtype = dtype
        super(ArrayTrait, self).__init__(default_value=default_value, *args, **kwargs)

    def validate(self, obj, value):
        # coerce type
        if not isinstance(value, np.ndarray):
            value = np.array(value)

        # ndim
        if self.ndim is not None and self.ndim != value.ndim:
            raise tl.TraitError(
                "The '%s' trait of an %s instance must have ndim %d, but a value with ndim %d was specified"
                % (self.name, obj.__class__.__name__, self.ndim, value.ndim)
            )

        # dtype
        if self.dtype is not None:
            try:
                value = value.astype(self.dtype)
            except (TypeError, ValueError):
                raise tl.TraitError(
                    "The '%s' trait of an %s instance must have dtype %s, but a value with dtype %s was specified"
                    % (self.name, obj.__class__.__name__, self.dtype, value.dtype)
                )

        return value


def cached_property(fn):
    """
    Decorator that creates a property that is computed once per object.

    Examples
    --------

    >>> class MyDataSet(tl.HasTraits):
        @cached_property
        def my_cached_property(self):
            return 1
    """

    key = "_tdsgrid_cached_property_%s" % fn.__name__

    @property
    def wrapper(self):
        if hasattr(self, key):
            return getattr(self, key)
        value = fn(self)
        setattr(self, key, value)
        return value

    return wrapper


def make_time_value(val):
    """
    Make a time value by casting to numpy datetime64.

    Parameters
    ----------
    val : str, datetime.date, np.datetime64, np.ndarray
        Input time value. Strings are ISO 8601, with either a ``T`` or a space between date and time.

    Returns
    -------
    val : np.datetime64
        Cast time value.

    Raises
    ------
    ValueError
        val cannot be parsed
    TypeError
        val is an unsupported type
    """

    # extract value from singleton and 0-dimensional arrays
    if isinstance(val, np.ndarray):
        try:
            val = val.item()
        except ValueError:
            raise TypeError("Invalid time value, unsupported type '%s'" % type(val))

    if isinstance(val, datetime.datetime) and val.tzinfo is not None:
        val = val.astimezone(datetime.timezone.utc).replace(tzinfo=None)

    if isinstance(val, str):
        val = val.strip()
        if val.endswith("Z"):
            val = val[:-1]
        val = np.datetime64(val)
    elif isinstance(val, (datetime.date, np.datetime64)):
        val = np.datetime64(val)
    else:
        raise TypeError("Invalid time value, unsupported type '%s'" % type(val))

    if np.isnat(val):
        raise ValueError("Invalid time value 'NaT'")
    return val


def to_epoch_seconds(val):
    """Convert a time value to seconds since 1970-01-01T00:00:00Z.

    Parameters
    ----------
    val : str, datetime.date, np.datetime64, number
        Numbers are taken to already be epoch seconds.

    Returns
    -------
    float
    """
    if isinstance(val, numbers.Number) and not isinstance(val, bool):
        return float(val)
    t = make_time_value(val)
    return float((t - EPOCH) / np.timedelta64(1, "s"))


def epoch_seconds_to_iso(seconds, sep="T"):
    """ISO 8601 string (to the second) for epoch seconds.

    Parameters
    ----------
    seconds : float, array-like
    sep : str, optional
        Separator between date and time. Default is 'T'.

    Returns
    -------
    str or np.ndarray of str
    """
    s = np.round(np.asarray(seconds, dtype=float)).astype("int64")
    iso = np.datetime_as_string(s.astype("datetime64[s]"), unit="s")
    if sep != "T":
        iso = np.char.replace(iso, "T", sep)
    if iso.ndim == 0:
        return str(iso)
    return iso


def parse_time_units(units):
    """Parse CF style time units, e.g. 'seconds since 1970-01-01T00:00:00Z'.

    Parameters
    ----------
    units : str

    Returns
    -------
    factor : float
        Multiplier to get seconds from the raw values
    base : float
        Epoch seconds of the reference date

    Raises
    ------
    ValueError
        If the units cannot be parsed.
    """
    m = _TIME_UNITS_RE.match(units or "")
    if m is None:
        raise ValueError("Unrecognized time units '%s'" % units)

    unit = m.group(1).lower()
    if unit not in SECONDS_PER_UNIT:
        raise ValueError("Unrecognized time unit '%s' in '%s'" % (unit, units))

    base = pd.Timestamp(m.group(2).strip())
    if base.tzinfo is not None:
        base = base.tz_convert("UTC").tz_localize(None)
    base_seconds = (base - pd.Timestamp("1970-01-01")) / pd.Timedelta(seconds=1)
    return SECONDS_PER_UNIT[unit], float(base_seconds)


def suggest_low_high(low, high):
    """Round a data range out to nice palette bounds.

    If the range straddles zero with magnitudes within a factor of 2, the bounds are made symmetric about zero.

    Parameters
    ----------
    low, high : float

    Returns
    -------
    tuple of float
    """
    if not (np.isfinite(low) and np.isfinite(high)):
        return low, high
    if low > high:
        low, high = high, low
    span = high - low
    if span == 0:
        span = abs(high) if high != 0 else 1.0
    step = 10 ** np.floor(np.log10(span))
    if span / step < 2:
        step = step / 5
    elif span / step < 5:
        step = step / 2
    nlow = float(np.floor(low / step) * step)
    nhigh = float(np.ceil(high / step) * step)

    if nlow < 0 < nhigh and 0.5 <= nhigh / -nlow <= 2:
        nhigh = max(-nlow, nhigh)
        nlow = -nhigh
    return nlow, nhigh
