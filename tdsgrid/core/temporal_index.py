"""
Temporal index of a time period endpoint

Maps centered timestamps (epoch seconds) to positions along the server's raw time axis.
"""

import logging

import numpy as np
import traitlets as tl

from tdsgrid.core.utils import ArrayTrait, epoch_seconds_to_iso
from tdsgrid.core.time_periods import end_to_centered

_logger = logging.getLogger(__name__)


class TemporalIndex(tl.HasTraits):
    """Ascending table of centered timestamps and their raw time axis positions.

    Attributes
    ----------
    times : np.ndarray
        Centered timestamps in epoch seconds, non-decreasing.
    server_indices : np.ndarray
        Position along the server's time axis for each timestamp, strictly increasing. Not necessarily contiguous,
        because duplicate or out-of-order raw entries are dropped when the index is built.

    Notes
    -----
    :meth:`binary_search` returns ``-(insertion_point) - 1`` when the value is absent, so that
    ``i = -(result) - 1`` recovers the insertion point.
    """

    times = ArrayTrait(ndim=1, dtype=float)
    server_indices = ArrayTrait(ndim=1, dtype=int)

    @tl.validate("server_indices")
    def _validate_server_indices(self, d):
        value = d["value"]
        if value.size > 1 and np.any(np.diff(value) <= 0):
            raise ValueError("TemporalIndex server_indices must be strictly increasing")
        return value

    def __init__(self, times=(), server_indices=None, **kwargs):
        times = np.asarray(times, dtype=float)
        if server_indices is None:
            server_indices = np.arange(times.size)
        super(TemporalIndex, self).__init__(times=times, server_indices=server_indices, **kwargs)
        if self.times.size != self.server_indices.size:
            raise ValueError(
                "TemporalIndex size mismatch: %d times, %d server indices" % (self.times.size, self.server_indices.size)
            )
        if self.times.size > 1 and np.any(np.diff(self.times) < 0):
            raise ValueError("TemporalIndex times must be ascending")

    @classmethod
    def build(cls, raw_seconds, n_hours, end_time, midnight_correction=True):
        """Build the index from the raw time axis of an endpoint.

        Parameters
        ----------
        raw_seconds : array-like
            Raw time axis values, already converted to epoch seconds, in server order.
        n_hours : int
            Nominal cadence of the endpoint.
        end_time : bool
            True if the raw values are the end instants of the composite windows; they are converted to centered
            times. False if they are already centered.
        midnight_correction : bool, optional
            See :func:`tdsgrid.core.time_periods.centering_offset`.

        Returns
        -------
        TemporalIndex
        """
        raw = np.asarray(raw_seconds, dtype=float).ravel()
        centered = end_to_centered(raw, n_hours, midnight_correction) if end_time else raw

        keep = []
        last = -np.inf
        for i, t in enumerate(centered):
            if not np.isfinite(t):
                continue
            if t <= last:
                _logger.debug("Dropping time axis entry %d (%s): not after the previous entry", i, t)
                continue
            keep.append(i)
            last = t

        keep = np.array(keep, dtype=int)
        if keep.size < raw.size:
            _logger.info("Temporal index dropped %d of %d raw time values", raw.size - keep.size, raw.size)
        return cls(times=centered[keep] if keep.size else [], server_indices=keep)

    def __len__(self):
        return self.times.size

    def __repr__(self):
        if len(self) == 0:
            return "TemporalIndex(empty)"
        return "TemporalIndex(%d times, %s .. %s)" % (len(self), self.iso_times[0], self.iso_times[-1])

    @property
    def iso_times(self):
        """Centered times as ISO 8601 strings"""
        return epoch_seconds_to_iso(self.times)

    def server_index(self, i):
        """Raw server axis position of entry i"""
        return int(self.server_indices[i])

    def binary_search(self, value):
        """
        Parameters
        ----------
        value : float

        Returns
        -------
        int
            Index of an entry equal to value (the lowest one if there are ties), or ``-(insertion_point) - 1``.
        """
        i = int(np.searchsorted(self.times, value, side="left"))
        if i < self.times.size and self.times[i] == value:
            return i
        return -i - 1

    def first_ge(self, value):
        """Smallest index whose time is >= value, or ``len(self)`` if there is none."""
        i = self.binary_search(value)
        if i < 0:
            return -i - 1
        while i > 0 and self.times[i - 1] == value:
            i -= 1
        return i

    def last_le(self, value):
        """Largest index whose time is <= value, or -1 if there is none."""
        i = self.binary_search(value)
        if i < 0:
            return -i - 2
        n = self.times.size
        while i < n - 1 and self.times[i + 1] == value:
            i += 1
        return i

    def closest(self, value):
        """Index of the time closest to value (ties go to the lower index), or -1 for an empty index."""
        n = self.times.size
        if n == 0:
            return -1
        i = self.binary_search(value)
        if i >= 0:
            return i
        i = -i - 1
        if i == 0:
            return 0
        if i >= n:
            return n - 1
        if value - self.times[i - 1] <= self.times[i] - value:
            return i - 1
        return i

    def window(self, min_value, max_value):
        """Index range of the times in [min_value, max_value].

        If the window falls strictly between two adjacent times, the single time closest to ``min_value`` is
        used for both ends.

        Returns
        -------
        tuple of int, None
            (first, last) inclusive, or None if no time qualifies or min_value > max_value.
        """
        if min_value > max_value:
            return None
        n = self.times.size
        first = self.first_ge(min_value)
        last = self.last_le(max_value)
        if first == n or last == -1:
            return None
        if first == last + 1:
            first = last = self.closest(min_value)
        elif first > last:
            return None
        return first, last
