"""
Grid extraction

Reads a 2-D (lat, lon) grid for one time of a time period endpoint, over a bounding box and at a requested size.
"""

import logging
from collections import namedtuple

import numpy as np
import xarray as xr
import traitlets as tl

from tdsgrid.core.utils import common_doc, to_epoch_seconds, epoch_seconds_to_iso
from tdsgrid.core.exceptions import NotFoundError, OutOfRangeError, InvalidRangeError, CorruptResponseError
from tdsgrid.core.endpoint import TimePeriodEndpoint, FULL_CIRCLE
from tdsgrid.core.catalog_resolver import DiscoveryContext
from tdsgrid.core.data.transport import Transport

_logger = logging.getLogger(__name__)

LONGITUDE_SHIFTS = (0.0, FULL_CIRCLE, -FULL_CIRCLE)

COMMON_GRID_DOC = {
    "bbox": """min_x, max_x : float
            Longitude range, in any of the -180..180 or 0..360 frames.
        min_y, max_y : float
            Latitude range.""",
}

IndexRun = namedtuple("IndexRun", ["start", "stop", "stride", "positions", "columns"])
IndexRun.__doc__ = """A strided index range request along one axis.

start, stop, stride : int
    Requested index range, stop inclusive
positions : np.ndarray
    For each output column of the run, its position in the returned values
columns : np.ndarray
    Output columns filled by the run
"""


def reconcile_longitude(lon_values, min_x, max_x, tolerance=0.0):
    """Shift that puts [min_x, max_x] inside the longitude axis.

    The shifts 0, +360 and -360 are tried in that order.

    Parameters
    ----------
    lon_values : np.ndarray
        Longitude axis values
    min_x, max_x : float
    tolerance : float, optional
        Allowed overhang at either end of the axis, usually half a grid step.

    Returns
    -------
    float, None
        The shift to add to the requested longitudes, or None if none fits.
    """
    lo, hi = np.nanmin(lon_values), np.nanmax(lon_values)
    for shift in LONGITUDE_SHIFTS:
        if lo - tolerance <= min_x + shift and max_x + shift <= hi + tolerance:
            return shift
    return None


def _nearer(a, b, da, db):
    # ties go to the lower index
    return np.where((db < da) | ((db == da) & (b < a)), b, a)


def nearest_index(values, targets):
    """Index of the nearest axis value for each target, ties to the lower index.

    The axis must be monotonic, ascending or descending.
    """
    values = np.asarray(values, dtype=float)
    targets = np.atleast_1d(np.asarray(targets, dtype=float))
    n = values.size
    descending = n > 1 and values[0] > values[-1]
    ordered = values[::-1] if descending else values

    i = np.clip(np.searchsorted(ordered, targets), 1, max(n - 1, 1))
    below, above = i - 1, np.minimum(i, n - 1)
    if descending:
        below, above = n - 1 - below, n - 1 - above
    return _nearer(below, above, np.abs(values[below] - targets), np.abs(values[above] - targets))


def _circular_distance(values, targets):
    return np.abs((values - targets + 180.0) % 360.0 - 180.0)


def nearest_index_circular(values, targets):
    """Index of the nearest longitude for each target, with distances measured around the circle."""
    values = np.asarray(values, dtype=float)
    targets = np.atleast_1d(np.asarray(targets, dtype=float))
    lo_index, hi_index = int(np.nanargmin(values)), int(np.nanargmax(values))

    # wrapped into [lo, lo + 360); past the top of the axis the nearest value may be across the seam
    wrapped = (targets - values[lo_index]) % 360.0 + values[lo_index]
    best = nearest_index(values, wrapped)
    for seam_index in (lo_index, hi_index):
        seam = np.full(best.shape, seam_index)
        best = _nearer(
            best, seam, _circular_distance(values[best], targets), _circular_distance(values[seam], targets)
        )
    return best


def to_caller_frame(axis_lons, target_lons):
    """Express axis longitudes in the frame of the requested longitudes, e.g. 315 -> -45 for a target near -45"""
    axis_lons = np.asarray(axis_lons, dtype=float)
    target_lons = np.asarray(target_lons, dtype=float)
    return target_lons + ((axis_lons - target_lons + 180.0) % 360.0 - 180.0)


def target_positions(lo, hi, n):
    """n positions evenly spaced over [lo, hi]; the center if n == 1"""
    if n == 1:
        return np.array([(lo + hi) / 2.0])
    return np.linspace(lo, hi, n)


def make_runs(indices):
    """Group axis indices into strided index range requests.

    A new run starts wherever the indices decrease, which happens where the targets cross the storage seam of a
    global longitude axis, or for every column of a descending axis. Within a run the stride is the greatest common
    divisor of the index steps, so that every index is part of the returned values.

    Parameters
    ----------
    indices : np.ndarray
        Axis index for each output column

    Returns
    -------
    list of IndexRun
    """
    indices = np.asarray(indices, dtype=int)
    runs = []
    start_col = 0
    for col in range(1, indices.size + 1):
        if col < indices.size and indices[col] >= indices[col - 1]:
            continue
        run = indices[start_col:col]
        steps = np.diff(run)
        steps = steps[steps > 0]
        stride = int(np.gcd.reduce(steps)) if steps.size else 1
        runs.append(
            IndexRun(int(run[0]), int(run[-1]), stride, (run - run[0]) // stride, np.arange(start_col, col))
        )
        start_col = col
    return runs


def make_span(indices):
    """One strided index range covering all indices, in any order"""
    indices = np.asarray(indices, dtype=int)
    start, stop = int(indices.min()), int(indices.max())
    steps = np.diff(np.unique(indices))
    stride = int(np.gcd.reduce(steps)) if steps.size else 1
    return IndexRun(start, stop, stride, (indices - start) // stride, np.arange(indices.size))


class GridExtractor(tl.HasTraits):
    """Reads grids from one time period endpoint.

    Attributes
    ----------
    endpoint : TimePeriodEndpoint
    transport : Transport
        The transport the endpoint was opened with.
    context : DiscoveryContext, optional
        Used for the title and units of the result.
    """

    endpoint = tl.Instance(TimePeriodEndpoint)
    transport = tl.Instance(Transport)
    context = tl.Instance(DiscoveryContext, allow_none=True, default_value=None)

    @common_doc(COMMON_GRID_DOC)
    def extract(self, timestamp, min_x, max_x, min_y, max_y, n_wide, n_high):
        """Grid for one time over a bounding box.

        Parameters
        ----------
        timestamp : str, datetime, np.datetime64, float
            Centered time; it must be one of the endpoint's times exactly.
        {bbox}
        n_wide, n_high : int
            Number of output columns and rows. Each output cell holds the value of the nearest grid cell.

        Returns
        -------
        xarray.DataArray
            dims ('lat', 'lon'), shape (n_high, n_wide); longitudes are in the frame of the request.

        Raises
        ------
        ValueError
            Invalid sizes or inverted ranges
        NotFoundError
            timestamp is not one of the endpoint's times
        OutOfRangeError
            The bounding box is outside the grid
        """
        if n_wide < 1 or n_high < 1:
            raise ValueError("Invalid grid size n_wide=%s n_high=%s" % (n_wide, n_high))
        if not (min_x <= max_x) or not (min_y <= max_y):
            raise ValueError("Invalid bounding box x=[%s, %s] y=[%s, %s]" % (min_x, max_x, min_y, max_y))

        endpoint = self.endpoint
        try:
            seconds = to_epoch_seconds(timestamp)
        except (TypeError, ValueError) as e:
            raise InvalidRangeError("Invalid timestamp '%s': %s" % (timestamp, e))

        i = endpoint.temporal_index.binary_search(seconds)
        if i < 0:
            raise NotFoundError(
                "Time '%s' is not available for the '%s' time period" % (timestamp, endpoint.period_label)
            )
        time_index = endpoint.temporal_index.server_index(i)

        target_lats = target_positions(min_y, max_y, n_high)
        target_lons = target_positions(min_x, max_x, n_wide)
        lat_indices = self._lat_indices(min_y, max_y, target_lats)
        lon_indices = self._lon_indices(min_x, max_x, target_lons)

        lat_span = make_span(lat_indices)
        values = np.full((n_high, n_wide), np.nan)
        for run in make_runs(lon_indices):
            block = self._read_block(time_index, lat_span, run)
            values[:, run.columns] = block[np.ix_(lat_span.positions, run.positions)]

        lats = endpoint.lat_values[lat_indices]
        lons = to_caller_frame(endpoint.lon_values[lon_indices], target_lons)
        attrs = {
            "time": epoch_seconds_to_iso(endpoint.temporal_index.times[i]) + "Z",
            "time_period": endpoint.period_label,
            "units": self.context.units if self.context is not None else "",
            "title": self.context.title if self.context is not None else "",
        }
        _logger.debug("Extracted %dx%d grid from %s at %s", n_high, n_wide, endpoint.url, attrs["time"])
        return xr.DataArray(values, dims=("lat", "lon"), coords={"lat": lats, "lon": lons}, attrs=attrs)

    def _lat_indices(self, min_y, max_y, targets):
        endpoint = self.endpoint
        lo, hi = endpoint.lat_range
        tolerance = endpoint.lat_step / 2.0
        if min_y < lo - tolerance or max_y > hi + tolerance:
            raise OutOfRangeError("Latitude range [%s, %s] is outside the grid [%s, %s]" % (min_y, max_y, lo, hi))
        return nearest_index(endpoint.lat_values, targets)

    def _lon_indices(self, min_x, max_x, targets):
        endpoint = self.endpoint
        tolerance = endpoint.lon_step / 2.0
        shift = reconcile_longitude(endpoint.lon_values, min_x, max_x, tolerance)
        if shift is not None:
            return nearest_index(endpoint.lon_values, targets + shift)
        if endpoint.is_global:
            # the request crosses the storage seam, e.g. 170..190 on a -180..180 axis
            _logger.debug("Longitude range [%s, %s] crosses the seam of %s", min_x, max_x, endpoint.url)
            return nearest_index_circular(endpoint.lon_values, targets)
        lo, hi = endpoint.lon_range
        raise OutOfRangeError("Longitude range [%s, %s] is outside the grid [%s, %s]" % (min_x, max_x, lo, hi))

    def _read_block(self, time_index, lat_span, lon_run):
        """Read one (lat, lon) block; returns the values as float with missing values as NaN"""
        handle = self.endpoint.handle
        result = self.transport.read_range(
            handle,
            {
                "time": (time_index, time_index, 1),
                "lat": (lat_span.start, lat_span.stop, lat_span.stride),
                "lon": (lon_run.start, lon_run.stop, lon_run.stride),
            },
        )
        data = np.asarray(result.data)
        if data.ndim != len(handle.dimension_names):
            raise CorruptResponseError(
                "Expected %d dimensions from %s, got %d" % (len(handle.dimension_names), handle.url, data.ndim)
            )

        lat_pos = handle.dimension_order["lat"]
        lon_pos = handle.dimension_order["lon"]
        key = tuple(slice(None) if p in (lat_pos, lon_pos) else 0 for p in range(data.ndim))
        block = data[key]
        if lat_pos > lon_pos:
            block = block.T

        expected = (
            (lat_span.stop - lat_span.start) // lat_span.stride + 1,
            (lon_run.stop - lon_run.start) // lon_run.stride + 1,
        )
        if block.shape != expected:
            raise CorruptResponseError("Expected a %s block from %s, got %s" % (expected, handle.url, block.shape))
        return self.endpoint.mask_missing(block)
