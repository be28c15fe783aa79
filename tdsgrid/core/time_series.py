"""
Time series assembly

Builds the time series of the grid cell nearest to a point, for the centered times of one time period endpoint
within a time window. Gaps longer than the expected cadence are marked by a NaN row so that plots show a break.
"""

import re
import logging
from collections import namedtuple

import numpy as np
import xarray as xr
import traitlets as tl

from tdsgrid.core.utils import to_epoch_seconds, epoch_seconds_to_iso
from tdsgrid.core.exceptions import InvalidRangeError, CorruptResponseError
from tdsgrid.core.time_periods import expected_gap_seconds, time_long_name
from tdsgrid.core.endpoint import TimePeriodEndpoint
from tdsgrid.core.catalog_resolver import DiscoveryContext
from tdsgrid.core.data.attributes import Attributes
from tdsgrid.core.data.transport import Transport
from tdsgrid.core.grid import reconcile_longitude, nearest_index

_logger = logging.getLogger(__name__)

TimeSeriesRow = namedtuple("TimeSeriesRow", ["lon", "lat", "depth", "time", "id", "value"])
TimeSeriesRow.__doc__ = """One row of a time series. time is the centered time in epoch seconds; depth is always 0."""

LOCATION_COLUMNS = ("LON", "LAT", "DEPTH", "TIME", "ID")

TIME_UNITS = "seconds since 1970-01-01T00:00:00Z"

# these describe the gridded source, not a point time series
STRIPPED_AXIS_ATTRIBUTES = ("coordsys", "point_spacing")
STRIPPED_DATA_ATTRIBUTES = (
    "_coordinateSystem",
    "coordsys",
    "numberOfObservations",
    "percentCoverage",
    "missing_value",
    "_FillValue",
)
STRIPPED_GLOBAL_ATTRIBUTES = (
    "cols",
    "composite",
    "cwhdf_version",
    "et_affine",
    "gctp_datum",
    "gctp_parm",
    "gctp_sys",
    "gctp_zone",
    "geospatial_lat_resolution",
    "geospatial_lon_resolution",
    "pass_date",
    "polygon_latitude",
    "polygon_longitude",
    "processing_level",
    "geographic",
    "projection_type",
    "rows",
    "start_time",
)


def _compact_time(seconds):
    return re.sub(r"[^0-9]", "", epoch_seconds_to_iso(seconds))


def _compact_number(v):
    return ("%g" % v).replace("-", "m").replace(".", "p")


def make_time_series_id(internal_name, x, y, min_time, max_time, period_label):
    """Identifier of a time series, used for the ID column and the 'id' global attribute.

    Examples
    --------
    >>> make_time_series_id('TMOk490', -45, 33.5, '2006-08-08', '2006-08-14', '3 day')
    'TMOk490S_xm45_y33p5_20060808000000_20060814000000_3day'
    """
    return "%sS_x%s_y%s_%s_%s_%s" % (
        internal_name,
        _compact_number(x),
        _compact_number(y),
        _compact_time(to_epoch_seconds(min_time)),
        _compact_time(to_epoch_seconds(max_time)),
        period_label.replace(" ", ""),
    )


def iter_rows(table):
    """Rows of a time series table

    Parameters
    ----------
    table : xarray.Dataset
        Result of :meth:`TimeSeriesAssembler.assemble`

    Yields
    ------
    TimeSeriesRow
    """
    data_name = [name for name in table.data_vars if name not in LOCATION_COLUMNS][0]
    columns = [table[name].values for name in LOCATION_COLUMNS + (data_name,)]
    for lon, lat, depth, t, id_, value in zip(*columns):
        yield TimeSeriesRow(float(lon), float(lat), float(depth), float(t), str(id_), float(value))


class TimeSeriesAssembler(tl.HasTraits):
    """Assembles time series from one time period endpoint.

    Attributes
    ----------
    endpoint : TimePeriodEndpoint
    transport : Transport
        The transport the endpoint was opened with.
    context : DiscoveryContext
        Shared descriptive metadata of the dataset.
    internal_name : str
        Logical name of the dataset; it names the data column and fills the ID column.
    """

    endpoint = tl.Instance(TimePeriodEndpoint)
    transport = tl.Instance(Transport)
    context = tl.Instance(DiscoveryContext, args=())
    internal_name = tl.Unicode()

    def assemble(self, x, y, min_time, max_time):
        """Time series of the grid cell nearest to (x, y).

        Parameters
        ----------
        x, y : float
            Longitude (either the -180..180 or the 0..360 frame) and latitude.
        min_time, max_time : str, datetime, np.datetime64, float
            Time window, compared with the centered times. If the window falls between two times, the single time
            closest to min_time is used.

        Returns
        -------
        xarray.Dataset
            Row table with dimension 'row' and the variables LON, LAT, DEPTH, TIME, ID and the data column named
            after the dataset. Empty (0 rows) if there is no data for the point or the window.

        Raises
        ------
        InvalidRangeError
            If min_time or max_time cannot be parsed.
        CorruptResponseError
            If the server returns a different cell or a different number of values than requested.
        """
        try:
            min_seconds = to_epoch_seconds(min_time)
            max_seconds = to_epoch_seconds(max_time)
        except (TypeError, ValueError) as e:
            raise InvalidRangeError("Invalid time range [%s, %s]: %s" % (min_time, max_time, e))

        dataset_id = make_time_series_id(
            self.internal_name, x, y, min_seconds, max_seconds, self.endpoint.period_label
        )
        rows = self._read_rows(x, y, min_seconds, max_seconds)
        _logger.debug("Time series %s: %d rows", dataset_id, len(rows))
        return self._make_table(rows, dataset_id)

    def _read_rows(self, x, y, min_seconds, max_seconds):
        endpoint = self.endpoint
        index = endpoint.temporal_index

        window = index.window(min_seconds, max_seconds)
        if window is None:
            _logger.info("No %s times in [%s, %s]", endpoint.period_label, min_seconds, max_seconds)
            return []

        shift = reconcile_longitude(endpoint.lon_values, x, x)
        if shift is None:
            _logger.info("x=%s is outside the longitude range %s", x, endpoint.lon_range)
            return []
        lat_lo, lat_hi = endpoint.lat_range
        if y < lat_lo or y > lat_hi:
            _logger.info("y=%s is outside the latitude range %s", y, endpoint.lat_range)
            return []

        lon_index = int(nearest_index(endpoint.lon_values, x + shift)[0])
        lat_index = int(nearest_index(endpoint.lat_values, y)[0])
        result_lon = float(endpoint.lon_values[lon_index]) - shift
        result_lat = float(endpoint.lat_values[lat_index])

        first, last = window
        first_raw, last_raw = index.server_index(first), index.server_index(last)
        result = self.transport.read_range(
            endpoint.handle,
            {
                "time": (first_raw, last_raw, 1),
                "lat": (lat_index, lat_index, 1),
                "lon": (lon_index, lon_index, 1),
            },
        )

        data = np.asarray(result.data).ravel()
        raw_times = np.asarray(result.axes["time"]).ravel()
        echoed_lon = np.asarray(result.axes["lon"]).ravel()
        echoed_lat = np.asarray(result.axes["lat"]).ravel()
        expected_size = last_raw - first_raw + 1
        if data.size != expected_size or raw_times.size != expected_size:
            raise CorruptResponseError(
                "Expected %d values from %s, got %d data and %d times"
                % (expected_size, endpoint.url, data.size, raw_times.size)
            )
        if echoed_lon.size != 1 or not np.isclose(echoed_lon[0] - shift, result_lon):
            raise CorruptResponseError("Expected lon=%s from %s, got %s" % (result_lon, endpoint.url, echoed_lon))
        if echoed_lat.size != 1 or not np.isclose(echoed_lat[0], result_lat):
            raise CorruptResponseError("Expected lat=%s from %s, got %s" % (result_lat, endpoint.url, echoed_lat))

        # raw entries the temporal index dropped (duplicates) are skipped
        kept = set(int(k) for k in index.server_indices[first : last + 1])
        times = endpoint.centered_seconds(raw_times)
        values = endpoint.mask_missing(data)
        gap = expected_gap_seconds(endpoint.n_hours)

        rows = []
        last_time = None
        for k in range(expected_size):
            if first_raw + k not in kept:
                continue
            t = float(times[k])
            if last_time is not None and t - last_time > gap:
                rows.append(TimeSeriesRow(result_lon, result_lat, 0.0, t - gap, self.internal_name, np.nan))
            rows.append(TimeSeriesRow(result_lon, result_lat, 0.0, t, self.internal_name, float(values[k])))
            last_time = t
        return rows

    def _column_attributes(self, role, values, strip=STRIPPED_AXIS_ATTRIBUTES):
        attributes = self.context.attributes(role)
        for name in strip:
            attributes.remove(name)
        attributes.set("actual_range", _actual_range(values))
        return attributes

    def _make_table(self, rows, dataset_id):
        context = self.context
        columns = list(zip(*rows)) if rows else [[] for _ in TimeSeriesRow._fields]
        lon, lat, depth, t, ids, value = columns
        lon, lat, depth, t, value = [np.asarray(c, dtype=float) for c in (lon, lat, depth, t, value)]
        ids = np.asarray(ids, dtype=str)

        time_attributes = self._column_attributes("time", t)
        time_attributes.set("long_name", time_long_name(self.endpoint.period))
        time_attributes.set("units", TIME_UNITS)

        data_attributes = self._column_attributes("data", value, STRIPPED_DATA_ATTRIBUTES)
        data_attributes.set("long_name", context.title)
        data_attributes.set("units", context.units)

        global_attributes = context.attributes("global")
        for name in STRIPPED_GLOBAL_ATTRIBUTES:
            global_attributes.remove(name)
        for name, val in [
            ("title", context.title),
            ("id", dataset_id),
            ("cdm_data_type", "TimeSeries"),
            ("summary", context.summary),
            ("acknowledgement", context.courtesy),
            ("keywords", context.keywords),
            ("keywords_vocabulary", context.keywords_vocabulary),
            ("references", context.references),
        ]:
            if val:
                global_attributes.set(name, val)
        _set_coverage(global_attributes, lon, lat, t)

        return xr.Dataset(
            {
                "LON": ("row", lon, dict(self._column_attributes("lon", lon))),
                "LAT": ("row", lat, dict(self._column_attributes("lat", lat))),
                "DEPTH": ("row", depth, dict(self._column_attributes("depth", depth))),
                "TIME": ("row", t, dict(time_attributes)),
                "ID": ("row", ids, {}),
                self.internal_name: ("row", value, dict(data_attributes)),
            },
            attrs=dict(global_attributes),
        )


def _actual_range(values):
    values = np.asarray(values, dtype=float)
    if values.size == 0 or np.all(np.isnan(values)):
        return None
    return np.array([np.nanmin(values), np.nanmax(values)])


def _set_coverage(attributes, lon, lat, t):
    if lon.size == 0:
        for name in (
            "geospatial_lon_min",
            "geospatial_lon_max",
            "geospatial_lat_min",
            "geospatial_lat_max",
            "geospatial_vertical_min",
            "geospatial_vertical_max",
            "time_coverage_start",
            "time_coverage_end",
        ):
            attributes.remove(name)
        return
    attributes.set("geospatial_lon_min", float(lon.min()))
    attributes.set("geospatial_lon_max", float(lon.max()))
    attributes.set("geospatial_lat_min", float(lat.min()))
    attributes.set("geospatial_lat_max", float(lat.max()))
    attributes.set("geospatial_vertical_min", 0.0)
    attributes.set("geospatial_vertical_max", 0.0)
    attributes.set("time_coverage_start", epoch_seconds_to_iso(t.min()) + "Z")
    attributes.set("time_coverage_end", epoch_seconds_to_iso(t.max()) + "Z")
