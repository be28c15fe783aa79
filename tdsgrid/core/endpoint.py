"""
Time period endpoint

One successfully opened OPeNDAP grid for one time period (e.g. the '8 day' composites of a dataset).
"""

import logging

import numpy as np
import traitlets as tl

from tdsgrid.core.settings import settings
from tdsgrid.core.utils import ArrayTrait, parse_time_units
from tdsgrid.core.exceptions import EndpointUnavailable
from tdsgrid.core.time_periods import TimePeriod, end_to_centered
from tdsgrid.core.temporal_index import TemporalIndex
from tdsgrid.core.data.attributes import Attributes

_logger = logging.getLogger(__name__)

# longitude axes spanning at least this many degrees (plus one grid step) are treated as global
FULL_CIRCLE = 360.0


class TimePeriodEndpoint(tl.HasTraits):
    """An opened time period endpoint. Created once during discovery and not modified afterwards.

    Attributes
    ----------
    period : TimePeriod
        Time period, after the 25/33 hour override.
    url : str
        OPeNDAP url of the endpoint.
    url_path : str
        Catalog urlPath of the endpoint.
    handle : EndpointHandle
        Handle from the transport.
    grid_dimension_order : dict
        role ('time', 'depth', 'lat', 'lon') -> position of the axis in the server's storage order.
    lon_values, lat_values : np.ndarray
        Longitude and latitude axis values.
    missing_value : float
        Missing value of the grid variable.
    fill_value : float
        _FillValue of the grid variable (NaN if not declared).
    time_factor, time_base : float
        raw time * time_factor + time_base = epoch seconds.
    end_time : bool
        True if the raw time axis stores the end instants of the composite windows.
    midnight_correction : bool
        Move whole-day end times stored as 23:59:59 to midnight before centering.
    temporal_index : TemporalIndex
        Centered times and their raw time axis positions.
    """

    period = tl.Instance(TimePeriod)
    url = tl.Unicode()
    url_path = tl.Unicode()
    handle = tl.Any()
    grid_dimension_order = tl.Dict()
    lon_values = ArrayTrait(ndim=1, dtype=float)
    lat_values = ArrayTrait(ndim=1, dtype=float)
    missing_value = tl.Float(np.nan)
    fill_value = tl.Float(np.nan)
    time_factor = tl.Float(1.0)
    time_base = tl.Float(0.0)
    end_time = tl.Bool(False)
    midnight_correction = tl.Bool(True)
    time_attributes = tl.Instance(Attributes, args=())
    temporal_index = tl.Instance(TemporalIndex)

    @classmethod
    def from_handle(cls, transport, handle, period, url_path="", midnight_correction=None):
        """Read the axes and grid info of an opened endpoint and build its temporal index.

        Parameters
        ----------
        transport : tdsgrid.core.data.transport.Transport
        handle : EndpointHandle
        period : TimePeriod
        url_path : str, optional
        midnight_correction : bool, optional
            Defaults to ``settings['END_TIME_MIDNIGHT_CORRECTION']``

        Returns
        -------
        TimePeriodEndpoint

        Raises
        ------
        EndpointUnavailable
            If the time axis units cannot be interpreted or the transport fails.
        """
        if midnight_correction is None:
            midnight_correction = bool(settings["END_TIME_MIDNIGHT_CORRECTION"])

        data_attributes = transport.read_attributes(handle, "data")
        time_attributes = transport.read_attributes(handle, "time")

        try:
            time_factor, time_base = parse_time_units(time_attributes.get_string("units", ""))
        except ValueError as e:
            raise EndpointUnavailable("Time axis of '%s': %s" % (handle.url, e))

        long_name = time_attributes.get_string("long_name", "").strip().lower()

        missing_value = data_attributes.get_double("missing_value")
        fill_value = data_attributes.get_double("_FillValue")
        if np.isnan(missing_value):
            missing_value = fill_value
        if np.isnan(missing_value):
            missing_value = float(settings["DEFAULT_MISSING_VALUE"])

        endpoint = cls(
            period=period,
            url=handle.url,
            url_path=url_path,
            handle=handle,
            grid_dimension_order=dict(handle.dimension_order),
            lon_values=transport.read_axis(handle, "lon"),
            lat_values=transport.read_axis(handle, "lat"),
            missing_value=missing_value,
            fill_value=fill_value,
            time_factor=time_factor,
            time_base=time_base,
            end_time=long_name == "end time",
            midnight_correction=midnight_correction,
            time_attributes=time_attributes,
        )
        raw_times = transport.read_axis(handle, "time")
        endpoint.temporal_index = TemporalIndex.build(
            endpoint.raw_to_seconds(raw_times), period.n_hours, endpoint.end_time, midnight_correction
        )
        return endpoint

    def __repr__(self):
        return "TimePeriodEndpoint(%s, %s, %d times)" % (
            self.period_label,
            self.url,
            len(self.temporal_index) if self.temporal_index is not None else 0,
        )

    @property
    def period_label(self):
        return self.period.label

    @property
    def n_hours(self):
        return self.period.n_hours

    @property
    def grid_name(self):
        return self.handle.grid_name

    @property
    def dimension_names(self):
        """Server dimension names of the grid, in storage order"""
        return tuple(self.handle.dimension_names)

    @property
    def lon_range(self):
        return float(np.nanmin(self.lon_values)), float(np.nanmax(self.lon_values))

    @property
    def lat_range(self):
        return float(np.nanmin(self.lat_values)), float(np.nanmax(self.lat_values))

    @property
    def lon_step(self):
        if self.lon_values.size < 2:
            return 0.0
        return float(np.abs(np.diff(self.lon_values)).mean())

    @property
    def lat_step(self):
        if self.lat_values.size < 2:
            return 0.0
        return float(np.abs(np.diff(self.lat_values)).mean())

    @property
    def is_global(self):
        """True if the longitude axis covers a full 360 degree domain"""
        lo, hi = self.lon_range
        return hi - lo + self.lon_step >= FULL_CIRCLE - 1e-6

    def raw_to_seconds(self, raw):
        """Raw time axis values -> epoch seconds"""
        return np.asarray(raw, dtype=float) * self.time_factor + self.time_base

    def centered_seconds(self, raw):
        """Raw time axis values -> centered epoch seconds"""
        seconds = self.raw_to_seconds(raw)
        if self.end_time:
            return end_to_centered(seconds, self.n_hours, self.midnight_correction)
        return seconds

    def mask_missing(self, data):
        """Float copy of data with the missing and fill values replaced by NaN"""
        data = np.asarray(data)
        mask = np.zeros(data.shape, dtype=bool)
        for mv in (self.missing_value, self.fill_value):
            if np.isnan(mv):
                continue
            # compare in the data's own precision, e.g. -1e34 as float32
            if np.issubdtype(data.dtype, np.floating):
                mv = np.array(mv).astype(data.dtype)
            mask |= data == mv
        out = data.astype(float)
        out[mask] = np.nan
        return out
