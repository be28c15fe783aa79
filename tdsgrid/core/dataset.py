"""
Grid dataset

A dataset served by a THREDDS server as one OPeNDAP grid per time period. Discovery runs when the dataset is created;
afterwards grids and time series can be requested for any of its active time periods.
"""

import logging
from urllib.parse import urlparse

import traitlets as tl

from tdsgrid.core.settings import settings
from tdsgrid.core.utils import common_doc, create_logfile
from tdsgrid.core.catalog_resolver import CatalogResolver
from tdsgrid.core.grid import GridExtractor, COMMON_GRID_DOC
from tdsgrid.core.time_series import TimeSeriesAssembler
from tdsgrid.core.data.catalog import ThreddsCatalog
from tdsgrid.core.data.transport import Transport, PyDAPTransport

_logger = logging.getLogger(__name__)

COMMON_DATASET_DOC = {
    "period_label": "period_label : str\n            One of :meth:`active_periods`, e.g. '8 day'.",
}
COMMON_DATASET_DOC.update(COMMON_GRID_DOC)


class GridDataSet(tl.HasTraits):
    """A gridded dataset from a THREDDS catalog.

    Parameters
    ----------
    internal_name : str
        Logical name of the dataset, e.g. 'TMOk490'. It names the data column of time series, and a suffix of
        '24h', '25h' or '33h' marks single scan directories that actually hold 25 or 33 hour composites.
    catalog_url : str
        URL of the THREDDS catalog directory or ``catalog.xml``, e.g.
        ``https://thredds1.pfeg.noaa.gov/thredds/Satellite/aggregsatMO/k490/``.
    catalog : ThreddsCatalog, optional
        Defaults to a :class:`ThreddsCatalog` for `catalog_url`.
    transport : Transport, optional
        Defaults to a :class:`PyDAPTransport` for the catalog's host.
    known_tokens : list, optional
        Accepted time period tokens, see :class:`CatalogResolver`.
    multithreading : bool, optional
        Open the time period endpoints in parallel. Defaults to ``settings['MULTITHREADING']``.
    midnight_correction : bool, optional
        Defaults to ``settings['END_TIME_MIDNIGHT_CORRECTION']``.

    Raises
    ------
    ConfigurationError
        If the catalog cannot be read or has no OPeNDAP service.

    Examples
    --------
    >>> ds = GridDataSet(internal_name='TMOk490', catalog_url='https://thredds1.pfeg.noaa.gov/thredds/Satellite/aggregsatMO/k490/')
    >>> ds.active_periods()
    ['1 day', '3 day', '8 day']
    >>> grid = ds.make_grid('8 day', ds.times('8 day')[-1], -135, -105, 22, 50, 300, 280)
    """

    internal_name = tl.Unicode()
    catalog_url = tl.Unicode()
    catalog = tl.Any()
    transport = tl.Instance(Transport)
    known_tokens = tl.List(default_value=None, allow_none=True)
    multithreading = tl.Bool(default_value=None, allow_none=True)
    midnight_correction = tl.Bool(default_value=None, allow_none=True)

    @tl.default("catalog")
    def _catalog_default(self):
        return ThreddsCatalog(url=self.catalog_url)

    @tl.default("transport")
    def _transport_default(self):
        return PyDAPTransport(hostname=urlparse(self.catalog_url).netloc)

    def __init__(self, internal_name="", catalog_url="", **kwargs):
        super(GridDataSet, self).__init__(internal_name=internal_name, catalog_url=catalog_url, **kwargs)

        if settings["LOG_TO_FILE"]:
            create_logfile(filename=settings["LOG_FILE_PATH"])

        resolver_kwargs = {}
        for name in ("known_tokens", "multithreading", "midnight_correction"):
            if getattr(self, name) is not None:
                resolver_kwargs[name] = getattr(self, name)

        self._report = CatalogResolver(
            catalog=self.catalog, transport=self.transport, internal_name=self.internal_name, **resolver_kwargs
        ).resolve()

    def __repr__(self):
        return "GridDataSet(%s, [%s])" % (self.internal_name, ", ".join(self.active_periods()))

    @property
    def report(self):
        """:class:`DiscoveryReport` of the discovery pass"""
        return self._report

    @property
    def context(self):
        return self._report.context

    def active_periods(self):
        """Labels of the queryable time periods, in catalog order

        Returns
        -------
        list of str
        """
        return self._report.period_labels

    @common_doc(COMMON_DATASET_DOC)
    def times(self, period_label):
        """Centered times available for a time period

        Parameters
        ----------
        {period_label}

        Returns
        -------
        np.ndarray of str
            ISO 8601 times, ascending.

        Raises
        ------
        NotFoundError
            Unknown period_label
        """
        return self._report.get_endpoint(period_label).temporal_index.iso_times

    @common_doc(COMMON_DATASET_DOC)
    def make_grid(self, period_label, timestamp, min_x, max_x, min_y, max_y, n_wide, n_high):
        """Grid for one time of one time period

        Parameters
        ----------
        {period_label}
        timestamp : str, datetime, np.datetime64, float
            One of :meth:`times` (exact match).
        {bbox}
        n_wide, n_high : int
            Size of the grid.

        Returns
        -------
        xarray.DataArray
            See :meth:`GridExtractor.extract`

        Raises
        ------
        NotFoundError
            Unknown period_label or timestamp
        OutOfRangeError
        EndpointUnavailable
        """
        endpoint = self._report.get_endpoint(period_label)
        extractor = GridExtractor(endpoint=endpoint, transport=self.transport, context=self.context)
        return extractor.extract(timestamp, min_x, max_x, min_y, max_y, n_wide, n_high)

    @common_doc(COMMON_DATASET_DOC)
    def get_time_series(self, x, y, min_time, max_time, period_label):
        """Time series of the grid cell nearest to (x, y)

        Parameters
        ----------
        x, y : float
        min_time, max_time : str, datetime, np.datetime64, float
        {period_label}

        Returns
        -------
        xarray.Dataset
            Row table, see :meth:`TimeSeriesAssembler.assemble`. Empty if there is no data.

        Raises
        ------
        NotFoundError
            Unknown period_label
        InvalidRangeError
        CorruptResponseError
        EndpointUnavailable
        """
        endpoint = self._report.get_endpoint(period_label)
        assembler = TimeSeriesAssembler(
            endpoint=endpoint, transport=self.transport, context=self.context, internal_name=self.internal_name
        )
        return assembler.assemble(x, y, min_time, max_time)

    # -----------------------------------------------------------------------------------------------------------------
    # Descriptive metadata
    # -----------------------------------------------------------------------------------------------------------------

    @property
    def title(self):
        return self.context.title

    @property
    def summary(self):
        return self.context.summary

    @property
    def units(self):
        return self.context.units

    @property
    def courtesy(self):
        return self.context.courtesy

    @property
    def keywords(self):
        return self.context.keywords

    @property
    def references(self):
        return self.context.references

    @property
    def palette_range(self):
        """Suggested (min, max) display range, or None"""
        return self.context.palette_range
