"""
OPeNDAP transport

Opens the grid of a time period endpoint, reads its axes and metadata, and requests index ranges of it.
"""

import logging
from collections import namedtuple

import numpy as np
import requests
import traitlets as tl
from webob.exc import HTTPError

# Helper utility for optional imports
from lazy_import import lazy_module

from tdsgrid.core import authentication
from tdsgrid.core.settings import settings
from tdsgrid.core.utils import common_doc
from tdsgrid.core.exceptions import EndpointUnavailable
from tdsgrid.core.data.attributes import Attributes

# Optional dependencies
pydap = lazy_module("pydap")
lazy_module("pydap.client")
lazy_module("pydap.model")
lazy_module("pydap.exceptions")

_logger = logging.getLogger(__name__)

ROLES = ("time", "depth", "lat", "lon")

# dimension names and CF attributes that identify each axis role
ROLE_NAMES = {
    "time": ("time", "t"),
    "depth": ("altitude", "depth", "elevation", "alt", "z", "lev", "level"),
    "lat": ("lat", "latitude", "y"),
    "lon": ("lon", "longitude", "x"),
}
ROLE_AXIS = {"time": "T", "depth": "Z", "lat": "Y", "lon": "X"}
ROLE_STANDARD_NAMES = {
    "time": ("time",),
    "depth": ("altitude", "depth", "height"),
    "lat": ("latitude", "grid_latitude"),
    "lon": ("longitude", "grid_longitude"),
}

EndpointHandle = namedtuple("EndpointHandle", ["url", "dataset", "grid_name", "dimension_names", "dimension_order"])
EndpointHandle.__doc__ = """An opened endpoint.

dimension_names : tuple of str
    Server dimension names of the grid, in storage order
dimension_order : dict
    role ('time', 'depth', 'lat', 'lon') -> position of that axis in storage order
"""

RangeResult = namedtuple("RangeResult", ["data", "axes"])
RangeResult.__doc__ = """Result of an index range request.

data : np.ndarray
    Grid values in storage order
axes : dict
    role -> np.ndarray of the axis values echoed by the server for the requested range
"""

COMMON_TRANSPORT_DOC = {
    "handle": "EndpointHandle\n            Handle returned by :meth:`open_endpoint`",
    "role": "str\n            One of 'time', 'depth', 'lat', 'lon'",
    "index_ranges": (
        "dict\n            role -> (start, stop, stride), stop inclusive. Roles that are not given are read at index 0."
    ),
}


def identify_role(name, attributes=None):
    """Axis role of a grid dimension, or None

    Parameters
    ----------
    name : str
        Dimension name
    attributes : dict, optional
        Attributes of the dimension variable (``axis`` and ``standard_name`` are used)

    Returns
    -------
    str, None
    """
    attributes = attributes or {}
    lname = name.lower()
    for role in ROLES:
        if lname in ROLE_NAMES[role]:
            return role
    axis = str(attributes.get("axis", "")).upper()
    standard_name = str(attributes.get("standard_name", "")).lower()
    for role in ROLES:
        if axis == ROLE_AXIS[role] or standard_name in ROLE_STANDARD_NAMES[role]:
            return role
    return None


def _as_array(var):
    # pydap gives either a numpy array or a BaseType with the numpy array in .data
    if not isinstance(var, np.ndarray) and hasattr(var, "data"):
        var = var.data
    return np.asarray(var)


class Transport(tl.HasTraits):
    """Interface to the array service that serves each time period endpoint."""

    def open_endpoint(self, url):
        """Open an endpoint

        Returns
        -------
        EndpointHandle

        Raises
        ------
        EndpointUnavailable
        """
        raise NotImplementedError

    @common_doc(COMMON_TRANSPORT_DOC)
    def read_axis(self, handle, role):
        """Values of one axis of the grid

        Parameters
        ----------
        handle : {handle}
        role : {role}

        Returns
        -------
        np.ndarray
        """
        raise NotImplementedError

    @common_doc(COMMON_TRANSPORT_DOC)
    def read_attributes(self, handle, role):
        """Attributes of the grid variable or of one of its axes

        Parameters
        ----------
        handle : {handle}
        role : str
            'data' for the grid variable, or an axis role

        Returns
        -------
        :class:`tdsgrid.core.data.attributes.Attributes`
        """
        raise NotImplementedError

    @common_doc(COMMON_TRANSPORT_DOC)
    def read_metadata(self, handle):
        """Descriptive metadata of the endpoint

        Parameters
        ----------
        handle : {handle}

        Returns
        -------
        dict
            'global', 'data' and each role -> :class:`tdsgrid.core.data.attributes.Attributes`
        """
        raise NotImplementedError

    @common_doc(COMMON_TRANSPORT_DOC)
    def read_range(self, handle, index_ranges):
        """Read an index range of the grid

        Parameters
        ----------
        handle : {handle}
        index_ranges : {index_ranges}

        Returns
        -------
        RangeResult
        """
        raise NotImplementedError

    @staticmethod
    def make_index(handle, index_ranges):
        """Tuple of slices in storage order for an index range request"""
        roles = {position: role for role, position in handle.dimension_order.items()}
        key = []
        for position in range(len(handle.dimension_names)):
            role = roles.get(position)
            if role in index_ranges:
                start, stop, stride = index_ranges[role]
                if stride < 1 or stop < start:
                    raise ValueError("Invalid index range for %s: %s" % (role, (start, stop, stride)))
                key.append(slice(int(start), int(stop) + 1, int(stride)))
            else:
                key.append(slice(0, 1, 1))
        return tuple(key)


class PyDAPTransport(authentication.RequestsSessionMixin, Transport):
    """Transport for OPeNDAP servers, using pydap.

    Attributes
    ----------
    timeout : float
        Timeout in seconds for every request. Defaults to ``settings['HTTP_TIMEOUT']``.
    """

    timeout = tl.Float()

    @tl.default("timeout")
    def _timeout_default(self):
        return float(settings["HTTP_TIMEOUT"])

    def _open_url(self, url):
        return pydap.client.open_url(url, session=self.session, timeout=self.timeout)

    def open_endpoint(self, url):
        try:
            dataset = self._open_url(url)
        except (requests.RequestException, HTTPError, OSError, pydap.exceptions.ServerError) as e:
            raise EndpointUnavailable("Could not open OPeNDAP url '%s': %s" % (url, e))

        grid_names = [k for k in dataset.keys() if isinstance(dataset[k], pydap.model.GridType)]
        if not grid_names:
            raise EndpointUnavailable("No grids found in '%s'" % url)
        if len(grid_names) > 1:
            _logger.warning("%d grids found in '%s': %s, using '%s'", len(grid_names), url, grid_names, grid_names[0])
        grid_name = grid_names[0]
        grid = dataset[grid_name]

        dimension_names = tuple(grid.maps.keys())
        dimension_order = {}
        for position, name in enumerate(dimension_names):
            role = identify_role(name, grid[name].attributes)
            if role is not None and role not in dimension_order:
                dimension_order[role] = position

        missing = [role for role in ROLES if role not in dimension_order]
        if missing:
            raise EndpointUnavailable(
                "Grid '%s' in '%s' has dimensions %s; could not find the %s dimension(s)"
                % (grid_name, url, dimension_names, ", ".join(missing))
            )

        return EndpointHandle(url, dataset, grid_name, dimension_names, dimension_order)

    def _fetch(self, handle, var, key):
        try:
            return _as_array(var[key])
        except (requests.RequestException, HTTPError, OSError, pydap.exceptions.ServerError) as e:
            raise EndpointUnavailable("OPeNDAP request to '%s' failed: %s" % (handle.url, e))

    def read_axis(self, handle, role):
        name = handle.dimension_names[handle.dimension_order[role]]
        grid = handle.dataset[handle.grid_name]
        return self._fetch(handle, grid[name], slice(None)).ravel()

    def read_attributes(self, handle, role):
        grid = handle.dataset[handle.grid_name]
        if role == "data":
            attributes = Attributes.from_mapping(grid.attributes)
            attributes.update(Attributes.from_mapping(grid.array.attributes))
            return attributes
        return Attributes.from_mapping(grid[handle.dimension_names[handle.dimension_order[role]]].attributes)

    def read_metadata(self, handle):
        dataset = handle.dataset

        global_attributes = Attributes.from_mapping(dataset.attributes.get("NC_GLOBAL", {}))
        for k, v in Attributes.from_mapping(dataset.attributes).items():
            global_attributes.setdefault(k, v)

        metadata = {"global": global_attributes, "data": self.read_attributes(handle, "data")}
        for role in handle.dimension_order:
            metadata[role] = self.read_attributes(handle, role)
        return metadata

    def read_range(self, handle, index_ranges):
        key = self.make_index(handle, index_ranges)
        grid = handle.dataset[handle.grid_name]
        _logger.debug("Requesting %s%s", handle.url, key)

        data = self._fetch(handle, grid.array, key)
        axes = {}
        for role, position in handle.dimension_order.items():
            axes[role] = self._fetch(handle, grid[handle.dimension_names[position]], key[position]).ravel()
        return RangeResult(data, axes)
