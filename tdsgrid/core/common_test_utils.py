"""
Test fixtures: in-memory OPeNDAP grids and THREDDS catalogs
"""

import numpy as np
import requests
import traitlets as tl
import pydap.model

from tdsgrid.core.utils import to_epoch_seconds
from tdsgrid.core.data.transport import PyDAPTransport

SERVER = "https://thredds.example.org"
CATALOG_URL = SERVER + "/thredds/Satellite/aggregsatMO/k490/"
DODS_BASE = "/thredds/dodsC/"


def make_catalog_xml(url_paths, base=DODS_BASE, service_type="OPENDAP"):
    """THREDDS catalog document listing one dataset per url path"""
    datasets = "\n".join(
        '    <dataset name="%s" ID="%s" urlPath="%s" />' % (p.rsplit("/", 1)[-1], p, p) for p in url_paths
    )
    service = ""
    if service_type is not None:
        service = '    <service name="ncdods" serviceType="%s" base="%s" />' % (service_type, base)
    return """<?xml version="1.0" encoding="UTF-8"?>
<catalog xmlns="http://www.unidata.ucar.edu/namespaces/thredds/InvCatalog/v1.0" name="Satellite Data Server">
  <service name="all" serviceType="Compound" base="">
%s
  </service>
  <dataset name="Diffuse Attenuation coefficient at 490nm (Turbidity)">
%s
  </dataset>
</catalog>
""" % (
        service,
        datasets,
    )


def end_times(iso_times):
    """Raw 'End Time' axis values (epoch seconds) stored as 23:59:59 the day before the end midnight"""
    return np.array([to_epoch_seconds(t) - 1 for t in iso_times], dtype=float)


def make_grid_dataset(
    times,
    lats,
    lons,
    data=None,
    name="k490",
    time_long_name="End Time",
    time_units="seconds since 1970-01-01T00:00:00Z",
    dims=("time", "altitude", "lat", "lon"),
    data_attributes=None,
    global_attributes=None,
):
    """In-memory pydap dataset with a single (time, altitude, lat, lon) grid

    Parameters
    ----------
    times, lats, lons : array-like
        Axis values; times are raw values in `time_units`
    data : np.ndarray, optional
        Defaults to ``time_index * 10000 + lat_index * 100 + lon_index``
    dims : tuple
        Dimension names in storage order; must be a permutation of the default names (or aliases of them).
    """
    axes = {
        "time": np.asarray(times, dtype=float),
        "altitude": np.array([0.0]),
        "lat": np.asarray(lats, dtype=float),
        "lon": np.asarray(lons, dtype=float),
    }
    aliases = {"t": "time", "z": "altitude", "depth": "altitude", "latitude": "lat", "longitude": "lon"}

    if data is None:
        nt, nlat, nlon = axes["time"].size, axes["lat"].size, axes["lon"].size
        data = (
            np.arange(nt)[:, None, None, None] * 10000.0
            + np.arange(nlat)[None, None, :, None] * 100.0
            + np.arange(nlon)[None, None, None, :]
        ).astype("float32")
        default_order = ("time", "altitude", "lat", "lon")
        data = np.transpose(data, [default_order.index(aliases.get(d, d)) for d in dims])

    axis_attributes = {
        "time": {"units": time_units, "long_name": time_long_name, "axis": "T", "_CoordinateAxisType": "Time"},
        "altitude": {"units": "m", "long_name": "Altitude", "positive": "up", "coordsys": "geographic"},
        "lat": {"units": "degrees_north", "long_name": "Latitude", "point_spacing": "even", "coordsys": "geographic"},
        "lon": {"units": "degrees_east", "long_name": "Longitude", "point_spacing": "even", "coordsys": "geographic"},
    }

    attributes = {
        "long_name": "Diffuse Attenuation Coefficient K490",
        "units": "m-1",
        "missing_value": -9999999.0,
        "_FillValue": -9999999.0,
        "actual_range": [0.01, 6.4],
        "numberOfObservations": 1234,
        "percentCoverage": 0.5,
        "coordsys": "geographic",
    }
    attributes.update(data_attributes or {})

    grid = pydap.model.GridType(name=name, attributes=dict(attributes))
    grid[name] = pydap.model.BaseType(name=name, data=data, dimensions=dims, attributes=dict(attributes))
    for d in dims:
        role = aliases.get(d, d)
        grid[d] = pydap.model.BaseType(name=d, data=axes[role], dimensions=(d,), attributes=axis_attributes[role])

    nc_global = {
        "title": "Diffuse Attenuation K490, Aqua MODIS, NPP, 0.025 degrees, West US",
        "summary": "NASA GSFC Ocean Color Web distributes science-quality chlorophyll-a concentration data. "
        "The units of the data are m-1. This is Science Quality data.",
        "creator_name": "NASA GSFC OBPG",
        "contributor_name": "NASA GSFC (OBPG)",
        "keywords": "Oceans > Ocean Optics > Attenuation/Transmission",
        "keywords_vocabulary": "GCMD Science Keywords",
        "references": "Aqua/MODIS information: https://oceancolor.gsfc.nasa.gov/",
        "cwhdf_version": "3.4",
        "pass_date": [13000],
        "cols": 8001,
        "rows": 6001,
        "cdm_data_type": "Grid",
    }
    nc_global.update(global_attributes or {})

    dataset = pydap.model.DatasetType(name="MO_k490", attributes={"NC_GLOBAL": nc_global})
    dataset[name] = grid
    return dataset


class MockPyDAPTransport(PyDAPTransport):
    """PyDAPTransport that serves in-memory datasets.

    Urls that are not in `datasets` time out. A dataset entry may also be an exception instance, which is raised.
    """

    datasets = tl.Dict()
    opened = tl.List()

    def _open_url(self, url):
        self.opened.append(url)
        dataset = self.datasets.get(url)
        if dataset is None:
            raise requests.exceptions.ConnectTimeout("simulated timeout opening %s" % url)
        if isinstance(dataset, Exception):
            raise dataset
        return dataset


class RecordingTransport(MockPyDAPTransport):
    """MockPyDAPTransport that records every index range request"""

    requests_made = tl.List()

    def read_range(self, handle, index_ranges):
        self.requests_made.append(dict(index_ranges))
        return super(RecordingTransport, self).read_range(handle, index_ranges)
