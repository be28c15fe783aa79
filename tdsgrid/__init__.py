"""
tdsgrid Module

Gridded datasets from THREDDS catalogs: grids and point time series for every time period (1 day, 8 day, ...)
that a catalog serves over OPeNDAP.

Public API

Attributes
----------
version_info : OrderedDict
    Dict with keys MAJOR, MINOR, HOTFIX depicting version
"""

# Public API
from tdsgrid.core.settings import settings
from tdsgrid.core.dataset import GridDataSet
from tdsgrid.core.exceptions import (
    GridDataSetException,
    ConfigurationError,
    EndpointUnavailable,
    NotFoundError,
    OutOfRangeError,
    InvalidRangeError,
    CorruptResponseError,
)
from tdsgrid.core.time_periods import TIME_PERIODS, TimePeriod

# Organized submodules
# These files are simply wrappers to create a curated namespace of tdsgrid modules
from tdsgrid import data
from tdsgrid import managers
from tdsgrid import utils

## Developer API
from tdsgrid import core

# version handling
from tdsgrid import version

__version__ = version.version()
version_info = version.VERSION_INFO
