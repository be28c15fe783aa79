"""
Data Public Module
"""

from tdsgrid.core.data.catalog import ThreddsCatalog, DatasetCatalogEntry
from tdsgrid.core.data.transport import Transport, PyDAPTransport, EndpointHandle, RangeResult
from tdsgrid.core.data.attributes import Attributes
