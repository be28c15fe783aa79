"""
tdsgrid Data Module
"""

from tdsgrid.core.data.attributes import Attributes
from tdsgrid.core.data.catalog import ThreddsCatalog, DatasetCatalogEntry
from tdsgrid.core.data.transport import COMMON_TRANSPORT_DOC, Transport, PyDAPTransport
