"""
Utils Public Module
"""

from tdsgrid.core.utils import create_logfile, cached_property, suggest_low_high
from tdsgrid.core.authentication import set_credentials
from tdsgrid.core.time_series import iter_rows, make_time_series_id
