"""
Ordered attribute store used for global and variable metadata.
"""

from collections import OrderedDict
from copy import deepcopy
import numbers

import numpy as np


class Attributes(OrderedDict):
    """Ordered name -> value map for dataset and variable attributes.

    Values may be strings, numbers or numpy arrays. Setting a value of ``None`` or an empty string removes the
    attribute, so callers can pass optional values straight through.
    """

    def set(self, name, value):
        """Set an attribute, or remove it if value is None or ''"""
        if value is None or (isinstance(value, str) and value == ""):
            self.remove(name)
            return
        if isinstance(value, (list, tuple)):
            value = np.asarray(value)
        self[name] = value

    def remove(self, name):
        """Remove an attribute and return its value (None if it was not present)"""
        return self.pop(name, None)

    def clone(self):
        """Deep copy"""
        return Attributes(deepcopy(list(self.items())))

    def copy_to(self, other):
        """Copy every attribute into other, overwriting attributes with the same name"""
        for k, v in self.items():
            other[k] = deepcopy(v)
        return other

    def get_string(self, name, default=None):
        value = self.get(name)
        if value is None:
            return default
        if isinstance(value, bytes):
            return value.decode("utf-8", "replace")
        if isinstance(value, np.ndarray):
            if value.size == 0:
                return default
            value = value.ravel()[0] if value.size == 1 else ", ".join(str(v) for v in value.ravel())
        return str(value)

    def get_double(self, name, default=np.nan):
        value = self.get(name)
        if value is None:
            return default
        try:
            if isinstance(value, np.ndarray):
                value = value.ravel()[0]
            return float(value)
        except (TypeError, ValueError, IndexError):
            return default

    def get_array(self, name):
        """Attribute as a 1-D numpy array, or None"""
        value = self.get(name)
        if value is None:
            return None
        if isinstance(value, (str, bytes)):
            return None
        return np.atleast_1d(np.asarray(value))

    @classmethod
    def from_mapping(cls, mapping):
        """Attributes from a (possibly nested) dict, as returned by pydap. Nested dicts are skipped."""
        attrs = cls()
        for k, v in (mapping or {}).items():
            if isinstance(v, dict):
                continue
            if isinstance(v, (list, tuple)) and all(isinstance(e, numbers.Number) for e in v):
                v = np.asarray(v)
            attrs[k] = v
        return attrs
