"""
Exceptions raised by tdsgrid datasets

Discovery errors are absorbed per catalog entry, except :class:`ConfigurationError`.
Query errors always propagate to the caller.
"""


class GridDataSetException(Exception):
    """Base class for exceptions when using tdsgrid datasets"""

    pass


class ConfigurationError(GridDataSetException):
    """The catalog cannot be used at all, e.g. it has no OPeNDAP service descriptor."""

    pass


class EndpointUnavailable(GridDataSetException):
    """A remote endpoint could not be opened or read (unreachable, timed out, unusable grid)."""

    pass


class NotFoundError(GridDataSetException):
    """Unknown time period label, or a timestamp that is not in the temporal index."""

    pass


class OutOfRangeError(GridDataSetException):
    """A point or bounding box cannot be reconciled with the endpoint's axes."""

    pass


class InvalidRangeError(GridDataSetException):
    """Time bounds that cannot be parsed."""

    pass


class CorruptResponseError(GridDataSetException):
    """The server returned data inconsistent with the request, e.g. the wrong grid cell."""

    pass
