class TabletentError(Exception):
    """Base class for errors raised by tabletent."""


class StoreUnavailable(TabletentError):
    """The code pool database could not be opened or queried."""


class MalformedInput(TabletentError):
    """Codes handed to the store-write path are not 6-digit strings."""


class InvalidCount(TabletentError):
    """A requested code count is not an integer in the allowed range."""


class InvalidLayout(TabletentError, ValueError):
    """A layout option is unknown, not allowed here, or out of range."""
