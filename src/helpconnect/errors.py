"""Exceptions raised inside HelpConnect and caught where the user-facing message is built."""


class HelpConnectError(Exception):
    """Base class for all HelpConnect errors."""


class InvalidRequestData(HelpConnectError):
    """A record does not have the shape of a help request."""


class NotOwnerError(HelpConnectError):
    """The acting user does not own the help request."""


class RemoteWriteError(HelpConnectError):
    """The store rejected a write (or could not be reached)."""


class GeocodingError(HelpConnectError):
    """An address could not be turned into coordinates."""
