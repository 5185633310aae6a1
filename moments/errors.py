"""
Exception types raised by the moment handlers and store backends.

Every error is turned into a failure envelope by the handler that catches it;
none of them escape to the HTTP layer.
"""


class MomentsError(Exception):
    """Base class for all service errors."""


class ValidationError(MomentsError):
    """A required request parameter is missing or empty."""


class StoreAccessError(MomentsError):
    """The tabular or blob store rejected or failed a call."""


class DecodeError(MomentsError):
    """The uploaded image payload is not valid base64."""


class DispatchError(MomentsError):
    """The request named an unknown action, or none at all."""
