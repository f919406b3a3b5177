from __future__ import annotations


class TubeshelfError(Exception):
    """Base class for errors surfaced to the user."""


class NotFoundError(TubeshelfError):
    """No record, selection or file exists for the request."""


class TransportError(TubeshelfError):
    """The search API could not be reached or rejected the request."""


class ParseError(TubeshelfError):
    """The search API returned a body we could not map."""


class ProcessError(TubeshelfError):
    """An external command could not be launched."""


class StoreError(TubeshelfError):
    """The saved-videos file could not be read or written."""
