# errors.py


class OmdbError(Exception):
    """Base class for failures talking to the OMDb gateway."""


class NetworkError(OmdbError):
    """The request could not be completed (transport error, timeout, bad status or body)."""


class UpstreamLogicalError(OmdbError):
    """OMDb answered but reported ``Response: "False"`` with an error message."""


class ParseError(OmdbError):
    """A field of an otherwise valid response could not be parsed."""
