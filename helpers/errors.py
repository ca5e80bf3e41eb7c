"""
Error types shared by the lookup endpoint, the commerce client and the
notification batch.
"""


class OrderTrackerError(Exception):
    """Base class for every error raised by this service."""


class ValidationError(OrderTrackerError):
    """The caller sent an incomplete or malformed request."""


class AuthorizationError(OrderTrackerError):
    """The shared API key was missing or wrong."""


class ConfigurationError(OrderTrackerError):
    """A required setting (shop domain, access token, secret) is missing."""


class TransportError(OrderTrackerError):
    """The commerce API could not be reached."""


class UpstreamError(OrderTrackerError):
    """The commerce API answered with a non-2xx status or an unreadable body."""

    def __init__(self, status_code: int, body: str = "", url: str = ""):
        self.status_code = status_code
        self.body = body
        self.url = url
        super().__init__(f"Commerce API returned {status_code} for {url or 'request'}")
