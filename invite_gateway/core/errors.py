"""
Error types raised by the provider relay.

Upstream and transport failures carry the HTTP status the caller should see;
the exception handlers in invite_gateway.main turn them into
``{"error": message}`` JSON bodies.
"""


class ConfigurationError(RuntimeError):
    """Provider credentials are missing or unusable."""

    status_code = 503


class ProviderError(Exception):
    """The provider answered with a non-success status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ProviderTransportError(ProviderError):
    """The provider could not be reached or did not answer in time."""


class RelayInterruptedError(Exception):
    """The provider stream failed after response headers were sent."""
