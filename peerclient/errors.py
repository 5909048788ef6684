"""Exception types shared across the client."""


class PeerClientError(Exception):
    """Base class for client errors."""


class TransportError(PeerClientError):
    """Raised when a coordinator cannot be reached or answers with an HTTP error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FederationError(PeerClientError):
    """Raised when no usable endpoint can be resolved from the federation."""


class ConfigError(PeerClientError):
    """Raised for configuration files that cannot be loaded."""
