"""Exception types for the VPN Gate directory."""


class DirectoryError(Exception):
    """Base exception for this project.

    Every subclass carries a machine-readable ``kind`` that the HTTP layer
    copies into error envelopes.
    """

    kind = "directory_error"


class MalformedUpstreamDocument(DirectoryError):
    """Raised when the feed parser is handed something that is not text."""

    kind = "malformed_upstream_document"


class UpstreamUnavailable(DirectoryError):
    """Raised when the VPN Gate API cannot be reached or answers with an error status."""

    kind = "upstream_unavailable"

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class RegistryUnavailable(DirectoryError):
    """Raised when a refresh fails and there is no cached data to fall back on."""

    kind = "registry_unavailable"


class InvalidRequestParameter(DirectoryError):
    """Raised when a query parameter cannot be coerced to a valid value."""

    kind = "invalid_request_parameter"

    def __init__(self, name: str, value: object, reason: str):
        self.name = name
        self.value = value
        super().__init__(f"Invalid value for '{name}': {value!r} ({reason})")


class InvalidProfilePayload(DirectoryError):
    """Raised when a profile export payload is missing or is not valid base64."""

    kind = "invalid_profile_payload"
