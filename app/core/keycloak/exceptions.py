"""Keycloak-specific exceptions for error handling."""


class KeycloakError(Exception):
    """Base exception for all Keycloak operations."""
    pass


class RequestError(KeycloakError):
    """A single Admin API call failed.

    Attributes:
        method: HTTP method of the failed call
        url: Full URL of the failed call
        cause: Underlying exception or error message
    """

    def __init__(self, method: str, url: str, cause):
        self.method = method
        self.url = url
        self.cause = cause
        super().__init__(f"Request failed: {method} {url} ({cause})")


class TransportError(RequestError):
    """Network, connection or timeout failure before a response arrived."""
    pass


class ApiError(RequestError):
    """Non-2xx response from Keycloak Admin API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, method: str, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(method, endpoint, f"[{status_code}] {message}")


class NotFoundError(KeycloakError):
    """An expected element is absent from a successful response."""
    pass


class UserNotFoundError(NotFoundError):
    """User lookup failed - no exact username match."""
    pass


class GroupNotFoundError(NotFoundError):
    """Group does not exist in realm."""
    pass


class AmbiguousMatchError(NotFoundError):
    """More than one element matched where exactly one was expected."""
    pass


class CompensationError(KeycloakError):
    """Delete-and-retry after a failed user creation could not complete.

    Attributes:
        user_code: User code whose compensation failed
        cause: Exception raised by the find or delete call
    """

    def __init__(self, user_code: str, cause: Exception):
        self.user_code = user_code
        self.cause = cause
        super().__init__(f"Compensation failed for codUser {user_code}: {cause}")


class CatalogError(KeycloakError, ValueError):
    """A provisioning step was resolved before its identifiers were known."""
    pass
