"""Keycloak Admin API client library.

Architecture:
- client.py: HTTP client with bearer authentication and error normalization
- exceptions.py: Typed exceptions for error handling

Usage:
    from app.core.keycloak import KeycloakClient

    client = KeycloakClient("http://keycloak:8080/auth", token)
    groups = client.invoke("GET", "/admin/realms/demo/groups")
"""
from .client import (
    KeycloakClient,
    create_client_with_token,
    REQUEST_TIMEOUT,
)
from .exceptions import (
    KeycloakError,
    RequestError,
    TransportError,
    ApiError,
    NotFoundError,
    UserNotFoundError,
    GroupNotFoundError,
    AmbiguousMatchError,
    CompensationError,
    CatalogError,
)

__all__ = [
    # Client
    "KeycloakClient",
    "create_client_with_token",
    "REQUEST_TIMEOUT",

    # Exceptions
    "KeycloakError",
    "RequestError",
    "TransportError",
    "ApiError",
    "NotFoundError",
    "UserNotFoundError",
    "GroupNotFoundError",
    "AmbiguousMatchError",
    "CompensationError",
    "CatalogError",
]
