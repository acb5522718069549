"""Authorization (role lookup) providers."""

from src.providers.auth.static_authorization_provider import StaticAuthorizationProvider

__all__ = ["StaticAuthorizationProvider"]
