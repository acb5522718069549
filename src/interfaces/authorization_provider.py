"""Abstract base class for caller role lookup.

Authentication happens elsewhere; the engine only asks "what role does
this user hold, and are they active?".
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.lesson import CallerIdentity


class IAuthorizationProvider(ABC):
    """Contract for role/active-status lookups."""

    @abstractmethod
    async def get_caller(self, user_id: str) -> CallerIdentity | None:
        """Return the caller's identity, or ``None`` for an unknown user."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
