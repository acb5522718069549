"""In-process role lookup.

Maps user ids to roles from a fixed table (e.g. a YAML ``users:`` section
or a test fixture).  Unknown users resolve to ``None``.
"""

from __future__ import annotations

from src.interfaces.authorization_provider import IAuthorizationProvider
from src.models.lesson import CallerIdentity, UserRole


class StaticAuthorizationProvider(IAuthorizationProvider):
    """Role lookup over a fixed user table."""

    def __init__(self, users: dict[str, CallerIdentity] | None = None) -> None:
        self._users = dict(users or {})

    @classmethod
    def from_mapping(cls, data: dict[str, dict]) -> StaticAuthorizationProvider:
        """Build from ``{user_id: {"role": ..., "is_active": ...}}``."""
        users = {
            user_id: CallerIdentity(
                user_id=user_id,
                role=UserRole(entry.get("role", UserRole.TEACHER.value)),
                is_active=bool(entry.get("is_active", True)),
            )
            for user_id, entry in data.items()
        }
        return cls(users)

    async def get_caller(self, user_id: str) -> CallerIdentity | None:
        return self._users.get(user_id)

    def get_provider_name(self) -> str:
        return "static_authorization"
