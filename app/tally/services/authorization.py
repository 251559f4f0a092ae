from __future__ import annotations

from enum import IntEnum

from app.tally.core.context import RequestContext
from app.tally.core.error_catalog import ForbiddenError, ValidationError


class Role(IntEnum):
    VIEWER = 1
    STAFF = 2
    ADMIN = 3

    @classmethod
    def rank(cls, value: str | None) -> int:
        if not value:
            return 0
        try:
            return cls[value.upper()].value
        except KeyError:
            return 0


class AuthorizationGate:
    """Role checks for a single request context."""

    def __init__(self, context: RequestContext):
        self.context = context

    def has_role(self, min_role: Role) -> bool:
        return Role.rank(self.context.role) >= min_role

    def require_role(self, min_role: Role) -> None:
        if not self.has_role(min_role):
            raise ForbiddenError(
                "Insufficient permissions",
                details={"required_role": min_role.name, "role": self.context.role},
            )

    def require_actor(self) -> str:
        if not self.context.user_id:
            raise ValidationError("User ID is required")
        return self.context.user_id
