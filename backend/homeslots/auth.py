# backend/homeslots/auth.py
"""
Caller identity.

Authentication happens upstream: the gateway verifies the session and
forwards the result as X-User-Id / X-User-Role headers. This service
only reads them and applies ownership rules.
"""

from dataclasses import dataclass

from fastapi import Header, HTTPException, status

from .services.booking_status import Actor, ActorRole

ROLES = ("provider", "homeowner", "admin")


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def as_actor(self) -> Actor:
        # Admin actions run with system privileges in the booking lifecycle
        if self.is_admin:
            return Actor(ActorRole.SYSTEM, self.user_id)
        return Actor(ActorRole(self.role), self.user_id)


def get_current_user(
    x_user_id: str | None = Header(None),
    x_user_role: str | None = Header(None),
) -> CurrentUser:
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    if x_user_role not in ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unknown role")
    return CurrentUser(user_id=x_user_id, role=x_user_role)


def require_provider_access(user: CurrentUser, provider_id: str) -> None:
    """Providers manage only their own calendar; admins manage any."""
    if user.is_admin:
        return
    if user.role != "provider" or user.user_id != provider_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")


def require_admin(user: CurrentUser) -> None:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
