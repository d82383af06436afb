"""Domain entity representing a portal user."""

from dataclasses import dataclass
from datetime import datetime

ROLE_ADMIN = "admin"
ROLE_CANDIDATE = "candidate"
ROLE_EMPLOYER = "employer"


@dataclass
class User:
    """Core attributes describing a Hire portal user."""

    id: int | None
    name: str
    email: str | None
    phone: str | None
    role: str
    is_active: bool
    created_at: datetime | None

    def has_role(self, alias: str) -> bool:
        """Return ``True`` when the user's role matches ``alias``."""

        return self.role.lower() == alias.lower()

    def is_admin(self) -> bool:
        """Return ``True`` when the user is an administrator."""

        return self.has_role(ROLE_ADMIN)


__all__ = ["User", "ROLE_ADMIN", "ROLE_CANDIDATE", "ROLE_EMPLOYER"]
