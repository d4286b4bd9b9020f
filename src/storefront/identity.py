"""Acting user and role lookup.

Identity itself (sign-in, sessions) is provided externally; this module only
turns an identity id into an Actor by reading the profile row.
"""

from dataclasses import dataclass

from .data_store import DataStore
from .errors import ValidationError
from .models import ROLES, UserProfile


@dataclass(frozen=True)
class Actor:
    """The user performing an operation."""

    id: str
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class ProfileDirectory:
    """Reads and writes rows in the profiles table."""

    def __init__(self, store: DataStore):
        self.store = store

    def get_profile(self, user_id: str) -> UserProfile | None:
        row = self.store.get("profiles", user_id)
        return UserProfile.from_dict(row) if row else None

    def resolve_actor(self, user_id: str | None) -> Actor | None:
        """Build the Actor for an identity id. A user with no profile row is a customer."""
        if not user_id:
            return None
        profile = self.get_profile(user_id)
        return Actor(id=user_id, role=profile.role if profile else "customer")

    def set_role(self, user_id: str, role: str, email: str = "") -> UserProfile:
        """Create or update a profile with the given role."""
        if role not in ROLES:
            raise ValidationError("role", f"Unknown role '{role}'. Use one of: {', '.join(ROLES)}")

        existing = self.get_profile(user_id)
        if existing is None:
            profile = UserProfile(id=user_id, email=email, role=role)
            self.store.insert("profiles", profile.to_dict())
            return profile

        changes: dict[str, str] = {"role": role}
        if email:
            changes["email"] = email
        row = self.store.update("profiles", user_id, changes)
        return UserProfile.from_dict(row) if row else existing
