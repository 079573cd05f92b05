"""Role resolution: the single place a user's effective role is computed.

Precedence:
    1. email on the admin allowlist → admin (stored profile upgraded once)
    2. role stored on the profile, when valid
    3. role hint recorded at signup
    4. customer
"""

from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.access.profile import Profile, Role
from ordering.settings import normalize_email
from ordering.utils.logging import get_logger

logger = get_logger(__name__)

_HOME_PATHS = {
    Role.ADMIN: "/admin",
    Role.FARM: "/farm-portal",
    Role.CUSTOMER: "/farms",
}


@dataclass(frozen=True)
class SessionUser:
    """An authenticated user as handed over by the identity provider."""

    user_id: str
    email: str | None = None
    role_hint: str | None = None


def _as_role(value) -> Role | None:
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def home_path_for(role: Role) -> str:
    return _HOME_PATHS[role]


class RoleResolver:
    """Computes effective roles against an injected admin allowlist."""

    def __init__(self, admin_emails=frozenset()):
        self.admin_emails = frozenset(normalize_email(email) for email in admin_emails if email)

    def is_allowlisted(self, email: str | None) -> bool:
        normalized = normalize_email(email)
        return bool(normalized) and normalized in self.admin_emails

    def resolve(self, user: SessionUser, profile_role=None) -> Role:
        """Pure precedence rule over the allowlist, stored role and signup hint."""
        if self.is_allowlisted(user.email):
            return Role.ADMIN

        stored = _as_role(profile_role)
        if stored is not None:
            return stored

        hinted = _as_role(user.role_hint)
        if hinted is not None:
            return hinted

        return Role.CUSTOMER

    def resolve_and_sync(self, user: SessionUser) -> Role:
        """Resolve against the stored profile, upgrading it to admin when allowlisted."""
        repo = current_domain.repository_for(Profile)
        try:
            profile = repo.get(user.user_id)
        except ObjectNotFoundError:
            profile = None

        role = self.resolve(user, profile.role if profile else None)

        if role == Role.ADMIN and self.is_allowlisted(user.email):
            if profile is None:
                profile = Profile(user_id=user.user_id, email=normalize_email(user.email), role=Role.ADMIN.value)
                repo.add(profile)
                logger.info("Admin profile created from allowlist", user_id=user.user_id)
            elif profile.promote_to_admin():
                repo.add(profile)
                logger.info("Profile promoted to admin from allowlist", user_id=user.user_id)

        return role
