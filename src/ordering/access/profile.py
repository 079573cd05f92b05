"""Profile aggregate: one per authenticated user, carrying the stored role."""

from datetime import UTC, datetime
from enum import Enum

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.utils.logging import get_logger

logger = get_logger(__name__)


class Role(Enum):
    CUSTOMER = "customer"
    FARM = "farm"
    ADMIN = "admin"


class RoleChangeForbidden(Exception):
    """An admin tried to remove their own admin role."""

    def __init__(self, message: str = "Cannot change your own admin role"):
        super().__init__(message)
        self.message = message


@ordering.aggregate
class Profile:
    """The stored identity record of a user, keyed by the auth provider's user id."""

    user_id: Identifier(identifier=True)
    email: String(max_length=254)
    name: String(max_length=200)
    role: String(max_length=20)
    updated_at: DateTime()

    def promote_to_admin(self) -> bool:
        """Upgrade the stored role to admin. Returns False when already admin."""
        if self.role == Role.ADMIN.value:
            return False
        self.role = Role.ADMIN.value
        self.updated_at = datetime.now(UTC)
        return True

    def change_role(self, role: str) -> None:
        try:
            target = Role(role)
        except ValueError:
            raise ValidationError({"role": [f"Invalid role: {role}"]}) from None
        self.role = target.value
        self.updated_at = datetime.now(UTC)


@ordering.command(part_of=Profile)
class ChangeUserRole:
    user_id = Identifier(required=True)
    role = String(required=True, max_length=20)
    changed_by = Identifier(required=True)


@ordering.command_handler(part_of=Profile)
class ChangeUserRoleHandler:
    @handle(ChangeUserRole)
    def change_user_role(self, command):
        repo = current_domain.repository_for(Profile)
        profile = repo.get(command.user_id)

        if (
            str(command.changed_by) == str(command.user_id)
            and profile.role == Role.ADMIN.value
            and command.role != Role.ADMIN.value
        ):
            raise RoleChangeForbidden()

        profile.change_role(command.role)
        repo.add(profile)
        logger.info("User role changed", user_id=str(command.user_id), role=profile.role, changed_by=str(command.changed_by))
        return profile.role
