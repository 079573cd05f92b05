import pytest
from ordering.access.profile import ChangeUserRole, Profile, Role, RoleChangeForbidden
from ordering.access.roles import RoleResolver, SessionUser
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


def _profile(user_id):
    return current_domain.repository_for(Profile).get(user_id)


class TestResolveAndSync:
    def test_allowlisted_user_without_profile_gets_admin_profile(self):
        resolver = RoleResolver({"ops@farmlink.uk"})

        role = resolver.resolve_and_sync(SessionUser(user_id="user-ops", email="  OPS@Farmlink.uk "))

        assert role == Role.ADMIN
        profile = _profile("user-ops")
        assert profile.role == "admin"
        assert profile.email == "ops@farmlink.uk"

    def test_allowlisted_customer_is_promoted(self):
        current_domain.repository_for(Profile).add(
            Profile(user_id="user-ops", email="ops@farmlink.uk", role=Role.CUSTOMER.value)
        )

        role = RoleResolver({"ops@farmlink.uk"}).resolve_and_sync(
            SessionUser(user_id="user-ops", email="ops@farmlink.uk")
        )

        assert role == Role.ADMIN
        assert _profile("user-ops").role == "admin"

    def test_stored_role_wins_over_hint(self):
        current_domain.repository_for(Profile).add(
            Profile(user_id="user-farmer", email="farmer@example.com", role=Role.FARM.value)
        )

        role = RoleResolver().resolve_and_sync(
            SessionUser(user_id="user-farmer", email="farmer@example.com", role_hint="customer")
        )

        assert role == Role.FARM

    def test_non_admin_without_profile_creates_nothing(self):
        role = RoleResolver({"ops@farmlink.uk"}).resolve_and_sync(
            SessionUser(user_id="user-new", email="new@example.com", role_hint="farm")
        )

        assert role == Role.FARM
        assert current_domain.repository_for(Profile)._dao.query.all().items == []

    def test_removed_from_allowlist_keeps_stored_admin(self):
        current_domain.repository_for(Profile).add(
            Profile(user_id="user-ex", email="ex@farmlink.uk", role=Role.ADMIN.value)
        )

        role = RoleResolver().resolve_and_sync(SessionUser(user_id="user-ex", email="ex@farmlink.uk"))

        assert role == Role.ADMIN


def _change_role(user_id, role, changed_by="user-ops"):
    return current_domain.process(
        ChangeUserRole(user_id=user_id, role=role, changed_by=changed_by),
        asynchronous=False,
    )


class TestChangeUserRole:
    def test_admin_sets_stored_role(self):
        current_domain.repository_for(Profile).add(Profile(user_id="user-jo", role=Role.CUSTOMER.value))

        assert _change_role("user-jo", "farm") == "farm"
        assert _profile("user-jo").role == "farm"

    def test_stored_role_feeds_resolution(self):
        current_domain.repository_for(Profile).add(Profile(user_id="user-jo", role=Role.FARM.value))

        _change_role("user-jo", "customer")

        role = RoleResolver().resolve_and_sync(SessionUser(user_id="user-jo", role_hint="farm"))
        assert role == Role.CUSTOMER

    def test_unknown_role_rejected(self):
        current_domain.repository_for(Profile).add(Profile(user_id="user-jo", role=Role.CUSTOMER.value))

        with pytest.raises(ValidationError):
            _change_role("user-jo", "superuser")
        assert _profile("user-jo").role == "customer"

    def test_unknown_user(self):
        with pytest.raises(ObjectNotFoundError):
            _change_role("user-missing", "farm")

    def test_admin_cannot_remove_own_admin_role(self):
        current_domain.repository_for(Profile).add(Profile(user_id="user-ops", role=Role.ADMIN.value))

        with pytest.raises(RoleChangeForbidden):
            _change_role("user-ops", "customer", changed_by="user-ops")
        assert _profile("user-ops").role == "admin"

    def test_admin_can_demote_another_admin(self):
        current_domain.repository_for(Profile).add(Profile(user_id="user-ex", role=Role.ADMIN.value))

        _change_role("user-ex", "customer", changed_by="user-ops")
        assert _profile("user-ex").role == "customer"
