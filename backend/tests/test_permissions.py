"""
Tests for the Permission Evaluator.

Covers the static role table, wildcard handling, the god overrides and
the admin section gates.
"""

import pytest

from uproar.services.permissions import (
    ADMIN_SECTIONS,
    GOD_EMAIL,
    ROLE_PERMISSIONS,
    Action,
    Permission,
    Resource,
    Role,
    can_access_admin_section,
    get_permissions_for_roles,
    has_permission,
    is_god,
)


ALL_GRANTS = [
    (role, perm)
    for role, perms in ROLE_PERMISSIONS.items()
    for perm in perms
]


class TestRoleTable:
    """The table itself."""

    def test_every_role_has_an_entry(self):
        assert set(ROLE_PERMISSIONS) == set(Role)

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            ROLE_PERMISSIONS[Role.GUEST] = ()

    def test_permission_is_immutable(self):
        perm = Permission(Resource.ORDERS_READ)
        with pytest.raises(AttributeError):
            perm.action = Action.DELETE

    def test_permission_action_defaults_to_read(self):
        assert Permission(Resource.ORDERS_READ).action == Action.READ

    @pytest.mark.parametrize("role,perm", ALL_GRANTS)
    def test_every_table_grant_is_honored(self, role, perm):
        action = Action.DELETE if perm.action == Action.WILDCARD else perm.action
        assert has_permission([role], perm.resource, action) is True


class TestHasPermission:
    """Tests for has_permission."""

    def test_exact_action_match_only(self):
        assert has_permission([Role.MARKETING], Resource.PRODUCTS_UPDATE, Action.UPDATE) is True
        assert has_permission([Role.MARKETING], Resource.PRODUCTS_UPDATE, Action.DELETE) is False

    def test_wildcard_action_covers_all_actions(self):
        for action in (Action.READ, Action.CREATE, Action.UPDATE, Action.DELETE, Action.EXECUTE):
            assert has_permission([Role.WAREHOUSE], Resource.PRODUCTS_INVENTORY, action) is True

    def test_action_defaults_to_read(self):
        assert has_permission([Role.GUEST], Resource.PRODUCTS_READ) is True
        assert has_permission([Role.GUEST], Resource.ORDERS_READ) is False

    def test_string_arguments(self):
        assert has_permission(["CUSTOMER_SERVICE"], "orders:refund", "update") is True
        assert has_permission(["USER"], "orders:refund", "update") is False

    def test_super_admin_exclusions(self):
        assert has_permission([Role.SUPER_ADMIN], Resource.SYSTEM_LOGS, Action.READ) is True
        assert has_permission([Role.SUPER_ADMIN], Resource.SYSTEM_LOGS, Action.DELETE) is False
        assert has_permission([Role.SUPER_ADMIN], Resource.HR_PAYROLL, Action.READ) is False
        assert has_permission([Role.SUPER_ADMIN], Resource.FINANCE_RECONCILE, Action.READ) is False
        assert has_permission([Role.SUPER_ADMIN], Resource.SYSTEM_MIGRATIONS, Action.EXECUTE) is False

    def test_union_across_roles(self):
        roles = [Role.INTERN, Role.MODERATOR]
        assert has_permission(roles, Resource.USERS_BAN, Action.CREATE) is True
        assert has_permission(roles, Resource.CONTENT_BLOG, Action.CREATE) is True
        assert has_permission(roles, Resource.CONTENT_BLOG, Action.DELETE) is False

    def test_unknown_roles_and_resources(self):
        assert has_permission([], Resource.PRODUCTS_READ) is False
        assert has_permission(["NOT_A_ROLE"], Resource.PRODUCTS_READ) is False
        assert has_permission([Role.ADMIN], "warp:drive", "read") is False
        assert has_permission([Role.ADMIN], Resource.PRODUCTS_READ, "teleport") is True  # products:read is "*"
        assert has_permission([Role.HR], Resource.HR_EMPLOYEES, "teleport") is True
        assert has_permission([Role.GUEST], Resource.PRODUCTS_READ, "teleport") is False

    def test_ungranted_pair_denied_for_all_roles_but_god(self):
        non_god = [role for role in Role if role != Role.GOD]
        assert has_permission(non_god, Resource.SYSTEM_MIGRATIONS, Action.EXECUTE) is False
        assert has_permission(non_god + [Role.GOD], Resource.SYSTEM_MIGRATIONS, Action.EXECUTE) is True


class TestGodOverrides:
    """The god role and the god email bypass the table."""

    def test_god_email_with_no_roles(self):
        assert has_permission([], "system:security", "delete", GOD_EMAIL) is True

    def test_god_role(self):
        assert has_permission([Role.GOD], Resource.SYSTEM_MIGRATIONS, Action.EXECUTE) is True
        assert has_permission([Role.GOD], "anything:at-all", "whatever") is True

    def test_other_email_gets_no_bypass(self):
        assert has_permission([], "system:security", "delete", "someone@example.com") is False

    def test_is_god(self):
        assert is_god([], GOD_EMAIL) is True
        assert is_god([Role.GOD]) is True
        assert is_god([Role.SUPER_ADMIN], "admin@fulluproar.com") is False


class TestGetPermissionsForRoles:
    """Tests for get_permissions_for_roles."""

    def test_single_role(self):
        assert get_permissions_for_roles([Role.GUEST]) == [Permission(Resource.PRODUCTS_READ, Action.READ)]

    def test_union_is_deduplicated_first_seen_wins(self):
        perms = get_permissions_for_roles([Role.INTERN, Role.CONTENT_CREATOR])

        keys = [(p.resource, p.action) for p in perms]
        assert len(keys) == len(set(keys))
        assert keys[0] == (Resource.ADMIN_ACCESS, Action.READ)
        # Both roles grant products:read / read; it appears once
        assert keys.count((Resource.PRODUCTS_READ, Action.READ)) == 1
        # Same resource with different actions stays distinct
        assert (Resource.CONTENT_BLOG, Action.CREATE) in keys
        assert (Resource.CONTENT_BLOG, Action.WILDCARD) in keys

    def test_unknown_and_empty_roles(self):
        assert get_permissions_for_roles([]) == []
        assert get_permissions_for_roles(["NOT_A_ROLE"]) == []


class TestAdminSections:
    """Tests for can_access_admin_section."""

    def test_orders_section(self):
        assert can_access_admin_section([Role.MODERATOR], "orders") is False
        assert can_access_admin_section([Role.CUSTOMER_SERVICE], "orders") is True

    def test_any_listed_permission_opens_section(self):
        assert can_access_admin_section([Role.PRODUCT_MANAGER], "analytics") is True
        assert can_access_admin_section([Role.CONTENT_CREATOR], "marketing") is True
        assert can_access_admin_section([Role.WAREHOUSE], "integrations") is True

    def test_denied_sections(self):
        assert can_access_admin_section([Role.WAREHOUSE], "finance") is False
        assert can_access_admin_section([Role.ADMIN], "settings") is False
        assert can_access_admin_section([Role.ADMIN], "system") is False
        assert can_access_admin_section([Role.SUPER_ADMIN], "system") is True

    def test_unknown_section_denies(self):
        assert can_access_admin_section([Role.GOD], "casino") is False

    def test_god_email_opens_every_section(self):
        for section in ADMIN_SECTIONS:
            assert can_access_admin_section([], section, GOD_EMAIL) is True
