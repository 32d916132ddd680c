"""Unit tests for the role-rights table"""

import pytest

from buildtrack.auth.roles import ROLE_RIGHTS, Right, UserRole, has_right


class TestRoleRights:

    def test_admin_holds_every_right(self):
        assert all(has_right("admin", right) for right in Right)

    def test_plain_user_holds_nothing(self):
        assert not any(has_right("user", right) for right in Right)

    @pytest.mark.parametrize("role,right,expected", [
        ("sales-admin", Right.MANAGE_LEADS, True),
        ("sales-admin", Right.APPROVE_SITE_VISITS, False),
        ("site-engineer", Right.MANAGE_SITE_VISITS, True),
        ("site-engineer", Right.MANAGE_LEADS, False),
        ("site-engineer", Right.MANAGE_SITEWORKS, True),
        ("sales-admin", Right.MANAGE_USERS, False),
        ("architect", Right.MANAGE_SITEWORKS, False),
        ("architect", Right.MANAGE_BOMS, True),
        ("architect", Right.REVIEW_BOMS, False),
        ("procurement", Right.MANAGE_PROCUREMENT, True),
        ("procurement", Right.MANAGE_WALLET, False),
        ("customer", Right.REVIEW_DOCUMENTS, True),
        ("customer", Right.MANAGE_PROJECTS, False),
    ])
    def test_rights_table(self, role, right, expected):
        assert has_right(role, right) is expected

    def test_unknown_role_has_no_rights(self):
        assert has_right("superuser", Right.MANAGE_USERS) is False

    def test_every_role_is_in_the_table(self):
        assert set(ROLE_RIGHTS) == set(UserRole)
