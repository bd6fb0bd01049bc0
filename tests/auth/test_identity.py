"""Tests for role resolution and the admin gate."""

import pytest

from intranet.auth.identity import authorize, is_admin, require_admin, resolve_role
from intranet.auth.schemas import Role, Session
from intranet.errors import Unauthenticated, Unauthorized


class TestResolveRole:
    def test_app_metadata_role(self):
        assert resolve_role({"app_metadata": {"role": "ADMIN"}}) is Role.ADMIN

    def test_role_claim_is_case_insensitive(self):
        assert resolve_role({"role": "admin"}) is Role.ADMIN

    def test_supabase_default_role_is_member(self):
        assert resolve_role({"role": "authenticated", "email": "a@example.com"}) is Role.MEMBER

    def test_admin_email_list(self):
        claims = {"email": " Boss@Example.com "}
        assert resolve_role(claims, ["boss@example.com"]) is Role.ADMIN

    def test_unknown_email_is_member(self):
        assert resolve_role({"email": "staff@example.com"}, ["boss@example.com"]) is Role.MEMBER

    def test_empty_claims(self):
        assert resolve_role({}) is Role.MEMBER


class TestAuthorize:
    def test_valid_token(self, jwt_handler, admin_token):
        session = authorize(admin_token, jwt_handler)

        assert session.user_id == "admin-1"
        assert session.email == "admin@example.com"
        assert session.name == "Admin"
        assert session.role is Role.ADMIN

    def test_member_token(self, jwt_handler, member_token):
        assert authorize(member_token, jwt_handler).role is Role.MEMBER

    def test_member_promoted_by_admin_list(self, jwt_handler, member_token):
        session = authorize(member_token, jwt_handler, ["staff@example.com"])
        assert session.role is Role.ADMIN

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token(self, jwt_handler, token):
        with pytest.raises(Unauthenticated):
            authorize(token, jwt_handler)

    def test_garbage_token(self, jwt_handler):
        with pytest.raises(Unauthenticated):
            authorize("not-a-jwt", jwt_handler)


class TestGate:
    def test_is_admin(self):
        assert is_admin(Session(user_id="1", role=Role.ADMIN))
        assert not is_admin(Session(user_id="2", role=Role.MEMBER))
        assert not is_admin(None)

    def test_require_admin_passes(self):
        require_admin(Role.ADMIN)

    @pytest.mark.parametrize("role", [Role.MEMBER, None])
    def test_require_admin_rejects(self, role):
        with pytest.raises(Unauthorized) as exc_info:
            require_admin(role)
        assert exc_info.value.status_code == 403
