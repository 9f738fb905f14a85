"""Auth building blocks: JWT, bcrypt passwords, user schemas and UserService."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from src.sf_common.enums import Role
from src.sf_common.errors import (
    AccountDisabledError,
    AuthorizationError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
)
from src.sf_gateway.auth.dependencies import require_roles
from src.sf_gateway.auth.jwt_handler import create_access_token, create_refresh_token, decode_token
from src.sf_gateway.auth.password import hash_password, random_password, verify_password
from src.sf_gateway.user.schemas import RegisterRequest
from src.sf_gateway.user.service import UserService
from tests.unit.fakes import make_user


def _session(lookup: object = None) -> AsyncMock:
    db = AsyncMock()
    db.add = MagicMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = lookup
    db.execute.return_value = result
    return db


class TestJwt:
    def test_access_token_carries_role(self) -> None:
        payload = decode_token(create_access_token("u-1", "ADMIN"), expected_type="access")
        assert payload["sub"] == "u-1"
        assert payload["role"] == "ADMIN"

    def test_refresh_token_rejected_as_access(self) -> None:
        with pytest.raises(InvalidCredentialsError):
            decode_token(create_refresh_token("u-1"), expected_type="access")

    def test_garbage_refresh_token(self) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            decode_token("not-a-jwt", expected_type="refresh")


class TestPassword:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("secret124", hashed)

    def test_random_password_is_unique(self) -> None:
        assert random_password() != random_password()


class TestRegisterRequest:
    def test_password_needs_digit(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(email="a@example.com", name="A", password="lettersonly")

    def test_password_needs_letter(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(email="a@example.com", name="A", password="12345678")

    def test_valid(self) -> None:
        req = RegisterRequest(email="a@example.com", name="A", password="abc12345")
        assert req.phone is None


class TestUserService:
    async def test_register_rejects_duplicate_email(self) -> None:
        with pytest.raises(EmailExistsError):
            await UserService().register("a@example.com", "A", None, "abc12345", _session(make_user()))

    async def test_register_lowercases_email(self) -> None:
        db = _session()
        user = await UserService().register("Ram@Example.com", "Ram", None, "abc12345", db)
        assert user.email == "ram@example.com"
        assert user.role == Role.USER.value
        db.add.assert_called_once_with(user)
        db.flush.assert_awaited_once()

    async def test_login_wrong_password(self) -> None:
        user = make_user()
        user.password_hash = hash_password("right123")
        with pytest.raises(InvalidCredentialsError):
            await UserService().login(user.email, "wrong123", _session(user))

    async def test_login_disabled_account(self) -> None:
        user = make_user()
        user.password_hash = hash_password("right123")
        user.is_active = False
        with pytest.raises(AccountDisabledError):
            await UserService().login(user.email, "right123", _session(user))

    async def test_login_issues_tokens(self) -> None:
        user = make_user(role=Role.STAFF.value)
        user.password_hash = hash_password("right123")
        _, access, refresh = await UserService().login(user.email, "right123", _session(user))
        assert decode_token(access, "access")["role"] == "STAFF"
        assert decode_token(refresh, "refresh")["sub"] == str(user.id)

    async def test_refresh_for_missing_user(self) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            await UserService().refresh(create_refresh_token("not-a-uuid"), _session())

    async def test_provision_returns_existing(self) -> None:
        user = make_user()
        db = _session(user)
        assert await UserService().get_or_provision_customer(user.email, "X", None, db) is user
        db.add.assert_not_called()

    async def test_provision_creates_guest(self) -> None:
        db = _session()
        user = await UserService().get_or_provision_customer("Guest@Example.com", "Guest", "98", db)
        assert user.email == "guest@example.com"
        assert user.password_hash.startswith("$2")
        db.flush.assert_awaited_once()

    async def test_get_rider_filters_role(self) -> None:
        customer = make_user()
        assert await UserService().get_rider(str(customer.id), _session(customer)) is None
        rider = make_user(role=Role.RIDER.value, name="Hari Rider")
        assert await UserService().get_rider(str(rider.id), _session(rider)) is rider


class TestRequireRoles:
    async def test_admits_listed_role(self) -> None:
        dependency = require_roles(Role.ADMIN, Role.STAFF)
        staff = make_user(role=Role.STAFF.value)
        assert await dependency(current_user=staff) is staff

    async def test_rejects_other_roles(self) -> None:
        dependency = require_roles(Role.ADMIN)
        with pytest.raises(AuthorizationError):
            await dependency(current_user=make_user(role=Role.RIDER.value))
