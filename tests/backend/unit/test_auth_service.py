"""
Unit tests for services.auth_service workflows.
"""
import pytest

from app.core.errors import (
    AccountDeactivated,
    CurrentPasswordIncorrect,
    DuplicateEmail,
    InvalidCredentials,
    InvalidOrExpiredToken,
    TokenInvalid,
    UserNotFound,
    UserNotFoundOrInactive,
)
from app.core.security import verify_password
from app.models.user import User
from app.services import auth_service as auth_service_module

pytestmark = pytest.mark.asyncio

REGISTRATION = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "email": "ada@example.com",
    "password": "Str0ng@Pass",
}


async def test_register_returns_user_and_token(db, auth_service, token_service):
    result = await auth_service.register(dict(REGISTRATION))

    user = result["user"]
    payload = token_service.decode_access_token(result["token"])
    assert payload["sub"] == str(user.id)
    assert payload["email"] == "ada@example.com"
    assert payload["role"] == "user"
    stored = await User.get(id=user.id)
    assert stored.email_verification_token is not None


async def test_register_duplicate_email(db, auth_service):
    await auth_service.register(dict(REGISTRATION))
    with pytest.raises(DuplicateEmail):
        await auth_service.register(dict(REGISTRATION))


async def test_login_unknown_email_and_wrong_password_look_alike(db, auth_service, create_user):
    user, _ = await create_user(email="known@example.com")

    with pytest.raises(InvalidCredentials) as unknown:
        await auth_service.login("unknown@example.com", "whatever")
    with pytest.raises(InvalidCredentials) as wrong:
        await auth_service.login(user.email, "wrong-password")
    assert unknown.value.message == wrong.value.message == "Invalid credentials"


async def test_login_unknown_email_still_verifies_a_password(db, auth_service, monkeypatch):
    checked = []

    def spy(plain, hashed):
        checked.append(hashed)
        return verify_password(plain, hashed)

    monkeypatch.setattr(auth_service_module, "verify_password", spy)

    with pytest.raises(InvalidCredentials):
        await auth_service.login("nobody@example.com", "whatever")
    assert len(checked) == 1
    assert checked[0].startswith("$argon2")


async def test_login_deactivated_requires_correct_password_first(db, auth_service, create_user):
    user, password = await create_user(is_active=False)

    with pytest.raises(InvalidCredentials):
        await auth_service.login(user.email, "wrong-password")
    with pytest.raises(AccountDeactivated):
        await auth_service.login(user.email, password)


async def test_login_records_last_login(db, auth_service, create_user):
    user, password = await create_user()

    result = await auth_service.login(user.email.upper(), password)

    assert result["user"].id == user.id
    assert (await User.get(id=user.id)).last_login_at is not None


async def test_change_password_with_wrong_current_leaves_hash(db, auth_service, create_user):
    user, password = await create_user()
    before = user.password_hash

    with pytest.raises(CurrentPasswordIncorrect):
        await auth_service.change_password(user.id, "not-it", "New@Pass12")

    assert (await User.get(id=user.id)).password_hash == before


async def test_change_password(db, auth_service, create_user):
    user, password = await create_user()

    await auth_service.change_password(user.id, password, "New@Pass12")

    stored = await User.get(id=user.id)
    assert verify_password("New@Pass12", stored.password_hash)


async def test_password_reset_flow(db, auth_service, create_user):
    user, _ = await create_user()

    generated = await auth_service.generate_password_reset_token(user.email)
    await auth_service.reset_password(generated["resetToken"], "Reset@Pass1")

    login = await auth_service.login(user.email, "Reset@Pass1")
    assert login["user"].id == user.id


async def test_password_reset_for_unknown_email(db, auth_service):
    with pytest.raises(UserNotFound):
        await auth_service.generate_password_reset_token("ghost@example.com")


async def test_new_reset_token_replaces_previous(db, auth_service, create_user):
    user, _ = await create_user()
    first = await auth_service.generate_password_reset_token(user.email)
    second = await auth_service.generate_password_reset_token(user.email)

    with pytest.raises(InvalidOrExpiredToken):
        await auth_service.reset_password(first["resetToken"], "Reset@Pass1")
    await auth_service.reset_password(second["resetToken"], "Reset@Pass1")


async def test_refresh_token_for_active_user(db, auth_service, create_user, token_service):
    user, _ = await create_user()
    token = token_service.issue_for(user)

    result = await auth_service.refresh_token(token)

    assert token_service.decode_access_token(result["token"])["sub"] == str(user.id)


async def test_refresh_token_for_deactivated_user(db, auth_service, create_user, token_service, user_service):
    user, _ = await create_user()
    token = token_service.issue_for(user)
    await user_service.toggle_status(user.id)

    with pytest.raises(UserNotFoundOrInactive):
        await auth_service.refresh_token(token)


async def test_refresh_token_rejects_garbage(db, auth_service):
    with pytest.raises(TokenInvalid):
        await auth_service.refresh_token("garbage")
