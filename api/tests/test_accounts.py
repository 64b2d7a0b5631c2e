from __future__ import annotations

import asyncio

import pytest

from hirelane.core.config import Settings
from hirelane.core.security import decode_access_token, principal_from_user
from hirelane.services.accounts import AccountService
from hirelane.services.repository import (
    RepositoryConflictError,
    RepositoryForbiddenError,
    RepositoryNotFoundError,
    RepositoryUnauthorizedError,
    RepositoryValidationError,
)

SETTINGS = Settings(jwt_secret_key="test-secret", otel_enabled=False)


@pytest.fixture
def accounts(marketplace) -> AccountService:
    return AccountService(marketplace.repository, marketplace.gate, SETTINGS)


def test_register_issues_token_for_new_user(accounts) -> None:
    async def scenario() -> None:
        user, token = await accounts.register(
            email="  Ada@Example.com ",
            password="correct-horse",
            full_name="Ada Lovelace",
            role="employer",
        )
        assert user["email"] == "ada@example.com"
        assert user["role"] == "employer"
        assert "password_hash" not in user

        payload = decode_access_token(token, SETTINGS)
        assert payload is not None
        assert payload["sub"] == str(user["id"])

        with pytest.raises(RepositoryConflictError):
            await accounts.register(email="ADA@example.com", password="another-pass", full_name="Imposter")

    asyncio.run(scenario())


def test_register_rejects_admin_role_and_short_passwords(accounts) -> None:
    async def scenario() -> None:
        with pytest.raises(RepositoryForbiddenError) as exc_info:
            await accounts.register(email="root@example.com", password="long-enough", full_name="Root", role="admin")
        assert exc_info.value.reason == "forbidden_role"

        with pytest.raises(RepositoryValidationError):
            await accounts.register(email="short@example.com", password="short", full_name="Short")
        with pytest.raises(RepositoryValidationError):
            await accounts.register(email="who@example.com", password="long-enough", full_name="Who", role="owner")

    asyncio.run(scenario())


def test_login_checks_password_and_account_status(accounts, marketplace) -> None:
    async def scenario() -> None:
        user, _ = await accounts.register(email="bob@example.com", password="s3cret-pass", full_name="Bob")

        logged_in, token = await accounts.login(email="BOB@example.com", password="s3cret-pass")
        assert logged_in["id"] == user["id"]
        assert decode_access_token(token, SETTINGS)["role"] == "candidate"

        with pytest.raises(RepositoryUnauthorizedError):
            await accounts.login(email="bob@example.com", password="wrong-pass")
        with pytest.raises(RepositoryUnauthorizedError):
            await accounts.login(email="nobody@example.com", password="s3cret-pass")

        await accounts.set_user_status(await marketplace.admin(), user["id"], "banned", note="spam")
        with pytest.raises(RepositoryForbiddenError) as exc_info:
            await accounts.login(email="bob@example.com", password="s3cret-pass")
        assert exc_info.value.reason == "account_inactive"

    asyncio.run(scenario())


def test_inactive_account_is_denied_everywhere(accounts, marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        job = await marketplace.active_job(employer)
        candidate = await marketplace.user("candidate")

        await accounts.set_user_status(await marketplace.admin(), candidate.actor_id, "inactive")
        stale = principal_from_user(await marketplace.repository.get_user(candidate.actor_id))

        with pytest.raises(RepositoryForbiddenError) as exc_info:
            await marketplace.apply(stale, job)
        assert exc_info.value.reason == "account_inactive"

    asyncio.run(scenario())


def test_change_password_requires_current_password(accounts) -> None:
    async def scenario() -> None:
        user, _ = await accounts.register(email="eve@example.com", password="first-pass", full_name="Eve")
        actor = principal_from_user(user)

        with pytest.raises(RepositoryUnauthorizedError):
            await accounts.change_password(actor, current_password="wrong-pass", new_password="second-pass")
        with pytest.raises(RepositoryValidationError):
            await accounts.change_password(actor, current_password="first-pass", new_password="tiny")

        await accounts.change_password(actor, current_password="first-pass", new_password="second-pass")
        await accounts.login(email="eve@example.com", password="second-pass")
        with pytest.raises(RepositoryUnauthorizedError):
            await accounts.login(email="eve@example.com", password="first-pass")

    asyncio.run(scenario())


def test_profile_update_is_limited_to_name_and_phone(accounts) -> None:
    async def scenario() -> None:
        user, _ = await accounts.register(email="dan@example.com", password="long-enough", full_name="Dan")
        actor = principal_from_user(user)

        updated = await accounts.update_profile(actor, {"full_name": "Daniel", "phone": "+84 900"})
        assert updated["full_name"] == "Daniel"
        assert updated["phone"] == "+84 900"

        with pytest.raises(RepositoryValidationError):
            await accounts.update_profile(actor, {"role": "admin"})
        with pytest.raises(RepositoryValidationError):
            await accounts.update_profile(actor, {"full_name": "  "})

    asyncio.run(scenario())


def test_admin_cannot_lock_or_delete_self(accounts, marketplace) -> None:
    async def scenario() -> None:
        admin = await marketplace.admin()
        with pytest.raises(RepositoryForbiddenError):
            await accounts.set_user_status(admin, admin.actor_id, "inactive")
        with pytest.raises(RepositoryForbiddenError):
            await accounts.delete_user(admin, admin.actor_id)

        candidate = await marketplace.user("candidate")
        with pytest.raises(RepositoryForbiddenError):
            await accounts.delete_user(candidate, admin.actor_id)

        await accounts.delete_user(admin, candidate.actor_id)
        assert candidate.actor_id not in marketplace.repository.users

    asyncio.run(scenario())


def test_banned_account_cannot_edit_profile_or_password(accounts, marketplace) -> None:
    async def scenario() -> None:
        user, _ = await accounts.register(email="mal@example.com", password="first-pass", full_name="Mal")
        await accounts.set_user_status(await marketplace.admin(), user["id"], "banned", note="abuse")
        banned = principal_from_user(await marketplace.repository.get_user(user["id"]))

        with pytest.raises(RepositoryForbiddenError) as profile:
            await accounts.update_profile(banned, {"full_name": "Someone Else"})
        with pytest.raises(RepositoryForbiddenError) as password:
            await accounts.change_password(banned, current_password="first-pass", new_password="second-pass")

        assert profile.value.reason == "account_inactive"
        assert password.value.reason == "account_inactive"
        stored = await marketplace.repository.get_user(user["id"])
        assert stored["full_name"] == "Mal"
        with pytest.raises(RepositoryUnauthorizedError):
            await accounts.login(email="mal@example.com", password="second-pass")

    asyncio.run(scenario())


def test_admin_reads_any_user(accounts, marketplace) -> None:
    async def scenario() -> None:
        admin = await marketplace.admin()
        candidate = await marketplace.user("candidate", full_name="Cara")

        loaded = await accounts.get_user(admin, candidate.actor_id)
        assert loaded["full_name"] == "Cara"
        assert "password_hash" not in loaded

        with pytest.raises(RepositoryForbiddenError):
            await accounts.get_user(candidate, admin.actor_id)
        with pytest.raises(RepositoryNotFoundError):
            await accounts.get_user(admin, 404)

    asyncio.run(scenario())
