from __future__ import annotations

import logging
from typing import Any

from hirelane.core.auth import Principal
from hirelane.core.config import Settings
from hirelane.core.security import create_access_token, hash_password, verify_password
from hirelane.services.authorization import Action, AuthorizationGate
from hirelane.services.repository import (
    RepositoryForbiddenError,
    RepositoryUnauthorizedError,
    RepositoryValidationError,
)
from hirelane.services.states import AccountStatus, Role, coerce_status

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
SELF_REGISTRATION_ROLES = (Role.CANDIDATE, Role.EMPLOYER)
_PROFILE_FIELDS = {"full_name", "phone"}


class AccountService:
    """Registration, credential checks and admin account management."""

    def __init__(self, repository: Any, gate: AuthorizationGate, settings: Settings) -> None:
        self.repository = repository
        self.gate = gate
        self.settings = settings

    async def register(
        self,
        *,
        email: str,
        password: str,
        full_name: str,
        role: Role | str = Role.CANDIDATE,
        phone: str | None = None,
    ) -> tuple[dict[str, Any], str]:
        try:
            resolved_role = coerce_status(Role, role)
        except ValueError as exc:
            raise RepositoryValidationError(f"unknown role: {role}") from exc
        if resolved_role not in SELF_REGISTRATION_ROLES:
            raise RepositoryForbiddenError("admin accounts cannot be self-registered", reason="forbidden_role")
        _check_password(password)
        if not full_name.strip():
            raise RepositoryValidationError("full_name is required")

        user = await self.repository.create_user(
            email=email.strip().lower(),
            password_hash=hash_password(password),
            full_name=full_name.strip(),
            role=resolved_role.value,
            phone=phone,
        )
        logger.info("user registered user_id=%s role=%s", user["id"], user["role"])
        return user, self._issue_token(user)

    async def login(self, *, email: str, password: str) -> tuple[dict[str, Any], str]:
        credentials = await self.repository.get_user_credentials(email.strip())
        if credentials is None or not verify_password(password, credentials["password_hash"]):
            logger.info("login rejected reason=invalid_credentials")
            raise RepositoryUnauthorizedError("invalid email or password")
        if credentials["account_status"] != AccountStatus.ACTIVE.value:
            logger.info("login rejected user_id=%s reason=account_inactive", credentials["id"])
            raise RepositoryForbiddenError(
                f"account is {credentials['account_status']}",
                reason="account_inactive",
            )
        user = await self.repository.get_user(credentials["id"])
        return user, self._issue_token(user)

    async def get_current_user(self, actor: Principal) -> dict[str, Any]:
        return await self.repository.get_user(actor.actor_id)

    async def update_profile(self, actor: Principal, fields: dict[str, Any]) -> dict[str, Any]:
        self.gate.enforce(actor, Action.EDIT_ACCOUNT)
        unsupported = sorted(set(fields) - _PROFILE_FIELDS)
        if unsupported:
            raise RepositoryValidationError(f"unsupported profile fields: {', '.join(unsupported)}")
        if "full_name" in fields and not (fields["full_name"] or "").strip():
            raise RepositoryValidationError("full_name must not be empty")
        if not fields:
            return await self.repository.get_user(actor.actor_id)
        return await self.repository.update_user(actor.actor_id, fields)

    async def change_password(self, actor: Principal, *, current_password: str, new_password: str) -> None:
        self.gate.enforce(actor, Action.EDIT_ACCOUNT)
        password_hash = await self.repository.get_user_password_hash(actor.actor_id)
        if not verify_password(current_password, password_hash):
            raise RepositoryUnauthorizedError("current password is incorrect")
        _check_password(new_password)
        await self.repository.update_user(actor.actor_id, {"password_hash": hash_password(new_password)})
        logger.info("password changed user_id=%s", actor.actor_id)

    async def get_user(self, actor: Principal, user_id: int) -> dict[str, Any]:
        self.gate.enforce(actor, Action.ADMINISTER)
        return await self.repository.get_user(user_id)

    async def set_user_status(
        self,
        actor: Principal,
        user_id: int,
        status: AccountStatus | str,
        *,
        note: str | None = None,
    ) -> dict[str, Any]:
        self.gate.enforce(actor, Action.ADMINISTER)
        try:
            to_status = coerce_status(AccountStatus, status)
        except ValueError as exc:
            raise RepositoryValidationError(f"unknown account status: {status}") from exc
        if user_id == actor.actor_id:
            raise RepositoryForbiddenError("admins cannot change their own account status", reason="not_owner")

        user = await self.repository.get_user(user_id)
        if user["account_status"] == to_status.value:
            return user
        updated = await self.repository.update_user(user_id, {"account_status": to_status.value})
        await self.repository.record_event(
            entity_type="user",
            entity_id=user_id,
            event_type="status_changed",
            actor_id=actor.actor_id,
            from_status=user["account_status"],
            to_status=to_status.value,
            note=note,
        )
        logger.info(
            "account status changed user_id=%s from=%s to=%s actor_id=%s",
            user_id,
            user["account_status"],
            to_status.value,
            actor.actor_id,
        )
        return updated

    async def delete_user(self, actor: Principal, user_id: int) -> None:
        self.gate.enforce(actor, Action.ADMINISTER)
        if user_id == actor.actor_id:
            raise RepositoryForbiddenError("admins cannot delete their own account", reason="not_owner")
        await self.repository.delete_user(user_id)
        await self.repository.record_event(
            entity_type="user",
            entity_id=user_id,
            event_type="deleted",
            actor_id=actor.actor_id,
        )
        logger.info("user deleted user_id=%s actor_id=%s", user_id, actor.actor_id)

    def _issue_token(self, user: dict[str, Any]) -> str:
        return create_access_token(user["id"], user["role"], self.settings)


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise RepositoryValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
