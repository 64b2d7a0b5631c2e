from __future__ import annotations

import logging
from typing import Any

from hirelane.core.auth import Principal
from hirelane.services.authorization import Action, AuthorizationGate, Target
from hirelane.services.concurrency import write_version
from hirelane.services.repository import RepositoryNotFoundError, RepositoryValidationError
from hirelane.services.states import CompanyStatus, coerce_status

logger = logging.getLogger(__name__)

_MODERATED_FIELDS = {"status", "verified"}


class CompanyVerification:
    """Employer company profiles and their admin-controlled status and verification flag."""

    def __init__(self, repository: Any, gate: AuthorizationGate, *, concurrency_policy: str = "versioned") -> None:
        self.repository = repository
        self.gate = gate
        self.concurrency_policy = concurrency_policy

    async def create_company(self, actor: Principal, fields: dict[str, Any]) -> dict[str, Any]:
        self.gate.enforce(actor, Action.CREATE_COMPANY)
        cleaned = self._clean(fields, creating=True)
        company = await self.repository.create_company(owner_user_id=actor.actor_id, fields=cleaned)
        await self._record(company["id"], "created", actor, to_status=company["status"])
        logger.info("company created company_id=%s owner_user_id=%s", company["id"], actor.actor_id)
        return company

    async def get_company(self, actor: Principal | None, company_id: int) -> dict[str, Any]:
        company = await self.repository.get_company(company_id)
        if not self.gate.authorize(actor, Action.VIEW_COMPANY, Target(company=company)).allowed:
            raise RepositoryNotFoundError("company not found")
        return company

    async def get_my_company(self, actor: Principal) -> dict[str, Any]:
        company = await self.repository.get_company_by_owner(actor.actor_id)
        if company is None:
            raise RepositoryNotFoundError("company profile not found")
        return company

    async def update_company(
        self,
        actor: Principal,
        company_id: int,
        fields: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        company = await self.repository.get_company(company_id)
        self.gate.enforce(actor, Action.EDIT_COMPANY, Target(company=company))
        cleaned = self._clean(fields, creating=False)
        if not cleaned:
            return company

        version = write_version(self.concurrency_policy, company["version"], expected_version, entity="company")
        updated = await self.repository.update_company(company_id, cleaned, expected_version=version)
        await self._record(company_id, "updated", actor)
        logger.info("company updated company_id=%s actor_id=%s", company_id, actor.actor_id)
        return updated

    async def set_status(
        self,
        actor: Principal,
        company_id: int,
        status: CompanyStatus | str,
        *,
        note: str | None = None,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        try:
            to_status = coerce_status(CompanyStatus, status)
        except ValueError as exc:
            raise RepositoryValidationError(f"unknown company status: {status}") from exc

        company = await self.repository.get_company(company_id)
        self.gate.enforce(actor, Action.MODERATE_COMPANY, Target(company=company, to_status=to_status.value))
        from_status = company["status"]
        if from_status == to_status.value:
            return company

        version = write_version(self.concurrency_policy, company["version"], expected_version, entity="company")
        updated = await self.repository.update_company(
            company_id,
            {"status": to_status.value},
            expected_version=version,
        )
        await self._record(company_id, "status_changed", actor, from_status=from_status, to_status=to_status.value, note=note)
        logger.info(
            "company status changed company_id=%s from=%s to=%s actor_id=%s",
            company_id,
            from_status,
            to_status.value,
            actor.actor_id,
        )
        return updated

    async def set_verified(
        self,
        actor: Principal,
        company_id: int,
        verified: bool,
        *,
        note: str | None = None,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        company = await self.repository.get_company(company_id)
        self.gate.enforce(actor, Action.MODERATE_COMPANY, Target(company=company))
        if company["verified"] == verified:
            return company

        version = write_version(self.concurrency_policy, company["version"], expected_version, entity="company")
        updated = await self.repository.update_company(company_id, {"verified": verified}, expected_version=version)
        await self._record(company_id, "verified" if verified else "unverified", actor, note=note)
        logger.info("company verification changed company_id=%s verified=%s actor_id=%s", company_id, verified, actor.actor_id)
        return updated

    async def delete_company(self, actor: Principal, company_id: int) -> None:
        company = await self.repository.get_company(company_id)
        self.gate.enforce(actor, Action.MODERATE_COMPANY, Target(company=company))
        await self.repository.delete_company(company_id)
        await self._record(company_id, "deleted", actor, from_status=company["status"])
        logger.info("company deleted company_id=%s actor_id=%s", company_id, actor.actor_id)

    @staticmethod
    def _clean(fields: dict[str, Any], *, creating: bool) -> dict[str, Any]:
        moderated = sorted(_MODERATED_FIELDS & set(fields))
        if moderated:
            raise RepositoryValidationError(f"fields are admin-controlled: {', '.join(moderated)}")
        cleaned = {key: value for key, value in fields.items() if not (value is None and creating)}
        if "company_name" in cleaned or creating:
            name = (cleaned.get("company_name") or "").strip()
            if not name:
                raise RepositoryValidationError("company_name is required")
            cleaned["company_name"] = name
        return cleaned

    async def _record(
        self,
        company_id: int,
        event_type: str,
        actor: Principal,
        *,
        from_status: str | None = None,
        to_status: str | None = None,
        note: str | None = None,
    ) -> None:
        await self.repository.record_event(
            entity_type="company",
            entity_id=company_id,
            event_type=event_type,
            actor_id=actor.actor_id,
            from_status=from_status,
            to_status=to_status,
            note=note,
        )
