from __future__ import annotations

import logging
from typing import Any

from hirelane.core.auth import Principal
from hirelane.services.authorization import Action, AuthorizationGate
from hirelane.services.repository import RepositoryValidationError

logger = logging.getLogger(__name__)

MAX_CATEGORY_NAME_LENGTH = 100


class CategoryCatalog:
    """Admin-managed job categories; listing is public."""

    def __init__(self, repository: Any, gate: AuthorizationGate) -> None:
        self.repository = repository
        self.gate = gate

    async def list_categories(self) -> list[dict[str, Any]]:
        return await self.repository.list_category_rows()

    async def get_category(self, category_id: int) -> dict[str, Any]:
        return await self.repository.get_category(category_id)

    async def create_category(self, actor: Principal, fields: dict[str, Any]) -> dict[str, Any]:
        self.gate.enforce(actor, Action.MANAGE_CATEGORIES)
        cleaned = _clean(fields, creating=True)
        category = await self.repository.create_category(fields=cleaned)
        await self._record(category["id"], "created", actor)
        logger.info("category created category_id=%s actor_id=%s", category["id"], actor.actor_id)
        return category

    async def update_category(self, actor: Principal, category_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        self.gate.enforce(actor, Action.MANAGE_CATEGORIES)
        cleaned = _clean(fields, creating=False)
        if not cleaned:
            return await self.repository.get_category(category_id)
        category = await self.repository.update_category(category_id, cleaned)
        await self._record(category_id, "updated", actor)
        logger.info("category updated category_id=%s actor_id=%s", category_id, actor.actor_id)
        return category

    async def delete_category(self, actor: Principal, category_id: int) -> None:
        """Remove a category; its jobs stay published without one."""
        self.gate.enforce(actor, Action.MANAGE_CATEGORIES)
        await self.repository.delete_category(category_id)
        await self._record(category_id, "deleted", actor)
        logger.info("category deleted category_id=%s actor_id=%s", category_id, actor.actor_id)

    async def _record(self, category_id: int, event_type: str, actor: Principal) -> None:
        await self.repository.record_event(
            entity_type="category",
            entity_id=category_id,
            event_type=event_type,
            actor_id=actor.actor_id,
        )


def _clean(fields: dict[str, Any], *, creating: bool) -> dict[str, Any]:
    unsupported = sorted(set(fields) - {"name", "description"})
    if unsupported:
        raise RepositoryValidationError(f"unsupported category fields: {', '.join(unsupported)}")
    cleaned = {key: value for key, value in fields.items() if not (value is None and creating)}
    if "name" in cleaned or creating:
        name = (cleaned.get("name") or "").strip()
        if not name:
            raise RepositoryValidationError("category name is required")
        if len(name) > MAX_CATEGORY_NAME_LENGTH:
            raise RepositoryValidationError(f"category name must be at most {MAX_CATEGORY_NAME_LENGTH} characters")
        cleaned["name"] = name
    return cleaned
