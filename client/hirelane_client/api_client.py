from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable

import httpx

from hirelane_client.config import Settings
from hirelane_client.errors import (
    ClientConflictError,
    ClientForbiddenError,
    ClientUnavailableError,
    error_from_response,
)
from hirelane_client.session import Session, SessionStore

logger = logging.getLogger(__name__)

# Failures raised before the request body reached the server.
_UNSENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


class HirelaneClient:
    """Async API client with bounded timeouts and retries for transient failures.

    Transport errors and ``503`` responses are retried with capped exponential backoff for reads,
    status changes and the idempotent writes. A status change that lands after its first attempt
    was already applied resolves to the stored record, and a repeated ``apply`` resolves to the
    application the first attempt created. Creates are only retried when the request never
    reached the server.
    """

    def __init__(
        self,
        base_url: str,
        store: SessionStore,
        *,
        timeout_seconds: float = 10.0,
        max_retries: int = 3,
        retry_base_seconds: float = 0.5,
        retry_max_seconds: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.store = store
        self.max_retries = max_retries
        self.retry_base_seconds = retry_base_seconds
        self.retry_max_seconds = retry_max_seconds
        self._sleep = sleep
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, store: SessionStore, **kwargs: Any) -> HirelaneClient:
        return cls(
            settings.api_base_url,
            store,
            timeout_seconds=settings.request_timeout_seconds,
            max_retries=settings.max_retries,
            retry_base_seconds=settings.retry_base_seconds,
            retry_max_seconds=settings.retry_max_seconds,
            **kwargs,
        )

    async def __aenter__(self) -> HirelaneClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # auth

    async def register(
        self,
        *,
        email: str,
        password: str,
        full_name: str,
        role: str = "candidate",
        phone: str | None = None,
    ) -> Session:
        payload = await self._request(
            "POST",
            "/auth/register",
            json={"email": email, "password": password, "full_name": full_name, "role": role, "phone": phone},
            authenticated=False,
            replayable=False,
        )
        session = Session.from_auth_response(payload)
        self.store.set(session)
        return session

    async def login(self, *, email: str, password: str) -> Session:
        payload = await self._request(
            "POST",
            "/auth/login",
            json={"email": email, "password": password},
            authenticated=False,
        )
        session = Session.from_auth_response(payload)
        self.store.set(session)
        return session

    def logout(self) -> None:
        self.store.clear()

    async def me(self) -> dict[str, Any]:
        return await self._request("GET", "/auth/me")

    # jobs

    async def list_jobs(self, **params: Any) -> dict[str, Any]:
        return await self._request("GET", "/jobs", params=_drop_none(params))

    async def my_jobs(self, **params: Any) -> dict[str, Any]:
        return await self._request("GET", "/jobs/mine", params=_drop_none(params))

    async def get_job(self, job_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/jobs/{job_id}")

    async def create_job(self, **fields: Any) -> dict[str, Any]:
        return await self._request("POST", "/jobs", json=fields, replayable=False)

    async def update_job(self, job_id: int, *, expected_version: int | None = None, **fields: Any) -> dict[str, Any]:
        return await self._request("PUT", f"/jobs/{job_id}", json={**fields, "expected_version": expected_version})

    async def set_job_status(
        self,
        job_id: int,
        status: str,
        *,
        note: str | None = None,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        try:
            return await self._request(
                "PATCH",
                f"/jobs/{job_id}/status",
                json={"status": status, "note": note, "expected_version": expected_version},
            )
        except ClientForbiddenError as exc:
            return await self._resolve_transition(exc, self.get_job, job_id, status)

    async def job_transitions(self, job_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/jobs/{job_id}/transitions")

    # applications

    async def apply(
        self,
        job_id: int,
        *,
        cv_file: str,
        cover_letter: str | None = None,
        expected_salary: int | None = None,
    ) -> dict[str, Any]:
        payload = {
            "job_id": job_id,
            "cv_file": cv_file,
            "cover_letter": cover_letter,
            "expected_salary": expected_salary,
        }
        try:
            return await self._request("POST", "/applications", json=payload)
        except ClientConflictError as exc:
            if exc.reason != "duplicate":
                raise
            existing = await self._find_open_application(job_id)
            if existing is None:
                raise
            logger.info("apply resolved to existing application application_id=%s job_id=%s", existing["id"], job_id)
            return existing

    async def withdraw(
        self,
        application_id: int,
        *,
        note: str | None = None,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        try:
            return await self._request(
                "POST",
                f"/applications/{application_id}/withdraw",
                json={"note": note, "expected_version": expected_version},
            )
        except ClientForbiddenError as exc:
            return await self._resolve_transition(exc, self.get_application, application_id, "withdrawn")

    async def update_application_status(
        self,
        application_id: int,
        status: str,
        *,
        note: str | None = None,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        try:
            return await self._request(
                "PUT",
                f"/applications/{application_id}/status",
                json={"status": status, "note": note, "expected_version": expected_version},
            )
        except ClientForbiddenError as exc:
            return await self._resolve_transition(exc, self.get_application, application_id, status)

    async def get_application(self, application_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/applications/{application_id}")

    async def my_applications(self, **params: Any) -> dict[str, Any]:
        return await self._request("GET", "/applications/mine", params=_drop_none(params))

    async def company_applications(self, **params: Any) -> dict[str, Any]:
        return await self._request("GET", "/applications/company", params=_drop_none(params))

    async def application_transitions(self, application_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/applications/{application_id}/transitions")

    # companies

    async def create_company(self, **fields: Any) -> dict[str, Any]:
        return await self._request("POST", "/companies", json=fields, replayable=False)

    async def my_company(self) -> dict[str, Any]:
        return await self._request("GET", "/companies/mine")

    async def update_my_company(self, *, expected_version: int | None = None, **fields: Any) -> dict[str, Any]:
        return await self._request("PUT", "/companies/mine", json={**fields, "expected_version": expected_version})

    async def list_companies(self, **params: Any) -> dict[str, Any]:
        return await self._request("GET", "/companies", params=_drop_none(params))

    # categories

    async def list_categories(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/categories")

    # saved jobs

    async def save_job(self, job_id: int) -> dict[str, Any]:
        return await self._request("POST", "/saved-jobs", json={"job_id": job_id})

    async def unsave_job(self, job_id: int) -> None:
        await self._request("DELETE", f"/saved-jobs/{job_id}")

    async def saved_jobs(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/saved-jobs")

    # admin

    async def approve_job(self, job_id: int, *, note: str | None = None) -> dict[str, Any]:
        return await self._request("POST", f"/admin/jobs/{job_id}/approve", json={"note": note})

    async def reject_job(self, job_id: int, *, note: str | None = None) -> dict[str, Any]:
        return await self._request("POST", f"/admin/jobs/{job_id}/reject", json={"note": note}, replayable=False)

    async def set_company_status(self, company_id: int, status: str, *, note: str | None = None) -> dict[str, Any]:
        return await self._request(
            "PATCH",
            f"/admin/companies/{company_id}/status",
            json={"status": status, "note": note},
        )

    async def set_company_verification(
        self,
        company_id: int,
        verified: bool,
        *,
        note: str | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "PATCH",
            f"/admin/companies/{company_id}/verification",
            json={"verified": verified, "note": note},
        )

    async def create_category(self, *, name: str, description: str | None = None) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/admin/categories",
            json={"name": name, "description": description},
            replayable=False,
        )

    async def get_user(self, user_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/admin/users/{user_id}")

    async def set_user_status(self, user_id: int, status: str, *, note: str | None = None) -> dict[str, Any]:
        return await self._request("PATCH", f"/admin/users/{user_id}/status", json={"status": status, "note": note})

    async def statistics(self) -> dict[str, Any]:
        return await self._request("GET", "/admin/statistics")

    # transport

    async def _find_open_application(self, job_id: int) -> dict[str, Any] | None:
        page = await self.my_applications(job_id=job_id)
        for application in page.get("items", []):
            if application["status"] != "withdrawn":
                return application
        return None

    async def _resolve_transition(
        self,
        exc: ClientForbiddenError,
        fetch: Callable[[int], Awaitable[dict[str, Any]]],
        entity_id: int,
        status: str,
    ) -> dict[str, Any]:
        if exc.reason != "invalid_state":
            raise exc
        current = await fetch(entity_id)
        if current.get("status") != status:
            raise exc
        logger.info("transition already applied entity_id=%s status=%s", entity_id, status)
        return current

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        authenticated: bool = True,
        replayable: bool = True,
    ) -> Any:
        attempt = 0
        while True:
            try:
                response = await self._http.request(
                    method,
                    path,
                    json=json,
                    params=params,
                    headers=self._headers(authenticated),
                )
            except httpx.TransportError as exc:
                unsent = isinstance(exc, _UNSENT_ERRORS)
                if attempt >= self.max_retries or not (replayable or unsent):
                    raise ClientUnavailableError(f"{method} {path} failed: {exc}") from exc
                await self._backoff(attempt, method, path, type(exc).__name__)
                attempt += 1
                continue

            if response.status_code == 503 and replayable and attempt < self.max_retries:
                await self._backoff(attempt, method, path, "status=503")
                attempt += 1
                continue

            if response.status_code == 401 and authenticated:
                logger.info("session rejected by server; clearing stored session")
                self.store.clear()
            if response.is_error:
                raise error_from_response(response)
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

    async def _backoff(self, attempt: int, method: str, path: str, cause: str) -> None:
        delay = min(self.retry_base_seconds * (2**attempt), self.retry_max_seconds)
        delay = min(delay * (1.0 + random.uniform(0.0, 0.25)), self.retry_max_seconds)
        logger.warning(
            "request retry method=%s path=%s attempt=%s cause=%s sleep_seconds=%.2f",
            method,
            path,
            attempt + 1,
            cause,
            delay,
        )
        await self._sleep(delay)

    def _headers(self, authenticated: bool) -> dict[str, str]:
        if not authenticated:
            return {}
        session = self.store.get()
        if session is None:
            return {}
        return {"Authorization": f"Bearer {session.access_token}"}


def _drop_none(params: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None}
