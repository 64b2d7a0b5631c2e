from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from passlib.context import CryptContext

from hirelane.core.auth import Principal, parse_bearer_header
from hirelane.core.config import Settings, get_settings
from hirelane.core.telemetry import tag_current_span
from hirelane.services.repository import RepositoryNotFoundError, RepositoryUnavailableError, get_repository
from hirelane.services.states import AccountStatus, Role

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    user_id: int,
    role: str,
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    """Issue a signed access token whose subject is the user id."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    payload = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> dict[str, Any] | None:
    """Return the token payload, or ``None`` when the token is invalid or expired."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except InvalidTokenError:
        return None


def principal_from_user(user: dict[str, Any]) -> Principal:
    return Principal(
        actor_id=user["id"],
        role=Role(user["role"]),
        display_name=user["full_name"],
        email=user["email"],
        account_status=AccountStatus(user["account_status"]),
    )


async def get_optional_principal(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal | None:
    if authorization is None:
        return None
    return await _resolve_principal(authorization, settings, repository)


async def get_principal(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal:
    if authorization is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="bearer token required")
    return await _resolve_principal(authorization, settings, repository)


async def _resolve_principal(authorization: str, settings: Settings, repository: Any) -> Principal:
    token = parse_bearer_header(authorization)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid authorization header")

    payload = decode_access_token(token, settings)
    subject = payload.get("sub") if payload else None
    if not isinstance(subject, str) or not subject.isdigit():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid bearer token")

    # The stored account is authoritative for role and status, not the token claims.
    try:
        user = await repository.get_user(int(subject))
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="account no longer exists") from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    principal = principal_from_user(user)
    tag_current_span(actor_id=principal.actor_id, actor_role=principal.role.value)
    return principal
