from fastapi import APIRouter, Depends, status

from hirelane.api.deps import get_account_service
from hirelane.api.errors import to_http_exception
from hirelane.core.auth import Principal
from hirelane.core.security import get_principal
from hirelane.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    TokenOut,
    UserOut,
)
from hirelane.services.accounts import AccountService
from hirelane.services.repository import RepositoryError

router = APIRouter()


@router.post("/register", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
) -> TokenOut:
    try:
        user, token = await accounts.register(
            email=payload.email,
            password=payload.password,
            full_name=payload.full_name,
            role=payload.role,
            phone=payload.phone,
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return TokenOut(access_token=token, user=UserOut(**user))


@router.post("/login", response_model=TokenOut)
async def login(
    payload: LoginRequest,
    accounts: AccountService = Depends(get_account_service),
) -> TokenOut:
    try:
        user, token = await accounts.login(email=payload.email, password=payload.password)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return TokenOut(access_token=token, user=UserOut(**user))


@router.get("/me", response_model=UserOut)
async def me(
    principal: Principal = Depends(get_principal),
    accounts: AccountService = Depends(get_account_service),
) -> UserOut:
    try:
        user = await accounts.get_current_user(principal)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return UserOut(**user)


@router.put("/profile", response_model=UserOut)
async def update_profile(
    payload: ProfileUpdateRequest,
    principal: Principal = Depends(get_principal),
    accounts: AccountService = Depends(get_account_service),
) -> UserOut:
    try:
        user = await accounts.update_profile(principal, payload.model_dump(exclude_unset=True))
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return UserOut(**user)


@router.put("/change-password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    payload: ChangePasswordRequest,
    principal: Principal = Depends(get_principal),
    accounts: AccountService = Depends(get_account_service),
) -> None:
    try:
        await accounts.change_password(
            principal,
            current_password=payload.current_password,
            new_password=payload.new_password,
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
