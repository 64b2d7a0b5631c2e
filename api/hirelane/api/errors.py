from fastapi import HTTPException, status

from hirelane.services.repository import (
    RepositoryConflictError,
    RepositoryError,
    RepositoryForbiddenError,
    RepositoryNotFoundError,
    RepositoryUnauthorizedError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)

_STATUS_CODES: dict[type[RepositoryError], int] = {
    RepositoryValidationError: 422,
    RepositoryUnauthorizedError: status.HTTP_401_UNAUTHORIZED,
    RepositoryForbiddenError: status.HTTP_403_FORBIDDEN,
    RepositoryNotFoundError: status.HTTP_404_NOT_FOUND,
    RepositoryConflictError: status.HTTP_409_CONFLICT,
    RepositoryUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def to_http_exception(exc: RepositoryError) -> HTTPException:
    status_code = next(
        (code for error_type, code in _STATUS_CODES.items() if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "reason": exc.reason, "message": str(exc)},
    )
