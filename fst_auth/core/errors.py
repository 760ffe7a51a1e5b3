from fastapi import Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


# body validation failures on these routes are reported like a missing field
VALIDATION_ERROR_CODES = {
    "/auth/nonce": "walletAddress required",
    "/auth/challenge": "walletAddress required",
    "/auth/verify": "missing_params",
}


class AuthError(Exception):
    """Error with a stable machine readable code, rendered as {"success": false, "error": code}."""

    def __init__(self, status_code: int, error: str) -> None:
        super().__init__(error)
        self.status_code = status_code
        self.error = error


def bad_request(error: str) -> AuthError:
    return AuthError(status.HTTP_400_BAD_REQUEST, error)


def unauthorized(error: str) -> AuthError:
    return AuthError(status.HTTP_401_UNAUTHORIZED, error)


def forbidden(error: str) -> AuthError:
    return AuthError(status.HTTP_403_FORBIDDEN, error)


def server_error() -> AuthError:
    return AuthError(status.HTTP_500_INTERNAL_SERVER_ERROR, "server_error")


def _render(exc: AuthError) -> JSONResponse:
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.error},
        headers=headers,
    )


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    return _render(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Missing, non-JSON or mistyped bodies on the login routes are 400s, not 422s."""
    error = VALIDATION_ERROR_CODES.get(request.url.path.rstrip("/"))
    if error is None:
        return await request_validation_exception_handler(request, exc)
    return _render(bad_request(error))
