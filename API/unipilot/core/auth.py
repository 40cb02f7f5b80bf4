from fastapi import Depends
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import Request

from unipilot.core.errors import DomainError, error_envelope
from unipilot.core.jwt_auth import student_id_from_token
from unipilot.core.settings import settings


# Reachable without the gateway key (probes and API docs).
EXEMPT_PATH_PREFIXES = (
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
)

_bearer = HTTPBearer(auto_error=False)


class UnauthorizedError(DomainError):
    status_code = 401
    code = "unauthorized"


async def api_key_auth_middleware(request: Request, call_next):
    if settings.gateway_auth_enabled and not request.url.path.startswith(EXEMPT_PATH_PREFIXES):
        provided = request.headers.get("x-api-key", "")
        if not settings.gateway_api_key or provided != settings.gateway_api_key:
            return JSONResponse(
                status_code=401,
                content=error_envelope(request, "unauthorized", "Unauthorized: invalid or missing x-api-key"),
            )
    return await call_next(request)


async def current_student_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> int:
    """Resolve the authenticated student from the bearer token's ``sub`` claim."""
    if credentials is None:
        raise UnauthorizedError("Missing bearer token.")
    student_id = student_id_from_token(credentials.credentials)
    if student_id is None:
        raise UnauthorizedError("Invalid or expired token.")
    return student_id
