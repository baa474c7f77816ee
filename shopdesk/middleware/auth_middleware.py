"""Authentication middleware — protects all routes except public paths."""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from shopdesk.errors import NotAuthenticated
from shopdesk.models.base import session_scope
from shopdesk.services import auth_service

# Paths that never require authentication
PUBLIC_PREFIXES = (
    "/auth/login",
    "/auth/signup",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
)

PUBLIC_PATHS = {"/", "/status"}


class AuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        # Allow public paths through
        if path in PUBLIC_PATHS or any(path.startswith(p) for p in PUBLIC_PREFIXES):
            return await call_next(request)

        # Check session cookie, falling back to a bearer token
        token = request.cookies.get("session_token")
        if not token:
            auth_header = request.headers.get("authorization", "")
            if auth_header.lower().startswith("bearer "):
                token = auth_header[7:].strip()

        user = None
        if token:
            with session_scope() as db:
                user = auth_service.validate_session(db, token)
                if user:
                    db.expunge(user)

        if user:
            # Attach user to request state for downstream use
            request.state.user = user
            return await call_next(request)

        return JSONResponse(status_code=401, content=NotAuthenticated().to_dict())
