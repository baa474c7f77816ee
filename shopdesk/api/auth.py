"""Authentication API — signup, login, logout, current user."""
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shopdesk.api.deps import require_authenticated
from shopdesk.models.base import get_db
from shopdesk.models.user import User
from shopdesk.services import auth_service
from shopdesk.config import get_settings

router = APIRouter(prefix="/auth", tags=["auth"])


# ── Schemas ──────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: str
    password: str


class SignupRequest(BaseModel):
    email: str
    password: str
    name: str
    shop_name: str
    shop_address: str | None = None


def _user_out(u: User) -> dict:
    return {
        "id": u.id,
        "email": u.email,
        "name": u.name,
        "is_active": u.is_active,
        "created_at": u.created_at.isoformat() if u.created_at else None,
        "last_login": u.last_login.isoformat() if u.last_login else None,
    }


def _session_response(db: Session, user: User, content: dict) -> JSONResponse:
    token = auth_service.create_session(db, user.id)
    settings = get_settings()
    response = JSONResponse(content={**content, "token": token})
    response.set_cookie(
        key="session_token",
        value=token,
        httponly=True,
        secure=settings.environment != "development",
        samesite="lax",
        max_age=60 * 60 * settings.session_duration_hours,
        path="/",
    )
    return response


# ── Auth endpoints ───────────────────────────────────────

@router.post("/signup", status_code=201)
async def signup(body: SignupRequest, db: Session = Depends(get_db)):
    """Register an owner account and its first shop."""
    if len(body.password) < 8:
        raise HTTPException(status_code=400, detail="Password must be at least 8 characters")
    if not body.shop_name.strip():
        raise HTTPException(status_code=400, detail="Shop name is required")
    try:
        user, shop = auth_service.signup(db, body.email, body.password, body.name,
                                         body.shop_name, body.shop_address)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    response = _session_response(db, user, {
        "success": True,
        "user": _user_out(user),
        "shops": [{"id": shop.id, "name": shop.name, "role": "owner"}],
    })
    response.status_code = 201
    return response


@router.post("/login")
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate and return a session cookie."""
    user = auth_service.authenticate(db, body.email, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _session_response(db, user, {"success": True, "user": _user_out(user)})


@router.post("/logout")
async def logout(request: Request, db: Session = Depends(get_db)):
    """Clear session and cookie."""
    token = request.cookies.get("session_token")
    if token:
        auth_service.delete_session(db, token)
    response = JSONResponse(content={"success": True})
    response.delete_cookie("session_token", path="/")
    return response


@router.get("/me")
async def me(user: User = Depends(require_authenticated)):
    """Return current authenticated user."""
    return _user_out(user)
