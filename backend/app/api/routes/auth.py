from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.api.deps import require_auth
from app.core.config import settings
from app.core.security import issue_session_token, new_csrf_token
from app.db.session import get_db
from app.models.enums import AuditAction
from app.models.user import User
from app.schemas.auth import LoginRequest, UserOut
from app.services.audit import record_event
from app.services.users import authenticate_user

router = APIRouter()


def _user_out(user: User, csrf_token: str | None = None) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        provider=user.provider,
        csrf_token=csrf_token,
    )


def _set_session_cookies(response: Response, session_token: str, csrf_token: str) -> None:
    production = settings.environment == "production"
    common = {
        "secure": production,
        # Cross-site frontend in production needs SameSite=None.
        "samesite": "none" if production else "lax",
        "max_age": settings.jwt_expires_minutes * 60,
        "path": "/",
    }
    response.set_cookie(settings.jwt_cookie_name, session_token, httponly=True, **common)
    # JS reads this one and echoes it in X-CSRF-Token.
    response.set_cookie(settings.csrf_cookie_name, csrf_token, httponly=False, **common)


@router.post("/login", response_model=UserOut)
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = authenticate_user(db, payload.email, payload.password)
    csrf = new_csrf_token()
    _set_session_cookies(response, issue_session_token(user.id), csrf)
    record_event(db, AuditAction.LOGIN, target_type="user", target_id=user.id, actor_id=user.id)
    return _user_out(user, csrf)


@router.post("/logout")
def logout(response: Response):
    for name in (settings.jwt_cookie_name, settings.csrf_cookie_name):
        response.delete_cookie(name, path="/")
    return {"ok": True}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(require_auth)):
    return _user_out(user)
