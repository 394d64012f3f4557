from __future__ import annotations

from typing import Callable

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import read_session_token
from app.db.session import get_db
from app.models.user import User
from app.services.sharepoint import GraphDriveClient, create_graph_client


def _user_from_cookie(request: Request, db: Session) -> User | None:
    token = request.cookies.get(settings.jwt_cookie_name)
    if not token:
        return None
    try:
        claims = read_session_token(token)
    except (JWTError, KeyError, ValueError):
        return None
    return db.get(User, claims.user_id)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    if not request.cookies.get(settings.jwt_cookie_name):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    user = _user_from_cookie(request, db)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
    return user


def require_auth(user: User = Depends(get_current_user)) -> User:
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden - Admin access required")
    return user


def require_microsoft_admin(user: User = Depends(require_admin)) -> User:
    """
    SharePoint endpoints act with the admin's own Graph token.
    """
    if not user.has_microsoft_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Microsoft SSO required to access SharePoint backups",
        )
    return user


def get_graph_client_factory() -> Callable[[str], GraphDriveClient]:
    return create_graph_client
