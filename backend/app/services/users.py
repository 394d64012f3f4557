from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.security import hash_password, verify_password
from app.models.enums import AuthProvider, UserRole
from app.models.user import User


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.strip().lower()))


def authenticate_user(db: Session, email: str, password: str) -> User:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return user


def create_user(
    db: Session,
    *,
    email: str,
    password: str | None,
    name: str | None = None,
    role: UserRole = UserRole.USER,
    provider: AuthProvider = AuthProvider.CREDENTIALS,
) -> User:
    exists = get_user_by_email(db, email)
    if exists:
        return exists
    user = User(
        email=email.strip().lower(),
        password_hash=hash_password(password) if password else None,
        name=name,
        role=role.value,
        provider=provider.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def find_backup_operator(db: Session) -> User | None:
    """
    First admin holding a Microsoft Graph token; scheduled backups upload with it.
    """
    return db.scalar(
        select(User)
        .where(
            User.role == UserRole.ADMIN.value,
            User.provider == AuthProvider.MICROSOFT.value,
            User.access_token.isnot(None),
        )
        .order_by(User.created_at)
    )
