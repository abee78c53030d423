# app/auth.py
"""Request identity.

Sessions are handled upstream; the authenticated user id reaches this
service in the ``X-User-Id`` header.
"""
from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.orm import Session
from .db import get_db
from .errors import Forbidden, Unauthorized
from .models import User

def get_current_user(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Optional[User]:
    if not x_user_id:
        return None
    try:
        user_id = int(x_user_id)
    except ValueError:
        return None
    return db.get(User, user_id)

def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        raise Unauthorized("Not logged in")
    return user

def require_admin(user: User = Depends(require_user)) -> User:
    if not user.is_admin:
        raise Forbidden("Unauthorized")
    return user
