"""
Request identity.

Sessions are verified by the hosted auth provider in front of this API; the
gateway forwards the user's id (and email) as headers. Routers receive the
resulting User explicitly through the `get_current_user` dependency instead
of looking up a session themselves.
"""
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
import logging

from .config import settings
from .database import get_db
from .models.user import User

logger = logging.getLogger(__name__)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the authenticated user, creating the local record on first sight."""
    user_id = request.headers.get(settings.auth_user_header)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )

    user = db.query(User).filter(User.id == user_id).first()
    if user:
        return user

    email = request.headers.get(settings.auth_email_header) or f"{user_id}@users.local"
    user = User(id=user_id, email=email, base_currency=settings.base_currency)
    db.add(user)
    try:
        db.commit()
    except Exception as e:
        logger.error(f"Failed to create user {user_id}: {e}")
        db.rollback()
        raise
    db.refresh(user)
    logger.info(f"Registered user {user_id}")
    return user
