from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from services.news_api.app import crud
from shared.app_logging.logger import get_logger
from shared.database.models.user import User
from shared.database.session import SessionLocal
from shared.utils.cache import ReadThroughCache, get_cache

logger = get_logger("news_api.deps")


def get_db():
    """Get database session with proper error handling."""
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def get_read_cache() -> ReadThroughCache:
    return get_cache("news_api")


def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """The authenticated caller.

    Authentication happens upstream; the gateway forwards the verified user
    id in ``X-User-Id``.
    """
    if not x_user_id or not x_user_id.isdigit():
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Unauthenticated")

    user = crud.get_user(db, int(x_user_id))
    if user is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    return user
