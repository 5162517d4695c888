import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from .config import AUTH_OPTIONAL
from .database import get_db
from .domain.users.repository import UserRepository
from .models import Job, User
from .shared.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


async def get_current_user(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Get the requesting user from the X-User-Id header.

    Identity itself is established upstream (gateway / session layer); this
    only maps the id onto an active user. Returns None when the header is
    missing, malformed, or names an unknown or inactive user.
    """
    if not x_user_id:
        return None

    try:
        user_id = int(x_user_id)
    except ValueError:
        logger.warning(f"⚠️ Malformed X-User-Id header: '{x_user_id[:20]}'")
        return None

    user = UserRepository.get_active_by_id(db, user_id)
    if not user:
        logger.warning(f"⚠️ X-User-Id {user_id} is not an active user")
        return None

    logger.debug(f"✅ Request user: {user.email}")
    return user


def resolve_actor(db: Session, requester: Optional[User], job: Optional[Job] = None) -> User:
    """
    Decide who a mutation is attributed to.

    The requester when there is one. Only in auth-optional deployments does
    this fall back to the job's creator and then to any active user.
    """
    if requester is not None:
        return requester

    if AUTH_OPTIONAL:
        if job is not None and job.created_by:
            creator = UserRepository.get_active_by_id(db, job.created_by)
            if creator:
                logger.debug(f"🔄 No requester, attributing to job creator {creator.id}")
                return creator
        fallback = UserRepository.get_any_active(db)
        if fallback:
            logger.warning(f"⚠️ No requester, attributing to fallback user {fallback.id}")
            return fallback

    raise AuthenticationError("Not authenticated. Provide a valid X-User-Id header.")


async def get_actor(
    current_user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    """Dependency for mutations that are not tied to a specific job"""
    return resolve_actor(db, current_user)
