"""User repository - Lookups used to attribute audit records"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import User


class UserRepository:
    """Repository for user directory lookups"""

    @staticmethod
    def get_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_active_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()

    @staticmethod
    def get_any_active(db: Session) -> Optional[User]:
        """Oldest active user, used only as an audit-author fallback"""
        return db.query(User).filter(User.is_active.is_(True)).order_by(User.id.asc()).first()
