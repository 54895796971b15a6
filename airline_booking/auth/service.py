from sqlalchemy.orm import Session
from typing import Optional

from airline_booking.models import User

class UserService:
    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()
