from pydantic import BaseModel, EmailStr
from typing import Optional

from airline_booking.models import UserRole

class CurrentUser(BaseModel):
    """Authenticated caller as seen by the booking engine"""
    id: int
    role: UserRole = UserRole.CUSTOMER
    email: Optional[EmailStr] = None
    name: Optional[str] = None

    class Config:
        from_attributes = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

class TokenData(BaseModel):
    user_id: Optional[int] = None
    email: Optional[str] = None
