"""
Authentication collaborator

Token issuance lives outside this service; requests carry a bearer JWT whose
``user_id`` claim identifies the caller. The booking engine only needs the
caller's id and role (CUSTOMER or ADMIN).
"""

from .dependencies import get_current_user, get_optional_user
from .schemas import CurrentUser

__all__ = [
    "get_current_user",
    "get_optional_user",
    "CurrentUser",
]
