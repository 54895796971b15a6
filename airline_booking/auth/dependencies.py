from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from typing import Optional

from airline_booking.database import get_db
from airline_booking.auth.utils import verify_token
from airline_booking.auth.service import UserService
from airline_booking.auth.schemas import CurrentUser

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> CurrentUser:
    """Get current authenticated user"""
    credentials_exception = _credentials_exception()

    # Verify token and get payload
    token_data = verify_token(token, credentials_exception)

    # Get user from database
    user = UserService.get_user_by_id(db, user_id=token_data.user_id)
    if user is None:
        raise credentials_exception

    return CurrentUser.model_validate(user)

def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[CurrentUser]:
    """Current user when a bearer token is present, None for anonymous requests"""
    if not token:
        return None
    return get_current_user(token, db)

