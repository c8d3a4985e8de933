from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlmodel import Session, select
from pydantic import BaseModel

from thatsgoodtoo.core.exceptions import Forbidden, Unauthorized
from thatsgoodtoo.core.security import decode_access_token
from thatsgoodtoo.db.session import get_session
from thatsgoodtoo.models.user import User, UserRole
from thatsgoodtoo.services.auth import AuthService

router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/token")
oauth2_scheme_optional = OAuth2PasswordBearer(tokenUrl="api/v1/auth/token", auto_error=False)


class Token(BaseModel):
    access_token: str
    token_type: str

class UserCreate(BaseModel):
    email: str
    password: str
    name: Optional[str] = None

class UserRead(BaseModel):
    id: int
    email: str
    name: Optional[str]
    roles: List[str]
    is_active: bool
    created_at: datetime

def get_auth_service(session: Session = Depends(get_session)) -> AuthService:
    return AuthService(session)

def _user_from_token(token: Optional[str], session: Session) -> Optional[User]:
    if not token:
        return None
    email = decode_access_token(token)
    if email is None:
        return None
    user = session.exec(select(User).where(User.email == email)).first()
    if user is None or not user.is_active:
        return None
    return user

def get_current_user(token: str = Depends(oauth2_scheme), session: Session = Depends(get_session)) -> User:
    user = _user_from_token(token, session)
    if user is None:
        raise Unauthorized("Could not validate credentials", headers={"WWW-Authenticate": "Bearer"})
    return user

def get_current_user_optional(token: Optional[str] = Depends(oauth2_scheme_optional), session: Session = Depends(get_session)) -> Optional[User]:
    return _user_from_token(token, session)

def require_role(role: UserRole):
    """Dependency factory: the caller must hold ``role``."""
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_role(role):
            raise Forbidden(f"{role.value.capitalize()} access required")
        return current_user
    return dependency

get_current_vendor = require_role(UserRole.VENDOR)
get_current_admin = require_role(UserRole.ADMIN)


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(user_in: UserCreate, service: AuthService = Depends(get_auth_service)):
    return service.register_user(user_in.email, user_in.password, name=user_in.name)

@router.post("/token", response_model=Token)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    service: AuthService = Depends(get_auth_service)
):
    user, error_message = service.authenticate_user(form_data.username, form_data.password)
    if not user:
        raise Unauthorized(error_message, headers={"WWW-Authenticate": "Bearer"})
    return {"access_token": service.issue_token(user), "token_type": "bearer"}

@router.get("/me", response_model=UserRead)
def read_user_me(current_user: User = Depends(get_current_user)):
    """
    Get current user.
    """
    return current_user
