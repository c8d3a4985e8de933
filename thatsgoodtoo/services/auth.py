import logging
from typing import Optional
from sqlmodel import Session, select

from thatsgoodtoo.core.exceptions import InvalidField
from thatsgoodtoo.core.security import create_access_token, get_password_hash, verify_password
from thatsgoodtoo.db.session import commit_or_fail
from thatsgoodtoo.models.user import User, UserRole

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, session: Session):
        self.session = session

    def get_user_by_email(self, email: str) -> Optional[User]:
        # Use ilike for case-insensitive lookup
        return self.session.exec(select(User).where(User.email == email)).first() or \
               self.session.exec(select(User).where(User.email.ilike(email))).first()

    def register_user(self, email: str, password: str, name: Optional[str] = None) -> User:
        if self.get_user_by_email(email):
            raise InvalidField("email", "Email already registered")
        if len(password) < 8:
            raise InvalidField("password", "Password must be at least 8 characters")

        user = User(
            email=email,
            name=name,
            password_hash=get_password_hash(password),
            roles=[UserRole.SHOPPER.value],
            is_active=True,
        )
        self.session.add(user)
        commit_or_fail(self.session, "register_user")
        self.session.refresh(user)

        logger.info(f"Registered user {user.id}")
        return user

    def authenticate_user(self, email: str, password: str) -> tuple[Optional[User], Optional[str]]:
        user = self.get_user_by_email(email)
        if not user:
            return None, "User not found. Please check your email or register a new account."
        if not user.is_active:
            return None, "This account has been deactivated."
        if not verify_password(password, user.password_hash):
            return None, "Incorrect password. Please try again."
        return user, None

    def issue_token(self, user: User) -> str:
        return create_access_token(data={"sub": user.email})
