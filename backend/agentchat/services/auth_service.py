"""
Authentication Service.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from agentchat.core import security
from agentchat.exceptions import ConflictError
from agentchat.models.user import User

logger = logging.getLogger(__name__)


class AuthService:
    def authenticate_user(
        self, db: Session, email: str, password: str
    ) -> Optional[User]:
        """Authenticate a user by email and password."""
        user = self.get_user_by_email(db, email)
        if not user or not user.is_active:
            return None
        if not security.verify_password(password, user.hashed_password):
            return None
        return user

    def get_user_by_email(self, db: Session, email: str) -> Optional[User]:
        """Get a user by email."""
        return db.query(User).filter(User.email == email.lower()).first()

    def get_user_by_id(self, db: Session, user_id: str) -> Optional[User]:
        """Get a user by ID."""
        return db.query(User).filter(User.id == user_id).first()

    def create_user(self, db: Session, email: str, password: str, name: str) -> User:
        """Create a new user."""
        if self.get_user_by_email(db, email):
            raise ConflictError("User with this email already exists")

        db_user = User(
            email=email.lower(),
            hashed_password=security.get_password_hash(password),
            name=name,
            role="user",
            preferences={},
        )
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
        logger.info(f"Registered user {db_user.id}")
        return db_user

    def create_user_token(self, user: User) -> dict:
        """Create access token for user."""
        access_token = security.create_access_token(data={"sub": user.id})
        return {"access_token": access_token, "token_type": "bearer"}


auth_service = AuthService()
