"""
Account-level operations: profile, preferences, export and deletion.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from sqlalchemy.orm import Session

from agentchat.core import security
from agentchat.exceptions import ValidationError
from agentchat.models.user import User
from agentchat.services.api_config_service import api_config_service
from agentchat.services.conversation_store import ConversationStore

logger = logging.getLogger(__name__)

EXPORT_LIMIT = 1000


class UserService:
    def update_preferences(self, db: Session, user: User, preferences: Dict[str, Any]) -> User:
        """Merge ``preferences`` into the stored map."""
        merged = dict(user.preferences or {})
        merged.update(preferences)
        user.preferences = merged
        db.commit()
        db.refresh(user)
        return user

    def update_profile(self, db: Session, user: User, name: str) -> User:
        user.name = name.strip()
        db.commit()
        db.refresh(user)
        return user

    def export_data(self, db: Session, user: User) -> Dict[str, Any]:
        store = ConversationStore(db)
        conversations = store.list_by_owner(user.id, limit=EXPORT_LIMIT, offset=0)
        return {
            "user": user.to_dict(),
            "conversations": [c.to_dict() for c in conversations],
            "apiConfigs": [c.to_safe_dict() for c in api_config_service.list_active(db, user.id)],
            "exportedAt": datetime.utcnow(),
        }

    def delete_account(self, db: Session, user: User, confirm_password: str) -> None:
        """
        Soft-delete the account.

        Conversations are hard deleted, API configs deactivated, and the
        user row is kept but marked ``accountDeleted`` and inactive.
        """
        if not confirm_password:
            raise ValidationError("Password confirmation required")
        if not security.verify_password(confirm_password, user.hashed_password):
            raise ValidationError("Invalid password")

        removed = ConversationStore(db).delete_by_owner(user.id)
        deactivated = api_config_service.deactivate_all(db, user.id)

        preferences = dict(user.preferences or {})
        preferences["accountDeleted"] = True
        user.preferences = preferences
        user.is_active = False
        db.commit()
        logger.info(
            f"Deleted account {user.id}: {removed} conversations removed, "
            f"{deactivated} API configs deactivated"
        )


user_service = UserService()
