"""
API configuration service.

CRUD over per-user provider configurations. Deletion is soft
(``is_active = False``); lookups are scoped by owner and foreign rows are
reported as missing.
"""

import logging
import random
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from agentchat.exceptions import ConflictError, NotFoundError
from agentchat.models.api_config import ApiConfig
from agentchat.schemas import ApiConfigCreate, ApiConfigUpdate

logger = logging.getLogger(__name__)


class ApiConfigService:
    def list_active(self, db: Session, user_id: str) -> List[ApiConfig]:
        return (
            db.query(ApiConfig)
            .filter(ApiConfig.user_id == user_id, ApiConfig.is_active.is_(True))
            .order_by(ApiConfig.updated_at.desc())
            .all()
        )

    def provider_names(self, db: Session, user_id: str) -> List[str]:
        return [config.provider_name for config in self.list_active(db, user_id)]

    def get(self, db: Session, user_id: str, config_id: str) -> ApiConfig:
        config = (
            db.query(ApiConfig)
            .filter(ApiConfig.id == config_id, ApiConfig.user_id == user_id)
            .first()
        )
        if config is None:
            raise NotFoundError("API configuration not found")
        return config

    def find_active_by_provider(
        self, db: Session, user_id: str, provider_name: str
    ) -> Optional[ApiConfig]:
        return (
            db.query(ApiConfig)
            .filter(
                ApiConfig.user_id == user_id,
                ApiConfig.provider_name == provider_name,
                ApiConfig.is_active.is_(True),
            )
            .first()
        )

    def create(self, db: Session, user_id: str, data: ApiConfigCreate) -> ApiConfig:
        if self.find_active_by_provider(db, user_id, data.provider_name):
            raise ConflictError("API configuration for this provider already exists")

        config = ApiConfig(
            user_id=user_id,
            provider_name=data.provider_name,
            description=data.description,
            endpoint_url=str(data.endpoint_url),
            auth_type=data.auth_type,
            credentials=data.credentials.to_record(),
            model_name=data.model_name,
            request_template=data.request_template,
            response_mapping=data.response_mapping,
            requests_per_minute=data.rate_limit.requests_per_minute,
            requests_per_day=data.rate_limit.requests_per_day,
        )
        db.add(config)
        db.commit()
        db.refresh(config)
        logger.info(f"Created API config {config.id} ({config.provider_name}) for user {user_id}")
        return config

    def update(
        self, db: Session, user_id: str, config_id: str, data: ApiConfigUpdate
    ) -> ApiConfig:
        config = self.get(db, user_id, config_id)

        if data.provider_name and data.provider_name != config.provider_name:
            clash = self.find_active_by_provider(db, user_id, data.provider_name)
            if clash and clash.id != config.id:
                raise ConflictError("API configuration for this provider already exists")
            config.provider_name = data.provider_name
        if data.description is not None:
            config.description = data.description
        if data.endpoint_url is not None:
            config.endpoint_url = str(data.endpoint_url)
        if data.auth_type is not None:
            config.auth_type = data.auth_type
        if data.credentials is not None:
            config.credentials = data.credentials.to_record()
        if data.model_name is not None:
            config.model_name = data.model_name
        if data.request_template is not None:
            config.request_template = data.request_template
        if data.response_mapping is not None:
            config.response_mapping = data.response_mapping
        if data.rate_limit is not None:
            config.requests_per_minute = data.rate_limit.requests_per_minute
            config.requests_per_day = data.rate_limit.requests_per_day
        if data.is_active is not None:
            config.is_active = data.is_active

        db.commit()
        db.refresh(config)
        return config

    def deactivate(self, db: Session, user_id: str, config_id: str) -> None:
        config = self.get(db, user_id, config_id)
        config.is_active = False
        db.commit()
        logger.info(f"Deactivated API config {config_id}")

    def deactivate_all(self, db: Session, user_id: str) -> int:
        count = (
            db.query(ApiConfig)
            .filter(ApiConfig.user_id == user_id, ApiConfig.is_active.is_(True))
            .update({ApiConfig.is_active: False}, synchronize_session=False)
        )
        db.commit()
        return count

    def test_connection(self, db: Session, user_id: str, config_id: str) -> dict:
        """
        Simulated connectivity check; counts as one use of the config.
        """
        config = self.get(db, user_id, config_id)
        config.usage_count = (config.usage_count or 0) + 1
        config.last_used = datetime.utcnow()
        db.commit()
        return {
            "success": True,
            "message": "Connection test successful",
            "responseTime": round(random.uniform(0, 1000), 2),
        }

    def stats(self, db: Session, user_id: str, config_id: str) -> dict:
        config = self.get(db, user_id, config_id)
        return {
            "usageCount": config.usage_count,
            "lastUsed": config.last_used,
            "createdAt": config.created_at,
            "isActive": config.is_active,
        }


api_config_service = ApiConfigService()
