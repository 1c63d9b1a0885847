"""
API provider configuration model.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, JSON, Text, Index
from sqlalchemy.orm import relationship

from agentchat.database import Base

CREDENTIAL_FIELDS = ("apiKey", "bearerToken", "clientId", "clientSecret")


class ApiConfig(Base):
    """Per-user configuration of an external AI API provider."""

    __tablename__ = "api_configs"
    __table_args__ = (
        Index("idx_api_config_user_provider", "user_id", "provider_name"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    provider_name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    endpoint_url = Column(String, nullable=False)
    auth_type = Column(String(16), nullable=False)  # apiKey, bearer, oauth
    credentials = Column(JSON, nullable=False, default=dict)
    model_name = Column(String, nullable=True)
    request_template = Column(JSON, nullable=False, default=dict)
    response_mapping = Column(JSON, nullable=False, default=dict)
    requests_per_minute = Column(Integer, nullable=False, default=60)
    requests_per_day = Column(Integer, nullable=False, default=1000)
    is_active = Column(Boolean, nullable=False, default=True)
    last_used = Column(DateTime, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="api_configs")

    def to_safe_dict(self) -> dict:
        """Representation with every credential masked."""
        creds = self.credentials or {}
        return {
            "id": self.id,
            "userId": self.user_id,
            "providerName": self.provider_name,
            "description": self.description,
            "endpointUrl": self.endpoint_url,
            "authType": self.auth_type,
            "credentials": {
                key: ("***" if creds.get(key) else None) for key in CREDENTIAL_FIELDS
            },
            "modelName": self.model_name,
            "requestTemplate": self.request_template or {},
            "responseMapping": self.response_mapping or {},
            "rateLimit": {
                "requestsPerMinute": self.requests_per_minute,
                "requestsPerDay": self.requests_per_day,
            },
            "isActive": self.is_active,
            "lastUsed": self.last_used,
            "usageCount": self.usage_count,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def __repr__(self):
        return f"<ApiConfig(id={self.id}, provider={self.provider_name})>"
