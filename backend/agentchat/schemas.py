import re
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, EmailStr, HttpUrl, field_validator


# --- Auth ---
class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=2, max_length=50)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not re.search(r"[a-z]", value) or not re.search(r"[A-Z]", value) or not re.search(r"\d", value):
            raise ValueError(
                "Password must contain at least one lowercase letter, "
                "one uppercase letter, and one number"
            )
        return value

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be between 2 and 50 characters")
        return value


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: str
    preferences: Dict[str, Any] = {}
    created_at: datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime = Field(..., serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    access_token: str
    token_type: str


# --- Users ---
class PreferencesUpdate(BaseModel):
    preferences: Dict[str, Any]


class ProfileUpdate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)


class AccountDelete(BaseModel):
    confirm_password: Optional[str] = Field(None, alias="confirmPassword")

    model_config = ConfigDict(populate_by_name=True)


# --- Chat ---
class AttachmentIn(BaseModel):
    type: Literal["code", "image", "file", "visualization"]
    id: Optional[str] = None
    language: Optional[str] = None
    content: Optional[str] = None
    url: Optional[str] = None
    chart_type: Optional[str] = Field(None, alias="chartType")
    data: Optional[Any] = None
    metadata: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(populate_by_name=True)

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ConversationCreate(BaseModel):
    # Length rules are enforced by the store so they surface as 400
    title: Optional[str] = None


class ConversationUpdate(BaseModel):
    title: Optional[str] = None


class SendMessageRequest(BaseModel):
    message: Optional[str] = None
    attachments: List[AttachmentIn] = []


# --- API configs ---
class ApiCredentials(BaseModel):
    api_key: Optional[str] = Field(None, alias="apiKey")
    bearer_token: Optional[str] = Field(None, alias="bearerToken")
    client_id: Optional[str] = Field(None, alias="clientId")
    client_secret: Optional[str] = Field(None, alias="clientSecret")

    model_config = ConfigDict(populate_by_name=True)

    def to_record(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RateLimit(BaseModel):
    requests_per_minute: int = Field(60, ge=1, le=1000, alias="requestsPerMinute")
    requests_per_day: int = Field(1000, ge=1, le=100000, alias="requestsPerDay")

    model_config = ConfigDict(populate_by_name=True)


class ApiConfigCreate(BaseModel):
    provider_name: str = Field(..., min_length=1, max_length=100, alias="providerName")
    description: Optional[str] = None
    endpoint_url: HttpUrl = Field(..., alias="endpointUrl")
    auth_type: Literal["apiKey", "bearer", "oauth"] = Field(..., alias="authType")
    credentials: ApiCredentials
    model_name: Optional[str] = Field(None, alias="modelName")
    request_template: Dict[str, Any] = Field(default_factory=dict, alias="requestTemplate")
    response_mapping: Dict[str, Any] = Field(default_factory=dict, alias="responseMapping")
    rate_limit: RateLimit = Field(default_factory=RateLimit, alias="rateLimit")

    # model_name would otherwise clash with pydantic's "model_" namespace
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    @field_validator("provider_name")
    @classmethod
    def strip_provider(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Provider name is required")
        return value


class ApiConfigUpdate(BaseModel):
    provider_name: Optional[str] = Field(None, min_length=1, max_length=100, alias="providerName")
    description: Optional[str] = None
    endpoint_url: Optional[HttpUrl] = Field(None, alias="endpointUrl")
    auth_type: Optional[Literal["apiKey", "bearer", "oauth"]] = Field(None, alias="authType")
    credentials: Optional[ApiCredentials] = None
    model_name: Optional[str] = Field(None, alias="modelName")
    request_template: Optional[Dict[str, Any]] = Field(None, alias="requestTemplate")
    response_mapping: Optional[Dict[str, Any]] = Field(None, alias="responseMapping")
    rate_limit: Optional[RateLimit] = Field(None, alias="rateLimit")
    is_active: Optional[bool] = Field(None, alias="isActive")

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())
