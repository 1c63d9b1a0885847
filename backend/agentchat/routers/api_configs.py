"""
API provider configuration endpoints. Credentials are always masked.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from agentchat.database import get_db
from agentchat.dependencies import get_current_user
from agentchat.models.user import User
from agentchat.schemas import ApiConfigCreate, ApiConfigUpdate
from agentchat.services.api_config_service import api_config_service

router = APIRouter()


@router.get("")
async def list_api_configs(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    configs = api_config_service.list_active(db, current_user.id)
    return {"apiConfigs": [c.to_safe_dict() for c in configs]}


@router.get("/{config_id}")
async def get_api_config(
    config_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    config = api_config_service.get(db, current_user.id, config_id)
    return {"apiConfig": config.to_safe_dict()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_api_config(
    data: ApiConfigCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    config = api_config_service.create(db, current_user.id, data)
    return {
        "message": "API configuration created successfully",
        "apiConfig": config.to_safe_dict(),
    }


@router.put("/{config_id}")
async def update_api_config(
    config_id: str,
    data: ApiConfigUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    config = api_config_service.update(db, current_user.id, config_id, data)
    return {
        "message": "API configuration updated successfully",
        "apiConfig": config.to_safe_dict(),
    }


@router.post("/{config_id}/test")
async def test_api_config(
    config_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = api_config_service.test_connection(db, current_user.id, config_id)
    return {"message": "API test completed", "result": result}


@router.delete("/{config_id}")
async def delete_api_config(
    config_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    api_config_service.deactivate(db, current_user.id, config_id)
    return {"message": "API configuration deleted successfully"}


@router.get("/{config_id}/stats")
async def api_config_stats(
    config_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"stats": api_config_service.stats(db, current_user.id, config_id)}
