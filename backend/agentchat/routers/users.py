"""
User account endpoints: preferences, profile, data export, deletion.
"""

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from agentchat.database import get_db
from agentchat.dependencies import get_current_user
from agentchat.models.user import User
from agentchat.schemas import AccountDelete, PreferencesUpdate, ProfileUpdate
from agentchat.services.user_service import user_service

router = APIRouter()


@router.put("/preferences")
async def update_preferences(
    data: PreferencesUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Merge the given keys into the user's preference map."""
    user = user_service.update_preferences(db, current_user, data.preferences)
    return {"message": "Preferences updated successfully", "user": user.to_dict()}


@router.put("/profile")
async def update_profile(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = user_service.update_profile(db, current_user, data.name)
    return {"message": "Profile updated successfully", "user": user.to_dict()}


@router.get("/export")
async def export_user_data(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    """Export all user data as a JSON download."""
    export = user_service.export_data(db, current_user)
    return JSONResponse(
        content=jsonable_encoder(export),
        headers={
            "Content-Disposition": f'attachment; filename="user-data-{current_user.id}.json"'
        },
    )


@router.delete("/account")
async def delete_account(
    data: AccountDelete,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user_service.delete_account(db, current_user, data.confirm_password)
    return {"message": "Account deletion initiated successfully"}
