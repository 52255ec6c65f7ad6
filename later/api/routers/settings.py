from __future__ import annotations

from fastapi import APIRouter, Depends

from later.api.deps import enforce_rate_limit, get_current_user, get_repository
from later.repositories import ReminderRepository
from later.schemas.profile import ProfileOut, SettingsOut, SettingsPatch, UserOut
from later.services.identity import CurrentUser

router = APIRouter(prefix="/settings", tags=["settings"], dependencies=[Depends(enforce_rate_limit)])


@router.get("", response_model=SettingsOut)
def get_settings(
    repo: ReminderRepository = Depends(get_repository),
    user: CurrentUser = Depends(get_current_user),
):
    profile = repo.get_profile(user.id)
    account = UserOut(id=user.id, email=user.email, name=user.name) if user.authenticated else None
    return SettingsOut(profile=profile, user=account)


@router.patch("", response_model=ProfileOut)
def patch_settings(
    payload: SettingsPatch,
    repo: ReminderRepository = Depends(get_repository),
    user: CurrentUser = Depends(get_current_user),
):
    return repo.update_settings(user.id, payload)
