from __future__ import annotations

from fastapi import APIRouter, Depends

from later.api.deps import get_repository, require_cron_secret
from later.repositories import ReminderRepository
from later.schemas.reminders import AutoArchiveSummary

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)])


@router.post("/auto-archive", response_model=AutoArchiveSummary)
def auto_archive(repo: ReminderRepository = Depends(get_repository)):
    return repo.auto_archive_all_users()
