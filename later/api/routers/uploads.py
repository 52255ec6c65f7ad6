from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from later.api.deps import enforce_rate_limit, get_current_user
from later.schemas.uploads import UploadOut, UploadRequest
from later.services.identity import CurrentUser
from later.services.storage import build_storage_path

router = APIRouter(prefix="/uploads", tags=["uploads"], dependencies=[Depends(enforce_rate_limit)])

METADATA_ONLY_NOTE = "Blob store is not configured; returning upload metadata only."


@router.post("", response_model=UploadOut)
def create_upload(payload: UploadRequest, request: Request, user: CurrentUser = Depends(get_current_user)):
    storage_path = build_storage_path(user.id, payload.file_name)
    storage = request.app.state.storage
    if storage is None:
        return UploadOut(storage_path=storage_path, note=METADATA_ONLY_NOTE)

    signed = storage.create_signed_upload(storage_path)
    return UploadOut(storage_path=storage_path, signed_upload_url=signed.signed_url, token=signed.token)
