from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from farm_uploads.core.dependencies import get_upload_service
from farm_uploads.models.upload import UploadClass
from farm_uploads.schemas.upload import (
    PolicyListResponse,
    PolicyResponse,
    UploadResponse,
)
from farm_uploads.services.upload_service import UploadService

router = APIRouter()


@router.get(
    "/policies",
    response_model=PolicyListResponse,
    summary="List upload class policies",
)
async def list_policies(
    service: UploadService = Depends(get_upload_service),
) -> PolicyListResponse:
    return service.get_policies()


@router.get(
    "/policies/{upload_class}",
    response_model=PolicyResponse,
    summary="Get the policy for one upload class",
)
async def get_policy(
    upload_class: UploadClass,
    service: UploadService = Depends(get_upload_service),
) -> PolicyResponse:
    return service.get_policy(upload_class)


@router.post(
    "/{upload_class}",
    response_model=UploadResponse,
    summary="Upload and verify files for an upload class",
    status_code=201,
)
async def upload_files(
    upload_class: UploadClass,
    files: Optional[list[UploadFile]] = File(None),
    service: UploadService = Depends(get_upload_service),
) -> UploadResponse:
    """
    Store files for the given upload class after checking their real type.

    1. Declared Content-Type must be allowed for the class
    2. Size and count must stay within the class limits
    3. Leading bytes must match an allowed type and the declared Content-Type

    Any failure removes every file of the request and returns 400
    (content or limits) or 500 (storage or internal error).
    """
    return await service.upload_files(files or [], upload_class)
