from collections.abc import Mapping

from fastapi import Depends

from farm_uploads.core.policies import POLICY_TABLE, Policy
from farm_uploads.models.upload import UploadClass
from farm_uploads.services.upload_service import UploadService


def get_policy_table() -> Mapping[UploadClass, Policy]:
    return POLICY_TABLE


def get_upload_service(
    policies: Mapping[UploadClass, Policy] = Depends(get_policy_table),
) -> UploadService:
    return UploadService(policies)
