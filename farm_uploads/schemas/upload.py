from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from farm_uploads.core.policies import Policy
from farm_uploads.models.upload import CanonicalType, FileState, ReasonCode, UploadClass


class IncomingFile(BaseModel):
    """
    One uploaded item as handed over by the upload layer.
    The bytes are already on disk at `path` under a generated name.
    """
    path: Path
    declared_mime: str = ""
    original_name: str = ""
    size: int = Field(default=0, ge=0)


class GateDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    admitted: bool
    reason: Optional[ReasonCode] = None
    message: Optional[str] = None

    @classmethod
    def admit(cls) -> "GateDecision":
        return cls(admitted=True)

    @classmethod
    def reject(cls, reason: ReasonCode, message: str) -> "GateDecision":
        return cls(admitted=False, reason=reason, message=message)


class ValidationVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: FileState
    canonical_type: Optional[CanonicalType] = None
    reason: Optional[ReasonCode] = None
    # Internal detail for logs; never sent to clients
    detail: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.state == FileState.ACCEPTED

    @classmethod
    def accept(cls, canonical_type: CanonicalType) -> "ValidationVerdict":
        return cls(state=FileState.ACCEPTED, canonical_type=canonical_type)

    @classmethod
    def reject(
        cls,
        reason: ReasonCode,
        detail: str,
        canonical_type: CanonicalType | None = None,
    ) -> "ValidationVerdict":
        return cls(
            state=FileState.REJECTED,
            reason=reason,
            detail=detail,
            canonical_type=canonical_type,
        )

    @classmethod
    def error(cls, detail: str) -> "ValidationVerdict":
        return cls(state=FileState.ERRORED, reason=ReasonCode.INTERNAL_ERROR, detail=detail)


class AcceptedFile(BaseModel):
    stored_name: str
    path: Path
    url: str
    canonical_type: CanonicalType
    declared_mime: str
    original_name: str
    size: int = Field(ge=0)


class FileVerdict(BaseModel):
    stored_name: str
    verdict: ValidationVerdict


class OrchestrationResult(BaseModel):
    ok: bool
    accepted: list[AcceptedFile] = Field(default_factory=list)
    verdicts: list[FileVerdict] = Field(default_factory=list)
    reason: Optional[ReasonCode] = None
    detail: Optional[str] = None

    @property
    def status_code(self) -> int:
        if self.ok:
            return 201
        if self.reason == ReasonCode.INTERNAL_ERROR:
            return 500
        return 400


class UploadedFileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    stored_name: str
    url: str
    canonical_type: CanonicalType
    original_name: str
    size: int = Field(ge=0)


class UploadResponse(BaseModel):
    upload_class: UploadClass
    total: int = Field(ge=0)
    files: list[UploadedFileResponse]


class PolicyResponse(BaseModel):
    upload_class: UploadClass
    allowed_types: list[CanonicalType]
    allowed_mime_types: list[str]
    max_file_size_bytes: int
    max_file_count: int
    url_prefix: str

    @classmethod
    def from_policy(cls, policy: Policy) -> "PolicyResponse":
        return cls(
            upload_class=policy.upload_class,
            allowed_types=sorted(policy.allowed_canonical_types, key=lambda t: t.value),
            allowed_mime_types=sorted(policy.accepted_mime_types),
            max_file_size_bytes=policy.max_file_size_bytes,
            max_file_count=policy.max_file_count,
            url_prefix=policy.url_prefix,
        )


class PolicyListResponse(BaseModel):
    total: int
    policies: list[PolicyResponse]
