"""
Per upload-class policies.

Each upload class is pinned to a fixed set of canonical types, size and
count ceilings, and a destination directory under UPLOAD_ROOT. The table
is built once at startup and never changes afterwards.
"""

from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_validator

from farm_uploads.core.config import settings
from farm_uploads.core.signatures import DECLARED_MIME_TYPES
from farm_uploads.models.upload import CanonicalType, UploadClass

MB = 1024 * 1024


class Policy(BaseModel):
    model_config = ConfigDict(frozen=True)

    upload_class: UploadClass
    allowed_canonical_types: frozenset[CanonicalType]
    max_file_size_bytes: int = Field(gt=0)
    max_file_count: int = Field(gt=0)
    destination_dir: Path
    url_prefix: str

    @field_validator("allowed_canonical_types")
    @classmethod
    def require_allowed_types(cls, v: frozenset[CanonicalType]) -> frozenset[CanonicalType]:
        if not v:
            raise ValueError("allowed_canonical_types must not be empty")
        return v

    @property
    def allowed_declared_mime_types(self) -> Mapping[CanonicalType, frozenset[str]]:
        return MappingProxyType(
            {t: DECLARED_MIME_TYPES[t] for t in self.allowed_canonical_types}
        )

    @property
    def accepted_mime_types(self) -> frozenset[str]:
        """Every declared Content-Type the gate lets through for this class."""
        return frozenset().union(*self.allowed_declared_mime_types.values())

    def allowed_type_names(self) -> list[str]:
        return sorted(t.value for t in self.allowed_canonical_types)

    def public_url(self, stored_name: str) -> str:
        return f"{self.url_prefix}/{stored_name}"


# upload class -> (allowed types, max size, max files, subdirectory)
_POLICY_DEFINITIONS: dict[UploadClass, tuple[frozenset[CanonicalType], int, int, str]] = {
    # Animal photos
    UploadClass.ANIMALS: (
        frozenset({CanonicalType.JPEG, CanonicalType.PNG, CanonicalType.WEBP}),
        10 * MB,
        5,
        "animals",
    ),
    # Farm registration documents
    UploadClass.DOCUMENTS: (
        frozenset({CanonicalType.PDF, CanonicalType.JPEG, CanonicalType.PNG}),
        15 * MB,
        1,
        "farm-documents",
    ),
    UploadClass.LOGOS: (
        frozenset({CanonicalType.JPEG, CanonicalType.PNG, CanonicalType.WEBP}),
        5 * MB,
        1,
        "farm-logos",
    ),
    # Expense receipts and revenue invoices
    UploadClass.FINANCIAL: (
        frozenset({CanonicalType.PDF, CanonicalType.JPEG, CanonicalType.PNG}),
        10 * MB,
        1,
        "financial",
    ),
    # Health assessment images
    UploadClass.HEALTH: (
        frozenset({CanonicalType.JPEG, CanonicalType.PNG}),
        10 * MB,
        5,
        "health",
    ),
    # Forum post and reply attachments
    UploadClass.COMMUNITY: (
        frozenset({
            CanonicalType.JPEG,
            CanonicalType.PNG,
            CanonicalType.GIF,
            CanonicalType.WEBP,
            CanonicalType.PDF,
        }),
        5 * MB,
        5,
        "community",
    ),
}


def build_policy_table(
    upload_root: Path,
    url_prefix: str | None = None,
) -> Mapping[UploadClass, Policy]:
    """Build the read-only policy table rooted at upload_root."""
    prefix = (url_prefix if url_prefix is not None else settings.PUBLIC_URL_PREFIX).rstrip("/")
    root = Path(upload_root).resolve()
    table = {
        upload_class: Policy(
            upload_class=upload_class,
            allowed_canonical_types=allowed,
            max_file_size_bytes=max_size,
            max_file_count=max_count,
            destination_dir=root / subdir,
            url_prefix=f"{prefix}/{subdir}",
        )
        for upload_class, (allowed, max_size, max_count, subdir) in _POLICY_DEFINITIONS.items()
    }
    missing = [c.value for c in UploadClass if c not in table]
    if missing:
        raise ValueError(f"No policy defined for upload classes: {missing}")
    return MappingProxyType(table)


POLICY_TABLE: Mapping[UploadClass, Policy] = build_policy_table(settings.UPLOAD_ROOT)


def resolve(
    upload_class: UploadClass,
    policies: Mapping[UploadClass, Policy] | None = None,
) -> Policy:
    table = POLICY_TABLE if policies is None else policies
    return table[UploadClass(upload_class)]
