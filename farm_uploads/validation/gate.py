"""
Pre-receipt checks run by the upload layer before bytes are kept.

These only look at what the client claims (Content-Type, file count)
and at how many bytes have arrived so far. They never establish the
real type of a file; that is the post-receipt validator's job.
"""

import logging
from collections.abc import Mapping

from farm_uploads.core.policies import Policy, resolve
from farm_uploads.core.signatures import normalize_mime
from farm_uploads.models.upload import ReasonCode, UploadClass
from farm_uploads.schemas.upload import GateDecision

logger = logging.getLogger(__name__)


def admit(
    declared_mime: str | None,
    upload_class: UploadClass,
    policies: Mapping[UploadClass, Policy] | None = None,
) -> GateDecision:
    policy = resolve(upload_class, policies)
    mime = normalize_mime(declared_mime)
    if mime in policy.accepted_mime_types:
        return GateDecision.admit()

    logger.warning(
        "Gate rejected declared type %r for %s", declared_mime, policy.upload_class.value
    )
    return GateDecision.reject(
        ReasonCode.TYPE_NOT_ALLOWED,
        f"File type not allowed. Allowed types: {', '.join(policy.allowed_type_names())}",
    )


def admit_count(count: int, policy: Policy) -> GateDecision:
    if count <= policy.max_file_count:
        return GateDecision.admit()
    logger.warning(
        "Gate rejected %d files for %s (max %d)",
        count,
        policy.upload_class.value,
        policy.max_file_count,
    )
    return GateDecision.reject(
        ReasonCode.TOO_MANY_FILES,
        f"Too many files: {count}. Max: {policy.max_file_count}",
    )


def admit_size(size_bytes: int, policy: Policy) -> GateDecision:
    if size_bytes <= policy.max_file_size_bytes:
        return GateDecision.admit()
    max_mb = policy.max_file_size_bytes / (1024 * 1024)
    return GateDecision.reject(
        ReasonCode.FILE_TOO_LARGE,
        f"File too large. Max: {max_mb:g}MB",
    )
