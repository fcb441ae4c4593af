import logging
from pathlib import Path

from farm_uploads.core.policies import Policy
from farm_uploads.core.signatures import HEADER_BYTES, detect, normalize_mime
from farm_uploads.core.storage import read_header, remove_file
from farm_uploads.models.upload import CanonicalType, ReasonCode
from farm_uploads.schemas.upload import IncomingFile, ValidationVerdict

logger = logging.getLogger(__name__)


def validate(incoming: IncomingFile, policy: Policy) -> ValidationVerdict:
    """
    Check a stored upload against its class policy.

    The file's leading bytes decide its canonical type. The type must be
    allowed for the class and the declared Content-Type must be one of
    the values accepted for that type. Every rejection removes the file
    before returning; an accepted file is left where it is.
    """

    # ── Read Header ───────────────────────────────────────
    try:
        header = read_header(incoming.path, HEADER_BYTES)
    except OSError as e:
        logger.error("Could not read upload %s: %s", incoming.path, e)
        _discard_after_error(incoming.path)
        return ValidationVerdict.error(f"read failed: {e}")

    # ── Detect ────────────────────────────────────────────
    detected = detect(header)
    if detected is None:
        return _reject(
            incoming,
            ReasonCode.UNDETECTABLE,
            "undetectable/unsupported signature",
        )

    # ── Class Allow-List ──────────────────────────────────
    if detected not in policy.allowed_canonical_types:
        return _reject(
            incoming,
            ReasonCode.SIGNATURE_MISMATCH,
            f"type {detected.value} not permitted for {policy.upload_class.value}",
            detected,
        )

    # ── Declared vs Detected ──────────────────────────────
    declared = normalize_mime(incoming.declared_mime)
    if declared not in policy.allowed_declared_mime_types[detected]:
        return _reject(
            incoming,
            ReasonCode.SIGNATURE_MISMATCH,
            f"declared {declared or 'nothing'} does not match content ({detected.value})",
            detected,
        )

    logger.info("Accepted %s as %s", incoming.path.name, detected.value)
    return ValidationVerdict.accept(detected)


def _reject(
    incoming: IncomingFile,
    reason: ReasonCode,
    detail: str,
    detected: CanonicalType | None = None,
) -> ValidationVerdict:
    logger.warning(
        "Rejected %s (declared %r): %s", incoming.path.name, incoming.declared_mime, detail
    )
    try:
        remove_file(incoming.path)
    except OSError as e:
        # The rejected file may still be resident; that is an internal failure
        logger.error("Could not remove rejected upload %s: %s", incoming.path, e)
        return ValidationVerdict.error(f"{detail}; removal failed: {e}")
    return ValidationVerdict.reject(reason, detail, detected)


def _discard_after_error(path: Path) -> None:
    try:
        remove_file(path)
    except OSError as e:
        logger.error("Could not remove upload %s after error: %s", path, e)
