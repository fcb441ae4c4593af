import logging
from collections.abc import Mapping, Sequence

from farm_uploads.core.policies import Policy, resolve
from farm_uploads.core.storage import remove_file
from farm_uploads.models.upload import ReasonCode, UploadClass
from farm_uploads.schemas.upload import (
    AcceptedFile,
    FileVerdict,
    IncomingFile,
    OrchestrationResult,
)
from farm_uploads.validation.validator import validate

logger = logging.getLogger(__name__)


def run(
    files: Sequence[IncomingFile],
    upload_class: UploadClass,
    policies: Mapping[UploadClass, Policy] | None = None,
) -> OrchestrationResult:
    """
    Validate every file of one request, in order, stopping at the first
    failure.

    A failed request keeps nothing: files accepted earlier in the request
    and files not yet examined are removed along with the failing one.
    An empty request passes straight through.
    """
    if not files:
        return OrchestrationResult(ok=True)

    policy = resolve(upload_class, policies)
    accepted: list[AcceptedFile] = []
    verdicts: list[FileVerdict] = []

    for index, incoming in enumerate(files):
        try:
            verdict = validate(incoming, policy)
        except Exception as e:
            logger.error(
                "Validation crashed for %s: %s", incoming.path.name, e, exc_info=True
            )
            _rollback(files)
            return OrchestrationResult(
                ok=False,
                verdicts=verdicts,
                reason=ReasonCode.INTERNAL_ERROR,
                detail=f"unexpected error: {e}",
            )

        verdicts.append(FileVerdict(stored_name=incoming.path.name, verdict=verdict))

        if not verdict.accepted:
            # The validator already removed the failing file
            _rollback(files[:index])
            _rollback(files[index + 1:])
            logger.warning(
                "Request for %s failed on file %d/%d: %s",
                policy.upload_class.value,
                index + 1,
                len(files),
                verdict.reason.value if verdict.reason else "unknown",
            )
            return OrchestrationResult(
                ok=False,
                verdicts=verdicts,
                reason=verdict.reason,
                detail=verdict.detail,
            )

        accepted.append(
            AcceptedFile(
                stored_name=incoming.path.name,
                path=incoming.path,
                url=policy.public_url(incoming.path.name),
                canonical_type=verdict.canonical_type,
                declared_mime=incoming.declared_mime,
                original_name=incoming.original_name,
                size=incoming.size,
            )
        )

    logger.info("Accepted %d file(s) for %s", len(accepted), policy.upload_class.value)
    return OrchestrationResult(ok=True, accepted=accepted, verdicts=verdicts)


def _rollback(files: Sequence[IncomingFile]) -> None:
    for incoming in files:
        try:
            remove_file(incoming.path)
        except OSError as e:
            logger.error("Rollback could not remove %s: %s", incoming.path, e)
