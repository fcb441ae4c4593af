import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path

from fastapi import HTTPException, UploadFile

from farm_uploads.core.config import settings
from farm_uploads.core.policies import Policy
from farm_uploads.core.storage import destination_path, generate_name, remove_file
from farm_uploads.models.upload import ReasonCode, UploadClass
from farm_uploads.schemas.upload import (
    GateDecision,
    IncomingFile,
    OrchestrationResult,
    PolicyListResponse,
    PolicyResponse,
    UploadedFileResponse,
    UploadResponse,
)
from farm_uploads.validation.gate import admit, admit_count, admit_size
from farm_uploads.validation.pipeline import run

logger = logging.getLogger(__name__)

INVALID_FORMAT_MESSAGE = (
    "Invalid file format. File signature does not match the declared type."
)
INTERNAL_ERROR_MESSAGE = "Error validating uploaded files"


class _GateRejected(Exception):
    def __init__(self, decision: GateDecision) -> None:
        super().__init__(decision.message)
        self.decision = decision


def _remove_all(paths: list[Path]) -> None:
    for path in paths:
        try:
            remove_file(path)
        except OSError as e:
            logger.error("Could not remove %s during cleanup: %s", path, e)


class UploadService:
    """
    Upload-handling layer in front of the validation pipeline.

    Receives the multipart files of one request, runs the gate on each
    declared type, streams admitted files to their class directory under
    a generated name, then hands them to the pipeline. Every file written
    by a request that ends in an error is removed again.
    """

    def __init__(self, policies: Mapping[UploadClass, Policy]) -> None:
        self.policies = policies

    def get_policies(self) -> PolicyListResponse:
        policies = [PolicyResponse.from_policy(p) for p in self.policies.values()]
        return PolicyListResponse(total=len(policies), policies=policies)

    def get_policy(self, upload_class: UploadClass) -> PolicyResponse:
        policy = self.policies.get(upload_class)
        if policy is None:
            raise HTTPException(
                status_code=404,
                detail=f"Upload class {upload_class} not found",
            )
        return PolicyResponse.from_policy(policy)

    async def upload_files(
        self,
        files: list[UploadFile],
        upload_class: UploadClass,
    ) -> UploadResponse:
        policy = self.policies[upload_class]

        if not files:
            return UploadResponse(upload_class=upload_class, total=0, files=[])

        # ── Count ─────────────────────────────────────────
        decision = admit_count(len(files), policy)
        if not decision.admitted:
            raise self._client_error(decision.reason, decision.message)

        # ── Gate + Receive ────────────────────────────────
        incoming: list[IncomingFile] = []
        written: list[Path] = []
        try:
            for file in files:
                decision = admit(file.content_type, upload_class, self.policies)
                if not decision.admitted:
                    raise _GateRejected(decision)
                incoming.append(await self._receive(file, policy, written))
        except _GateRejected as e:
            await asyncio.to_thread(_remove_all, written)
            raise self._client_error(e.decision.reason, e.decision.message)
        except OSError as e:
            logger.error("Failed to store upload for %s: %s", upload_class.value, e, exc_info=True)
            await asyncio.to_thread(_remove_all, written)
            raise self._internal_error(str(e))
        except BaseException:
            # Client disconnects, cancellation and anything unexpected.
            # A cancelled task cannot await, so remove inline.
            logger.warning("Upload for %s aborted; removing %d file(s)", upload_class.value, len(written))
            _remove_all(written)
            raise

        # ── Validate ──────────────────────────────────────
        # Header reads and deletes are blocking; keep them off the event loop
        result: OrchestrationResult = await asyncio.to_thread(
            run, incoming, upload_class, self.policies
        )
        if not result.ok:
            if result.reason == ReasonCode.INTERNAL_ERROR:
                raise self._internal_error(result.detail or "")
            raise self._client_error(result.reason, INVALID_FORMAT_MESSAGE)

        return UploadResponse(
            upload_class=upload_class,
            total=len(result.accepted),
            files=[UploadedFileResponse.model_validate(f.model_dump()) for f in result.accepted],
        )

    async def _receive(
        self,
        file: UploadFile,
        policy: Policy,
        written: list[Path],
    ) -> IncomingFile:
        """Stream one upload to disk, stopping as soon as it passes the size ceiling."""
        path = destination_path(policy, generate_name(file.filename))
        size = 0
        out = await asyncio.to_thread(open, path, "wb")
        written.append(path)
        try:
            while True:
                chunk = await file.read(settings.UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                decision = admit_size(size, policy)
                if not decision.admitted:
                    raise _GateRejected(decision)
                await asyncio.to_thread(out.write, chunk)
        except BaseException:
            out.close()
            raise
        await asyncio.to_thread(out.close)

        logger.debug("Stored %s (%d bytes) as %s", file.filename, size, path.name)
        return IncomingFile(
            path=path,
            declared_mime=file.content_type or "",
            original_name=file.filename or "",
            size=size,
        )

    @staticmethod
    def _client_error(reason: ReasonCode | None, message: str | None) -> HTTPException:
        return HTTPException(
            status_code=400,
            detail={
                "code": (reason or ReasonCode.SIGNATURE_MISMATCH).value,
                "message": message or INVALID_FORMAT_MESSAGE,
            },
        )

    @staticmethod
    def _internal_error(detail: str) -> HTTPException:
        return HTTPException(
            status_code=500,
            detail={
                "code": ReasonCode.INTERNAL_ERROR.value,
                "message": detail if settings.DEBUG and detail else INTERNAL_ERROR_MESSAGE,
            },
        )
