"""
Stored-file naming and the small amount of disk I/O the validator needs.
"""

import logging
import re
import time
import uuid
from pathlib import Path, PurePosixPath

from farm_uploads.core.policies import Policy

logger = logging.getLogger(__name__)

_EXTENSION_RE = re.compile(r"^\.[a-z0-9]{1,10}$")


def extract_extension(original_name: str | None) -> str:
    """
    Return the lowercased extension of a client filename, or "" if it is
    missing or contains anything other than ASCII letters and digits.
    """
    if not original_name:
        return ""
    # Clients on Windows may send full paths with backslashes
    name = PurePosixPath(original_name.replace("\\", "/")).name
    suffix = PurePosixPath(name).suffix.lower()
    return suffix if _EXTENSION_RE.match(suffix) else ""


def generate_name(original_name: str | None) -> str:
    """
    Build a stored filename of the form {epoch ms}-{uuid4}{extension}.
    Only the extension of original_name is kept; its stem never is.
    """
    timestamp = time.time_ns() // 1_000_000
    return f"{timestamp}-{uuid.uuid4()}{extract_extension(original_name)}"


def destination_path(policy: Policy, stored_name: str) -> Path:
    """Join stored_name onto the policy directory, refusing anything that escapes it."""
    directory = policy.destination_dir.resolve()
    path = (directory / stored_name).resolve()
    if path.parent != directory:
        raise ValueError(f"Stored name {stored_name!r} escapes {directory}")
    return path


def read_header(path: str | Path, size: int) -> bytes:
    with open(path, "rb") as f:
        return f.read(size)


def remove_file(path: str | Path) -> None:
    """Remove file from disk. Safe if missing (e.g. already deleted)."""
    Path(path).unlink(missing_ok=True)
    logger.debug("Removed %s", path)
