"""
File content detection using magic bytes.
Classifies uploads by their leading bytes so a forged Content-Type
or a renamed file cannot pass as a different format.
"""

from collections.abc import Mapping
from types import MappingProxyType

from farm_uploads.models.upload import CanonicalType

# Minimum buffer length before detection is attempted
MIN_SIGNATURE_BYTES = 4
# Bytes read from the head of a stored file for detection
HEADER_BYTES = 8

# Lowercase hex prefix -> canonical type.
# Keys are 8 or 4 bytes; BMP only has a fixed 2-byte marker ("BM").
SIGNATURE_REGISTRY: Mapping[str, CanonicalType] = MappingProxyType({
    # Images
    "ffd8ffe0": CanonicalType.JPEG,
    "ffd8ffe1": CanonicalType.JPEG,
    "ffd8ffe2": CanonicalType.JPEG,
    "ffd8ffe3": CanonicalType.JPEG,
    "ffd8ffe8": CanonicalType.JPEG,
    "ffd8ffdb": CanonicalType.JPEG,
    "ffd8ffee": CanonicalType.JPEG,
    "89504e470d0a1a0a": CanonicalType.PNG,
    "89504e47": CanonicalType.PNG,
    "47494638": CanonicalType.GIF,
    "424d": CanonicalType.BMP,
    "52494646": CanonicalType.WEBP,
    # Documents
    "25504446": CanonicalType.PDF,
    "504b0304": CanonicalType.ZIP,  # also docx, xlsx
    "d0cf11e0a1b11ae1": CanonicalType.DOC,
    "d0cf11e0": CanonicalType.DOC,
    # Video
    "000001ba": CanonicalType.MPG,
    "000001b3": CanonicalType.MPG,
    # ISO base media: 4-byte box size followed by "ftyp"
    "0000001466747970": CanonicalType.MP4,
    "0000001866747970": CanonicalType.MP4,
    "0000001c66747970": CanonicalType.MP4,
    "0000002066747970": CanonicalType.MP4,
    "1a45dfa3": CanonicalType.MKV,
})

# Canonical type -> declared Content-Type values accepted for it
DECLARED_MIME_TYPES: Mapping[CanonicalType, frozenset[str]] = MappingProxyType({
    CanonicalType.JPEG: frozenset({"image/jpeg", "image/jpg", "image/pjpeg"}),
    CanonicalType.PNG: frozenset({"image/png"}),
    CanonicalType.GIF: frozenset({"image/gif"}),
    CanonicalType.BMP: frozenset({"image/bmp", "image/x-ms-bmp"}),
    CanonicalType.WEBP: frozenset({"image/webp"}),
    CanonicalType.PDF: frozenset({"application/pdf"}),
    CanonicalType.ZIP: frozenset({"application/zip", "application/x-zip-compressed"}),
    CanonicalType.DOC: frozenset({"application/msword"}),
    CanonicalType.MP4: frozenset({"video/mp4"}),
    CanonicalType.MPG: frozenset({"video/mpeg"}),
    CanonicalType.MKV: frozenset({"video/x-matroska"}),
})

_PREFIX_LENGTHS = (8, 4, 2)


def _check_registry(registry: Mapping[str, CanonicalType]) -> None:
    """Fail at import if the table could map one prefix to two types."""
    for prefix, canonical in registry.items():
        if len(prefix) // 2 not in _PREFIX_LENGTHS or len(prefix) % 2:
            raise ValueError(f"Signature prefix {prefix!r} has an unsupported length")
        if prefix != prefix.lower():
            raise ValueError(f"Signature prefix {prefix!r} must be lowercase hex")
        bytes.fromhex(prefix)
        for other, other_type in registry.items():
            if other != prefix and other.startswith(prefix) and other_type != canonical:
                raise ValueError(
                    f"Signature prefix {prefix!r} ({canonical.value}) is ambiguous "
                    f"with {other!r} ({other_type.value})"
                )
    missing = [t.value for t in CanonicalType if t not in registry.values()]
    if missing:
        raise ValueError(f"No signature registered for: {missing}")
    missing = [t.value for t in CanonicalType if not DECLARED_MIME_TYPES.get(t)]
    if missing:
        raise ValueError(f"No declared MIME types registered for: {missing}")


_check_registry(SIGNATURE_REGISTRY)


def lookup(prefix_hex: str) -> CanonicalType | None:
    """Return the canonical type registered for a hex prefix, if any."""
    return SIGNATURE_REGISTRY.get(prefix_hex.lower())


def detect(buffer: bytes) -> CanonicalType | None:
    """
    Return the canonical type whose signature matches the head of buffer.

    Longer prefixes are tried first (8 bytes, then 4, then the 2-byte
    fallback). Buffers shorter than MIN_SIGNATURE_BYTES yield None.
    """
    if not buffer or len(buffer) < MIN_SIGNATURE_BYTES:
        return None
    head = bytes(buffer[:HEADER_BYTES])
    for length in _PREFIX_LENGTHS:
        if len(head) < length:
            continue
        detected = lookup(head[:length].hex())
        if detected is not None:
            return detected
    return None


def normalize_mime(declared_mime: str | None) -> str:
    """Strip parameters such as charset and lowercase a Content-Type value."""
    if not declared_mime:
        return ""
    return declared_mime.split(";")[0].strip().lower()
