"""Unit tests for magic-byte detection."""

import pytest

from farm_uploads.core.signatures import (
    DECLARED_MIME_TYPES,
    MIN_SIGNATURE_BYTES,
    SIGNATURE_REGISTRY,
    _check_registry,
    detect,
    lookup,
    normalize_mime,
)
from farm_uploads.models.upload import CanonicalType


def _buffer_for(prefix_hex: str) -> bytes:
    prefix = bytes.fromhex(prefix_hex)
    # Pad short prefixes so the buffer clears the minimum length
    return prefix + b"\x00" * (8 - len(prefix))


@pytest.mark.parametrize("prefix_hex,expected", sorted(SIGNATURE_REGISTRY.items()))
def test_detect_every_registered_prefix(prefix_hex: str, expected: CanonicalType) -> None:
    assert detect(_buffer_for(prefix_hex)) == expected


@pytest.mark.parametrize("prefix_hex,expected", sorted(SIGNATURE_REGISTRY.items()))
def test_detect_registered_prefix_with_trailing_content(
    prefix_hex: str, expected: CanonicalType
) -> None:
    buffer = _buffer_for(prefix_hex) + b"trailing payload bytes"
    assert detect(buffer) == expected


@pytest.mark.parametrize("length", range(MIN_SIGNATURE_BYTES))
def test_detect_short_buffer_returns_none(length: int) -> None:
    assert detect(b"\xff\xd8\xff\xe0"[:length]) is None
    assert detect(b"BMxx"[:length]) is None


def test_detect_none_and_empty() -> None:
    assert detect(b"") is None
    assert detect(None) is None  # type: ignore[arg-type]


def test_detect_unknown_content() -> None:
    assert detect(b"#!/bin/sh\nrm -rf /") is None
    assert detect(b"<?php echo 1; ?>") is None
    assert detect(b"\x00\x00\x00\x00\x00\x00\x00\x00") is None


def test_detect_accepts_bytearray_and_memoryview() -> None:
    data = b"%PDF-1.7\n"
    assert detect(bytearray(data)) == CanonicalType.PDF
    assert detect(memoryview(data)) == CanonicalType.PDF


def test_detect_real_headers() -> None:
    assert detect(b"\xff\xd8\xff\xe0\x00\x10JFIF\x00") == CanonicalType.JPEG
    assert detect(b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR") == CanonicalType.PNG
    assert detect(b"GIF89a\x01\x00") == CanonicalType.GIF
    assert detect(b"RIFF\x24\x00\x00\x00WEBPVP8 ") == CanonicalType.WEBP
    assert detect(b"BM\x36\x00\x0c\x00\x00\x00") == CanonicalType.BMP
    assert detect(b"\x00\x00\x00\x18ftypmp42") == CanonicalType.MP4
    assert detect(b"\x1aE\xdf\xa3\x01\x00\x00\x00") == CanonicalType.MKV
    assert detect(b"PK\x03\x04\x14\x00\x06\x00") == CanonicalType.ZIP


def test_detect_four_byte_only_buffer() -> None:
    assert detect(b"\x89PNG") == CanonicalType.PNG
    assert detect(b"%PDF") == CanonicalType.PDF


def test_detect_prefers_eight_byte_entry() -> None:
    # MP4 is only registered at 8 bytes; the 4-byte head alone is unknown
    assert lookup("00000018") is None
    assert detect(b"\x00\x00\x00\x18ftypisom") == CanonicalType.MP4


def test_detect_random_bytes_never_raises() -> None:
    import random

    rng = random.Random(1234)
    for _ in range(500):
        data = bytes(rng.getrandbits(8) for _ in range(rng.randint(0, 16)))
        result = detect(data)
        assert result is None or isinstance(result, CanonicalType)


def test_lookup_is_case_insensitive() -> None:
    assert lookup("FFD8FFE0") == CanonicalType.JPEG
    assert lookup("89504E470D0A1A0A") == CanonicalType.PNG
    assert lookup("deadbeef") is None


def test_registry_is_read_only() -> None:
    with pytest.raises(TypeError):
        SIGNATURE_REGISTRY["cafebabe"] = CanonicalType.ZIP  # type: ignore[index]


def test_every_canonical_type_has_signature_and_mime_types() -> None:
    registered = set(SIGNATURE_REGISTRY.values())
    for canonical in CanonicalType:
        assert canonical in registered
        assert DECLARED_MIME_TYPES[canonical]


def test_jpeg_accepts_browser_variants() -> None:
    assert {"image/jpeg", "image/jpg"} <= DECLARED_MIME_TYPES[CanonicalType.JPEG]


def test_check_registry_rejects_ambiguous_prefixes() -> None:
    with pytest.raises(ValueError):
        _check_registry({
            **SIGNATURE_REGISTRY,
            "25504446aabbccdd": CanonicalType.ZIP,
        })


def test_check_registry_rejects_bad_length() -> None:
    with pytest.raises(ValueError):
        _check_registry({**SIGNATURE_REGISTRY, "ffd8ff": CanonicalType.JPEG})


def test_normalize_mime() -> None:
    assert normalize_mime("Image/JPEG; charset=binary") == "image/jpeg"
    assert normalize_mime("  application/pdf ") == "application/pdf"
    assert normalize_mime(None) == ""
    assert normalize_mime("") == ""
