import enum


class CanonicalType(str, enum.Enum):
    """
    File format as determined from the bytes on disk.
    Never derived from the client's filename or Content-Type.
    """
    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    BMP = "bmp"
    WEBP = "webp"
    PDF = "pdf"
    ZIP = "zip"
    DOC = "doc"
    MP4 = "mp4"
    MPG = "mpg"
    MKV = "mkv"


class UploadClass(str, enum.Enum):
    ANIMALS = "animals"
    DOCUMENTS = "documents"
    LOGOS = "logos"
    FINANCIAL = "financial"
    HEALTH = "health"
    COMMUNITY = "community"


class ReasonCode(str, enum.Enum):
    TYPE_NOT_ALLOWED = "type_not_allowed"
    SIGNATURE_MISMATCH = "signature_mismatch"
    UNDETECTABLE = "undetectable"
    FILE_TOO_LARGE = "file_too_large"
    TOO_MANY_FILES = "too_many_files"
    INTERNAL_ERROR = "internal_error"


class FileState(str, enum.Enum):
    RECEIVED = "received"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ERRORED = "errored"
