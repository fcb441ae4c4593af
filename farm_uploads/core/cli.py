import sys

from farm_uploads.core.policies import POLICY_TABLE
from farm_uploads.core.signatures import HEADER_BYTES, detect
from farm_uploads.core.storage import read_header


def detect_type():
    """Print the detected type of local files - usage: poetry run detect-type <path> [<path> ...]."""
    paths = sys.argv[1:]
    if not paths:
        print("Usage: poetry run detect-type <path> [<path> ...]")
        sys.exit(1)

    failed = False
    for path in paths:
        try:
            detected = detect(read_header(path, HEADER_BYTES))
        except OSError as e:
            print(f"{path}: error ({e.strerror or e})")
            failed = True
            continue
        if detected is None:
            failed = True
        print(f"{path}: {detected.value if detected else 'unknown'}")

    if failed:
        sys.exit(1)


def show_policies():
    """Print the upload class policy table."""
    for policy in POLICY_TABLE.values():
        max_mb = policy.max_file_size_bytes / (1024 * 1024)
        print(
            f"{policy.upload_class.value:<10} "
            f"types={','.join(policy.allowed_type_names())} "
            f"max_size={max_mb:g}MB "
            f"max_files={policy.max_file_count} "
            f"dir={policy.destination_dir}"
        )
