import re
from datetime import timedelta
from typing import Optional, Union

from django.core.exceptions import ValidationError

SHA256_DIGEST_SIZE = 32
SHA256_HEX_RE = re.compile(r"[0-9a-fA-F]{64}")

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def sha256_from_hex(value: str, field: str = "sha256") -> bytes:
    """
    Convert a 64 character hexadecimal digest to its 32 byte binary form.

    Raises:
        ValidationError: If the value isn't exactly 64 hexadecimal characters.
    """
    if not isinstance(value, str) or not SHA256_HEX_RE.fullmatch(value):
        raise ValidationError(
            {field: "SHA256 must be exactly 64 hexadecimal characters"},
            code="invalid_sha256",
        )
    return bytes.fromhex(value)


def sha256_to_hex(value) -> Optional[str]:
    if value is None:
        return None
    # Postgres hands BinaryField values back as memoryview
    return bytes(value).hex()


def validate_sha256_digest(value, field: str = "sha256") -> None:
    if (
        not isinstance(value, (bytes, bytearray, memoryview))
        or len(bytes(value)) != SHA256_DIGEST_SIZE
    ):
        raise ValidationError(
            {field: f"SHA256 must be exactly {SHA256_DIGEST_SIZE} bytes"},
            code="invalid_sha256",
        )


def format_duration(duration: Union[timedelta, int, float, None]) -> Optional[str]:
    """
    Format a duration as "1h 2m 5s", leaving out leading units which are zero.

    Returns None for a missing or zero duration; anything shorter than a
    second is "0s".
    """
    if isinstance(duration, timedelta):
        duration = duration.total_seconds()
    if duration is None or duration == 0:
        return None
    total_seconds = int(duration)

    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if hours:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def format_size(size_bytes: Optional[int]) -> str:
    if not size_bytes:
        return "Unknown"

    size = float(size_bytes)
    unit = 0
    while size >= 1024 and unit < len(SIZE_UNITS) - 1:
        size /= 1024
        unit += 1

    formatted = ("%.2f" % size).rstrip("0").rstrip(".")
    return f"{formatted} {SIZE_UNITS[unit]}"
