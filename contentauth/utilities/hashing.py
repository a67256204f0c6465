import hashlib
import string


def compute_content_address(data: bytes) -> str:
    """
    Compute the content address of a byte sequence.

    The address depends on the bytes alone; filename and MIME type play no part.

    Args:
        data: Raw file contents

    Returns:
        Lowercase hex SHA-256 digest (64 characters)
    """
    return hashlib.sha256(data).hexdigest()


def is_content_address(value: str) -> bool:
    """Check that a string has the shape of a content address."""
    return len(value) == 64 and all(c in string.hexdigits for c in value)
