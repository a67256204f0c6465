import json
from datetime import datetime
from typing import Dict, Any, Union
from urllib.parse import quote

MIME_CATEGORIES = ("image", "video", "audio")


def format_json(data: Any, encode: bool = True) -> Union[str, bytes]:
    """
    Formats data as JSON with consistent encoding so the same metadata always
    produces the same ledger payload.

    Args:
        data: The data to encode (can be any JSON-serializable object)
        encode: Whether to encode the result as UTF-8 bytes (default: True)

    Returns:
        str or bytes: The formatted JSON string or bytes
    """
    # Serialize with minimal separators and sorted keys
    json_str = json.dumps(
        data,
        separators=(",", ":"),
        sort_keys=True,
        default=_json_default
    )

    return json_str.encode("utf-8") if encode else json_str


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def categorize_mime_type(mime_type: str) -> str:
    """
    Derive the content category from a MIME type.

    Args:
        mime_type: Declared MIME type of the upload

    Returns:
        One of image, video, audio, document or other
    """
    mime_type = (mime_type or "").lower()
    for category in MIME_CATEGORIES:
        if mime_type.startswith(f"{category}/"):
            return category
    if "pdf" in mime_type or "document" in mime_type:
        return "document"
    return "other"


def format_size(size_bytes: int) -> str:
    """
    Render a byte count in human readable form, e.g. 1536 -> "1.5 KB".
    """
    if size_bytes <= 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(size_bytes)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1

    rounded = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{rounded} {units[index]}"


def content_disposition(filename: str) -> str:
    """
    Build an attachment Content-Disposition header value.

    Header values are latin-1 on the wire, so the plain filename parameter
    carries an ASCII rendering and filename* carries the UTF-8 name
    percent-encoded as in RFC 6266.
    """
    fallback = "".join(
        char if " " <= char <= "~" and char not in '"\\' else "_"
        for char in filename
    )
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def get_ledger_metadata(content_address: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extracts the fields that are registered on the ledger alongside the
    content address.

    Args:
        content_address: The content address being registered
        metadata: Descriptive metadata of the upload

    Returns:
        Dict with the ledger payload fields
    """
    return {
        "contentAddress": content_address,
        "name": metadata.get("originalName"),
        "title": metadata.get("title"),
        "description": metadata.get("description", ""),
        "mimeType": metadata.get("mimeType"),
        "size": metadata.get("sizeBytes"),
    }


def serialize_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Prepare a MongoDB document for an API response: drops the internal _id,
    converts datetimes to ISO strings and adds the formatted size.
    """
    result = {}
    for key, value in document.items():
        if key == "_id":
            continue
        result[key] = _serialize_value(value)

    if "sizeBytes" in result:
        result["formattedSize"] = format_size(result["sizeBytes"] or 0)

    return result


def _serialize_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _serialize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_serialize_value(v) for v in value]
    return value
