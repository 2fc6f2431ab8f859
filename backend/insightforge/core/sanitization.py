"""
Input sanitization for file names, log lines and column headers.
"""
import re
from urllib.parse import quote

CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f-\x9f]')


def sanitize_filename(filename: str, max_length: int = 255) -> str:
    """
    Strip path components and control characters from an upload name.

    Returns "unknown" when nothing usable is left.
    """
    if not filename:
        return "unknown"

    filename = filename.split('/')[-1].split('\\')[-1]
    filename = CONTROL_CHARS.sub('', filename)
    filename = filename.strip('. ')
    return filename[:max_length] or "unknown"


def content_disposition(filename: str) -> str:
    """
    Attachment header value for a download.

    Starlette encodes headers as latin-1, so the plain `filename` keeps
    printable ASCII only and the full name travels in `filename*`.
    """
    fallback = re.sub(r'[^\x20-\x7e]|["\\]', '', filename).strip() or "download"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def sanitize_for_logging(value: str, max_length: int = 500) -> str:
    """Flatten a value onto one log line."""
    if not value:
        return ""

    value = re.sub(r'[\r\n]', ' ', value)
    value = CONTROL_CHARS.sub('', value)
    if len(value) > max_length:
        value = value[:max_length] + "..."
    return value


def validate_column_name(name: str) -> bool:
    """
    Reject header cells that are empty, huge, or carry control characters.

    Newlines and tabs are allowed; spreadsheet headers often wrap.
    """
    if not name or len(name) > 1000:
        return False
    return not re.search(r'[\x00-\x08\x0b\x0c\x0e-\x1f]', name)
