"""Input checks for listing links, ids and statuses."""

import re
import uuid
from urllib.parse import urlsplit

from listing_tracker.core.errors import InvalidInputError

# A link is accepted when its host is one of these or a subdomain of one,
# whatever the path. Marketplace items are shared under too many URL shapes
# (share links, group posts, mobile pages) to restrict by path.
FACEBOOK_DOMAINS = (
    "facebook.com",
    "www.facebook.com",
    "m.facebook.com",
    "fb.com",
    "www.fb.com",
)

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_INTEGER_RE = re.compile(r"^[+-]?[0-9]+$")

# status is stored in a 32-bit INTEGER column
_STATUS_MIN = -(2**31)
_STATUS_MAX = 2**31 - 1


def is_valid_facebook_url(url: object) -> bool:
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False
    if parts.scheme.lower() not in ("http", "https"):
        return False

    host = parts.hostname
    if not host:
        return False
    return any(host == domain or host.endswith("." + domain) for domain in FACEBOOK_DOMAINS)


def is_valid_uuid(value: object) -> bool:
    return isinstance(value, str) and bool(_UUID_RE.match(value))


def coerce_status(value: object) -> int:
    """Coerce a status value to an int.

    Accepts ints, integral floats and strings of digits (surrounding
    whitespace and a sign allowed). Raises ValueError for anything else,
    booleans included.
    """
    if isinstance(value, bool):
        raise ValueError("Status must be a valid number")
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and _INTEGER_RE.match(value.strip()):
        number = int(value.strip())
    else:
        raise ValueError("Status must be a valid number")

    if not _STATUS_MIN <= number <= _STATUS_MAX:
        raise ValueError("Status is out of range")
    return number


def parse_listing_id(raw: str) -> uuid.UUID:
    if not is_valid_uuid(raw):
        raise InvalidInputError("Invalid listing ID", "ID must be a valid UUID format")
    return uuid.UUID(raw)


def parse_status(raw: str) -> int:
    try:
        return coerce_status(raw)
    except ValueError as exc:
        raise InvalidInputError("Status must be a valid number") from exc
