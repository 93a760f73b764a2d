from urllib.parse import urldefrag, urlparse
from typing import Tuple

ALLOWED_SCHEMES = ("http", "https")


def normalize_url(url: str) -> Tuple[str, bool]:

    url = url.strip()

    parsed = urlparse(url)

    if not parsed.scheme:
        normalized = f"https://{url}"
        return normalized, True

    return url, False


def is_absolute_http_url(url: str) -> bool:
    """True when url already carries an http(s) scheme and a host."""
    if not isinstance(url, str) or not url or url != url.strip():
        return False
    try:
        parsed = urlparse(url)
        # Accessing .port validates the port component
        parsed.port
    except ValueError:
        return False
    if parsed.scheme not in ALLOWED_SCHEMES or not parsed.hostname:
        return False
    return not any(ch.isspace() for ch in parsed.netloc)


def strip_fragment(url: str) -> str:
    return urldefrag(url)[0]


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def validate_url(url: str) -> Tuple[bool, str, str]:
    if not url or not url.strip():
        return False, "", "URL cannot be empty"

    normalized_url, was_modified = normalize_url(url)

    try:
        parsed = urlparse(normalized_url)

        if not parsed.netloc:
            return False, normalized_url, "Invalid URL format: missing domain"

        if parsed.scheme not in ALLOWED_SCHEMES:
            return False, normalized_url, f"Invalid URL scheme: {parsed.scheme} (must be http or https)"

        if not is_absolute_http_url(normalized_url):
            return False, normalized_url, "Invalid URL format: malformed host"

        return True, normalized_url, ""

    except Exception as e:
        return False, normalized_url, f"URL parsing error: {str(e)}"
