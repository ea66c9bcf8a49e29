"""
Security utilities for the product gateway services

Provides response hardening headers, input sanitization and masking of
error messages before they are logged.
"""

import re
from typing import Any, Dict, List, MutableMapping

# Hardening headers set on every response
SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "no-referrer",
}

HSTS_HEADER = "Strict-Transport-Security"
HSTS_VALUE = "max-age=31536000; includeSubDomains"

# Headers that identify the server software
FINGERPRINT_HEADERS = ("server", "x-powered-by")

HTML_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
}

_ESCAPE_TABLE = str.maketrans(HTML_ESCAPES)

# ECMAScript WhiteSpace and LineTerminator, the set String.prototype.trim removes
TRIM_CHARACTERS = (
    "\t\n\v\f\r "
    "\N{NO-BREAK SPACE}\N{OGHAM SPACE MARK}"
    "\N{EN QUAD}\N{EM QUAD}\N{EN SPACE}\N{EM SPACE}"
    "\N{THREE-PER-EM SPACE}\N{FOUR-PER-EM SPACE}\N{SIX-PER-EM SPACE}"
    "\N{FIGURE SPACE}\N{PUNCTUATION SPACE}\N{THIN SPACE}\N{HAIR SPACE}"
    "\N{LINE SEPARATOR}\N{PARAGRAPH SEPARATOR}"
    "\N{NARROW NO-BREAK SPACE}\N{MEDIUM MATHEMATICAL SPACE}"
    "\N{IDEOGRAPHIC SPACE}\N{ZERO WIDTH NO-BREAK SPACE}"
)

_URL_CREDENTIALS = re.compile(r"(?P<scheme>[A-Za-z][A-Za-z0-9+.-]*://)[^/\s@]+@")

MAX_MASKED_LENGTH = 200


def apply_security_headers(headers: MutableMapping[str, str], hsts: bool = False) -> None:
    """
    Set hardening headers and strip server fingerprints

    Args:
        headers: Mutable response headers
        hsts: Also emit Strict-Transport-Security (production only)
    """
    for name, value in SECURITY_HEADERS.items():
        headers[name] = value

    for name in FINGERPRINT_HEADERS:
        if name in headers:
            del headers[name]

    if hsts:
        headers[HSTS_HEADER] = HSTS_VALUE


def escape_html(value: str) -> str:
    """Replace < > \" ' with their HTML entities"""
    return value.translate(_ESCAPE_TABLE)


def sanitize_input(input_string: str) -> str:
    """
    Sanitize a user supplied string

    Args:
        input_string: Input to sanitize

    Returns:
        Trimmed string with HTML-significant characters escaped
    """
    return escape_html(input_string.strip(TRIM_CHARACTERS))


def sanitize_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Sanitize the top-level string fields of a mapping

    Nested objects and arrays are returned as-is, they are not recursed into.
    """
    return {
        key: sanitize_input(value) if isinstance(value, str) else value
        for key, value in data.items()
    }


def sanitize_items(items: List[Any]) -> List[Any]:
    """Sanitize the top-level string elements of an array"""
    return [sanitize_input(item) if isinstance(item, str) else item for item in items]


def mask_error_message(message: str, max_length: int = MAX_MASKED_LENGTH) -> str:
    """
    Make an error message safe to log

    Redacts credentials embedded in URLs and caps the length.
    """
    masked = _URL_CREDENTIALS.sub(r"\g<scheme>***@", message or "Unknown error")
    if len(masked) > max_length:
        masked = masked[:max_length] + "..."
    return masked
