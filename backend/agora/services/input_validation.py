"""
Input Validation & Sanitization.

WHAT THIS DOES:
Every piece of user text passes through here before it is stored:
argument text, debate titles/descriptions, display names and source URLs.

Each validator returns a ValidationResult and never raises. Invalid input
is reported via is_valid=False plus human-readable errors. The sanitized
value is produced even when the input is invalid, so callers can show a
cleaned preview.

SANITIZATION:
All markup is stripped and only text content is kept. <script> and <style>
elements are dropped together with their content. Entity-encoded markup
("&lt;script&gt;") is decoded and stripped too, and the suspicious-content
check looks at the decoded text. Plain text without markup comes back
unchanged (apart from trimming).

Length minimums apply to the sanitized value as well, so markup-only
input is rejected.

USAGE:
    result = validate_and_sanitize_argument(text)
    if not result.is_valid:
        raise HTTPException(status_code=422, detail=result.errors)
    store(result.sanitized_value)
"""

import html
import logging
import re
import warnings
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from agora.config import get_settings

logger = logging.getLogger(__name__)

# Short user text often looks like a URL or filename to BeautifulSoup
warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)

MIN_ARGUMENT_LENGTH = 10
MAX_ARGUMENT_LENGTH = 2000
MIN_TITLE_LENGTH = 3
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 5000
MIN_USERNAME_LENGTH = 2
MAX_USERNAME_LENGTH = 50
MAX_SOURCE_URL_LENGTH = 500
MIN_SOURCE_DESCRIPTION_LENGTH = 3
MAX_SOURCE_DESCRIPTION_LENGTH = 500

# Content that has no business in an argument, matched case-insensitively
SUSPICIOUS_PATTERNS = [
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
]

USERNAME_PATTERN = re.compile(r"[a-zA-Z0-9\s\-_.äöüÄÖÜß]+")

ALLOWED_URL_SCHEMES = ("http", "https")
SCHEME_PATTERN = re.compile(r"[a-zA-Z][a-zA-Z0-9+.\-]*")

# Elements whose content is dropped, not kept as text
DROPPED_ELEMENTS = ("script", "style")

# Upper bound on strip/decode rounds for nested entity encodings
MAX_DECODE_PASSES = 5


@dataclass
class ValidationResult:
    """Outcome of validating one input value."""

    is_valid: bool
    sanitized_value: str = ""
    errors: list[str] = field(default_factory=list)


def _strip_once(text: str) -> str:
    # Fast path: nothing that could be markup or an entity
    if "<" not in text and "&" not in text:
        return text

    soup = BeautifulSoup(text, "html.parser")
    for element in soup(DROPPED_ELEMENTS):
        element.decompose()
    return soup.get_text()


def strip_markup(text: str) -> str:
    """
    Remove all tags and attributes, keeping only text content.

    get_text() decodes entities, so "&lt;script&gt;" turns into a real tag.
    Stripping repeats until the text no longer changes; the result never
    contains markup, and stripping it again returns it unchanged.

    Example:
        strip_markup("<b>Steuern</b> senken<script>x()</script>")
        # "Steuern senken"
    """
    if not text:
        return ""
    for _ in range(MAX_DECODE_PASSES):
        stripped = _strip_once(text)
        if stripped == text:
            break
        text = stripped
    return text


def contains_suspicious_content(text: str) -> bool:
    """Check the text and every entity-decoded form of it."""
    for _ in range(MAX_DECODE_PASSES):
        if any(pattern.search(text) for pattern in SUSPICIOUS_PATTERNS):
            return True
        decoded = html.unescape(text)
        if decoded == text:
            return False
        text = decoded
    return False


def _check_length(
    value: str,
    minimum: int,
    maximum: int,
    too_short: str,
    too_long: str,
    errors: list[str],
) -> None:
    length = len(value.strip())
    if length > maximum:
        errors.append(too_long)
    if length < minimum:
        errors.append(too_short)


def _check_sanitized_length(
    sanitized: str,
    minimum: int,
    too_short: str,
    errors: list[str],
) -> None:
    # Markup-only input passes the raw length check but leaves no text
    if len(sanitized) < minimum and too_short not in errors:
        errors.append(too_short)


# =============================================================================
# VALIDATORS
# =============================================================================

def validate_and_sanitize_argument(text: str) -> ValidationResult:
    """
    Validate argument text: 10-2000 characters (trimmed) and free of
    script-like content. The sanitized value is always produced.
    """
    text = text or ""
    errors: list[str] = []

    too_short = f"Argument muss mindestens {MIN_ARGUMENT_LENGTH} Zeichen enthalten"
    _check_length(
        text,
        MIN_ARGUMENT_LENGTH,
        MAX_ARGUMENT_LENGTH,
        too_short,
        f"Argument ist zu lang (max. {MAX_ARGUMENT_LENGTH} Zeichen)",
        errors,
    )

    if contains_suspicious_content(text):
        errors.append("Text enthält nicht erlaubte Inhalte")

    sanitized = strip_markup(text).strip()
    _check_sanitized_length(sanitized, MIN_ARGUMENT_LENGTH, too_short, errors)

    if errors:
        logger.info(f"Argument rejected by validation: {errors}")

    return ValidationResult(
        is_valid=not errors,
        sanitized_value=sanitized,
        errors=errors,
    )


def validate_title(title: str) -> ValidationResult:
    title = title or ""
    errors: list[str] = []

    too_short = f"Titel muss mindestens {MIN_TITLE_LENGTH} Zeichen enthalten"
    _check_length(
        title,
        MIN_TITLE_LENGTH,
        MAX_TITLE_LENGTH,
        too_short,
        f"Titel ist zu lang (max. {MAX_TITLE_LENGTH} Zeichen)",
        errors,
    )

    sanitized = strip_markup(title).strip()
    _check_sanitized_length(sanitized, MIN_TITLE_LENGTH, too_short, errors)

    return ValidationResult(
        is_valid=not errors,
        sanitized_value=sanitized,
        errors=errors,
    )


def validate_description(description: Optional[str]) -> ValidationResult:
    """Debate descriptions are optional; only length and markup are checked."""
    description = description or ""
    errors: list[str] = []

    if len(description.strip()) > MAX_DESCRIPTION_LENGTH:
        errors.append(f"Beschreibung ist zu lang (max. {MAX_DESCRIPTION_LENGTH} Zeichen)")
    if contains_suspicious_content(description):
        errors.append("Text enthält nicht erlaubte Inhalte")

    return ValidationResult(
        is_valid=not errors,
        sanitized_value=strip_markup(description).strip(),
        errors=errors,
    )


def validate_username(username: str) -> ValidationResult:
    username = username or ""
    errors: list[str] = []

    _check_length(
        username,
        MIN_USERNAME_LENGTH,
        MAX_USERNAME_LENGTH,
        f"Benutzername muss mindestens {MIN_USERNAME_LENGTH} Zeichen enthalten",
        f"Benutzername ist zu lang (max. {MAX_USERNAME_LENGTH} Zeichen)",
        errors,
    )

    if not USERNAME_PATTERN.fullmatch(username):
        errors.append("Benutzername enthält nicht erlaubte Zeichen")

    return ValidationResult(
        is_valid=not errors,
        sanitized_value=username.strip(),
        errors=errors,
    )


def _is_private_host(hostname: str) -> bool:
    return (
        hostname == "localhost"
        or hostname.startswith("127.")
        or hostname.startswith("192.168.")
        or hostname.startswith("10.")
        or "0.0.0.0" in hostname
    )


def validate_source_url(url: str, production: Optional[bool] = None) -> ValidationResult:
    """
    Validate a source URL: must parse, http/https only, and in production
    must not point at localhost or a private network.

    Args:
        url: The URL as typed by the user
        production: Override the environment check (defaults to settings)
    """
    url = (url or "").strip()
    errors: list[str] = []

    if production is None:
        production = get_settings().is_production

    if len(url) > MAX_SOURCE_URL_LENGTH:
        errors.append(f"URL ist zu lang (max. {MAX_SOURCE_URL_LENGTH} Zeichen)")

    try:
        parts = urlsplit(url)
        scheme = parts.scheme.lower()
        hostname = (parts.hostname or "").lower()
    except ValueError:
        parts = None
        scheme = ""
        hostname = ""

    if parts is None or not SCHEME_PATTERN.fullmatch(scheme):
        errors.append("Ungültiges URL-Format")
    elif scheme not in ALLOWED_URL_SCHEMES:
        errors.append(f"Nur HTTP/HTTPS URLs sind erlaubt (nicht '{scheme}:')")
    elif not hostname:
        errors.append("Ungültiges URL-Format")
    elif production and _is_private_host(hostname):
        errors.append("Lokale URLs sind nicht erlaubt")

    return ValidationResult(
        is_valid=not errors,
        sanitized_value=url,
        errors=errors,
    )


def validate_source_description(description: str) -> ValidationResult:
    description = description or ""
    errors: list[str] = []

    too_short = (
        f"Quellenbeschreibung muss mindestens {MIN_SOURCE_DESCRIPTION_LENGTH} Zeichen enthalten"
    )
    _check_length(
        description,
        MIN_SOURCE_DESCRIPTION_LENGTH,
        MAX_SOURCE_DESCRIPTION_LENGTH,
        too_short,
        f"Quellenbeschreibung ist zu lang (max. {MAX_SOURCE_DESCRIPTION_LENGTH} Zeichen)",
        errors,
    )
    if contains_suspicious_content(description):
        errors.append("Text enthält nicht erlaubte Inhalte")

    sanitized = strip_markup(description).strip()
    _check_sanitized_length(sanitized, MIN_SOURCE_DESCRIPTION_LENGTH, too_short, errors)

    return ValidationResult(
        is_valid=not errors,
        sanitized_value=sanitized,
        errors=errors,
    )
