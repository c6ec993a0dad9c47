"""Pattern-based input validation and sanitization."""
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

from kiosk.core.errors import InputValidationError, SecurityViolation

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 1000
MAX_NAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 5000
MAX_SPECIAL_INSTRUCTIONS_LENGTH = 200

LENGTH_LIMITS = {
    "text": MAX_TEXT_LENGTH,
    "name": MAX_NAME_LENGTH,
    "description": MAX_DESCRIPTION_LENGTH,
    "email": MAX_NAME_LENGTH,
    "url": MAX_TEXT_LENGTH,
}

XSS_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"<script",
        r"javascript:",
        r"vbscript:",
        r"onload=",
        r"onerror=",
        r"onclick=",
        r"onmouseover=",
        r"onmouseout=",
        r"onfocus=",
        r"onblur=",
        r"onchange=",
        r"onsubmit=",
        r"onkeydown=",
        r"onkeyup=",
        r"onkeypress=",
        r"eval\(",
        r"expression\(",
        r"document\.cookie",
        r"window\.location",
        r"document\.write",
        r"innerHTML",
        r"<iframe",
        r"<object",
        r"<embed",
        r"<link",
        r"<meta",
        r"<style",
    )
]

SQL_INJECTION_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"union\s+select",
        r"drop\s+table",
        r"insert\s+into",
        r"delete\s+from",
        r"update\s+set",
        r"alter\s+table",
        r"create\s+table",
        r"exec\s*\(",
        r"execute\s*\(",
        r"sp_executesql",
        r"xp_cmdshell",
        r"sp_oa",
        r"--",
        r"/\*",
        r"\*/",
        r";\s*drop",
        r";\s*delete",
        r";\s*update",
        r";\s*insert",
    )
]

PATH_TRAVERSAL_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\.\./",
        r"\.\.\\",
        r"%2e%2e%2f",
        r"%2e%2e%5c",
        r"\.\.%2f",
        r"\.\.%5c",
        r"%252e%252e%252f",
        r"%252e%252e%255c",
    )
]

PATTERN_GROUPS = (
    ("XSS_DETECTED", XSS_PATTERNS),
    ("SQL_INJECTION_DETECTED", SQL_INJECTION_PATTERNS),
    ("PATH_TRAVERSAL_DETECTED", PATH_TRAVERSAL_PATTERNS),
)

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_TAG = re.compile(r"<[^>]*>")
_DANGEROUS_CHARS = re.compile(r"[<>'\"]")


def detect_malicious(value: str) -> Optional[str]:
    """Return the violation code of the first matching pattern group."""
    for code, patterns in PATTERN_GROUPS:
        for pattern in patterns:
            if pattern.search(value):
                logger.warning(
                    f"[SECURITY] {code} - pattern: {pattern.pattern}, input: {value[:100]!r}"
                )
                return code
    return None


def sanitize_input(value: str) -> str:
    """Strip markup and quote characters."""
    return _DANGEROUS_CHARS.sub("", _TAG.sub("", value)).strip()


def validate_and_sanitize_input(
    value: Any,
    kind: str = "text",
    required: bool = False,
    field: Optional[str] = None,
) -> str:
    """Validate a text field and return its sanitized form.

    Raises ``InputValidationError`` for empty required fields, wrong types,
    over-long values and malformed emails or urls, and
    ``SecurityViolation`` when a malicious pattern matches.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise InputValidationError("This field is required", field=field)
        return ""
    if not isinstance(value, str):
        raise InputValidationError("Input must be a string", field=field)

    max_length = LENGTH_LIMITS.get(kind, MAX_TEXT_LENGTH)
    if len(value) > max_length:
        raise InputValidationError(f"Input exceeds maximum length of {max_length} characters", field=field)

    code = detect_malicious(value)
    if code:
        raise SecurityViolation("Potentially malicious content detected", code=code, field=field)

    if kind == "email" and not _EMAIL.match(value):
        raise InputValidationError("Invalid email format", field=field)
    if kind == "url":
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InputValidationError("Invalid URL format", field=field)

    return sanitize_input(value)


def validate_numeric_input(
    value: Union[str, int, float, Decimal],
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
    allow_decimals: bool = True,
    field: Optional[str] = None,
) -> Decimal:
    """Parse and range-check a number."""
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InputValidationError("Input must be a valid number", field=field)
    if not number.is_finite():
        raise InputValidationError("Input must be a valid number", field=field)
    if not allow_decimals and number != number.to_integral_value():
        raise InputValidationError("Input must be a whole number", field=field)
    if minimum is not None and number < Decimal(str(minimum)):
        raise InputValidationError(f"Value must be at least {minimum}", field=field)
    if maximum is not None and number > Decimal(str(maximum)):
        raise InputValidationError(f"Value must not exceed {maximum}", field=field)
    return number


def validate_form_data(data: Dict[str, Any], schema: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """Validate every field of ``data`` that ``schema`` describes.

    Schema entries look like ``{"type": "name", "required": True}`` or
    ``{"type": "number", "min": 0, "max": 100, "allow_decimals": False}``.
    Fields missing from the schema are dropped.
    """
    validated: Dict[str, Any] = {}
    for key, value in data.items():
        rules = schema.get(key)
        if rules is None:
            continue
        if rules.get("type") == "number":
            validated[key] = validate_numeric_input(
                value,
                minimum=rules.get("min"),
                maximum=rules.get("max"),
                allow_decimals=rules.get("allow_decimals", True),
                field=key,
            )
        else:
            validated[key] = validate_and_sanitize_input(
                value,
                kind=rules.get("type", "text"),
                required=rules.get("required", False),
                field=key,
            )

    for key, rules in schema.items():
        if rules.get("required") and key not in data:
            raise InputValidationError("This field is required", field=key)
    return validated


def validate_special_instructions(value: Optional[str]) -> Optional[str]:
    """Trim and check free-text instructions attached to a cart item."""
    if value is None:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if len(trimmed) > MAX_SPECIAL_INSTRUCTIONS_LENGTH:
        raise InputValidationError(
            f"Input exceeds maximum length of {MAX_SPECIAL_INSTRUCTIONS_LENGTH} characters",
            field="special_instructions",
        )
    code = detect_malicious(trimmed)
    if code:
        raise SecurityViolation(
            "Potentially malicious content detected", code=code, field="special_instructions"
        )
    return _TAG.sub("", trimmed).strip()
