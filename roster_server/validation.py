# roster_server/validation.py

import re
from typing import Any, Dict, Mapping

from .errors import ValidationError

# Field name -> label used in error messages, in the order they are checked.
REQUIRED_FIELDS = (
    ("firstName", "First Name"),
    ("lastName", "Last Name"),
    ("mobile", "Mobile"),
    ("email", "Email"),
    ("street", "Street"),
    ("city", "City"),
    ("state", "State"),
    ("country", "Country"),
    ("loginId", "Login ID"),
    ("password", "Password"),
)

NAME_RE = re.compile(r"[A-Za-z]+")
MOBILE_RE = re.compile(r"[0-9]{10}")
EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
LOGIN_ID_RE = re.compile(r"[A-Za-z0-9]{8}")
PASSWORD_RE = re.compile(r"(?=.*[a-z])(?=.*[A-Z])(?=.*[\W_]).{6,}", re.ASCII)
STREET_RE = re.compile(r"[A-Za-z0-9\s,.-]+")
PLACE_RE = re.compile(r"[A-Za-z\s]+")

FORMAT_RULES = (
    ("firstName", NAME_RE, "First Name must contain only letters"),
    ("lastName", NAME_RE, "Last Name must contain only letters"),
    ("mobile", MOBILE_RE, "Mobile must be 10 digits"),
    ("email", EMAIL_RE, "Invalid Email format"),
    ("street", STREET_RE, "Street can only have letters, numbers and common punctuation"),
    ("city", PLACE_RE, "City must contain only letters"),
    ("state", PLACE_RE, "State must contain only letters"),
    ("country", PLACE_RE, "Country must contain only letters"),
    ("loginId", LOGIN_ID_RE, "Login ID must be exactly 8 alphanumeric characters"),
    ("password", PASSWORD_RE, "Password must be 6+ chars with 1 uppercase, 1 lowercase & 1 special char"),
)


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def clean_registration(raw: Mapping[str, Any]) -> Dict[str, str]:
    """
    Sanitizes and validates a registration form.

    Every field is trimmed and the email is lower-cased. Required fields are
    checked first, then formats; the first failure raises ValidationError
    carrying the message shown to the user.
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("Malformed registration payload")

    fields = {name: _clean(raw.get(name)) for name, _ in REQUIRED_FIELDS}
    fields["email"] = fields["email"].lower()

    for name, label in REQUIRED_FIELDS:
        if not fields[name]:
            raise ValidationError(f"{label} is required")

    for name, pattern, message in FORMAT_RULES:
        if not pattern.fullmatch(fields[name]):
            raise ValidationError(message)

    return fields
