"""Family invitation codes.

Codes are six uppercase alphanumeric characters shown as ``XXX-XXX``.
Uniqueness is not guaranteed here: the ``families.codigo_invitacion``
unique index rejects duplicates and callers draw a new code.
"""

import re
import secrets
import string

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6

_CODE_FORMAT = re.compile(r"[A-Z0-9]{3}-[A-Z0-9]{3}")
_ALNUM = re.compile(r"[A-Z0-9]+")
_WHITESPACE = re.compile(r"\s")


def generate_invitation_code() -> str:
    """Draw a random code from the OS CSPRNG."""
    raw = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
    return f"{raw[:3]}-{raw[3:]}"


def normalize_invitation_code(code: str) -> str:
    """Clean user input into ``XXX-XXX`` form where possible.

    Whitespace is removed and letters upper-cased. A dash is inserted only
    into exactly six contiguous alphanumerics; anything else (including
    input that already has a dash) is returned cleaned but otherwise as-is.
    """
    cleaned = _WHITESPACE.sub("", code).upper()

    if "-" in cleaned:
        return cleaned

    if len(cleaned) == CODE_LENGTH and _ALNUM.fullmatch(cleaned):
        return f"{cleaned[:3]}-{cleaned[3:]}"

    return cleaned


def is_valid_invitation_code_format(code: str) -> bool:
    return _CODE_FORMAT.fullmatch(normalize_invitation_code(code)) is not None
