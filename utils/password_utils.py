import re

from werkzeug.security import check_password_hash, generate_password_hash

SPECIAL_CHARACTERS = "@$!%*?&"

_STRENGTH_CHECKS = (
    re.compile(r"[a-z]"),
    re.compile(r"[A-Z]"),
    re.compile(r"\d"),
    re.compile(f"[{re.escape(SPECIAL_CHARACTERS)}]"),
)


def hash_password(password):
    return generate_password_hash(password)


def verify_password(password, password_hash):
    if not password or not password_hash:
        return False
    return check_password_hash(password_hash, password)


def password_error(password, min_length=8):
    """Return the first strength problem with ``password``, or None."""
    if not password or len(password) < min_length:
        return f"Password must be at least {min_length} characters long."
    if not all(check.search(password) for check in _STRENGTH_CHECKS):
        return "Password must contain uppercase, lowercase, number and special character."
    return None
