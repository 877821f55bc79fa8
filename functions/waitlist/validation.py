import re

# local@domain.tld shape, no whitespace; permissive on purpose
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# RFC 5321 path limit; also keeps the key well under DynamoDB's 2048 bytes
MAX_EMAIL_LENGTH = 254


def normalize_email(value) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def is_valid_email(email: str) -> bool:
    if not email or len(email) > MAX_EMAIL_LENGTH:
        return False
    return bool(EMAIL_RE.fullmatch(email))


def validate_email(value):
    email = normalize_email(value)
    return email, is_valid_email(email)
