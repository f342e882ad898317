import secrets
from datetime import UTC, datetime

INVITATION_TOKEN_BYTES = 32
INVITATION_TOKEN_LENGTH = INVITATION_TOKEN_BYTES * 2


def utc_now() -> datetime:
    # Naive UTC, matching how DateTime columns round-trip through SQLite
    return datetime.now(UTC).replace(tzinfo=None)


def generate_token() -> str:
    """Return a 64 character hex token built from 32 random bytes."""
    return secrets.token_hex(INVITATION_TOKEN_BYTES)
