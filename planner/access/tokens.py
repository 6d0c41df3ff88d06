"""Invite token generation and comparison."""
import secrets
import string

INVITE_TOKEN_BYTES = 32
INVITE_TOKEN_LENGTH = INVITE_TOKEN_BYTES * 2

_HEX_DIGITS = frozenset(string.hexdigits.lower())


def generate_invite_token() -> str:
    """Return a fresh 64-character lowercase hex token."""
    return secrets.token_hex(INVITE_TOKEN_BYTES)


def is_well_formed(token: str | None) -> bool:
    """Check length and alphabet without touching storage."""
    if not token or len(token) != INVITE_TOKEN_LENGTH:
        return False
    return all(c in _HEX_DIGITS for c in token)


def tokens_match(presented: str | None, stored: str | None) -> bool:
    """Exact, constant-time comparison. Missing tokens never match."""
    if not presented or not stored:
        return False
    return secrets.compare_digest(presented.encode(), stored.encode())


def mask_token(token: str | None) -> str:
    """Shorten a token for log output."""
    if not token:
        return ""
    return token[:8] + "..."
