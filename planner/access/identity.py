"""Parse identity claims out of a verified JWT payload.

Supabase-style tokens carry the subject and email at the top level, the
application role under ``app_metadata`` (or top-level ``role``), and profile
data under ``user_metadata``. Profile metadata comes in two shapes depending
on the sign-in provider:

    {"first_name": "Alex", "last_name": "Guberman"}     # email sign-up
    {"full_name": "Alex Guberman"} / {"name": "Alex"}    # OAuth providers
"""
from dataclasses import dataclass
from typing import Any

DEFAULT_ROLE = "authenticated"
ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class IdentityClaims:
    """Identity data extracted from a verified token."""

    user_id: str
    role: str = DEFAULT_ROLE
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    avatar_url: str | None = None


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def split_full_name(full_name: str) -> tuple[str, str | None]:
    """Split at the first space; no space means no last name."""
    first, sep, rest = full_name.partition(" ")
    if not sep or not first:
        return full_name, None
    return first, rest or None


def parse_names(metadata: dict[str, Any]) -> tuple[str | None, str | None]:
    """Return (first_name, last_name) from user metadata."""
    first = _text(metadata.get("first_name"))
    last = _text(metadata.get("last_name"))
    if first or last:
        return first, last

    full_name = _text(metadata.get("full_name")) or _text(metadata.get("name"))
    if not full_name:
        return None, None
    return split_full_name(full_name)


def parse_role(payload: dict[str, Any]) -> str:
    app_metadata = payload.get("app_metadata")
    if isinstance(app_metadata, dict) and _text(app_metadata.get("role")):
        return app_metadata["role"]
    return _text(payload.get("role")) or DEFAULT_ROLE


def parse_claims(payload: dict[str, Any]) -> IdentityClaims | None:
    """Build IdentityClaims from a JWT payload, or None without a subject."""
    subject = _text(payload.get("sub"))
    if not subject:
        return None

    metadata = payload.get("user_metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    first_name, last_name = parse_names(metadata)

    return IdentityClaims(
        user_id=subject,
        role=parse_role(payload),
        email=_text(payload.get("email")),
        first_name=first_name,
        last_name=last_name,
        phone=_text(metadata.get("phone")),
        avatar_url=_text(metadata.get("avatar_url")),
    )


def derive_identity_fields(claims: IdentityClaims) -> dict[str, str]:
    """Participant fields the identity provider is authoritative for.

    Only claims that are present show up; absent claims never null out the
    stored value.
    """
    candidates = {
        "name": claims.first_name,
        "last_name": claims.last_name,
        "contact_email": claims.email,
        "contact_phone": claims.phone,
        "avatar_url": claims.avatar_url,
    }
    return {field: value for field, value in candidates.items() if value}
