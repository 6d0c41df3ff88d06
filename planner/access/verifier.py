"""JWT signature verification against the identity provider's JWKS."""
import enum
import logging
from collections.abc import Callable
from typing import Any

import jwt

from planner.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHMS = ("ES256", "RS256")

KeyResolver = Callable[[str], Any]


class VerificationErrorKind(enum.Enum):
    MALFORMED = "malformed"
    SIGNATURE = "signature"
    EXPIRED = "expired"
    ISSUER = "issuer"
    AUDIENCE = "audience"
    KEY_NOT_FOUND = "key_not_found"


class VerificationError(Exception):
    """A bearer token could not be verified."""

    def __init__(self, kind: VerificationErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(f"{kind.value}: {message}")


def jwks_key_resolver(jwks_url: str, lifespan: int = 300) -> KeyResolver:
    """Resolve signing keys from a remote JWKS, cached by PyJWKClient."""
    client = jwt.PyJWKClient(jwks_url, cache_keys=True, lifespan=lifespan)

    def resolve(token: str) -> Any:
        return client.get_signing_key_from_jwt(token).key

    return resolve


class JwtVerifier:
    """Verify bearer tokens and return their claims.

    ``key_resolver`` maps a raw token to the public key that should have
    signed it. Network access (JWKS fetch) and its caching belong to the
    resolver; this class adds no retries.
    """

    def __init__(
        self,
        key_resolver: KeyResolver,
        issuer: str | None = None,
        audience: str | None = None,
        leeway: int = 30,
        algorithms: tuple[str, ...] = DEFAULT_ALGORITHMS,
    ):
        self.key_resolver = key_resolver
        self.issuer = issuer
        self.audience = audience
        self.leeway = leeway
        self.algorithms = list(algorithms)

    def _resolve_key(self, token: str) -> Any:
        try:
            return self.key_resolver(token)
        except jwt.PyJWKClientError as e:
            raise VerificationError(VerificationErrorKind.KEY_NOT_FOUND, str(e)) from e
        except jwt.DecodeError as e:
            raise VerificationError(VerificationErrorKind.MALFORMED, str(e)) from e

    def verify(self, token: str) -> dict[str, Any]:
        """Return the verified claims or raise VerificationError."""
        key = self._resolve_key(token)
        try:
            return jwt.decode(
                token,
                key,
                algorithms=self.algorithms,
                issuer=self.issuer,
                audience=self.audience,
                leeway=self.leeway,
                options={"verify_aud": self.audience is not None, "require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise VerificationError(VerificationErrorKind.EXPIRED, str(e)) from e
        except jwt.InvalidIssuerError as e:
            raise VerificationError(VerificationErrorKind.ISSUER, str(e)) from e
        except jwt.InvalidAudienceError as e:
            raise VerificationError(VerificationErrorKind.AUDIENCE, str(e)) from e
        except jwt.InvalidSignatureError as e:
            raise VerificationError(VerificationErrorKind.SIGNATURE, str(e)) from e
        except jwt.InvalidTokenError as e:
            raise VerificationError(VerificationErrorKind.MALFORMED, str(e)) from e


def build_verifier(settings: Settings) -> JwtVerifier | None:
    """Build the production verifier, or None when JWT is not configured."""
    if not settings.jwt_enabled:
        logger.warning("SUPABASE_URL not configured, JWT verification disabled")
        return None

    verifier = JwtVerifier(
        jwks_key_resolver(settings.jwks_url, settings.jwks_cache_lifespan_seconds),
        issuer=settings.resolved_jwt_issuer,
        audience=settings.jwt_audience or None,
        leeway=settings.jwt_clock_tolerance_seconds,
    )
    logger.info(
        f"JWT verification enabled (jwks={settings.jwks_url}, issuer={verifier.issuer})"
    )
    return verifier
