"""JWT credential issuance and verification.

Learn: A credential is a stateless HS256 JWT whose payload is exactly
{"sub": "<user id>", "exp": <epoch seconds>}. Nothing is stored server-side;
validity is decided by signature and expiry alone at verification time.

The algorithm is pinned. The token header's declared algorithm is checked
against HS256 *before* any key is handed out (signing_key), so a token
claiming "none" or an asymmetric algorithm can never be verified with the
shared secret.

Expiry is checked against an injectable clock rather than PyJWT's own
time source, which keeps expiry tests deterministic.
"""

import math
import time
from datetime import timedelta
from typing import Any, Callable

import jwt

from notekeeper.errors import ConfigurationError

ALGORITHM = "HS256"


class TokenError(Exception):
    """Raised when token creation/verification fails."""


class SignatureInvalid(TokenError):
    pass


class TokenExpired(TokenError):
    pass


class SubjectMissing(TokenError):
    pass


class SubjectInvalid(TokenError):
    pass


class TokenMalformed(TokenError):
    pass


def signing_key(declared_algorithm: Any, secret: bytes) -> bytes:
    """Return the verification key for a token's declared algorithm.

    Only the pinned algorithm gets the secret; everything else is rejected.
    """
    if declared_algorithm != ALGORITHM:
        raise SignatureInvalid(f"unexpected algorithm: {declared_algorithm!r}")
    return secret


def parse_identity(raw: Any) -> int:
    """Parse a user id from its string form (ASCII digits, positive)."""
    if not isinstance(raw, str) or not raw.isascii() or not raw.isdigit():
        raise ValueError(f"not an identity: {raw!r}")
    value = int(raw)
    if value <= 0:
        raise ValueError(f"not an identity: {raw!r}")
    return value


class CredentialManager:
    """Issues and verifies signed, time-bounded identity tokens."""

    def __init__(self, secret: str, clock: Callable[[], float] = time.time):
        if not secret or not secret.strip():
            raise ConfigurationError("credential secret is empty")
        self._secret = secret.encode("utf-8")
        self._clock = clock

    def issue(self, identity: int, ttl: timedelta) -> str:
        """Create a token binding ``identity`` until now + ttl."""
        if isinstance(identity, bool) or not isinstance(identity, int) or identity <= 0:
            raise TokenError(f"cannot issue a token for identity {identity!r}")
        if ttl.total_seconds() <= 0:
            raise TokenError("token ttl must be positive")

        payload = {
            "sub": str(identity),
            # rounded up: never earlier than now + ttl
            "exp": math.ceil(self._clock() + ttl.total_seconds()),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> int:
        """Verify a token and return the identity it asserts.

        Raises a TokenError subclass describing why the token was refused.
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as e:
            raise TokenMalformed(f"undecodable token: {e}") from e

        key = signing_key(header.get("alg"), self._secret)

        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[ALGORITHM],
                # exp is checked below against our own clock
                options={"verify_exp": False, "verify_sub": False},
            )
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as e:
            raise SignatureInvalid(str(e)) from e
        except jwt.InvalidTokenError as e:
            raise TokenMalformed(str(e)) from e

        expires_at = payload.get("exp")
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            raise TokenMalformed("exp claim missing or not numeric")
        if self._clock() >= expires_at:
            raise TokenExpired("token has expired")

        subject = payload.get("sub")
        if subject is None or subject == "":
            raise SubjectMissing("subject is empty")
        try:
            return parse_identity(subject)
        except ValueError as e:
            raise SubjectInvalid(str(e)) from e
