#!/usr/bin/env python3

"""
GitHub App JWT Signer
---------------------
Generates the JSON Web Tokens used to authenticate as a GitHub App. These JWTs
are only good for App-level endpoints, most importantly the exchange for an
installation access token.

GitHub requires:
    - Algorithm: RS256
    - Issued at (iat): no later than now
    - Expiration (exp): at most 10 minutes after iat
    - Issuer (iss): the App ID
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Optional

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from igloo.clock import Clock, utc_now
from igloo.errors import SigningError
from igloo.models import AppCredential, SignedJwt

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"
MAX_JWT_LIFETIME = timedelta(minutes=10)
# iat is backdated to tolerate clock drift between us and GitHub
CLOCK_DRIFT = timedelta(seconds=60)
DEFAULT_REFRESH_LEEWAY = timedelta(seconds=60)


def load_private_key(credential: AppCredential) -> rsa.RSAPrivateKey:
    """Parse the credential's PEM text into an RSA private key."""
    pem = credential.private_key.get_secret_value()
    if not pem or not pem.strip():
        raise SigningError(f"GitHub App {credential.app_id} has no private key material")
    try:
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise SigningError(f"Invalid private key for GitHub App {credential.app_id}: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise SigningError(f"Private key for GitHub App {credential.app_id} is not an RSA key")
    return key


def sign(credential: AppCredential, now: datetime, lifetime: timedelta = MAX_JWT_LIFETIME) -> SignedJwt:
    """Sign a JWT for authenticating as the GitHub App at time `now`."""
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    if lifetime > MAX_JWT_LIFETIME:
        logger.warning(f"Requested JWT lifetime {lifetime} exceeds GitHub's 10-minute limit, using {MAX_JWT_LIFETIME}")
        lifetime = MAX_JWT_LIFETIME
    lifetime_seconds = int(lifetime.total_seconds())
    if lifetime_seconds <= CLOCK_DRIFT.total_seconds():
        raise ValueError(f"JWT lifetime must be longer than the {CLOCK_DRIFT} clock drift allowance")

    key = load_private_key(credential)
    issued_at = (now - CLOCK_DRIFT).replace(microsecond=0)
    expires_at = issued_at + timedelta(seconds=lifetime_seconds)
    payload = {
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
        "iss": str(credential.app_id),
    }
    try:
        token = jwt.encode(payload, key, algorithm=ALGORITHM)
    except (jwt.PyJWTError, ValueError, TypeError) as e:
        raise SigningError(f"Failed to sign JWT for GitHub App {credential.app_id}: {e}") from e
    logger.debug(f"Signed JWT for GitHub App {credential.app_id} (expires at {expires_at.isoformat()})")
    return SignedJwt(token=token, issued_at=issued_at, expires_at=expires_at)


class AppJwtSource:
    """Hands out the current App JWT, signing a new one only when the last is about to expire."""

    def __init__(self, credential: AppCredential, clock: Clock = utc_now,
                 refresh_leeway: timedelta = DEFAULT_REFRESH_LEEWAY,
                 lifetime: timedelta = MAX_JWT_LIFETIME) -> None:
        usable = min(lifetime, MAX_JWT_LIFETIME) - CLOCK_DRIFT
        if refresh_leeway >= usable:
            raise ValueError(f"Refresh leeway {refresh_leeway} must be shorter than the usable JWT window {usable}")
        self.credential = credential
        self.clock = clock
        self.refresh_leeway = refresh_leeway
        self.lifetime = lifetime
        self._lock = threading.Lock()
        self._current: Optional[SignedJwt] = None

    @property
    def app_id(self) -> int:
        return self.credential.app_id

    def current(self) -> SignedJwt:
        """Return a JWT that stays valid for at least the refresh leeway."""
        with self._lock:
            now = self.clock()
            if self._current is None or self._current.is_expired(now, self.refresh_leeway):
                self._current = sign(self.credential, now, self.lifetime)
            return self._current

    def invalidate(self) -> None:
        """Forget the cached JWT so the next call signs a fresh one."""
        with self._lock:
            self._current = None
