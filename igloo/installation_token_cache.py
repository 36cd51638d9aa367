#!/usr/bin/env python3

"""
Installation Token Cache
------------------------
Caches GitHub App installation access tokens per installation ID and refreshes
them shortly before they expire.

Concurrent callers asking for the same installation share a single exchange
call: the first caller performs it while the others wait for its outcome
(token or exception). Different installations are exchanged independently.

Failures are never retried here; that policy belongs to the caller.
"""

import logging
import threading
from datetime import timedelta
from typing import Callable, Dict, Optional

from igloo.clock import Clock, utc_now
from igloo.errors import AuthExchangeError, ExpiredCredentialError
from igloo.models import InstallationToken

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_LEEWAY = timedelta(seconds=60)

Exchange = Callable[[int], InstallationToken]


class _Flight:
    """An exchange in progress for one installation."""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.token: Optional[InstallationToken] = None
        self.error: Optional[BaseException] = None


class InstallationTokenCache:

    def __init__(self, exchange: Exchange, clock: Clock = utc_now,
                 refresh_leeway: timedelta = DEFAULT_REFRESH_LEEWAY) -> None:
        """
        Args:
            exchange: performs the JWT to installation token exchange for an installation ID
            clock: returns the current aware UTC time
            refresh_leeway: tokens expiring within this window are treated as expired
        """
        self._exchange = exchange
        self.clock = clock
        self.refresh_leeway = refresh_leeway
        self._lock = threading.Lock()
        self._tokens: Dict[int, InstallationToken] = {}
        self._flights: Dict[int, _Flight] = {}

    def get_token(self, installation_id: int, timeout: Optional[float] = None) -> InstallationToken:
        """Return a usable token for the installation, exchanging for a new one if needed."""
        with self._lock:
            cached = self._tokens.get(installation_id)
            if cached is not None and not cached.is_expired(self.clock(), self.refresh_leeway):
                logger.debug(f"Using cached installation token for installation {installation_id}")
                return cached
            flight = self._flights.get(installation_id)
            leader = flight is None
            if leader:
                flight = _Flight()
                self._flights[installation_id] = flight

        if leader:
            return self._run_exchange(installation_id, flight)

        logger.debug(f"Waiting on in-flight token exchange for installation {installation_id}")
        if not flight.done.wait(timeout):
            raise AuthExchangeError(
                f"Timed out waiting for installation token for installation {installation_id}",
                installation_id=installation_id,
            )
        if flight.error is not None:
            raise flight.error
        return flight.token

    def _run_exchange(self, installation_id: int, flight: _Flight) -> InstallationToken:
        logger.info(f"Requesting new installation token for installation {installation_id}")
        try:
            token = self._exchange(installation_id)
            if token.is_expired(self.clock()):
                raise ExpiredCredentialError(
                    f"Installation token for installation {installation_id} expired at "
                    f"{token.expires_at.isoformat()} before it could be used"
                )
            flight.token = token
            return token
        except BaseException as e:
            flight.error = e
            raise
        finally:
            with self._lock:
                if flight.token is not None:
                    self._tokens[installation_id] = flight.token
                del self._flights[installation_id]
            flight.done.set()

    def cached(self, installation_id: int) -> Optional[InstallationToken]:
        """Return the cached token for the installation, if any, without exchanging."""
        with self._lock:
            return self._tokens.get(installation_id)

    def invalidate(self, installation_id: int, token: Optional[str] = None) -> None:
        """
        Drop the cached token for an installation.

        If `token` is given, the entry is only dropped while it still holds that token,
        so a rejection of an old token does not discard a newer one.
        """
        with self._lock:
            cached = self._tokens.get(installation_id)
            if cached is None:
                return
            if token is not None and cached.token != token:
                return
            del self._tokens[installation_id]
        logger.info(f"Cleared cached token for installation {installation_id}")

    def clear(self) -> None:
        """Drop every cached token."""
        with self._lock:
            self._tokens.clear()
        logger.info("Cleared all cached installation tokens")
