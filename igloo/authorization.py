#!/usr/bin/env python3

"""
Authorization header selection for GitHub API requests.

App-level endpoints take the App JWT as a Bearer credential, installation-scoped
endpoints take an installation access token.
"""

from datetime import datetime
from enum import Enum
from typing import Union

from igloo.errors import ExpiredCredentialError
from igloo.models import InstallationToken, SignedJwt


class EndpointScope(str, Enum):
    """Which credential an endpoint expects."""
    APP = "app"
    INSTALLATION = "installation"
    TOKEN = "token"
    ANONYMOUS = "anonymous"


def authorization_header(credential: Union[SignedJwt, InstallationToken], now: datetime) -> str:
    """Return the Authorization header value for a credential that is still valid at `now`."""
    if credential.is_expired(now):
        raise ExpiredCredentialError(f"{credential!r} expired at {credential.expires_at.isoformat()}")
    if isinstance(credential, SignedJwt):
        return f"Bearer {credential.token}"
    return f"token {credential.token}"
