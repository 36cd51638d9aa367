#!/usr/bin/env python3

"""
Igloo Errors
------------
Typed failures raised by the igloo client. Nothing in igloo recovers from these
silently; callers decide whether to retry.
"""

from typing import Optional


class IglooError(Exception):
    """Base exception for igloo."""
    pass


class ConfigError(IglooError):
    """Configuration could not be loaded or validated."""
    pass


class SigningError(IglooError):
    """The App JWT could not be signed (missing or malformed key material)."""
    pass


class ExpiredCredentialError(IglooError):
    """A credential was presented after its expiry."""
    pass


class AuthExchangeError(IglooError):
    """The JWT to installation token exchange did not succeed."""

    def __init__(self, message: str, installation_id: Optional[int] = None,
                 status_code: Optional[int] = None, body: Optional[str] = None) -> None:
        super().__init__(message)
        self.installation_id = installation_id
        self.status_code = status_code
        self.body = body


class GitHubAPIError(IglooError):
    """Non-success GitHub API response or transport failure."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class GitHubNotFoundError(GitHubAPIError):
    """Resource not found (404)"""
    pass


class WebhookVerificationError(IglooError):
    """Webhook payload signature did not match."""
    pass
