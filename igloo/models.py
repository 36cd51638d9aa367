#!/usr/bin/env python3

"""
Credential Models
-----------------
Immutable credential types used by the GitHub App authentication flow:

- AppCredential: App ID and PEM private key of a GitHub App
- SignedJwt: an App JWT together with its validity window
- InstallationToken: an installation access token returned by the exchange call

All timestamps are timezone-aware UTC datetimes.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from igloo.errors import SigningError

NO_LEEWAY = timedelta(0)


def _require_aware(value: datetime) -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError("timestamp must be timezone-aware")
    return value


class AppCredential(BaseModel):
    """App ID and private key of a GitHub App."""

    model_config = ConfigDict(frozen=True)

    app_id: int = Field(gt=0)
    private_key: SecretStr

    @classmethod
    def from_file(cls, app_id: Union[int, str], path: Union[str, Path]) -> "AppCredential":
        """Build a credential from a PEM file on disk (UTF-8 text)."""
        try:
            private_key = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SigningError(f"Failed to read GitHub App private key from {path}: {e}") from e
        return cls(app_id=app_id, private_key=private_key)


class SignedJwt(BaseModel):
    """A signed App JWT and the window it is valid for."""

    model_config = ConfigDict(frozen=True)

    token: str
    issued_at: datetime
    expires_at: datetime

    @field_validator("issued_at", "expires_at")
    @classmethod
    def check_aware(cls, value: datetime) -> datetime:
        return _require_aware(value)

    def is_expired(self, now: datetime, leeway: timedelta = NO_LEEWAY) -> bool:
        """True if the JWT must not be sent at `now` (expiring within `leeway` counts)."""
        return now + leeway >= self.expires_at

    def __repr__(self) -> str:
        return f"SignedJwt(issued_at={self.issued_at.isoformat()}, expires_at={self.expires_at.isoformat()})"

    __str__ = __repr__


class InstallationToken(BaseModel):
    """An installation access token, as returned by POST /app/installations/{id}/access_tokens."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    token: str
    installation_id: int
    expires_at: datetime
    permissions: Dict[str, str] = Field(default_factory=dict)
    repository_selection: Optional[str] = None

    @field_validator("expires_at")
    @classmethod
    def check_aware(cls, value: datetime) -> datetime:
        return _require_aware(value)

    def is_expired(self, now: datetime, leeway: timedelta = NO_LEEWAY) -> bool:
        """True if the token must not be sent at `now` (expiring within `leeway` counts)."""
        return now + leeway >= self.expires_at

    def __repr__(self) -> str:
        return (f"InstallationToken(installation_id={self.installation_id}, "
                f"expires_at={self.expires_at.isoformat()})")

    __str__ = __repr__
