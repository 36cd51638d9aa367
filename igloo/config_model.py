#!/usr/bin/env python3

"""
Igloo Configuration Model
-------------------------
Pydantic model for the settings igloo needs: where the API lives, how to
authenticate as the GitHub App, and transport knobs.

Either `private_key` (PEM text) or `private_key_path` may be given, not both.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from igloo.errors import ConfigError
from igloo.models import AppCredential
from igloo.transport import DEFAULT_API_URL, DEFAULT_CONNECT_RETRIES, DEFAULT_TIMEOUT, USER_AGENT


class IglooConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    api_url: str = DEFAULT_API_URL
    app_id: Optional[int] = Field(default=None, gt=0)
    private_key: Optional[SecretStr] = None
    private_key_path: Optional[str] = None
    token: Optional[SecretStr] = None           # personal or OAuth token for TOKEN-scoped requests
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    token_refresh_leeway: float = Field(default=60.0, ge=0, lt=540)  # below the usable JWT window
    connect_retries: int = Field(default=DEFAULT_CONNECT_RETRIES, ge=0)
    user_agent: str = USER_AGENT

    @model_validator(mode="after")
    def check_single_key_source(self) -> "IglooConfig":
        if self.private_key is not None and self.private_key_path:
            raise ValueError("set only one of private_key and private_key_path")
        return self

    @property
    def has_app_credentials(self) -> bool:
        return self.app_id is not None and (self.private_key is not None or bool(self.private_key_path))

    def credential(self) -> AppCredential:
        """Build the GitHub App credential described by this configuration."""
        if self.app_id is None:
            raise ConfigError("GitHub App ID is required (app_id / APP_ID)")
        if self.private_key is not None:
            return AppCredential(app_id=self.app_id, private_key=self.private_key.get_secret_value())
        if self.private_key_path:
            return AppCredential.from_file(self.app_id, self.private_key_path)
        raise ConfigError("GitHub App private key is required (private_key / APP_PRIVATE_KEY "
                          "or private_key_path / APP_PRIVATE_KEY_PATH)")
