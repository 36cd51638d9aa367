"""
igloo: a client for the GitHub REST API with GitHub App authentication.

Signs App JWTs, exchanges them for installation access tokens, caches those
tokens until shortly before they expire, and attaches the right credential to
each request.
"""

from igloo.authorization import EndpointScope, authorization_header
from igloo.config_loader import load_config, load_config_from_env
from igloo.config_model import IglooConfig
from igloo.errors import (
    AuthExchangeError,
    ConfigError,
    ExpiredCredentialError,
    GitHubAPIError,
    GitHubNotFoundError,
    IglooError,
    SigningError,
    WebhookVerificationError,
)
from igloo.github_api_client import GitHubAPIClient, InstallationSession
from igloo.github_app_client import GitHubAppClient
from igloo.installation_token_cache import InstallationTokenCache
from igloo.jwt_signer import AppJwtSource, sign
from igloo.models import AppCredential, InstallationToken, SignedJwt
from igloo.webhook import require_valid_signature, verify_signature

__version__ = "2.0.0"

__all__ = [
    "AppCredential",
    "AppJwtSource",
    "AuthExchangeError",
    "ConfigError",
    "EndpointScope",
    "ExpiredCredentialError",
    "GitHubAPIClient",
    "GitHubAPIError",
    "GitHubAppClient",
    "GitHubNotFoundError",
    "IglooConfig",
    "IglooError",
    "InstallationSession",
    "InstallationToken",
    "InstallationTokenCache",
    "SignedJwt",
    "SigningError",
    "WebhookVerificationError",
    "authorization_header",
    "load_config",
    "load_config_from_env",
    "require_valid_signature",
    "sign",
    "verify_signature",
]
