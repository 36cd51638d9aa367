#!/usr/bin/env python3

"""
GitHub App Client
-----------------
Authenticates as a GitHub App. It signs App JWTs, exchanges them for installation
access tokens (cached per installation until shortly before they expire), and
exposes the App-level endpoints the authentication flow needs.

The class does not manage resources like pull requests or issues. Requests
against those go through GitHubAPIClient, which asks this client for the right
credential.

Requirements:
    - GitHub App credentials (App ID, private key), see igloo.config_loader.
    - A GitHub App installation must be present and accessible for installation tokens.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from igloo.authorization import authorization_header
from igloo.clock import Clock, utc_now
from igloo.config_model import IglooConfig
from igloo.errors import AuthExchangeError, GitHubAPIError
from igloo.installation_token_cache import DEFAULT_REFRESH_LEEWAY, InstallationTokenCache
from igloo.jwt_signer import AppJwtSource
from igloo.models import AppCredential, InstallationToken
from igloo.transport import (
    DEFAULT_API_URL,
    DEFAULT_TIMEOUT,
    USER_AGENT,
    base_headers,
    build_url,
    check_response,
    create_session,
    parse_json,
)

logger = logging.getLogger(__name__)


class GitHubAppClient:

    def __init__(self, credential: AppCredential, api_url: str = DEFAULT_API_URL,
                 session: Optional[requests.Session] = None, clock: Clock = utc_now,
                 timeout: float = DEFAULT_TIMEOUT, refresh_leeway: timedelta = DEFAULT_REFRESH_LEEWAY,
                 user_agent: str = USER_AGENT) -> None:
        """Initialize the GitHub App client for authentication."""
        self.api_url = api_url
        self.session = session or create_session()
        self.clock = clock
        self.timeout = timeout
        self.user_agent = user_agent
        self.jwt_source = AppJwtSource(credential, clock=clock, refresh_leeway=refresh_leeway)
        self.token_cache = InstallationTokenCache(self.create_installation_token, clock=clock,
                                                  refresh_leeway=refresh_leeway)
        logger.debug(f"GitHub App Client initialized for app {credential.app_id} at {api_url}.")

    @classmethod
    def from_config(cls, config: IglooConfig, session: Optional[requests.Session] = None,
                    clock: Clock = utc_now) -> "GitHubAppClient":
        """Build a client from loaded configuration."""
        return cls(
            config.credential(),
            api_url=config.api_url,
            session=session or create_session(config.connect_retries),
            clock=clock,
            timeout=config.timeout,
            refresh_leeway=timedelta(seconds=config.token_refresh_leeway),
            user_agent=config.user_agent,
        )

    @property
    def app_id(self) -> int:
        return self.jwt_source.app_id

    def app_headers(self) -> Dict[str, str]:
        """Return the headers for App-level API requests (Bearer JWT)."""
        headers = base_headers(self.user_agent)
        headers["Authorization"] = authorization_header(self.jwt_source.current(), self.clock())
        return headers

    def _app_request(self, method: str, path: str, error_msg: str,
                     json: Optional[Dict[str, Any]] = None) -> Any:
        """Perform an App-level request and return the JSON response."""
        url = build_url(self.api_url, path)
        logger.debug(f"{method} {url} as GitHub App {self.app_id}")
        try:
            response = self.session.request(method, url, headers=self.app_headers(), json=json, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"{error_msg}: {e}")
            raise GitHubAPIError(f"{error_msg}: request failed: {e}") from e
        check_response(response, error_msg)
        return parse_json(response)

    def get_app(self) -> Dict[str, Any]:
        """Fetch the authenticated GitHub App."""
        return self._app_request("GET", "/app", "Failed to get the authenticated GitHub App")

    def get_installation(self, installation_id: int) -> Dict[str, Any]:
        """Fetch a single installation of the App."""
        return self._app_request("GET", f"/app/installations/{installation_id}",
                                 f"Failed to get installation {installation_id}")

    def get_installation_id_for_repo(self, repo_full_name: str) -> int:
        """Get installation ID for a specific repository."""
        data = self._app_request("GET", f"/repos/{repo_full_name}/installation",
                                 f"Failed to get installation for {repo_full_name}")
        if not isinstance(data, dict) or not isinstance(data.get("id"), int):
            logger.error(f"Unexpected installation response for {repo_full_name}: {data!r}")
            raise GitHubAPIError(f"Failed to get installation for {repo_full_name}: response has no installation id")
        logger.debug(f"Installation ID for {repo_full_name}: {data['id']}")
        return data["id"]

    def create_installation_token(self, installation_id: int, repositories: Optional[List[str]] = None,
                                  permissions: Optional[Dict[str, str]] = None) -> InstallationToken:
        """Exchange the App JWT for a new installation access token. Bypasses the cache."""
        url = build_url(self.api_url, f"/app/installations/{installation_id}/access_tokens")
        payload: Dict[str, Any] = {}
        if repositories:
            payload["repositories"] = repositories
        if permissions:
            payload["permissions"] = permissions
        headers = self.app_headers()
        try:
            response = self.session.post(url, headers=headers, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Network error requesting installation token for installation {installation_id}: {e}")
            raise AuthExchangeError(
                f"Network error requesting installation token for installation {installation_id}: {e}",
                installation_id=installation_id,
            ) from e
        if not 200 <= response.status_code < 300:
            logger.error(f"Failed to get installation token for installation {installation_id}: "
                         f"{response.status_code} {response.text}")
            if response.status_code == 401:
                self.jwt_source.invalidate()
            raise AuthExchangeError(
                f"Failed to get installation token for installation {installation_id} "
                f"(status {response.status_code})",
                installation_id=installation_id,
                status_code=response.status_code,
                body=response.text,
            )
        try:
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            token = InstallationToken.model_validate({**data, "installation_id": installation_id})
        except (ValueError, ValidationError) as e:
            raise AuthExchangeError(
                f"Malformed installation token response for installation {installation_id}: {e}",
                installation_id=installation_id,
                status_code=response.status_code,
                body=response.text,
            ) from e
        logger.info(f"Obtained installation token for installation {installation_id} "
                    f"(expires at {token.expires_at.isoformat()}, permissions: {sorted(token.permissions)})")
        return token

    def get_token(self, installation_id: int, timeout: Optional[float] = None) -> InstallationToken:
        """Return a cached or freshly exchanged installation token."""
        return self.token_cache.get_token(installation_id, timeout=timeout)

    def invalidate_token(self, installation_id: int, token: Optional[str] = None) -> None:
        """Forget a cached installation token, e.g. after GitHub rejected it."""
        self.token_cache.invalidate(installation_id, token)

    def installation_headers(self, installation_id: int) -> Dict[str, str]:
        """Return headers with the installation access token for an installation."""
        headers = base_headers(self.user_agent)
        headers["Authorization"] = authorization_header(self.get_token(installation_id), self.clock())
        return headers

    def get_access_token_for_repo(self, repo_full_name: str) -> str:
        """Get an installation access token for the specified repository."""
        installation_id = self.get_installation_id_for_repo(repo_full_name)
        return self.get_token(installation_id).token

    def get_authenticated_headers_for_repo(self, repo_full_name: str) -> Dict[str, str]:
        """Return headers with installation access token for a specific repository."""
        return self.installation_headers(self.get_installation_id_for_repo(repo_full_name))
