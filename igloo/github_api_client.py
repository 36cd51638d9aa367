#!/usr/bin/env python3

"""
GitHub API Client
-----------------
Issues authenticated GitHub REST API requests. The caller classifies each
endpoint with an EndpointScope and the client attaches the matching credential:

- APP          : the GitHub App JWT (Bearer), for /app/... endpoints
- INSTALLATION : an installation access token for the given installation ID
- TOKEN        : a fixed personal or OAuth token
- ANONYMOUS    : no credential

Mapping of individual REST resources is left to callers; this client returns
the decoded JSON.
"""

import logging
from typing import Any, Dict, Optional

import requests

from igloo.authorization import EndpointScope, authorization_header
from igloo.clock import Clock, utc_now
from igloo.config_model import IglooConfig
from igloo.errors import GitHubAPIError
from igloo.github_app_client import GitHubAppClient
from igloo.transport import (
    API_VERSION,
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


class GitHubAPIClient:

    def __init__(self, app_client: Optional[GitHubAppClient] = None, token: Optional[str] = None,
                 api_url: Optional[str] = None, session: Optional[requests.Session] = None,
                 clock: Optional[Clock] = None, timeout: float = DEFAULT_TIMEOUT,
                 user_agent: str = USER_AGENT, api_version: str = API_VERSION) -> None:
        """Initialize the GitHub API client; App and installation scopes need `app_client`."""
        self.app_client = app_client
        self._token = token
        if api_url is None:
            api_url = app_client.api_url if app_client is not None else DEFAULT_API_URL
        self.api_url = api_url
        if session is None:
            session = app_client.session if app_client is not None else create_session()
        self.session = session
        if clock is None:
            clock = app_client.clock if app_client is not None else utc_now
        self.clock = clock
        self.timeout = timeout
        self.user_agent = user_agent
        self.api_version = api_version

    @classmethod
    def from_config(cls, config: IglooConfig, session: Optional[requests.Session] = None,
                    clock: Clock = utc_now) -> "GitHubAPIClient":
        """Build a client (and its App client, if App credentials are configured) from configuration."""
        session = session or create_session(config.connect_retries)
        app_client = None
        if config.has_app_credentials:
            app_client = GitHubAppClient.from_config(config, session=session, clock=clock)
        token = config.token.get_secret_value() if config.token is not None else None
        return cls(app_client=app_client, token=token, api_url=config.api_url, session=session,
                   clock=clock, timeout=config.timeout, user_agent=config.user_agent)

    def _require_app_client(self, scope: EndpointScope) -> GitHubAppClient:
        if self.app_client is None:
            raise ValueError(f"{scope.value} scoped requests need GitHub App credentials")
        return self.app_client

    def _authorization(self, scope: EndpointScope, installation_id: Optional[int],
                       timeout: Optional[float] = None) -> Optional[str]:
        """Return the Authorization header value for the endpoint scope, if any."""
        if scope is EndpointScope.APP:
            return authorization_header(self._require_app_client(scope).jwt_source.current(), self.clock())
        if scope is EndpointScope.INSTALLATION:
            if installation_id is None:
                raise ValueError("installation_id is required for installation scoped requests")
            token = self._require_app_client(scope).get_token(installation_id, timeout=timeout)
            return authorization_header(token, self.clock())
        if scope is EndpointScope.TOKEN:
            if not self._token:
                raise ValueError("token scoped requests need a token")
            return f"token {self._token}"
        return None

    def _on_unauthorized(self, scope: EndpointScope, installation_id: Optional[int],
                         authorization: Optional[str]) -> None:
        """Drop the credential GitHub just rejected so the next request gets a fresh one."""
        if scope is EndpointScope.INSTALLATION and authorization:
            rejected = authorization.split(" ", 1)[1]
            logger.warning(f"Installation token for installation {installation_id} was rejected, invalidating it")
            self.app_client.invalidate_token(installation_id, rejected)
        elif scope is EndpointScope.APP:
            logger.warning("GitHub App JWT was rejected, invalidating it")
            self.app_client.jwt_source.invalidate()

    def request(self, method: str, path: str, scope: EndpointScope, installation_id: Optional[int] = None,
                json: Optional[Any] = None, params: Optional[Dict[str, Any]] = None,
                timeout: Optional[float] = None) -> Any:
        """Perform a request against `path` with the credential for `scope` and return the JSON response."""
        scope = EndpointScope(scope)
        if timeout is None:
            timeout = self.timeout
        url = build_url(self.api_url, path)
        headers = base_headers(self.user_agent, self.api_version)
        authorization = self._authorization(scope, installation_id, timeout)
        if authorization is not None:
            headers["Authorization"] = authorization
        error_msg = f"{method} {path} failed"
        logger.debug(f"{method} {url} ({scope.value})")
        try:
            response = self.session.request(method, url, headers=headers, json=json, params=params,
                                            timeout=timeout)
        except requests.RequestException as e:
            logger.error(f"{error_msg}: {e}")
            raise GitHubAPIError(f"{error_msg}: request failed: {e}") from e
        if response.status_code == 401:
            self._on_unauthorized(scope, installation_id, authorization)
        check_response(response, error_msg)
        return parse_json(response)

    def get(self, path: str, scope: EndpointScope, **kwargs: Any) -> Any:
        return self.request("GET", path, scope, **kwargs)

    def post(self, path: str, scope: EndpointScope, **kwargs: Any) -> Any:
        return self.request("POST", path, scope, **kwargs)

    def patch(self, path: str, scope: EndpointScope, **kwargs: Any) -> Any:
        return self.request("PATCH", path, scope, **kwargs)

    def put(self, path: str, scope: EndpointScope, **kwargs: Any) -> Any:
        return self.request("PUT", path, scope, **kwargs)

    def delete(self, path: str, scope: EndpointScope, **kwargs: Any) -> Any:
        return self.request("DELETE", path, scope, **kwargs)

    def for_repo(self, repo_full_name: str) -> "InstallationSession":
        """Bind installation-scoped requests to the installation that covers a repository."""
        app_client = self._require_app_client(EndpointScope.INSTALLATION)
        return InstallationSession(self, app_client.get_installation_id_for_repo(repo_full_name))


class InstallationSession:
    """Installation-scoped view of a GitHubAPIClient."""

    def __init__(self, client: GitHubAPIClient, installation_id: int) -> None:
        self.client = client
        self.installation_id = installation_id

    def request(self, method: str, path: str, **kwargs: Any) -> Any:
        return self.client.request(method, path, EndpointScope.INSTALLATION,
                                   installation_id=self.installation_id, **kwargs)

    def get(self, path: str, **kwargs: Any) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> Any:
        return self.request("POST", path, **kwargs)

    def patch(self, path: str, **kwargs: Any) -> Any:
        return self.request("PATCH", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> Any:
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Any:
        return self.request("DELETE", path, **kwargs)
