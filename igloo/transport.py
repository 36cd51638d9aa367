#!/usr/bin/env python3

"""
HTTP Transport Helpers
----------------------
Shared pieces of the requests-based transport used by both the App client and
the API client: the session factory, standard GitHub headers, URL joining and
response checking.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from igloo.errors import GitHubAPIError, GitHubNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
ACCEPT = "application/vnd.github+json"
USER_AGENT = "igloo"
DEFAULT_TIMEOUT = 30.0
DEFAULT_CONNECT_RETRIES = 3


def create_session(max_retries: int = DEFAULT_CONNECT_RETRIES) -> requests.Session:
    """Create a session that retries connection failures but never a request GitHub answered."""
    session = requests.Session()
    retry = Retry(
        total=max_retries,
        connect=max_retries,
        read=0,
        status=0,
        other=0,
        backoff_factor=0.5,
        allowed_methods=None,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def base_headers(user_agent: str = USER_AGENT, api_version: str = API_VERSION) -> Dict[str, str]:
    """Headers sent with every GitHub API request."""
    return {
        "Accept": ACCEPT,
        "X-GitHub-Api-Version": api_version,
        "User-Agent": user_agent,
    }


def build_url(api_url: str, path: str) -> str:
    """Join the API root and a path, tolerating slashes on either side.

    Absolute URLs are accepted only on the API host, so credentials never leave it.
    """
    if path.startswith("http://") or path.startswith("https://"):
        target, api = urlsplit(path), urlsplit(api_url)
        if (target.scheme, target.netloc.lower()) != (api.scheme, api.netloc.lower()):
            raise ValueError(f"Refusing to send GitHub credentials to {target.scheme}://{target.netloc}, "
                             f"expected {api.scheme}://{api.netloc}")
        return path
    return f"{api_url.rstrip('/')}/{path.lstrip('/')}"


def parse_json(response: requests.Response) -> Optional[Any]:
    """Return the response JSON, or None for an empty body."""
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise GitHubAPIError(f"GitHub returned a non-JSON body: {e}",
                             status_code=response.status_code, body=response.text) from e


def check_response(response: requests.Response, error_msg: str) -> requests.Response:
    """Raise a GitHubAPIError (GitHubNotFoundError for 404) unless the response is 2xx."""
    if 200 <= response.status_code < 300:
        return response
    logger.error(f"{error_msg}: {response.status_code} {response.text}")
    if response.status_code == 404:
        raise GitHubNotFoundError(f"{error_msg}: not found", status_code=404, body=response.text)
    raise GitHubAPIError(
        f"{error_msg}: GitHub API error ({response.status_code})",
        status_code=response.status_code,
        body=response.text,
    )
