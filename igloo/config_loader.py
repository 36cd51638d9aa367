#!/usr/bin/env python3

"""
Igloo Configuration Utilities
-----------------------------
This module contains utility functions for loading and validating igloo
configuration, either from a JSON file or from environment variables. It
utilizes Pydantic for validation, ensuring the configuration is well-formed.

Environment variables:
    - APP_ID               : GitHub App ID
    - APP_PRIVATE_KEY      : GitHub App private key, PEM text (literal "\\n" sequences are accepted)
    - APP_PRIVATE_KEY_PATH : path to the GitHub App private key .pem file
    - GITHUB_API_URL       : API root, for GitHub Enterprise Server
    - GITHUB_TOKEN         : personal or OAuth token for token-scoped requests
"""

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from igloo.config_model import IglooConfig
from igloo.errors import ConfigError

logger = logging.getLogger(__name__)

ENV_VARS = {
    "APP_ID": "app_id",
    "APP_PRIVATE_KEY": "private_key",
    "APP_PRIVATE_KEY_PATH": "private_key_path",
    "GITHUB_API_URL": "api_url",
    "GITHUB_TOKEN": "token",
}


def load_config(config_path: str) -> IglooConfig:
    """Load and validate igloo config from JSON using Pydantic."""
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return IglooConfig(**data)
    except (OSError, json.JSONDecodeError, ValidationError, TypeError) as e:
        logger.error(f"Failed to load or validate config file '{config_path}': {e}")
        raise ConfigError(f"Failed to load or validate config file '{config_path}': {e}") from e


def load_config_from_env(environ: Optional[Mapping[str, str]] = None,
                         overrides: Optional[Dict[str, Any]] = None) -> IglooConfig:
    """Build igloo config from environment variables, with explicit overrides taking precedence."""
    environ = os.environ if environ is None else environ
    data: Dict[str, Any] = {}
    for env_name, field in ENV_VARS.items():
        value = environ.get(env_name)
        if value:
            data[field] = value
    if "private_key" in data:
        data["private_key"] = data["private_key"].replace("\\n", "\n")
    data.update(overrides or {})
    try:
        return IglooConfig(**data)
    except ValidationError as e:
        logger.error(f"Invalid igloo configuration in environment: {e}")
        raise ConfigError(f"Invalid igloo configuration in environment: {e}") from e
