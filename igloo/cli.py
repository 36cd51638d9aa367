#!/usr/bin/env python3

"""
Igloo Command Line
------------------
Small command line front end for GitHub App authentication, mainly for use in
CI workflows that need to act as a GitHub App.

Commands:
    jwt                 : Print a signed GitHub App JWT.
    installation-token  : Print an installation access token for an installation or repository.

Arguments:
    --config        : OPTIONAL, path to a JSON config file (environment variables are used otherwise)
    --debug         : If set, enables detailed debug logging.
    --github-output : installation-token only, write `token=<value>` to $GITHUB_OUTPUT and mask it.

Example Usage:
    APP_ID=123 APP_PRIVATE_KEY_PATH=app.pem igloo installation-token --repo ROCm/rocm-libraries
    igloo --config igloo.json --debug jwt
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from igloo.clock import utc_now
from igloo.config_loader import load_config, load_config_from_env
from igloo.config_model import IglooConfig
from igloo.errors import IglooError
from igloo.github_app_client import GitHubAppClient
from igloo.jwt_signer import sign
from igloo.logging_config import setup_logging

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(prog="igloo", description="Authenticate as a GitHub App.")
    parser.add_argument("--config", required=False, help="Path to a JSON config file")
    parser.add_argument("--debug", action="store_true", help="If set, enables detailed debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("jwt", help="Print a signed GitHub App JWT.")
    token_parser = subparsers.add_parser("installation-token", help="Print an installation access token.")
    target = token_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--installation-id", type=int, help="GitHub App installation ID")
    target.add_argument("--repo", help="Full repository name (e.g., org/repo)")
    token_parser.add_argument("--github-output", action="store_true",
                              help="Write the token to GITHUB_OUTPUT instead of stdout.")
    return parser.parse_args(argv)


def load_settings(config_path: Optional[str]) -> IglooConfig:
    """Load configuration from the given file, or from the environment."""
    if config_path:
        return load_config(config_path)
    return load_config_from_env()


def output_token(token: str, github_output: bool) -> None:
    """Print the token, or mask it and write it to GITHUB_OUTPUT."""
    if not github_output:
        print(token)
        return
    output_file = os.environ.get("GITHUB_OUTPUT")
    if not output_file:
        logger.error("GITHUB_OUTPUT environment variable not set. Outputs cannot be written.")
        sys.exit(1)
    print(f"::add-mask::{token}")
    with open(output_file, "a") as f:
        print(f"token={token}", file=f)
    logger.info("Wrote to GITHUB_OUTPUT: token=<masked>")


def main(argv: Optional[List[str]] = None) -> None:
    """Main function of the igloo command line."""
    args = parse_arguments(argv)
    setup_logging(args.debug)
    try:
        config = load_settings(args.config)
        if args.command == "jwt":
            print(sign(config.credential(), utc_now()).token)
            return
        client = GitHubAppClient.from_config(config)
        installation_id = args.installation_id
        if installation_id is None:
            installation_id = client.get_installation_id_for_repo(args.repo)
        token = client.get_token(installation_id)
        logger.debug(f"Installation token for installation {installation_id} expires at {token.expires_at.isoformat()}")
        output_token(token.token, args.github_output)
    except IglooError as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
