import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import jwt
import pytest

from igloo import cli
from igloo.errors import AuthExchangeError
from igloo.models import InstallationToken


@pytest.fixture
def config_path(tmp_path, private_key_pem):
    path = tmp_path / "igloo.json"
    path.write_text(json.dumps({"app_id": 12345, "private_key": private_key_pem}), encoding="utf-8")
    return str(path)


@pytest.fixture
def app_client():
    client = MagicMock()
    client.get_installation_id_for_repo.return_value = 31
    client.get_token.return_value = InstallationToken(
        token="ghs_cli", installation_id=31,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )
    with patch("igloo.cli.GitHubAppClient.from_config", return_value=client):
        yield client


def test_parse_arguments_requires_target():
    with pytest.raises(SystemExit):
        cli.parse_arguments(["installation-token"])
    args = cli.parse_arguments(["--debug", "installation-token", "--repo", "octo-org/octo-repo"])
    assert args.debug
    assert args.repo == "octo-org/octo-repo"
    assert args.installation_id is None


def test_jwt_command_prints_token(config_path, rsa_key, capsys):
    cli.main(["--config", config_path, "jwt"])
    token = capsys.readouterr().out.strip()
    claims = jwt.decode(token, rsa_key.public_key(), algorithms=["RS256"])
    assert claims["iss"] == "12345"


def test_installation_token_for_repo(config_path, app_client, capsys):
    cli.main(["--config", config_path, "installation-token", "--repo", "octo-org/octo-repo"])
    assert capsys.readouterr().out.strip() == "ghs_cli"
    app_client.get_installation_id_for_repo.assert_called_once_with("octo-org/octo-repo")
    app_client.get_token.assert_called_once_with(31)


def test_installation_token_to_github_output(config_path, app_client, tmp_path, monkeypatch, capsys):
    output = tmp_path / "github_output"
    monkeypatch.setenv("GITHUB_OUTPUT", str(output))
    cli.main(["--config", config_path, "installation-token", "--installation-id", "31", "--github-output"])
    assert output.read_text() == "token=ghs_cli\n"
    assert capsys.readouterr().out.strip() == "::add-mask::ghs_cli"
    app_client.get_installation_id_for_repo.assert_not_called()


def test_github_output_requires_env(config_path, app_client, monkeypatch):
    monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", config_path, "installation-token", "--installation-id", "31", "--github-output"])
    assert excinfo.value.code == 1


def test_auth_failure_exits_with_error(config_path, app_client):
    app_client.get_token.side_effect = AuthExchangeError("denied", installation_id=31, status_code=403)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", config_path, "installation-token", "--installation-id", "31"])
    assert excinfo.value.code == 1


def test_missing_configuration_exits_with_error(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", str(tmp_path / "missing.json"), "jwt"])
    assert excinfo.value.code == 1
