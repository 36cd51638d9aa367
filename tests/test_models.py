from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from igloo.errors import SigningError
from igloo.models import AppCredential, InstallationToken, SignedJwt

NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_app_credential_hides_private_key(private_key_pem):
    credential = AppCredential(app_id=1, private_key=private_key_pem)
    assert "PRIVATE KEY" not in repr(credential)
    assert credential.private_key.get_secret_value() == private_key_pem


def test_app_credential_is_immutable(credential):
    with pytest.raises(ValidationError):
        credential.app_id = 2


def test_app_credential_rejects_non_positive_app_id(private_key_pem):
    with pytest.raises(ValidationError):
        AppCredential(app_id=0, private_key=private_key_pem)


def test_app_credential_from_file(tmp_path, private_key_pem):
    key_file = tmp_path / "app.pem"
    key_file.write_text(private_key_pem, encoding="utf-8")
    credential = AppCredential.from_file("42", key_file)
    assert credential.app_id == 42
    assert credential.private_key.get_secret_value() == private_key_pem


def test_app_credential_from_missing_file(tmp_path):
    with pytest.raises(SigningError):
        AppCredential.from_file(42, tmp_path / "missing.pem")


def test_installation_token_parses_github_timestamp():
    token = InstallationToken.model_validate({
        "token": "ghs_abc",
        "installation_id": 7,
        "expires_at": "2024-01-01T13:00:00Z",
        "permissions": {"contents": "read"},
        "unknown_field": "ignored",
    })
    assert token.expires_at == NOW + timedelta(hours=1)
    assert token.permissions == {"contents": "read"}
    assert token.repository_selection is None


def test_installation_token_expiry_with_leeway():
    token = InstallationToken(token="ghs_abc", installation_id=7, expires_at=NOW + timedelta(minutes=5))
    assert not token.is_expired(NOW)
    assert not token.is_expired(NOW, timedelta(minutes=4))
    assert token.is_expired(NOW, timedelta(minutes=5))
    assert token.is_expired(NOW + timedelta(minutes=5))


def test_repr_does_not_leak_token():
    token = InstallationToken(token="ghs_secret", installation_id=7, expires_at=NOW)
    jwt = SignedJwt(token="eyJ.secret.sig", issued_at=NOW, expires_at=NOW + timedelta(minutes=10))
    assert "ghs_secret" not in repr(token)
    assert "secret" not in str(jwt)


def test_naive_timestamps_are_rejected():
    with pytest.raises(ValidationError):
        SignedJwt(token="t", issued_at=datetime(2024, 1, 1), expires_at=datetime(2024, 1, 1, 0, 10))
    with pytest.raises(ValidationError):
        InstallationToken(token="t", installation_id=1, expires_at=datetime(2024, 1, 1))
