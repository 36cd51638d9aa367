import json
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest
import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from igloo.models import AppCredential

START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock pinned to a fixed time until advanced."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture
def credential(private_key_pem) -> AppCredential:
    return AppCredential(app_id=12345, private_key=private_key_pem)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_response():
    """Build a real requests.Response with a JSON (or empty) body."""

    def _make(status_code: int, body: Optional[Any] = None) -> requests.Response:
        response = requests.Response()
        response.status_code = status_code
        response.encoding = "utf-8"
        response._content = b"" if body is None else json.dumps(body).encode("utf-8")
        return response

    return _make


@pytest.fixture
def token_payload():
    """Build the body GitHub returns from the access_tokens endpoint."""

    def _payload(token: str = "ghs_first", expires_at: datetime = START + timedelta(hours=1)) -> dict:
        return {
            "token": token,
            "expires_at": expires_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "permissions": {"issues": "write", "metadata": "read"},
            "repository_selection": "selected",
        }

    return _payload
