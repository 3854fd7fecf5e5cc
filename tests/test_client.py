from __future__ import annotations

import pytest

from clubhub import client
from clubhub.adapters.baas_gateway import BaasGateway


def test_load_credentials_reads_environment(monkeypatch) -> None:
    monkeypatch.setattr(client, "load_dotenv", lambda: None)
    monkeypatch.setenv("CLUBHUB_URL", "https://example.test")
    monkeypatch.setenv("CLUBHUB_ANON_KEY", "anon-key")
    monkeypatch.setenv("CLUBHUB_ACCESS_TOKEN", "")
    monkeypatch.setenv("CLUBHUB_USER_ID", "user-1")

    credentials = client.load_credentials()

    assert credentials.url == "https://example.test"
    assert credentials.access_token is None
    assert credentials.user_id == "user-1"
    assert isinstance(client.build_gateway(credentials), BaasGateway)


def test_load_credentials_requires_url_and_key(monkeypatch) -> None:
    monkeypatch.setattr(client, "load_dotenv", lambda: None)
    monkeypatch.delenv("CLUBHUB_URL", raising=False)
    monkeypatch.setenv("CLUBHUB_ANON_KEY", "anon-key")

    with pytest.raises(RuntimeError):
        client.load_credentials()
