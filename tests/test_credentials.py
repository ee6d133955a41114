# =============================================================================
# Keyring Credential Tests
# =============================================================================

import keyring
import pytest
from keyring.errors import KeyringError

from pigeon.credentials import KeyringCredentials
from pigeon.errors import CredentialError


def test_looks_up_service_and_login(monkeypatch, imap_account):
    calls = []

    def fake_get_password(service, username):
        calls.append((service, username))
        return "hunter2"

    monkeypatch.setattr(keyring, "get_password", fake_get_password)
    imap_account.username = "login-name"

    assert KeyringCredentials().get_secret(imap_account) == "hunter2"
    assert calls == [("pigeon:work", "login-name")]


def test_missing_secret(monkeypatch, google_account):
    monkeypatch.setattr(keyring, "get_password", lambda service, username: None)

    with pytest.raises(CredentialError, match="keyring set pigeon:personal me@gmail.com"):
        KeyringCredentials().get_secret(google_account)


def test_keyring_failure(monkeypatch, google_account):
    def broken(service, username):
        raise KeyringError("no backend")

    monkeypatch.setattr(keyring, "get_password", broken)

    with pytest.raises(CredentialError, match="Keyring unavailable"):
        KeyringCredentials().get_secret(google_account)
