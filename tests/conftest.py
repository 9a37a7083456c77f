from typing import Optional

import keyring
import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

from opener import crypto
from opener.credentials import SecretBackend
from opener.settings import ConfigService


class MemorySecretBackend(SecretBackend):
    name = "memory"

    def __init__(self, secret: Optional[str] = None):
        self.secret = secret

    def get(self):
        return self.secret

    def set(self, secret):
        self.secret = secret

    def clear(self):
        self.secret = None


class MemoryKeyring(KeyringBackend):
    priority = 1

    def __init__(self):
        super().__init__()
        self.entries = {}

    def get_password(self, service, username):
        return self.entries.get((service, username))

    def set_password(self, service, username, password):
        self.entries[(service, username)] = password

    def delete_password(self, service, username):
        try:
            del self.entries[(service, username)]
        except KeyError:
            raise PasswordDeleteError("not found")


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Point ~ at a temp dir so key and password files stay out of the real home."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("USERPROFILE", str(home_dir))
    return home_dir


@pytest.fixture
def no_dpapi(monkeypatch):
    monkeypatch.setattr(crypto, "DPAPI_AVAILABLE", False)


@pytest.fixture
def config_service(tmp_path):
    return ConfigService(config_dir=str(tmp_path / "config"), data_dir=str(tmp_path / "data"))


@pytest.fixture
def secret_backend():
    return MemorySecretBackend()


@pytest.fixture
def memory_keyring():
    previous = keyring.get_keyring()
    backend = MemoryKeyring()
    keyring.set_keyring(backend)
    yield backend
    keyring.set_keyring(previous)
