"""
Storage for the portable-mode password.

The system keyring (Windows Credential Manager, macOS Keychain, Secret
Service) is used when one is usable. Otherwise the password falls back to a
plaintext file under ~/.opener, which only protects it by file permissions.
"""

import os
import logging
from typing import Optional

import keyring
from keyring.backends import fail
from keyring.errors import KeyringError, PasswordDeleteError

from . import config
from .utils import user_config_dir, write_private_file

logger = logging.getLogger(__name__)


class SecretBackendError(Exception):
    """Raised when the password store cannot be read or written."""


class SecretBackend:
    """get/set/clear for a single named secret."""

    name = "abstract"

    def get(self) -> Optional[str]:
        raise NotImplementedError

    def set(self, secret: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class KeyringSecretBackend(SecretBackend):
    """One credential entry in the system keyring."""

    name = "keyring"

    def __init__(self, service: str = config.CREDENTIAL_SERVICE, username: str = config.CREDENTIAL_USERNAME):
        self.service = service
        self.username = username

    def get(self) -> Optional[str]:
        try:
            return keyring.get_password(self.service, self.username)
        except KeyringError as e:
            raise SecretBackendError(f"Failed to read credential '{self.service}': {e}") from e

    def set(self, secret: str) -> None:
        try:
            keyring.set_password(self.service, self.username, secret)
        except KeyringError as e:
            raise SecretBackendError(f"Failed to save credential '{self.service}': {e}") from e
        logger.info(f"Password stored in keyring entry {self.service}")

    def clear(self) -> None:
        try:
            keyring.delete_password(self.service, self.username)
            logger.info(f"Keyring entry {self.service} deleted")
        except PasswordDeleteError:
            logger.debug(f"Keyring entry {self.service} was not present")
        except KeyringError as e:
            raise SecretBackendError(f"Failed to delete credential '{self.service}': {e}") from e


class FileSecretBackend(SecretBackend):
    """Plaintext password file, owner-only. Weaker than the keyring."""

    name = "file"

    def __init__(self, path: Optional[str] = None):
        self.path = path or os.path.join(user_config_dir(create=False), config.PASSWORD_FILE)

    def get(self) -> Optional[str]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                secret = f.read()
        except OSError as e:
            raise SecretBackendError(f"Failed to read password file {self.path}: {e}") from e
        return secret or None

    def set(self, secret: str) -> None:
        logger.warning(f"No usable system keyring, storing password in plaintext file {self.path}")
        try:
            write_private_file(self.path, secret)
        except OSError as e:
            raise SecretBackendError(f"Failed to write password file {self.path}: {e}") from e

    def clear(self) -> None:
        try:
            os.remove(self.path)
            logger.info(f"Password file {self.path} deleted")
        except FileNotFoundError:
            pass
        except OSError as e:
            raise SecretBackendError(f"Failed to delete password file {self.path}: {e}") from e


def keyring_usable() -> bool:
    """True when the active keyring backend can actually store secrets."""
    try:
        backend = keyring.get_keyring()
    except Exception as e:
        logger.debug(f"Keyring backend could not be loaded: {e}")
        return False
    if isinstance(backend, fail.Keyring):
        return False
    try:
        return backend.priority > 0
    except Exception as e:
        logger.debug(f"Keyring backend {type(backend).__name__} is not viable: {e}")
        return False


def create_secret_backend() -> SecretBackend:
    """Select the keyring when usable, else the plaintext file."""
    if keyring_usable():
        return KeyringSecretBackend()
    logger.debug("Falling back to file password storage")
    return FileSecretBackend()
