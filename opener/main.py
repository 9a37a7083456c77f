"""
Main entry point for the Opener record store.

Wires configuration, password storage, cipher selection and the record store
together. Command dispatch lives outside this package; ``main`` only opens the
store and reports its state.
"""

import sys
import getpass
import logging
from typing import Callable, Optional

from . import config
from .settings import ConfigService
from .credentials import SecretBackend, SecretBackendError, create_secret_backend
from .crypto import create_cipher, CryptoError, PassphraseMissing
from .storage import RecordStore, StorageError

logger = logging.getLogger(__name__)


def _prompt_password(prompt: str) -> str:
    return getpass.getpass(prompt)


def open_store(config_service: Optional[ConfigService] = None,
               secret_backend: Optional[SecretBackend] = None,
               prompt: Callable[[str], str] = _prompt_password) -> RecordStore:
    """
    Build the record store for this process.

    In portable mode with no stored password the user is prompted once, the
    answer is stored in the password backend and selection is retried.
    """
    config_service = config_service or ConfigService()
    secret_backend = secret_backend or create_secret_backend()

    try:
        cipher = create_cipher(config_service, secret_backend)
    except PassphraseMissing:
        if not config_service.is_portable_mode():
            raise
        logger.info("Portable mode enabled, password required.")
        passphrase = prompt("Enter Password: ")
        if not passphrase:
            raise
        secret_backend.set(passphrase)
        cipher = create_cipher(config_service, secret_backend)

    store = RecordStore(config_service, cipher)
    store.initialize()
    return store


def main() -> int:
    """Main entry point."""
    logging.basicConfig(level=logging.INFO, format=config.LOG_FORMAT)

    config_service = ConfigService()
    try:
        store = open_store(config_service)
        records = store.get_all()
    except (CryptoError, StorageError, SecretBackendError) as e:
        logger.error(f"Could not open the record store: {e}")
        return 1

    print(f"Storage Location: {store.get_file_path()}")
    print(f"Encryption Mode: {config_service.get_config().encryption_mode}")
    print(f"Keys: {len(records)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
