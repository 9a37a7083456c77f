"""
Switching the store between local and portable encryption.

The switch is a sequence, not a transaction: records are decrypted with the
current cipher, the password store and configuration are updated, and the
records are written again through a newly selected cipher. If that last
write fails the configuration already names the new mode while the file is
still encrypted in the old one; MigrationError says so.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from . import config
from .credentials import SecretBackendError
from .crypto import create_cipher, CryptoError
from .storage import RecordStore, StorageError

logger = logging.getLogger(__name__)


class MigrationError(Exception):
    """The switch stopped after the password store or configuration had changed."""


@dataclass
class MigrationResult:
    changed: bool
    old_mode: str
    new_mode: str
    count: int = 0
    store: Optional[RecordStore] = None


def switch_encryption_mode(config_service, secret_backend, store: RecordStore, mode: str,
                           passphrase: Optional[str] = None) -> MigrationResult:
    """
    Re-encrypt every record under ``mode``.

    Args:
        config_service: ConfigService for this process
        secret_backend: Where the portable password lives
        store: Store opened with the current cipher
        mode: "local" or "portable"
        passphrase: New password, required when switching to portable

    Returns:
        MigrationResult; ``store`` is the store to use from now on

    Raises:
        ValueError: Invalid mode, or portable without a password
        StorageError: Current records could not be read (nothing changed)
        MigrationError: Records could not be written in the new mode
    """
    mode = mode.lower()
    if mode not in config.ENCRYPTION_MODES:
        raise ValueError(f"Invalid mode '{mode}'. Use 'local' or 'portable'.")

    old_mode = config_service.get_config().encryption_mode
    if old_mode == mode:
        logger.info(f"Already in {mode} mode.")
        return MigrationResult(changed=False, old_mode=old_mode, new_mode=mode, store=store)

    if mode == config.MODE_PORTABLE and not passphrase:
        raise ValueError("A password is required for portable mode.")

    records = store.get_all()

    try:
        if mode == config.MODE_PORTABLE:
            secret_backend.set(passphrase)
        else:
            secret_backend.clear()

        config_service.set_encryption_mode(mode)

        new_store = RecordStore(config_service, create_cipher(config_service, secret_backend))
        new_store.save_all(records)
    except (CryptoError, StorageError, SecretBackendError, OSError) as e:
        current_mode = config_service.get_config().encryption_mode
        logger.error(f"Migration from {old_mode} to {mode} stopped part way, configuration mode is {current_mode}: {e}")
        raise MigrationError(
            f"Switching to '{mode}' did not complete. Configuration mode is '{current_mode}' "
            f"and {store.get_file_path()} is still encrypted in '{old_mode}' mode: {e}"
        ) from e

    logger.info(f"Switched to {mode} mode and re-encrypted {len(records)} keys.")
    return MigrationResult(changed=True, old_mode=old_mode, new_mode=mode, count=len(records), store=new_store)
