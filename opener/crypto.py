"""
Cipher providers for the record store.

Every provider turns a plaintext string into a single base64 string and back.
Failures raise a CryptoError subclass; no provider ever returns partially
decrypted data.
"""

import os
import base64
import binascii
import secrets
import platform
import logging
from typing import Optional

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.backends import default_backend
from cryptography.exceptions import InvalidTag

from . import config
from .utils import user_config_dir, write_private_file

logger = logging.getLogger(__name__)

if platform.system() == "Windows":
    try:
        import win32crypt
        DPAPI_AVAILABLE = True
    except ImportError:
        logger.warning("pywin32 not installed, Windows data protection is unavailable.")
        DPAPI_AVAILABLE = False
else:
    DPAPI_AVAILABLE = False

CRYPTPROTECT_UI_FORBIDDEN = 0x1


class CryptoError(Exception):
    """Base class for encryption failures."""


class AuthenticationFailure(CryptoError):
    """Tag verification failed: wrong passphrase or corrupted data."""


class PlatformProtectionError(CryptoError):
    """Windows data protection failed or is not available."""


class PassphraseMissing(CryptoError):
    """Portable mode is configured but no passphrase is stored."""


class CipherProvider:
    """Interface shared by all ciphers."""

    name = "abstract"

    def encrypt(self, plaintext: str) -> str:
        raise NotImplementedError

    def decrypt(self, ciphertext: str) -> str:
        raise NotImplementedError


class PortableCipher(CipherProvider):
    """
    AES-256-GCM with a PBKDF2-HMAC-SHA256 derived key.

    Output layout, base64 encoded as a whole:
        salt (16) | nonce (12) | tag (16) | ciphertext
    A fresh salt and nonce are drawn on every call.
    """

    name = "portable"
    HEADER_SIZE = config.SALT_SIZE + config.NONCE_SIZE + config.TAG_SIZE

    def __init__(self, passphrase: str):
        if passphrase is None:
            raise ValueError("passphrase must not be None")
        self._passphrase = passphrase
        self.backend = default_backend()

    def derive_key(self, salt: bytes) -> bytes:
        """
        Derive the AES key for ``salt``.

        Args:
            salt: Random salt stored at the head of the blob

        Returns:
            32-byte encryption key
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=config.KEY_SIZE,
            salt=salt,
            iterations=config.PBKDF2_ITERATIONS,
            backend=self.backend
        )
        return kdf.derive(self._passphrase.encode('utf-8'))

    def encrypt(self, plaintext: str) -> str:
        if not plaintext:
            return plaintext

        salt = os.urandom(config.SALT_SIZE)
        nonce = os.urandom(config.NONCE_SIZE)
        key = self.derive_key(salt)

        encryptor = Cipher(
            algorithms.AES(key),
            modes.GCM(nonce),
            backend=self.backend
        ).encryptor()
        ciphertext = encryptor.update(plaintext.encode('utf-8')) + encryptor.finalize()

        return base64.b64encode(salt + nonce + encryptor.tag + ciphertext).decode('ascii')

    def decrypt(self, ciphertext: str) -> str:
        if not ciphertext:
            return ciphertext

        try:
            data = base64.b64decode(ciphertext.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise AuthenticationFailure("Failed to decrypt. Invalid password or corrupted data.") from e

        if len(data) < self.HEADER_SIZE:
            raise AuthenticationFailure("Failed to decrypt. Invalid password or corrupted data.")

        salt = data[:config.SALT_SIZE]
        nonce = data[config.SALT_SIZE:config.SALT_SIZE + config.NONCE_SIZE]
        tag = data[config.SALT_SIZE + config.NONCE_SIZE:self.HEADER_SIZE]
        body = data[self.HEADER_SIZE:]

        key = self.derive_key(salt)
        decryptor = Cipher(
            algorithms.AES(key),
            modes.GCM(nonce, tag),
            backend=self.backend
        ).decryptor()
        try:
            plain = decryptor.update(body) + decryptor.finalize()
            return plain.decode('utf-8')
        except (InvalidTag, UnicodeDecodeError) as e:
            raise AuthenticationFailure("Failed to decrypt. Invalid password or corrupted data.") from e


class DpapiCipher(CipherProvider):
    """Windows DPAPI bound to the current user account."""

    name = "dpapi"

    def __init__(self, entropy: bytes = config.DPAPI_ENTROPY):
        if not DPAPI_AVAILABLE:
            raise PlatformProtectionError("Windows data protection is not available on this platform.")
        self._entropy = entropy

    def encrypt(self, plaintext: str) -> str:
        if not plaintext:
            return plaintext
        try:
            blob = win32crypt.CryptProtectData(
                plaintext.encode('utf-8'),
                config.DPAPI_DESCRIPTION,
                self._entropy,
                None,
                None,
                CRYPTPROTECT_UI_FORBIDDEN
            )
        except Exception as e:
            raise PlatformProtectionError(f"Failed to protect data for the current user: {e}") from e
        return base64.b64encode(blob).decode('ascii')

    def decrypt(self, ciphertext: str) -> str:
        if not ciphertext:
            return ciphertext
        try:
            blob = base64.b64decode(ciphertext.strip(), validate=True)
            _, plain = win32crypt.CryptUnprotectData(blob, self._entropy, None, None, CRYPTPROTECT_UI_FORBIDDEN)
            return plain.decode('utf-8')
        except Exception as e:
            raise PlatformProtectionError(
                "Failed to decrypt data. Ensure you are running as the same user who created it."
            ) from e


class MachineKeyCipher(CipherProvider):
    """
    Local mode where DPAPI is missing: a random key generated once and kept in
    ~/.opener/.machine_key (owner-only), used as the passphrase for
    PortableCipher.
    """

    name = "machine"

    def __init__(self, key_path: Optional[str] = None):
        self.key_path = key_path or os.path.join(user_config_dir(), config.MACHINE_KEY_FILE)
        self._cipher = PortableCipher(self._get_or_create_key())

    def _get_or_create_key(self) -> str:
        """
        Raises:
            PlatformProtectionError: If the key file cannot be read or written
        """
        if os.path.exists(self.key_path):
            try:
                with open(self.key_path, 'r', encoding='utf-8') as f:
                    key = f.read().strip()
            except (OSError, UnicodeDecodeError) as e:
                raise PlatformProtectionError(f"Cannot read machine key {self.key_path}: {e}") from e
            if key:
                return key
            logger.warning(f"Machine key file {self.key_path} is empty, generating a new key.")

        key = secrets.token_hex(config.MACHINE_KEY_BYTES)
        try:
            write_private_file(self.key_path, key)
        except OSError as e:
            raise PlatformProtectionError(f"Cannot write machine key {self.key_path}: {e}") from e
        logger.info(f"Generated machine key at {self.key_path}")
        return key

    def encrypt(self, plaintext: str) -> str:
        return self._cipher.encrypt(plaintext)

    def decrypt(self, ciphertext: str) -> str:
        return self._cipher.decrypt(ciphertext)


def create_cipher(config_service, secret_backend, machine_key_path: Optional[str] = None) -> CipherProvider:
    """
    Pick the cipher for the configured mode.

    Args:
        config_service: ConfigService for the current process
        secret_backend: SecretBackend holding the portable passphrase
        machine_key_path: Override for the machine key location

    Raises:
        PassphraseMissing: portable mode without a stored passphrase
    """
    if config_service.is_portable_mode():
        passphrase = secret_backend.get()
        if not passphrase:
            raise PassphraseMissing(
                "Portable mode requires a password. Enter it when prompted or switch to portable mode again to set one."
            )
        logger.debug("Using portable cipher")
        return PortableCipher(passphrase)

    if DPAPI_AVAILABLE:
        logger.debug("Using DPAPI cipher")
        return DpapiCipher()

    logger.debug("Using machine key cipher")
    return MachineKeyCipher(machine_key_path)
