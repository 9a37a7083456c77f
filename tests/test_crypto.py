import base64
import os
import stat
import sys

import pytest

from opener import config, crypto
from opener.crypto import (
    AuthenticationFailure,
    DpapiCipher,
    MachineKeyCipher,
    PassphraseMissing,
    PlatformProtectionError,
    PortableCipher,
    create_cipher,
)

from conftest import MemorySecretBackend


def test_concrete_scenario():
    cipher = PortableCipher("StrongPassword123!")
    original = "Hello World - Sensitive Data 123"

    encrypted = cipher.encrypt(original)

    assert encrypted != original
    base64.b64decode(encrypted, validate=True)
    assert cipher.decrypt(encrypted) == original
    with pytest.raises(AuthenticationFailure):
        PortableCipher("wrong").decrypt(encrypted)


@pytest.mark.parametrize("text", [
    "plain ascii",
    "x" * 8192,
    "Grüße, ключ, 鍵, 🔑",
])
def test_round_trip(text):
    cipher = PortableCipher("hunter2")
    assert cipher.decrypt(cipher.encrypt(text)) == text


def test_empty_plaintext_passes_through():
    cipher = PortableCipher("hunter2")
    assert cipher.encrypt("") == ""
    assert cipher.decrypt("") == ""


def test_blob_layout():
    blob = base64.b64decode(PortableCipher("p").encrypt("abcd"))
    assert len(blob) == config.SALT_SIZE + config.NONCE_SIZE + config.TAG_SIZE + 4


def test_encrypt_is_not_deterministic():
    cipher = PortableCipher("same")
    assert cipher.encrypt("same text") != cipher.encrypt("same text")


def test_wrong_password_rejected():
    encrypted = PortableCipher("pass1").encrypt("Secret")
    with pytest.raises(AuthenticationFailure):
        PortableCipher("pass2").decrypt(encrypted)


def test_any_flipped_byte_is_detected():
    cipher = PortableCipher("tamper")
    blob = bytearray(base64.b64decode(cipher.encrypt("abc")))
    for i in range(len(blob)):
        tampered = bytearray(blob)
        tampered[i] ^= 0x01
        with pytest.raises(AuthenticationFailure):
            cipher.decrypt(base64.b64encode(bytes(tampered)).decode())


@pytest.mark.parametrize("bad", ["not base64 !!", base64.b64encode(b"short").decode()])
def test_malformed_input_is_authentication_failure(bad):
    with pytest.raises(AuthenticationFailure):
        PortableCipher("p").decrypt(bad)


def test_none_passphrase_rejected():
    with pytest.raises(ValueError):
        PortableCipher(None)


def test_machine_key_created_once(tmp_path):
    key_path = tmp_path / ".machine_key"

    first = MachineKeyCipher(str(key_path))
    key = key_path.read_text()
    encrypted = first.encrypt("local secret")
    second = MachineKeyCipher(str(key_path))

    assert len(key) == config.MACHINE_KEY_BYTES * 2
    int(key, 16)
    assert key_path.read_text() == key
    assert second.decrypt(encrypted) == "local secret"


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_machine_key_is_owner_only(tmp_path):
    key_path = tmp_path / ".machine_key"
    MachineKeyCipher(str(key_path))
    assert stat.S_IMODE(os.stat(key_path).st_mode) == 0o600


def test_machine_key_default_location(home):
    MachineKeyCipher()
    assert (home / config.CONFIG_DIR_NAME / config.MACHINE_KEY_FILE).exists()


@pytest.mark.skipif(crypto.DPAPI_AVAILABLE, reason="DPAPI present")
def test_dpapi_unavailable_raises():
    with pytest.raises(PlatformProtectionError):
        DpapiCipher()


@pytest.mark.skipif(not crypto.DPAPI_AVAILABLE, reason="needs Windows DPAPI")
def test_dpapi_round_trip():
    cipher = DpapiCipher()
    encrypted = cipher.encrypt("bound to this account")
    assert cipher.decrypt(encrypted) == "bound to this account"
    with pytest.raises(PlatformProtectionError):
        DpapiCipher(entropy=b"other").decrypt(encrypted)


def test_selector_portable_uses_stored_password(config_service):
    config_service.set_encryption_mode("portable")
    cipher = create_cipher(config_service, MemorySecretBackend("pw"))

    assert isinstance(cipher, PortableCipher)
    assert PortableCipher("pw").decrypt(cipher.encrypt("x")) == "x"


def test_selector_portable_without_password(config_service):
    config_service.set_encryption_mode("portable")
    with pytest.raises(PassphraseMissing):
        create_cipher(config_service, MemorySecretBackend())


def test_selector_local_falls_back_to_machine_key(config_service, tmp_path, no_dpapi):
    cipher = create_cipher(config_service, MemorySecretBackend("ignored"),
                           machine_key_path=str(tmp_path / "mk"))
    assert isinstance(cipher, MachineKeyCipher)


def test_selector_local_prefers_dpapi(config_service, monkeypatch):
    class FakeDpapi:
        pass

    monkeypatch.setattr(crypto, "DPAPI_AVAILABLE", True)
    monkeypatch.setattr(crypto, "DpapiCipher", FakeDpapi)
    assert isinstance(create_cipher(config_service, MemorySecretBackend()), FakeDpapi)


def test_unreadable_machine_key_is_platform_error(tmp_path):
    key_path = tmp_path / ".machine_key"
    key_path.mkdir()

    with pytest.raises(PlatformProtectionError) as excinfo:
        MachineKeyCipher(str(key_path))
    assert str(key_path) in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, OSError)


def test_unwritable_machine_key_is_platform_error(tmp_path, monkeypatch):
    def read_only_disk(filepath, content):
        raise OSError(30, "Read-only file system")

    monkeypatch.setattr(crypto, "write_private_file", read_only_disk)

    with pytest.raises(PlatformProtectionError):
        MachineKeyCipher(str(tmp_path / ".machine_key"))
