"""
Configuration constants for the Opener record store.
"""

# Application Metadata
APP_VERSION = "1.0.0"  # Use: Current version of the record store. Type: str. Range: Semantic versioning string (e.g., "1.0.0")
APP_NAME = "Opener"  # Use: Application name, also the per-user data folder name passed to platformdirs. Type: str. Range: Any valid string.

# Security Settings
SALT_SIZE = 16  # Use: Size of the random salt in bytes for PBKDF2 key derivation. Type: int. Range: 16 bytes, part of the on-disk blob layout.
KEY_SIZE = 32  # Use: Size of the derived encryption key in bytes. Corresponds to AES-256. Type: int. Range: 32 bytes.
NONCE_SIZE = 12  # Use: Size of the AES-GCM nonce in bytes. Type: int. Range: 12 bytes, part of the on-disk blob layout.
TAG_SIZE = 16  # Use: Size of the AES-GCM authentication tag in bytes. Type: int. Range: 16 bytes, part of the on-disk blob layout.
PBKDF2_ITERATIONS = 100000  # Use: Number of PBKDF2-HMAC-SHA256 iterations for the passphrase cipher. Type: int. Range: Fixed at 100,000 so existing files stay readable.
MACHINE_KEY_BYTES = 32  # Use: Random bytes in the generated machine key (hex encoded on disk). Type: int. Range: At least 32 (256 bits).
DPAPI_ENTROPY = b"OpenerTool_Entropy_2026"  # Use: Static optional entropy passed to Windows DPAPI. Type: bytes. Range: Must never change, or local-mode files become unreadable.
DPAPI_DESCRIPTION = "Opener data"  # Use: Description stored inside DPAPI blobs. Type: str. Range: Any string.

# Credential Settings
CREDENTIAL_SERVICE = "OpenerTool_PortableKey"  # Use: Keyring service name (credential target) holding the portable password. Type: str. Range: Any non-empty string.
CREDENTIAL_USERNAME = "opener"  # Use: Keyring user name for the portable password entry. Type: str. Range: Any non-empty string.

# Encryption Modes
MODE_LOCAL = "local"  # Use: Encryption bound to this user and machine. Type: str.
MODE_PORTABLE = "portable"  # Use: Encryption keyed by a user supplied password. Type: str.
ENCRYPTION_MODES = (MODE_LOCAL, MODE_PORTABLE)  # Use: Accepted values for encryptionMode. Type: tuple[str]. Range: Exactly the two modes above.

# File and Directory Names
CONFIG_DIR_NAME = ".opener"  # Use: Hidden directory in the user's home holding configuration and key material. Type: str. Range: Any valid directory name.
CONFIG_FILE = "config.json"  # Use: Filename of the JSON configuration file. Type: str. Range: Any valid filename.
DEFAULT_DATA_FILE = "opener.dat"  # Use: Default filename of the encrypted record file. Type: str. Range: Any valid filename.
MACHINE_KEY_FILE = ".machine_key"  # Use: Filename of the generated machine key used by local mode without DPAPI. Type: str. Range: Any valid filename.
PASSWORD_FILE = ".internal_pass"  # Use: Filename of the plaintext password fallback when no keyring is usable. Type: str. Range: Any valid filename.
TEMP_SUFFIX = ".tmp"  # Use: Suffix of the temporary file written before replacing the data file. Type: str. Range: Any valid suffix.

# Logging
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'  # Use: Format string passed to logging.basicConfig by the entry point. Type: str.
