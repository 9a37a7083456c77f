import platform
import os
import stat
import shutil
import logging
from typing import Optional

from platformdirs import user_data_dir as _platform_data_dir

from . import config

logger = logging.getLogger(__name__)

if platform.system() == "Windows":
    try:
        import ntsecuritycon
        import pywintypes
        import win32api
        import win32security
        WINDOWS_ACL_AVAILABLE = True
    except ImportError:
        logger.warning("pywin32 not fully installed, data and key files keep their inherited Windows ACL.")
        WINDOWS_ACL_AVAILABLE = False
else:
    WINDOWS_ACL_AVAILABLE = False


def user_config_dir(create: bool = True) -> str:
    """Return ~/.opener, the private directory for config and key material."""
    path = os.path.join(os.path.expanduser("~"), config.CONFIG_DIR_NAME)
    if create:
        os.makedirs(path, exist_ok=True)
    return path


def user_data_dir() -> str:
    """Per-user directory for the default data file (%LOCALAPPDATA%\\Opener on Windows)."""
    return _platform_data_dir(config.APP_NAME, appauthor=False)


def _restrict_windows_acl(filepath: str) -> bool:
    """
    Replace the DACL of a data, key or password file with a single entry for
    the account running this process, and stop inheriting from the folder.
    """
    if not WINDOWS_ACL_AVAILABLE:
        logger.warning(f"Cannot restrict {filepath} to the current user: pywin32 not available.")
        return False

    try:
        token = win32security.OpenProcessToken(win32api.GetCurrentProcess(), win32security.TOKEN_QUERY)
        user_sid = win32security.GetTokenInformation(token, win32security.TokenUser)[0]

        # read, write and replace-by-move; nothing for other principals
        dacl = win32security.ACL()
        dacl.AddAccessAllowedAce(
            win32security.ACL_REVISION,
            ntsecuritycon.FILE_GENERIC_READ | ntsecuritycon.FILE_GENERIC_WRITE | ntsecuritycon.DELETE,
            user_sid
        )
        win32security.SetNamedSecurityInfo(
            filepath,
            win32security.SE_FILE_OBJECT,
            win32security.DACL_SECURITY_INFORMATION | win32security.PROTECTED_DACL_SECURITY_INFORMATION,
            None,
            None,
            dacl,
            None
        )
    except pywintypes.error as e:
        logger.error(f"Failed to restrict {filepath} to the current user: {e}")
        return False
    logger.debug(f"Restricted {filepath} to the current user.")
    return True


def set_owner_only_permissions(filepath: str) -> bool:
    """Set file to be readable/writable by owner only."""
    if platform.system() == 'Windows':
        return _restrict_windows_acl(filepath)
    try:
        os.chmod(filepath, stat.S_IRUSR | stat.S_IWUSR)  # 600
    except OSError as e:
        logger.error(f"Failed to chmod {filepath}: {e}")
        return False
    return True


def write_private_file(filepath: str, content: str) -> None:
    """Write a small secret file and restrict it to the owner."""
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(filepath, 'w', encoding='utf-8') as f:
        f.write(content)
    if not set_owner_only_permissions(filepath):
        logger.warning(f"Failed to set secure file permissions for {filepath}.")


def atomic_write_text(filepath: str, content: str, tmp_suffix: Optional[str] = None) -> None:
    """
    Replace ``filepath`` with ``content`` by writing a sibling temp file and
    moving it over the original. The temp file is removed if anything fails.
    """
    tmp_path = filepath + (tmp_suffix or config.TEMP_SUFFIX)
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    try:
        with open(tmp_path, 'w', encoding='utf-8') as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        shutil.move(tmp_path, filepath)
    except Exception:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
