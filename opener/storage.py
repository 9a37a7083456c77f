"""
Encrypted storage of opener records.

The whole record list is serialized to JSON, encrypted by the active cipher
and written as one base64 string. Every save replaces the whole file.
"""

import os
import json
import uuid
import logging
from enum import Enum
from typing import List, Dict, Optional, Any, Iterable
from dataclasses import dataclass, field

from .crypto import CipherProvider, CryptoError
from .utils import atomic_write_text, set_owner_only_permissions

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the data file cannot be read, decrypted, parsed or written."""


class RecordKind(Enum):
    """What a record's value means to the action layer."""
    WEB_PATH = "WebPath"
    LOCAL_PATH = "LocalPath"
    DATA = "Data"
    JSON_DATA = "JsonData"
    REST = "Rest"

    @classmethod
    def parse(cls, raw: Any) -> 'RecordKind':
        """Accept the stored name, case-insensitively, or its ordinal."""
        if isinstance(raw, bool):
            raise ValueError(f"Unknown record kind: {raw!r}")
        if isinstance(raw, int):
            members = list(cls)
            if 0 <= raw < len(members):
                return members[raw]
        elif isinstance(raw, str):
            for member in cls:
                if member.value.lower() == raw.lower() or member.name.lower() == raw.lower():
                    return member
        raise ValueError(f"Unknown record kind: {raw!r}")


@dataclass
class Record:
    """A single named shortcut."""
    key: str
    value: str = ""
    kind: RecordKind = RecordKind.DATA
    description: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'key': self.key,
            'keyType': self.kind.value,
            'value': self.value,
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Record':
        """Create from dictionary."""
        if not isinstance(data, dict):
            raise ValueError(f"Record must be an object, got {type(data).__name__}")
        record = cls(
            key=data['key'] or "",
            value=data.get('value') or "",
            kind=RecordKind.parse(data.get('keyType', RecordKind.DATA.value)),
            description=data.get('description') or "",
        )
        if data.get('id'):
            record.id = data['id']
        return record


def serialize_records(records: Iterable[Record]) -> str:
    return json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False)


def parse_records(text: str) -> List[Record]:
    """Parse the JSON list written by serialize_records."""
    if not text:
        return []
    data = json.loads(text)
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError("Record data must be a JSON list")
    return [Record.from_dict(item) for item in data]


def find_record(records: Iterable[Record], key: str) -> Optional[Record]:
    """Case-insensitive lookup by record key."""
    wanted = key.casefold()
    for record in records:
        if record.key and record.key.casefold() == wanted:
            return record
    return None


class RecordStore:
    """Reads and writes the full record collection through a cipher."""

    def __init__(self, config_service, cipher: CipherProvider):
        """
        Args:
            config_service: Provides get_data_file_path()
            cipher: Active cipher for this process
        """
        self.config_service = config_service
        self.cipher = cipher

    def get_file_path(self) -> str:
        return self.config_service.get_data_file_path()

    def initialize(self) -> None:
        """Write an empty collection on first run."""
        filepath = self.get_file_path()
        if not os.path.exists(filepath):
            logger.info(f"Creating new data file {filepath}")
            self.save_all([])

    def get_all(self) -> List[Record]:
        """
        Load all records.

        Returns:
            Records in stored order; empty when the file is absent or blank

        Raises:
            StorageError: If the file cannot be read, decrypted or parsed
        """
        filepath = self.get_file_path()
        if not os.path.exists(filepath):
            return []

        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Error reading data file {filepath}: {e}") from e

        if not content.strip():
            return []

        try:
            plaintext = self.cipher.decrypt(content.strip())
            return parse_records(plaintext)
        except (CryptoError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error loading records from {filepath} ({self.cipher.name} cipher): {e}")
            raise StorageError(f"Error loading keys from {filepath}: {e}") from e

    def save_all(self, records: List[Record]) -> None:
        """
        Encrypt and write the full collection, replacing the file.

        Raises:
            StorageError: If encryption or the write fails
        """
        filepath = self.get_file_path()
        try:
            encrypted = self.cipher.encrypt(serialize_records(records))
        except CryptoError as e:
            raise StorageError(f"Error encrypting records for {filepath}: {e}") from e

        try:
            atomic_write_text(filepath, encrypted)
        except OSError as e:
            logger.error(f"Error saving data file {filepath}: {e}", exc_info=True)
            raise StorageError(f"Error saving data file {filepath}: {e}") from e

        if not set_owner_only_permissions(filepath):
            logger.warning(f"Failed to set secure file permissions for data file: {filepath}.")
        logger.debug(f"Saved {len(records)} records to {filepath}")
