"""
Export and import of record snapshots.

Snapshot files use the portable cipher layout, encrypted with a password
chosen for the transfer and unrelated to the store's own configuration.
"""

import os
import logging
from dataclasses import dataclass, replace
from typing import List

from .crypto import PortableCipher
from .storage import Record, serialize_records, parse_records, find_record
from .utils import atomic_write_text, set_owner_only_permissions

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    records: List[Record]
    added: int = 0
    updated: int = 0


def export_records(records: List[Record], filepath: str, passphrase: str) -> int:
    """
    Write ``records`` to ``filepath`` encrypted with ``passphrase``.

    Returns:
        Number of exported records

    Raises:
        ValueError: If there is nothing to export or the password is empty
    """
    if not records:
        raise ValueError("No keys to export.")
    if not passphrase:
        raise ValueError("An export password is required.")

    encrypted = PortableCipher(passphrase).encrypt(serialize_records(records))
    atomic_write_text(filepath, encrypted)
    set_owner_only_permissions(filepath)
    logger.info(f"Exported {len(records)} records to {filepath}")
    return len(records)


def import_records(filepath: str, passphrase: str) -> List[Record]:
    """
    Read a snapshot written by export_records.

    Raises:
        FileNotFoundError: If ``filepath`` does not exist
        AuthenticationFailure: Wrong password or corrupted file
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"File not found: {filepath}")

    with open(filepath, 'r', encoding='utf-8') as f:
        content = f.read().strip()

    records = parse_records(PortableCipher(passphrase).decrypt(content))
    logger.info(f"Read {len(records)} records from {filepath}")
    return records


def merge_records(current: List[Record], imported: List[Record]) -> MergeResult:
    """
    Merge imported records into a copy of ``current``.

    A record whose key matches case-insensitively takes the imported value
    and kind; anything else is appended in import order.
    """
    merged = [replace(r) for r in current]
    result = MergeResult(records=merged)
    for record in imported:
        existing = find_record(merged, record.key)
        if existing is not None:
            existing.value = record.value
            existing.kind = record.kind
            result.updated += 1
        else:
            merged.append(record)
            result.added += 1
    return result
