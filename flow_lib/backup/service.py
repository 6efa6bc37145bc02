"""Backup export/import over the active storage adapter.

Console collections are stored as `<collection>:<id>` entries. A backup is
a JSON document with one list per collection plus some metadata; importing
writes every record back under its key.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from flow_lib.storage.errors import StorageError
from flow_lib.storage.interfaces import StorageProtocol
from flow_lib.storage.provider import use_storage

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0.0"
APPLICATION_VERSION = "1.0.0"
EXPORTED_BY = "Flow Management Console"

# (name in the backup document, storage key prefix)
COLLECTIONS: Tuple[Tuple[str, str], ...] = (
    ("clients", "clients"),
    ("suppliers", "suppliers"),
    ("products", "products"),
    ("transactions", "transactions"),
    ("invoices", "invoices"),
    ("bills", "bills"),
    ("userGroups", "user_groups"),
    ("productSubscriptions", "product_subscriptions"),
    ("contractTemplates", "contract_templates"),
    ("settings", "settings"),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_backup_format(backup: Any) -> bool:
    if not isinstance(backup, dict):
        return False
    metadata = backup.get("metadata")
    total = metadata.get("totalRecords") if isinstance(metadata, dict) else None
    return (
        isinstance(backup.get("version"), str)
        and isinstance(backup.get("timestamp"), str)
        and isinstance(backup.get("data"), dict)
        and isinstance(total, int)
        and not isinstance(total, bool)
    )


class BackupService:
    """Export and import console collections.

    When no adapter is given the service looks up the active one with
    `use_storage()` on every call, so it follows backend switches.
    """

    def __init__(self, storage: Optional[StorageProtocol] = None) -> None:
        self._storage = storage

    @property
    def storage(self) -> StorageProtocol:
        return self._storage if self._storage is not None else use_storage()

    async def _collection(self, prefix: str) -> List[Any]:
        return await self.storage.list(f"{prefix}:")

    async def export_backup(self) -> Dict[str, Any]:
        data: Dict[str, List[Any]] = {}
        for name, prefix in COLLECTIONS:
            data[name] = await self._collection(prefix)
        total = sum(len(v) for v in data.values())
        now = _now_iso()
        logger.info("Exported backup with %d records", total)
        return {
            "version": BACKUP_VERSION,
            "timestamp": now,
            "data": data,
            "metadata": {
                "totalRecords": total,
                "exportedBy": EXPORTED_BY,
                "exportedAt": now,
                "applicationVersion": APPLICATION_VERSION,
            },
        }

    async def import_backup(
        self,
        backup: Any,
        overwrite_existing: bool = False,
        skip_invalid_records: bool = True,
    ) -> Dict[str, Any]:
        """Write every record of `backup` under `<collection>:<id>`.

        Existing entries are kept unless `overwrite_existing`. Records that
        have no `id` or fail to store are counted as skipped when
        `skip_invalid_records`; otherwise the import stops at the first one
        and reports `success: False`. Raises ValueError for a document that
        is not a backup at all.
        """
        if not validate_backup_format(backup):
            raise ValueError("Invalid backup format")

        result: Dict[str, Any] = {"success": True, "imported": 0, "skipped": 0, "errors": []}
        storage = self.storage
        for name, prefix in COLLECTIONS:
            records = backup["data"].get(name) or []
            if not isinstance(records, list):
                result["errors"].append(f"Collection {name} is not a list")
                continue
            for record in records:
                record_id = record.get("id") if isinstance(record, dict) else None
                try:
                    if record_id in (None, ""):
                        raise ValueError("record has no id")
                    key = f"{prefix}:{record_id}"
                    existing = await storage.get(key)
                    if existing is not None and not overwrite_existing:
                        result["skipped"] += 1
                        continue
                    await storage.set(key, record)
                    result["imported"] += 1
                except (StorageError, ValueError) as e:
                    message = f"Failed to import {name} record {record_id}: {e}"
                    if not skip_invalid_records:
                        logger.error("Backup import aborted: %s", message)
                        result["success"] = False
                        result["errors"].append(f"Import failed: {message}")
                        return result
                    result["errors"].append(message)
                    result["skipped"] += 1
        logger.info("Imported backup: %d imported, %d skipped", result["imported"], result["skipped"])
        return result

    async def backup_stats(self) -> Dict[str, Any]:
        counts = {}
        for name, prefix in COLLECTIONS:
            counts[name] = len(await self._collection(prefix))
        return {"totalRecords": sum(counts.values()), "dataTypes": counts}

    async def clear_all_data(self) -> None:
        await self.storage.clear()
