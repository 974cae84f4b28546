"""
Local schedule cache
Durable key-value store on disk holding the schedule collection as a JSON
envelope, used when the API is unreachable and for file import/export.
"""
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ValidationError

from ..domain.schedules.schemas import DailySchedule

logger = logging.getLogger(__name__)

STORAGE_KEY = "work-schedules-v1"
STORAGE_VERSION = "1.0.0"
STORAGE_LIMIT_BYTES = 5 * 1024 * 1024  # rough budget, mirrors browser storage limits
REQUIRED_SCHEDULE_KEYS = ("id", "date", "dayName", "projectManagers")


class CacheFormatError(ValueError):
    """Envelope or file contents are not a valid schedule export"""


class StorageEnvelope(BaseModel):
    schedules: list[DailySchedule]
    lastUpdated: str
    version: str = STORAGE_VERSION


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FileStore:
    """Key-value store with one file per key"""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        # Write-then-rename so a crash never leaves a half-written envelope
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class ScheduleCache:
    """Schedule collection wrapper over a FileStore with automatic (de)serialization"""

    def __init__(self, store: FileStore, key: str = STORAGE_KEY):
        self.store = store
        self.key = key

    def _envelope(self, schedules: list[DailySchedule]) -> StorageEnvelope:
        return StorageEnvelope(schedules=schedules, lastUpdated=utc_timestamp(), version=STORAGE_VERSION)

    def load_schedules(self) -> list[DailySchedule]:
        """Cached schedules, or an empty list when nothing valid is stored"""
        try:
            stored = self.store.get(self.key)
            if not stored:
                return []
            return self._parse(stored)
        except (CacheFormatError, UnicodeDecodeError):
            logger.warning("⚠️ Invalid schedule data structure in local cache, starting fresh")
            return []
        except OSError as e:
            logger.error(f"❌ Failed to load schedules from local cache: {e}")
            return []

    def save_schedules(self, schedules: list[DailySchedule]) -> bool:
        try:
            self.store.set(self.key, self._envelope(schedules).model_dump_json())
            logger.debug(f"✅ Local cache SET: {self.key} ({len(schedules)} schedules)")
            return True
        except OSError as e:
            logger.error(f"❌ Failed to save schedules to local cache: {e}")
            return False

    def clear_schedules(self) -> bool:
        try:
            self.store.delete(self.key)
            return True
        except OSError as e:
            logger.error(f"❌ Failed to clear schedules: {e}")
            return False

    def storage_info(self) -> dict:
        try:
            stored = self.store.get(self.key)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"❌ Failed to get storage info: {e}")
            return {"used": 0, "available": 0, "percentage": 0}
        used = len(stored.encode("utf-8")) if stored else 0
        return {
            "used": used,
            "available": STORAGE_LIMIT_BYTES - used,
            "percentage": used / STORAGE_LIMIT_BYTES * 100,
        }

    # Backups and files use the same envelope

    def create_backup(self, schedules: list[DailySchedule]) -> str:
        return self._envelope(schedules).model_dump_json()

    def restore_from_backup(self, backup: str) -> list[DailySchedule]:
        try:
            return self._parse(backup)
        except CacheFormatError as e:
            logger.error(f"❌ Failed to restore from backup: {e}")
            raise CacheFormatError("Invalid backup data") from e

    def export_schedules(self, schedules: list[DailySchedule], directory: Union[str, Path]) -> Path:
        """Write a pretty-printed ``work-schedules-YYYY-MM-DD.json`` into ``directory``"""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"work-schedules-{datetime.now(timezone.utc).date().isoformat()}.json"
        path.write_text(self._envelope(schedules).model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"📤 Exported {len(schedules)} schedule(s) to {path}")
        return path

    def import_schedules(self, path: Union[str, Path]) -> list[DailySchedule]:
        try:
            content = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise CacheFormatError("Failed to read file") from e
        except UnicodeDecodeError as e:
            raise CacheFormatError("Failed to parse JSON file") from e
        return self._parse(content)

    @staticmethod
    def _parse(content: str) -> list[DailySchedule]:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise CacheFormatError("Failed to parse JSON file") from e

        raw = data.get("schedules") if isinstance(data, dict) else None
        if not isinstance(raw, list):
            raise CacheFormatError("Invalid file format: missing schedules array")

        for schedule in raw:
            if not isinstance(schedule, dict) or any(k not in schedule for k in REQUIRED_SCHEDULE_KEYS):
                raise CacheFormatError("Invalid schedule data structure")

        try:
            return [DailySchedule.model_validate(s) for s in raw]
        except ValidationError as e:
            raise CacheFormatError("Invalid schedule data structure") from e
