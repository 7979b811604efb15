"""
Schedule Snapshot Store

JSON file holding the last-known full raw record of every cached session,
keyed by session identity.
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..errors import CacheReadFailure, CacheWriteFailure

SNAPSHOT_VERSION = 1


class SnapshotStore:
    """Reads and atomically rewrites the schedule snapshot file."""

    def __init__(self, path: str, location_id: Optional[str] = None):
        self.path = path
        self.location_id = location_id

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def read(self) -> Dict[str, Dict[str, Any]]:
        """
        Load the cached records.

        Returns:
            Mapping of identity key -> raw record, in stored order

        Raises:
            CacheReadFailure: If the file is missing, unreadable or malformed
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise CacheReadFailure(f"No schedule snapshot at {self.path}")
        except (OSError, json.JSONDecodeError) as e:
            raise CacheReadFailure(f"Could not read schedule snapshot {self.path}: {e}")

        # Older snapshots were a bare mapping without the envelope
        records = data.get("records") if isinstance(data, dict) and "version" in data else data

        if not isinstance(records, dict) or not all(isinstance(r, dict) for r in records.values()):
            raise CacheReadFailure(f"Schedule snapshot {self.path} is not a mapping of records")

        return {str(key): record for key, record in records.items()}

    def write(self, records: Dict[str, Dict[str, Any]]) -> None:
        """
        Replace the snapshot with the given records.

        The file is written to a temporary sibling first and moved into place,
        so readers never see a half-written snapshot.

        Raises:
            CacheWriteFailure: If the snapshot could not be written
        """
        document = {
            "version": SNAPSHOT_VERSION,
            "written_at": datetime.now(timezone.utc).isoformat(),
            "location": self.location_id,
            "records": records,
        }

        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".snapshot-", suffix=".json", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, default=str, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise CacheWriteFailure(f"Could not write schedule snapshot {self.path}: {e}")
