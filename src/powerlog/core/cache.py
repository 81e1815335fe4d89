"""Local snapshot of the last known inventory.

The snapshot lets the inventory keep working when the configured storage is
unreachable. It is written after every local change and after every
successful load from storage.
"""

import json
import os
from collections.abc import Iterable
from pathlib import Path

import structlog
from pydantic import ValidationError

from powerlog.core.models import Battery, parse_batteries

logger = structlog.get_logger(__name__)


class LocalCache:
    """JSON file holding the full battery list."""

    def __init__(self, path: str | Path) -> None:
        """Initialize the cache.

        Args:
            path: Location of the snapshot file.
        """
        self.path = Path(path)

    def load(self) -> list[Battery] | None:
        """Read the snapshot.

        Returns:
            Cached batteries, or None if there is no usable snapshot.
        """
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return parse_batteries(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Ignoring unreadable local cache", path=str(self.path), error=str(e))
            return None

    def save(self, batteries: Iterable[Battery]) -> bool:
        """Replace the snapshot.

        Args:
            batteries: Complete inventory to store.

        Returns:
            True if the snapshot was written.
        """
        payload = [battery.to_payload() for battery in batteries]
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error("Failed to write local cache", path=str(self.path), error=str(e))
            return False
        return True
