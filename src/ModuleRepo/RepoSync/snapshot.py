"""Write-only persistence of the last successfully fetched catalog payload."""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

__all__ = ["SnapshotWriter", "atomic_write_bytes"]


def atomic_write_bytes(path: Path, payload: bytes) -> None:
    """Write ``payload`` to a temporary sibling and atomically replace ``path``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.tmp.{uuid.uuid4().hex}")
    try:
        with tmp.open("wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        tmp.replace(path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


class SnapshotWriter:
    """Persists raw catalog bodies to a fixed path; never reads them back."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def write(self, payload: bytes) -> None:
        atomic_write_bytes(self.path, payload)
        logger.debug("Catalog snapshot written", extra={"path": str(self.path), "bytes": len(payload)})
