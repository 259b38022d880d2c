from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class MediaStore(Protocol):
    def delete(self, key: str) -> None: ...


class LocalMediaStore:
    """
    Media kept on the local filesystem under `root`.

    Uploading is handled elsewhere; this store only needs to remove files when
    their kudos post goes away.
    """

    def __init__(self, root: Path):
        self.root = root

    def path_for(self, key: str) -> Path:
        candidate = (self.root / key).resolve()
        if not candidate.is_relative_to(self.root.resolve()):
            raise ValueError(f"Media key escapes media root: {key!r}")
        return candidate

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        path.unlink(missing_ok=True)
        logger.debug("Deleted media key=%s", key)
