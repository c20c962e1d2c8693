"""Installation-scoped device identifier kept in a private key store."""

from __future__ import annotations

import hashlib
import logging
import os
import uuid
from pathlib import Path

from ..config import constants

logger = logging.getLogger(__name__)


class KeyStore:
    """File-backed secrets readable only by the owning user."""

    def __init__(self, directory: str) -> None:
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self._dir, 0o700)

    def _path_for(self, key: str) -> Path:
        safe = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._dir / f"{safe}.secret"

    def read(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8").strip() or None

    def write(self, key: str, value: str) -> None:
        path = self._path_for(key)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(value)

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        if path.exists():
            path.unlink()

    def path(self, key: str) -> Path:
        return self._path_for(key)


def load_or_create_device_id(store: KeyStore, key: str = constants.DEVICE_ID_KEY) -> str:
    """Return the stored identifier, generating and persisting one on first use."""

    existing = store.read(key)
    if existing:
        return existing
    device_id = str(uuid.uuid4()).upper()
    store.write(key, device_id)
    logger.info("generated new device identifier")
    return device_id
