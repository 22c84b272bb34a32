"""Local staging area for transformed images.

Artifacts are addressed by opaque keys issued by :class:`StagingStore`.
Lookups accept only keys matching the issued grammar and always resolve
inside the store's root directory.
"""

import itertools
import os
import re
import tempfile
import threading
import time
import uuid
from pathlib import Path
from typing import Optional, Union

from .exceptions import NotFoundError, StorageError
from .logging_config import get_logger
from .models import Artifact, OutputFormat

_EXTENSIONS = "|".join(f.extension for f in OutputFormat)
KEY_PATTERN = re.compile(rf"^(\d+)-(\d+)-([0-9a-f]{{32}})\.({_EXTENSIONS})$")
TEMP_PREFIX = ".staging-"


class StagingStore:
    """Short-lived artifact store rooted at an injected directory."""

    def __init__(self, root: Union[str, Path], ttl_seconds: Optional[float] = None):
        self._root = Path(root).resolve()
        self._ttl_seconds = ttl_seconds
        self._counter = itertools.count()
        self._key_lock = threading.Lock()
        self._init_lock = threading.Lock()
        self._ready = False
        self._logger = get_logger("image-batch.storage")

    @property
    def root(self) -> Path:
        return self._root

    def ensure_ready(self) -> None:
        """
        Create the staging directory if needed.

        Raises:
            StorageError: If the directory cannot be created
        """
        if self._ready:
            return
        with self._init_lock:
            if self._ready:
                return
            try:
                self._root.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageError(
                    f"Failed to create staging directory {self._root}: {exc}"
                ) from exc
            if not self._root.is_dir():
                raise StorageError(f"Staging path {self._root} is not a directory")
            self._ready = True
            self._logger.debug(f"Staging directory ready at {self._root}")

    def _issue_key(self, fmt: OutputFormat) -> str:
        with self._key_lock:
            sequence = next(self._counter)
        return f"{time.time_ns()}-{sequence}-{uuid.uuid4().hex}.{fmt.extension}"

    def put(self, data: bytes, original_name: str, fmt: OutputFormat) -> Artifact:
        """
        Write ``data`` under a freshly issued key.

        The bytes land in a temporary file first and are published with an
        atomic rename, so readers never see a partial artifact.

        Raises:
            StorageError: If the write fails
        """
        self.ensure_ready()
        key = self._issue_key(fmt)
        final_path = self._root / key

        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                dir=self._root, prefix=TEMP_PREFIX, delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, final_path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Failed to stage artifact {key}: {exc}") from exc

        self._logger.debug(f"Staged {original_name or '<unnamed>'} as {key}")
        return Artifact(
            key=key, storage_location=final_path, original_name=original_name, format=fmt
        )

    def _path_for(self, key: str) -> Path:
        match = KEY_PATTERN.match(key or "")
        if not match:
            raise NotFoundError(f"Unknown artifact: {key!r}")
        path = (self._root / key).resolve()
        if path.parent != self._root or not path.is_file():
            raise NotFoundError(f"Unknown artifact: {key!r}")
        return path

    def resolve(self, key: str) -> Artifact:
        """
        Look up a previously staged artifact.

        Raises:
            NotFoundError: If the key was not issued by this store or is gone
        """
        path = self._path_for(key)
        fmt = OutputFormat(KEY_PATTERN.match(key).group(4))
        return Artifact(key=key, storage_location=path, format=fmt)

    def get(self, key: str) -> bytes:
        """Return the bytes stored under ``key``."""
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError(f"Unknown artifact: {key!r}") from exc
        except OSError as exc:
            raise StorageError(f"Failed to read artifact {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        """Remove the artifact stored under ``key``."""
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise NotFoundError(f"Unknown artifact: {key!r}") from exc
        self._logger.debug(f"Deleted artifact {key}")

    def purge_expired(self, now: Optional[float] = None) -> int:
        """
        Remove artifacts and leftover temporary files older than the TTL.

        Returns:
            Number of files removed (0 when no TTL is configured)
        """
        if not self._ttl_seconds or self._ttl_seconds <= 0:
            return 0
        if not self._root.is_dir():
            return 0

        cutoff = (time.time() if now is None else now) - self._ttl_seconds
        removed = 0
        for entry in self._root.iterdir():
            if not (KEY_PATTERN.match(entry.name) or entry.name.startswith(TEMP_PREFIX)):
                continue
            try:
                if entry.stat().st_mtime < cutoff:
                    entry.unlink()
                    removed += 1
            except FileNotFoundError:
                # Removed concurrently by another purge or delete
                continue

        if removed:
            self._logger.info(f"Purged {removed} expired artifact(s) from {self._root}")
        return removed
