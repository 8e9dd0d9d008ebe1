"""
Downloadable export artifacts.

Lifecycle: created when a query runs, streamed to the caller once, deleted
after the stream completes. If the stream breaks midway the artifact is
kept (and the failure logged); nothing retries it automatically.

Stores are key -> bytes maps. The in-memory store is the default; the
filesystem store writes to a temp file and renames it into place so a
reader never sees a half-written artifact.
"""

from __future__ import annotations

import logging
import os
import re
import secrets
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, Optional, Set

from .errors import ArtifactNotFound
from .exporters import export_csv
from .models import ExportRow
from .settings import Settings


logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"
DOWNLOAD_PREFIX = "/api/weather/download/"

_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")
_VALID_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


@dataclass(frozen=True)
class Artifact:
    name: str
    content: bytes
    created_at: datetime

    @property
    def download_link(self) -> str:
        return f"{DOWNLOAD_PREFIX}{self.name}"


class ArtifactStore(ABC):
    """Abstract base class for artifact storage backends."""

    @abstractmethod
    def put(self, name: str, content: bytes) -> None:
        """Store content under name. Visible to readers only once complete."""
        ...

    @abstractmethod
    def read(self, name: str) -> bytes:
        """
        Returns:
            Artifact content

        Raises:
            ArtifactNotFound: If nothing is stored under name
        """
        ...

    @abstractmethod
    def exists(self, name: str) -> bool:
        ...

    @abstractmethod
    def delete(self, name: str) -> bool:
        """
        Returns:
            True if deleted, False if it didn't exist
        """
        ...


class InMemoryArtifactStore(ArtifactStore):
    def __init__(self) -> None:
        self._items: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, name: str, content: bytes) -> None:
        with self._lock:
            self._items[name] = bytes(content)

    def read(self, name: str) -> bytes:
        with self._lock:
            try:
                return self._items[name]
            except KeyError:
                raise ArtifactNotFound(name) from None

    def exists(self, name: str) -> bool:
        with self._lock:
            return name in self._items

    def delete(self, name: str) -> bool:
        with self._lock:
            return self._items.pop(name, None) is not None


class FileSystemArtifactStore(ArtifactStore):
    """One file per artifact under `root`."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        # Names come from URLs; anything path-like can't be one of ours.
        if not _VALID_NAME.match(name) or name.startswith("."):
            raise ArtifactNotFound(name)
        return self.root / name

    def put(self, name: str, content: bytes) -> None:
        target = self._path(name)
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=".partial-")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def read(self, name: str) -> bytes:
        try:
            return self._path(name).read_bytes()
        except FileNotFoundError:
            raise ArtifactNotFound(name) from None

    def exists(self, name: str) -> bool:
        try:
            return self._path(name).is_file()
        except ArtifactNotFound:
            return False

    def delete(self, name: str) -> bool:
        try:
            self._path(name).unlink()
        except (FileNotFoundError, ArtifactNotFound):
            return False
        return True


def build_artifact_store(settings: Settings) -> ArtifactStore:
    if settings.artifact_store == "filesystem":
        return FileSystemArtifactStore(settings.downloads_dir)
    return InMemoryArtifactStore()


def artifact_name(requester: Optional[str], now: datetime) -> str:
    """
    weather_query_<requester>_<epoch ms>_<random token>.csv

    The token keeps two queries from the same requester in the same
    millisecond apart.
    """
    who = _UNSAFE.sub("_", requester or "").strip("_") or ANONYMOUS
    millis = int(now.timestamp() * 1000)
    return f"weather_query_{who}_{millis}_{secrets.token_hex(4)}.csv"


class ExportManager:
    """Creates CSV artifacts and hands each one out at most once."""

    chunk_size = 64 * 1024

    def __init__(
        self,
        store: ArtifactStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        # Names currently being streamed; a second request for one gets a 404.
        self._claimed: Set[str] = set()
        self._lock = threading.Lock()

    def create_artifact(self, rows: Iterable[ExportRow], requester: Optional[str] = None) -> Artifact:
        """Serialize rows (SerializationError on a bad row) and store the CSV."""
        content = export_csv(rows).encode("utf-8")
        created_at = self.clock()
        artifact = Artifact(
            name=artifact_name(requester, created_at),
            content=content,
            created_at=created_at,
        )
        self.store.put(artifact.name, artifact.content)
        logger.info("Created artifact %s (%d bytes)", artifact.name, len(content))
        return artifact

    def serve_and_retire(self, name: str) -> Iterator[bytes]:
        """
        Claim an artifact and return an iterator over its bytes.

        Raises ArtifactNotFound up front (before any byte is sent) when the
        artifact doesn't exist or is already being streamed. The artifact is
        deleted only after the iterator is fully consumed.
        """
        with self._lock:
            if name in self._claimed:
                raise ArtifactNotFound(name)
            content = self.store.read(name)
            self._claimed.add(name)
        return self._stream(name, content)

    def _release(self, name: str) -> None:
        with self._lock:
            self._claimed.discard(name)

    def _stream(self, name: str, content: bytes) -> Iterator[bytes]:
        try:
            for start in range(0, len(content), self.chunk_size):
                yield content[start:start + self.chunk_size]
        except BaseException:
            logger.warning("Delivery of %s was interrupted; artifact kept", name)
            self._release(name)
            raise

        try:
            self.store.delete(name)
        finally:
            self._release(name)
        logger.info("Delivered and removed artifact %s", name)
