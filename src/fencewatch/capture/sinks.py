"""Persistence targets for evidence artifacts.

The primary sink writes straight into a directory the user granted access
to. The fallback channel hands the bytes over through a downloads folder
and is always available.
"""

from __future__ import annotations

import hashlib
import os
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

from fencewatch.exceptions import FallbackDeliveryError, PrimarySinkError
from fencewatch.models.capture import AlarmTag, ArtifactRef, SinkKind


def _fsync_directory(path: Path) -> None:
    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        return
    finally:
        os.close(fd)


def _atomic_write(path: Path, payload: bytes) -> None:
    """Create-or-overwrite *path* without exposing a partially written file."""
    temp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        with temp_path.open("wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
        _fsync_directory(path.parent)
    finally:
        if temp_path.exists():
            temp_path.unlink(missing_ok=True)


def _artifact(
    *,
    path: Path,
    sink: SinkKind,
    tag: AlarmTag,
    captured_at: datetime,
    payload: bytes,
) -> ArtifactRef:
    return ArtifactRef(
        path=path,
        filename=path.name,
        sink=sink,
        tag=tag,
        captured_at=captured_at,
        size_bytes=len(payload),
        sha256=hashlib.sha256(payload).hexdigest(),
    )


class DirectoryHandle:
    """Revocable write capability for a persistent directory.

    The directory must already exist; a handle never creates it. Once
    revoked, every write through the handle fails.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._revoked = threading.Event()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def is_revoked(self) -> bool:
        return self._revoked.is_set()

    def revoke(self) -> None:
        self._revoked.set()

    def resolve(self, filename: str) -> Path:
        """Path for *filename* inside the granted directory."""
        if self.is_revoked:
            raise PrimarySinkError(f"write access to '{self._path}' was revoked", filename=filename)
        if not self._path.is_dir():
            raise PrimarySinkError(f"'{self._path}' is not an existing directory", filename=filename)
        if Path(filename).name != filename:
            raise PrimarySinkError(f"invalid artifact filename '{filename}'", filename=filename)
        return self._path / filename

    def __repr__(self) -> str:
        state = "revoked" if self.is_revoked else "granted"
        return f"DirectoryHandle({str(self._path)!r}, {state})"


@dataclass(frozen=True)
class SinkOutcome:
    """Result of a primary sink attempt: an artifact or the error it hit."""

    artifact: ArtifactRef | None = None
    error: PrimarySinkError | None = None

    @property
    def ok(self) -> bool:
        return self.artifact is not None


class DirectorySink:
    """Primary sink: create-or-overwrite ``<dir>/<filename>``."""

    def __init__(self, handle: DirectoryHandle) -> None:
        self.handle = handle

    def try_write(
        self,
        filename: str,
        payload: bytes,
        *,
        tag: AlarmTag,
        captured_at: datetime,
    ) -> SinkOutcome:
        """Attempt the write; failures are returned, never raised."""
        try:
            target = self.handle.resolve(filename)
            _atomic_write(target, payload)
        except PrimarySinkError as exc:
            return SinkOutcome(error=exc)
        except OSError as exc:
            return SinkOutcome(error=PrimarySinkError(f"direct save failed: {exc}", filename=filename))

        return SinkOutcome(
            artifact=_artifact(
                path=target,
                sink=SinkKind.PRIMARY,
                tag=tag,
                captured_at=captured_at,
                payload=payload,
            )
        )


class FallbackChannel(Protocol):
    """Generic "hand the user these bytes under this filename" primitive."""

    def deliver(
        self,
        filename: str,
        payload: bytes,
        *,
        tag: AlarmTag,
        captured_at: datetime,
    ) -> ArtifactRef: ...


def _numbered(path: Path, index: int) -> Path:
    return path.with_name(f"{path.stem} ({index}){path.suffix}")


class DownloadsDelivery:
    """Fallback channel writing into a downloads folder.

    Existing files are never overwritten: like a browser download, a
    collision gets a `` (1)``, `` (2)`` ... suffix.
    """

    def __init__(self, downloads_dir: str | Path, *, max_suffix: int = 9999) -> None:
        self.downloads_dir = Path(downloads_dir).expanduser()
        self.max_suffix = max_suffix

    def deliver(
        self,
        filename: str,
        payload: bytes,
        *,
        tag: AlarmTag,
        captured_at: datetime,
    ) -> ArtifactRef:
        if Path(filename).name != filename:
            raise FallbackDeliveryError(f"invalid artifact filename '{filename}'", tag=tag, filename=filename)
        try:
            self.downloads_dir.mkdir(parents=True, exist_ok=True)
            target = self._write_exclusive(self.downloads_dir / filename, payload)
        except OSError as exc:
            raise FallbackDeliveryError(
                f"could not deliver {filename} to {self.downloads_dir}: {exc}",
                tag=tag,
                filename=filename,
            ) from exc

        return _artifact(
            path=target,
            sink=SinkKind.FALLBACK,
            tag=tag,
            captured_at=captured_at,
            payload=payload,
        )

    def _write_exclusive(self, base: Path, payload: bytes) -> Path:
        candidate = base
        for index in range(1, self.max_suffix + 2):
            try:
                handle = candidate.open("xb")
            except FileExistsError:
                candidate = _numbered(base, index)
                continue
            try:
                with handle:
                    handle.write(payload)
            except OSError:
                # The name is ours; never leave a truncated artifact behind.
                candidate.unlink(missing_ok=True)
                raise
            return candidate
        raise FileExistsError(f"no free filename left for {base.name}")
