"""Local-file state backend.

Intended for single-machine use and tests; shared deployments should use
the S3 backend so every operator sees the same state.
"""

from __future__ import annotations

import contextlib
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import IO

from stackwright.core.store import StateStore
from stackwright.engine.errors import ConcurrentDeploymentError, StateLeaseError

try:
    import fcntl  # type: ignore[attr-defined]
except ImportError:  # pragma: no cover
    fcntl = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


class LocalStateStore(StateStore):
    """State documents under ``<root>/<project>/<stage>/<region>.json``."""

    def __init__(self, root: Path | str) -> None:
        super().__init__()
        self.root = Path(root)
        self._lock_file: IO[str] | None = None

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def _lock_path(self, key: str) -> Path:
        return Path(str(self.path_for(key)) + ".lock")

    def _read(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, key: str, payload: str) -> None:
        """Write atomically (temp file + rename), keeping a `.backup` of the previous document."""
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)

        backup_path = Path(str(path) + ".backup")
        # Avoid TOCTOU race between exists() and read_bytes().
        with contextlib.suppress(FileNotFoundError):
            backup_path.write_bytes(path.read_bytes())

        fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        tmp_file = Path(tmp_path)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            tmp_file.replace(path)
        finally:
            with contextlib.suppress(FileNotFoundError):
                tmp_file.unlink()

    def _acquire(self, key: str, run_id: str) -> None:
        lock_path = self._lock_path(key)
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        # Keep fd open for lifetime of the lease.
        f = lock_path.open("a+", encoding="utf-8")
        try:
            self._try_lock(f)
        except OSError as e:
            f.seek(0)
            holder = f.read().strip() or None
            f.close()
            raise ConcurrentDeploymentError(key, holder) from e
        except Exception:
            f.close()
            raise
        f.seek(0)
        f.truncate()
        f.write(run_id)
        f.flush()
        self._lock_file = f

    def _release(self, key: str, run_id: str) -> None:
        _ = key, run_id
        f = self._lock_file
        if f is None:
            return
        try:
            f.seek(0)
            f.truncate()
            f.flush()
            self._unlock(f)
        finally:
            f.close()
            self._lock_file = None

    def _break_lease(self, key: str) -> None:
        # OS locks die with their process: a held lock means a live run.  Every
        # run must lock the same inode, so the file is cleared, never unlinked.
        lock_path = self._lock_path(key)
        if not lock_path.exists():
            return
        with lock_path.open("r+", encoding="utf-8") as f:
            try:
                self._try_lock(f)
            except OSError as e:
                raise ConcurrentDeploymentError(key, f.read().strip() or None) from e
            try:
                f.truncate()
            finally:
                self._unlock(f)

    @staticmethod
    def _try_lock(f: IO[str]) -> None:
        if fcntl is not None:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            return

        if sys.platform == "win32":  # pragma: no cover
            import msvcrt

            msvcrt.locking(f.fileno(), msvcrt.LK_NBLCK, 1)
            return

        raise StateLeaseError("State locking is not supported on this platform")

    @staticmethod
    def _unlock(f: IO[str]) -> None:
        if fcntl is not None:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)
            return

        if sys.platform == "win32":  # pragma: no cover
            import msvcrt

            msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK, 1)
