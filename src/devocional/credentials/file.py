"""File-tree credential backend.

Layout under the root directory:

    <root>/<session>/creds.json
    <root>/<session>/keys/<category>/<key id>.json

Path segments are percent-encoded so arbitrary ids map to safe file names.
File work runs in a worker thread. Files are written atomically (temp file +
rename) with owner-only permissions.
"""

import asyncio
import logging
import os
import shutil
import tempfile
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar
from urllib.parse import quote

from filelock import FileLock, Timeout

from devocional.credentials import codec
from devocional.credentials.base import CredentialStore
from devocional.credentials.types import (
    CredentialRecord,
    KeyUpdates,
    KeyValue,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = 10.0

T = TypeVar("T")


def _segment(value: str) -> str:
    """Percent-encode one path component.

    Raises:
        ValueError: If the value is empty.
    """
    if not value:
        raise ValueError("Credential ids must not be empty")
    encoded = quote(value, safe="")
    # "." and ".." would resolve to the directory itself or its parent
    if encoded in (".", ".."):
        return encoded.replace(".", "%2E")
    return encoded


class FileCredentialStore(CredentialStore):
    """Credential store backed by a directory of JSON files.

    Not safe for concurrent writers from other processes beyond what the
    per-session file lock provides; one bot instance per session id.
    """

    def __init__(self, root: Path) -> None:
        self._root = root
        self._guard = asyncio.Lock()

    @property
    def name(self) -> str:
        return "file"

    @property
    def root(self) -> Path:
        return self._root

    def _session_dir(self, session_id: str) -> Path:
        return self._root / _segment(session_id)

    def _creds_path(self, session_id: str) -> Path:
        return self._session_dir(session_id) / "creds.json"

    def _key_path(self, session_id: str, category: str, key_id: str) -> Path:
        return (
            self._session_dir(session_id)
            / "keys"
            / _segment(category)
            / f"{_segment(key_id)}.json"
        )

    @contextmanager
    def _locked(self, session_id: str) -> Iterator[None]:
        """Hold the per-session file lock, mapping failures to StoreUnavailable."""
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            lock = FileLock(
                str(self._root / f".{_segment(session_id)}.lock"),
                timeout=LOCK_TIMEOUT_SECONDS,
            )
            with lock:
                yield
        except Timeout as e:
            raise StoreUnavailable(f"Credential lock timed out: {e}") from e
        except OSError as e:
            raise StoreUnavailable(f"Credential storage I/O error: {e}") from e

    def _write(self, path: Path, payload: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _read(self, path: Path) -> KeyValue | None:
        """Read one JSON value; corrupt files are logged and treated as absent."""
        if not path.exists():
            return None
        try:
            return codec.loads(path.read_text(encoding="utf-8"))
        except ValueError as e:
            logger.warning(
                "credential_record_corrupt",
                extra={"file.path": str(path), "error.message": str(e)},
            )
            return None

    async def _run_locked(self, session_id: str, fn: Callable[[], T]) -> T:
        """Run blocking file work in a thread while holding both locks."""

        def locked() -> T:
            with self._locked(session_id):
                return fn()

        async with self._guard:
            return await asyncio.to_thread(locked)

    async def load_credentials(self, session_id: str) -> CredentialRecord:
        path = self._creds_path(session_id)
        data = await self._run_locked(session_id, lambda: self._read(path))
        if not isinstance(data, dict):
            return CredentialRecord.empty()
        return CredentialRecord(data=data)

    async def save_credentials(
        self, session_id: str, record: CredentialRecord
    ) -> None:
        path = self._creds_path(session_id)
        payload = codec.dumps(record.data)
        await self._run_locked(session_id, lambda: self._write(path, payload))

    async def get_keys(
        self, session_id: str, category: str, ids: Iterable[str]
    ) -> dict[str, KeyValue]:
        paths = {
            key_id: self._key_path(session_id, category, key_id) for key_id in ids
        }

        def read_all() -> dict[str, KeyValue]:
            result: dict[str, KeyValue] = {}
            for key_id, path in paths.items():
                value = self._read(path)
                if value is not None:
                    result[key_id] = value
            return result

        return await self._run_locked(session_id, read_all)

    async def set_keys(
        self, session_id: str, category: str, updates: KeyUpdates
    ) -> None:
        # Encode first so a bad value aborts before anything is written
        encoded = {
            self._key_path(session_id, category, key_id): (
                None if value is None else codec.dumps(value)
            )
            for key_id, value in updates.items()
        }

        def write_all() -> None:
            for path, payload in encoded.items():
                if payload is None:
                    path.unlink(missing_ok=True)
                else:
                    self._write(path, payload)

        await self._run_locked(session_id, write_all)

    async def clear(self, session_id: str) -> None:
        session_dir = self._session_dir(session_id)

        def remove() -> None:
            if session_dir.exists():
                shutil.rmtree(session_dir)

        await self._run_locked(session_id, remove)
        logger.info("credentials_cleared", extra={"session.id": session_id})
