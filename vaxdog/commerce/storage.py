"""Durable key-value stores for commerce state."""
import asyncio
import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from vaxdog import config
from vaxdog.config import StorageKeys
from vaxdog.logging import get_logger

logger = get_logger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Minimal contract the engine needs from durable storage.

    ``set`` returns False (or raises) when the write was not accepted.
    """

    async def get(self, key: str) -> Optional[bytes]: ...

    async def set(self, key: str, value: bytes) -> bool: ...

    async def delete(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store; survives engine re-creation, not process exit."""

    def __init__(self, initial: Optional[dict[str, bytes]] = None) -> None:
        self.data: dict[str, bytes] = dict(initial or {})

    async def get(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    async def set(self, key: str, value: bytes) -> bool:
        self.data[key] = bytes(value)
        return True

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class FileStore:
    """
    One file per key under ``directory``.

    Writes go to a temp file in the same directory and are moved into place
    with ``os.replace``, so a reader sees either the old or the new blob.
    """

    def __init__(self, directory: str | os.PathLike) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        safe_key = _UNSAFE_KEY_CHARS.sub("_", key)
        return self.directory / f"{safe_key}.json"

    def _read(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def _write(self, key: str, value: bytes) -> bool:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        return True

    def _delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    async def get(self, key: str) -> Optional[bytes]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: bytes) -> bool:
        return await asyncio.to_thread(self._write, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)


class RedisStore:
    """
    Upstash Redis store scoped to one shopper session.

    Keys are ``{prefix}:{session_id}:{key}``; no TTL, state lives until
    cleared.
    """

    def __init__(self, client, session_id: str, prefix: str = "vaxdog") -> None:
        self._client = client
        self.session_id = session_id
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return StorageKeys.redis_key(self.prefix, self.session_id, key)

    async def get(self, key: str) -> Optional[bytes]:
        data = await self._client.get(self._key(key))
        if data is None:
            return None
        if isinstance(data, bytes):
            return data
        return str(data).encode("utf-8")

    async def set(self, key: str, value: bytes) -> bool:
        # REST API stores text; blobs are UTF-8 JSON
        result = await self._client.set(self._key(key), value.decode("utf-8"))
        return result is not None and result is not False

    async def delete(self, key: str) -> None:
        await self._client.delete(self._key(key))


def create_store(session_id: str = "default") -> KeyValueStore:
    """
    Build the store selected by VAXDOG_STORAGE_BACKEND.

    Raises:
        ValueError: On unknown backend or missing Redis credentials
    """
    backend = config.get_storage_backend()

    if backend == config.BACKEND_FILE:
        directory = Path(config.get_storage_dir()) / _UNSAFE_KEY_CHARS.sub("_", session_id)
        return FileStore(directory)

    if backend == config.BACKEND_REDIS:
        from vaxdog.db import get_redis

        return RedisStore(get_redis(), session_id, prefix=config.get_storage_prefix())

    logger.debug("Using in-memory commerce store for session %s", session_id)
    return MemoryStore()
