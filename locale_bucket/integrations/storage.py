from __future__ import annotations

import asyncio
import gzip
import json
import logging
import os
import tempfile
import zlib
from pathlib import Path
from typing import Mapping

from pydantic import TypeAdapter, ValidationError


logger = logging.getLogger(__name__)

_STORE_ADAPTER: TypeAdapter[dict[str, dict[str, str]]] = TypeAdapter(dict[str, dict[str, str]])


class CacheFileStorage:
    """Persist a bucket's translation store as gzip-compressed JSON.

    One file per bucket identity, named after the identity, inside
    ``directory``. The format has no version header; a format change means
    the old cache is treated as corrupt and refetched.
    """

    def __init__(
        self,
        directory: Path,
        bucket_id: str,
        *,
        load_timeout_seconds: float = 2.0,
        compress_level: int = 9,
    ) -> None:
        self._directory = Path(directory)
        self._bucket_id = bucket_id
        self._load_timeout = load_timeout_seconds
        self._compress_level = compress_level

    @property
    def path(self) -> Path:
        return self._directory / self._bucket_id

    def exists(self) -> bool:
        return self.path.is_file()

    async def save(self, store: Mapping[str, Mapping[str, str]]) -> bool:
        """Write ``store`` from a worker thread; never raises."""
        return await asyncio.to_thread(self.save_sync, store)

    def save_sync(self, store: Mapping[str, Mapping[str, str]]) -> bool:
        try:
            payload = json.dumps(store, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
            compressed = gzip.compress(payload, compresslevel=self._compress_level)
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._bucket_id}.", dir=self._directory)
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(compressed)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to write localization cache %s: %s", self.path, exc)
            return False

        logger.debug("Wrote %s cached keys to %s (%s bytes)", len(store), self.path, len(compressed))
        return True

    async def load(self) -> dict[str, dict[str, str]] | None:
        """Return the cached store, or ``None`` when missing, corrupt or too slow.

        The read runs in a worker thread bounded by the load timeout; a read
        that misses the deadline is discarded rather than partially applied.
        """
        if not self.exists():
            logger.info("No localization cache at %s", self.path)
            return None

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.load_sync),
                timeout=self._load_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Loading localization cache %s exceeded %.1fs; ignoring it",
                self.path,
                self._load_timeout,
            )
            return None

    def load_sync(self) -> dict[str, dict[str, str]] | None:
        try:
            raw = gzip.decompress(self.path.read_bytes())
            store = _STORE_ADAPTER.validate_json(raw)
        except FileNotFoundError:
            return None
        except (OSError, EOFError, zlib.error, ValidationError, ValueError) as exc:
            logger.warning("Discarding unreadable localization cache %s: %s", self.path, exc)
            return None

        logger.info("Restored %s cached keys from %s", len(store), self.path)
        return store

    def delete(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True
