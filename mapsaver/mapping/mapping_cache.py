"""
Simple file cache for decoded API responses.

One JSON file per sanitized key in a cache directory. Entries never expire;
they live until removed through the API or deleted from the directory.
"""

import json
import re
from pathlib import Path
from typing import Any, Optional

from ..config.logger_module import log_debug, log_info, log_warning, log_error
from .mapping_errors import CacheError


_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_\-]")


def normalize_key(key: str) -> str:
    """
    Turn a human-readable key into a safe file name stem.

    Path separators and spaces become underscores, then everything outside
    [A-Za-z0-9_-] is dropped. Distinct keys may collide after normalization.
    """
    return _UNSAFE_KEY_CHARS.sub("", key.replace("/", "_").replace(" ", "_"))


class SimpleCache:
    """
    Stores JSON-serializable values on disk, keyed by normalized strings.

    No TTL, no size bound and no locking: concurrent writers to one key
    end up with whichever write landed last.
    """

    FILE_SUFFIX = ".json"

    def __init__(self, cache_dir: str = "cache"):
        """
        Initialize the cache.

        Args:
            cache_dir: Directory for cache files, created on first use
        """
        self.cache_dir = Path(cache_dir)

    def _ensure_dir(self) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"Failed to create cache directory: {e}")

    def _cache_path(self, key: str) -> Path:
        """Get full path for a raw key."""
        return self.cache_dir / f"{normalize_key(key)}{self.FILE_SUFFIX}"

    def get(self, key: str) -> Optional[Any]:
        """
        Return the stored value for key, or None when absent or unreadable.

        Args:
            key: Raw cache key

        Returns:
            Decoded value or None
        """
        path = self._cache_path(key)

        if not path.is_file():
            log_debug(f"Cache miss: {path.name}")
            return None

        try:
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as e:
            log_warning(f"Unreadable cache entry {path.name} (treated as miss): {e}")
            return None

        log_info(f"Cache hit: {path.name}")
        return data

    def set(self, key: str, value: Any) -> Path:
        """
        Persist value under key, overwriting any prior entry.

        Args:
            key: Raw cache key
            value: Any JSON-serializable structure

        Returns:
            Path of the written cache file

        Raises:
            CacheError: On serialization or write failures
        """
        self._ensure_dir()
        path = self._cache_path(key)

        try:
            payload = json.dumps(value, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise CacheError(f"Value for cache key '{key}' is not serializable: {e}")

        try:
            path.write_text(payload, encoding="utf-8")
        except OSError as e:
            log_error(f"Failed to write cache file {path.name}: {e}")
            raise CacheError(f"Failed to write cache file: {e}")

        log_debug(f"Cached {len(payload)} bytes as {path.name}")
        return path

    def remove(self, key: str) -> None:
        """
        Delete the entry for key if present.

        Raises:
            CacheError: If an existing entry cannot be deleted
        """
        if not key:
            return

        path = self._cache_path(key)
        if not path.exists():
            return

        try:
            path.unlink()
            log_info(f"Removed cache entry {path.name}")
        except OSError as e:
            raise CacheError(f"Failed to remove cache file: {e}")
