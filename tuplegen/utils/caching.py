"""
Expansion result caching.

Rendered site expansions are pickled under the cache directory, one file
per site, next to an index recording each entry's site, degree, size and
last use. A site is identified by the file it lives in, its text and
indentation, its degree and the configuration fingerprint; sites differing
in any of these never share an entry. The total size is kept under
``max_size_mb`` by evicting the least recently used entries.
"""

import hashlib
import os
import pickle
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Tuple

from .constants import CACHE_DIR_NAME, DEFAULT_CACHE_SIZE_MB
from .logging import get_logger

if TYPE_CHECKING:
    from ..syntax.items import AnnotatedNode

logger = get_logger(__name__)

INDEX_FILENAME = "index.pkl"

_LOAD_ERRORS = (OSError, EOFError, pickle.UnpicklingError, AttributeError, ImportError)

# (arity, element type names, declaration text)
CachedDeclaration = Tuple[int, Tuple[str, ...], str]


@dataclass(frozen=True)
class CachedSite:
    """The rendered output of one site as stored on disk."""

    max_degree: int
    preamble: Optional[str]
    declarations: Tuple[CachedDeclaration, ...]

    def is_complete(self) -> bool:
        """Check for exactly one declaration per arity ``0..=max_degree``, ascending."""
        if [declaration[0] for declaration in self.declarations] != list(range(self.max_degree + 1)):
            return False
        return all(
            len(elements) == arity and isinstance(text, str)
            for arity, elements, text in self.declarations
        )


@dataclass
class CacheEntry:
    """Index record of one cached site."""

    site_name: str
    max_degree: int
    size: int
    last_used: float = field(default_factory=time.time)


def generate_cache_key(*args) -> str:
    """
    Generate cache key from arguments.

    Args:
        *args: Arguments to hash for cache key

    Returns:
        Hexadecimal hash string suitable for use as cache key
    """
    hasher = hashlib.sha256()
    for arg in args:
        hasher.update(str(arg).encode('utf-8'))
        hasher.update(b'\0')
    return hasher.hexdigest()[:16]


class ExpansionCache:
    """
    On-disk cache of rendered site expansions.

    Usage:
        cached = cache.get_site(site, 3, config.fingerprint(), "lib.rs")
        if cached is None:
            ...
            cache.put_site(site, 3, config.fingerprint(), "lib.rs", preamble, declarations)
    """

    def __init__(self, cache_dir: Optional[str] = None, max_size_mb: int = DEFAULT_CACHE_SIZE_MB):
        """
        Args:
            cache_dir: Directory for cache storage (default: system temp)
            max_size_mb: Maximum cache size in megabytes
        """
        if cache_dir is None:
            cache_dir = os.path.join(tempfile.gettempdir(), CACHE_DIR_NAME)

        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.max_size_bytes = max_size_mb * 1024 * 1024

        self.hits = 0
        self.misses = 0
        self._index_file = self.cache_dir / INDEX_FILENAME
        self._index: Dict[str, CacheEntry] = self._read_index()

    @staticmethod
    def site_key(site: "AnnotatedNode", max_degree: int, fingerprint: str, filename: str) -> str:
        """Key identifying ``site`` expanded at ``max_degree`` under one configuration."""
        return generate_cache_key(filename, site.text, site.indent, max_degree, fingerprint)

    # -------------------------------------------------------------------------
    # Site access
    # -------------------------------------------------------------------------

    def get_site(
        self, site: "AnnotatedNode", max_degree: int, fingerprint: str, filename: str
    ) -> Optional[CachedSite]:
        """
        Look up the cached expansion of ``site``.

        Entries that cannot be read, or whose content does not cover every
        arity ``0..=max_degree``, are dropped and reported as a miss.

        Returns:
            The cached site, or None on a miss
        """
        key = self.site_key(site, max_degree, fingerprint, filename)
        if key not in self._index:
            self.misses += 1
            return None

        cached = self._read_entry(key)
        if cached is None or cached.max_degree != max_degree or not cached.is_complete():
            logger.warning(f"Dropping unusable cache entry for {site.display_name}")
            self._drop(key)
            self._write_index()
            self.misses += 1
            return None

        self._index[key].last_used = time.time()
        self._write_index()
        self.hits += 1
        return cached

    def put_site(
        self,
        site: "AnnotatedNode",
        max_degree: int,
        fingerprint: str,
        filename: str,
        preamble: Optional[str],
        declarations: Iterable[CachedDeclaration],
    ) -> bool:
        """
        Store the expansion of ``site``.

        Returns:
            True if the entry was written, False if writing failed

        Raises:
            ValueError: If ``declarations`` do not cover ``0..=max_degree``
        """
        cached = CachedSite(max_degree, preamble, tuple(declarations))
        if not cached.is_complete():
            raise ValueError(f"expansion of {site.display_name} does not cover arities 0..={max_degree}")

        key = self.site_key(site, max_degree, fingerprint, filename)
        path = self._entry_path(key)
        try:
            with open(path, 'wb') as f:
                pickle.dump(cached, f)
        except OSError as e:
            logger.error(f"Failed to cache expansion of {site.display_name}: {e}")
            return False

        size = path.stat().st_size
        self._index[key] = CacheEntry(site.display_name, max_degree, size)
        self._evict()
        self._write_index()
        logger.debug(f"Cached {site.display_name} at degree {max_degree} ({size} bytes)")
        return True

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        """Remove all entries from cache."""
        shutil.rmtree(self.cache_dir, ignore_errors=True)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._index.clear()
        self._write_index()
        logger.info("Cache cleared")

    def get_stats(self) -> Dict[str, Any]:
        """Entry counts, per-degree breakdown, size and hit counters."""
        degrees: Dict[int, int] = {}
        for entry in self._index.values():
            degrees[entry.max_degree] = degrees.get(entry.max_degree, 0) + 1
        return {
            'entries': len(self._index),
            'entries_by_degree': degrees,
            'total_size_bytes': sum(entry.size for entry in self._index.values()),
            'hits': self.hits,
            'misses': self.misses,
            'cache_dir': str(self.cache_dir),
            'max_size_mb': self.max_size_bytes / (1024 * 1024),
        }

    def __len__(self) -> int:
        return len(self._index)

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    def _entry_path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.pkl"

    def _read_entry(self, key: str) -> Optional[CachedSite]:
        path = self._entry_path(key)
        try:
            with open(path, 'rb') as f:
                cached = pickle.load(f)
        except _LOAD_ERRORS as e:
            logger.error(f"Failed to load cached expansion {path.name}: {e}")
            return None
        return cached if isinstance(cached, CachedSite) else None

    def _read_index(self) -> Dict[str, CacheEntry]:
        if not self._index_file.exists():
            return {}
        try:
            with open(self._index_file, 'rb') as f:
                index = pickle.load(f)
        except _LOAD_ERRORS as e:
            logger.warning(f"Failed to load cache index, starting empty: {e}")
            return {}
        if not isinstance(index, dict):
            logger.warning("Cache index has an unexpected format, starting empty")
            return {}
        return {key: entry for key, entry in index.items() if isinstance(entry, CacheEntry)}

    def _write_index(self) -> None:
        try:
            with open(self._index_file, 'wb') as f:
                pickle.dump(self._index, f)
        except OSError as e:
            logger.error(f"Failed to save cache index: {e}")

    def _drop(self, key: str) -> None:
        self._index.pop(key, None)
        path = self._entry_path(key)
        if path.exists():
            path.unlink()

    def _evict(self) -> None:
        """Drop least recently used entries until the size limit holds."""
        total = sum(entry.size for entry in self._index.values())
        for key, entry in sorted(self._index.items(), key=lambda item: item[1].last_used):
            if total <= self.max_size_bytes:
                break
            self._drop(key)
            total -= entry.size
            logger.debug(f"Evicted cache entry for {entry.site_name}")
