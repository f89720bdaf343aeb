"""Workflow document reading.

Documents are YAML (or JSON, which YAML accepts) files holding a single
mapping. Parsed documents are kept in a TTL cache keyed by resolved path; an
entry is dropped as soon as the file's modification time or size changes.
"""

import copy
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from cachetools import TTLCache

logger = logging.getLogger(__name__)


def resolve_document_path(file_path: str | Path, root_dir: str | Path | None = None) -> Path:
    """Resolve a document path, optionally confining it to ``root_dir``.

    Relative paths are taken relative to ``root_dir`` when one is given.

    Raises:
        ValueError: If the path escapes root_dir
    """
    path = Path(file_path)
    if root_dir is None:
        return path.resolve()

    root = Path(root_dir).resolve()
    resolved = path.resolve() if path.is_absolute() else (root / path).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Path {file_path} is outside of {root}")
    return resolved


def _signature(path: Path) -> tuple[float, int]:
    stat = path.stat()
    return stat.st_mtime, stat.st_size


@dataclass
class _CachedDocument:
    content: dict[str, Any]
    signature: tuple[float, int]
    loaded_at: float = field(default_factory=time.time)


class YAMLLoader:
    """Reads workflow documents through a TTL cache."""

    def __init__(self, cache_ttl: int = 300, max_cache_size: int = 100):
        """Create a loader.

        Args:
            cache_ttl: Seconds a parsed document may be served from the cache
            max_cache_size: Number of documents kept at most
        """
        self.cache_ttl = cache_ttl
        self.max_cache_size = max_cache_size
        self._documents: TTLCache[str, _CachedDocument] = TTLCache(maxsize=max_cache_size, ttl=cache_ttl)
        self._lock = threading.RLock()

    def load_yaml(self, file_path: str | Path, root_dir: str | Path | None = None) -> dict[str, Any]:
        """Return the parsed mapping stored in a document.

        An empty document reads as an empty mapping. Every call returns a fresh
        copy, so callers may modify the result without touching the cache.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the path is outside root_dir, is not a file, or does not hold a mapping
            yaml.YAMLError: If the document is not valid YAML
        """
        path = resolve_document_path(file_path, root_dir)
        key = str(path)

        with self._lock:
            cached = self._documents.get(key)
        if cached is not None and self._is_fresh(path, cached):
            return copy.deepcopy(cached.content)

        content = self._read(path)
        with self._lock:
            self._documents[key] = _CachedDocument(content=copy.deepcopy(content), signature=_signature(path))

        logger.debug(f"Parsed document {path}")
        return content

    def _read(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            raise FileNotFoundError(f"Document not found: {path}")
        if not path.is_file():
            raise ValueError(f"Path is not a file: {path}")

        try:
            content = yaml.safe_load(path.read_text(encoding="utf-8"))
        except UnicodeDecodeError as e:
            raise ValueError(f"Document {path} is not valid UTF-8: {e}") from e

        if content is None:
            return {}
        if not isinstance(content, dict):
            raise ValueError(f"YAML file must contain a mapping, got {type(content).__name__}")
        return content

    def _is_fresh(self, path: Path, cached: _CachedDocument) -> bool:
        try:
            return _signature(path) == cached.signature
        except OSError:
            return False

    def invalidate_cache(self, file_path: str | Path | None = None) -> int:
        """Forget one document, or every document when no path is given.

        Returns:
            How many cache entries were dropped
        """
        with self._lock:
            if file_path is None:
                dropped = len(self._documents)
                self._documents.clear()
                return dropped
            return 1 if self._documents.pop(str(resolve_document_path(file_path)), None) is not None else 0

    def get_cache_stats(self) -> dict[str, Any]:
        """Report cache occupancy and entry ages."""
        with self._lock:
            now = time.time()
            ages = [now - doc.loaded_at for doc in self._documents.values()]
            return {
                "cache_size": len(ages),
                "max_cache_size": self.max_cache_size,
                "cache_ttl": self.cache_ttl,
                "oldest_entry_age_seconds": max(ages, default=0),
                "newest_entry_age_seconds": min(ages, default=0),
            }


_yaml_loader: YAMLLoader | None = None
_loader_lock = threading.Lock()


def get_yaml_loader() -> YAMLLoader:
    """Return the shared loader, sized from configuration on first use."""
    global _yaml_loader

    if _yaml_loader is None:
        with _loader_lock:
            if _yaml_loader is None:
                from .config import get_config

                config = get_config()
                _yaml_loader = YAMLLoader(cache_ttl=config.yaml_cache_ttl, max_cache_size=config.yaml_cache_size)

    return _yaml_loader


def reset_yaml_loader() -> None:
    """Drop the shared loader (for testing)."""
    global _yaml_loader
    with _loader_lock:
        _yaml_loader = None
