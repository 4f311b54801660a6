"""Version cache for downloaded helper binaries.

Layout: ``<cache_dir>/<name>/<version>/binary`` next to ``binary.sha256``,
which holds the digest recorded when the entry was stored. An entry whose
digest no longer matches is treated as absent.
"""
import hashlib
import shutil
from pathlib import Path
from typing import Iterator, Optional

from devmesh.config import InstallConfig
from devmesh.logging import get_logger

logger = get_logger(__name__)

MAX_CACHE_SIZE = 1024 * 1024 * 1024  # 1 GB
HASH_CHUNK_SIZE = 64 * 1024
ENTRY_NAME = "binary"


def default_cache_dir() -> Path:
    return InstallConfig().cache_dir


def _entry(cache_dir: Optional[Path], name: str, version: str) -> Path:
    return (cache_dir or default_cache_dir()) / name / version / ENTRY_NAME


def _digest_file(entry: Path) -> Path:
    return entry.with_suffix(".sha256")


def compute_file_hash(path: Path) -> str:
    """SHA-256 hex digest of a file."""
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            while chunk := f.read(HASH_CHUNK_SIZE):
                digest.update(chunk)
    except OSError as e:
        logger.error("file_hash_failed", file=str(path), error=str(e))
        raise RuntimeError(f"Checksum failure for {path.name}") from e
    return digest.hexdigest()


def get_binary_path(name: str, version: str, cache_dir: Optional[Path] = None) -> Optional[Path]:
    """Cached binary for ``name`` at ``version``, or None when absent or corrupt."""
    entry = _entry(cache_dir, name, version)
    digest_file = _digest_file(entry)
    if not (entry.is_file() and digest_file.is_file()):
        return None

    try:
        recorded = digest_file.read_text().strip()
        actual = compute_file_hash(entry)
    except (OSError, RuntimeError) as e:
        logger.error("cache_read_failed", binary=name, version=version, error=str(e))
        return None

    if recorded != actual:
        logger.warning("cache_entry_corrupt", binary=name, version=version, recorded=recorded, actual=actual)
        return None
    return entry


def cache_binary(
    name: str,
    version: str,
    binary_path: Path,
    checksum: Optional[str] = None,
    cache_dir: Optional[Path] = None,
) -> Path:
    """Store an executable as the cache entry for ``name`` at ``version``.

    When ``checksum`` is given the stored copy must hash to it, otherwise the
    entry is discarded and ``RuntimeError`` raised.
    """
    entry = _entry(cache_dir, name, version)
    entry.parent.mkdir(parents=True, exist_ok=True)

    shutil.copy2(binary_path, entry)
    entry.chmod(0o755)
    digest = compute_file_hash(entry)

    if checksum and digest != checksum:
        entry.unlink()
        logger.error("cache_checksum_mismatch", binary=name, version=version, expected=checksum, actual=digest)
        raise RuntimeError(f"Checksum mismatch for {name} {version}")

    _digest_file(entry).write_text(digest)
    logger.info("binary_cached", binary=name, version=version, path=str(entry))
    return entry


def _entries_oldest_first(cache_dir: Path) -> Iterator[Path]:
    return iter(sorted(cache_dir.rglob(ENTRY_NAME), key=lambda p: p.stat().st_mtime))


def cleanup_cache(cache_dir: Optional[Path] = None, max_size: int = MAX_CACHE_SIZE) -> None:
    """Evict the least recently written entries until the cache fits ``max_size``."""
    cache_dir = cache_dir or default_cache_dir()
    if not cache_dir.is_dir():
        return

    used = sum(p.stat().st_size for p in cache_dir.rglob("*") if p.is_file())
    entries = _entries_oldest_first(cache_dir)

    while used > max_size:
        entry = next(entries, None)
        if entry is None:
            break
        size = entry.stat().st_size
        entry.unlink()
        _digest_file(entry).unlink(missing_ok=True)
        used -= size
        logger.info("cache_entry_evicted", path=str(entry), size=size)
