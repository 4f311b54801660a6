"""Helper binary download, verification and installation."""
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional, Sequence

import aiohttp

from devmesh.binaries.archives import Extractor
from devmesh.binaries.cache import cache_binary, cleanup_cache, compute_file_hash, get_binary_path
from devmesh.binaries.constants import HelperBinary
from devmesh.binaries.platforms import PlatformInfo, executable_name, get_platform_info
from devmesh.binaries.releases import get_latest_version
from devmesh.config import InstallConfig
from devmesh.errors import ArchiveMemberNotFound, BinaryFetchError, DevMeshError, ExecutionError
from devmesh.logging import get_logger
from devmesh.shell import Shell
from devmesh.utils.versions import extract_version, version_at_least

logger = get_logger(__name__)


async def download_file(url: str, dest: Path, headers: Optional[Dict[str, str]] = None) -> None:
    """Download a file with streaming."""
    logger.info("download_started", url=url, destination=str(dest))
    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(url, headers=headers) as response:
                if response.status != 200:
                    logger.error(
                        "download_request_failed",
                        url=url,
                        status=response.status,
                        reason=response.reason,
                    )
                    response.raise_for_status()

                downloaded = 0
                with open(dest, "wb") as f:
                    async for chunk in response.content.iter_chunked(8192):
                        f.write(chunk)
                        downloaded += len(chunk)

    except aiohttp.ClientError as e:
        if dest.exists():
            dest.unlink()
        logger.error("download_failed", url=url, error=str(e), status=getattr(e, "status", None))
        raise BinaryFetchError(Path(url).name, f"download from {url} failed") from e

    logger.info("download_complete", url=url, size=downloaded)


async def download_checksum(checksum_url: str, file_name: str) -> Optional[str]:
    """Look up the published SHA-256 of ``file_name`` in a checksum listing."""
    async with aiohttp.ClientSession() as session:
        async with session.get(checksum_url) as response:
            response.raise_for_status()
            checksums = await response.text()

    for line in checksums.splitlines():
        parts = line.split()
        if len(parts) == 2 and parts[1].lstrip("*") == file_name:
            return parts[0]

    return None


def format_download_url(binary: HelperBinary, version: str, info: PlatformInfo) -> str:
    """Format release asset URL for the platform."""
    values = {
        "owner": binary.owner,
        "repo": binary.repo,
        "version": version,
        "version_prefix": binary.version_prefix,
        "os": info.os_name,
        "arch": info.arch,
        "machine": info.machine,
        "archive_format": info.archive_format,
        "exe": info.executable_suffix,
    }
    return binary.url_template.format(**values)


def format_checksum_url(binary: HelperBinary, version: str) -> Optional[str]:
    if not binary.checksum_template:
        return None
    return binary.checksum_template.format(
        owner=binary.owner,
        repo=binary.repo,
        version=version,
        version_prefix=binary.version_prefix,
    )


def extract_executable(
    archive_path: Path, wanted: str, dest: Path, extractor: Extractor
) -> Path:
    """Write the wanted executable found in ``archive_path`` to ``dest``."""
    with open(archive_path, "rb") as src:
        stream = extractor.decompress_from_archive(src, archive_path.name, wanted)
        try:
            with open(dest, "wb") as out:
                shutil.copyfileobj(stream, out)
        finally:
            if stream is not src:
                stream.close()

    dest.chmod(0o755)
    logger.info("executable_extracted", archive=archive_path.name, path=str(dest))
    return dest


def extract_first_executable(
    archive_path: Path, names: Sequence[str], dest: Path, extractor: Extractor
) -> Path:
    """Extract the first of ``names`` present in the archive.

    Raises the last name's ``ArchiveMemberNotFound`` when none is present.
    """
    *preferred, last = names
    for wanted in preferred:
        try:
            return extract_executable(archive_path, wanted, dest, extractor)
        except ArchiveMemberNotFound:
            logger.debug("executable_name_not_in_archive", archive=archive_path.name, executable=wanted)
    return extract_executable(archive_path, last, dest, extractor)


async def install_binary(
    binary: HelperBinary,
    version: Optional[str] = None,
    config: Optional[InstallConfig] = None,
    platform: Optional[PlatformInfo] = None,
) -> Path:
    """Install (or update to) ``version`` of a helper binary.

    Uses the version cache when possible, otherwise downloads the release
    asset, verifies its published checksum and extracts the executable.

    Returns:
        Path of the installed executable inside ``config.bin_dir``.

    Raises:
        BinaryFetchError: download, checksum or filesystem failure.
        ArchiveError: the release asset does not hold the executable.
    """
    config = config or InstallConfig()
    info = platform or get_platform_info()
    extractor = Extractor(info)

    try:
        if version is None:
            version = await get_latest_version(binary)

        cached = get_binary_path(binary.name, version, config.cache_dir)
        if cached:
            logger.info("using_cached_binary", binary=binary.name, version=version, path=str(cached))
        else:
            cached = await _fetch_to_cache(binary, version, info, extractor, config)

        config.bin_dir.mkdir(parents=True, exist_ok=True)
        target = config.bin_dir / executable_name(binary.name, info)
        shutil.copy2(cached, target)
        target.chmod(0o755)

    except DevMeshError:
        raise
    except (aiohttp.ClientError, OSError, RuntimeError, KeyError) as e:
        logger.error("binary_install_failed", binary=binary.name, version=version, error=str(e))
        raise BinaryFetchError(binary.name, str(e)) from e

    logger.info("binary_installed", binary=binary.name, version=version, path=str(target))
    return target


async def _fetch_to_cache(
    binary: HelperBinary,
    version: str,
    info: PlatformInfo,
    extractor: Extractor,
    config: InstallConfig,
) -> Path:
    download_url = format_download_url(binary, version, info)
    checksum_url = format_checksum_url(binary, version)

    with tempfile.TemporaryDirectory() as tmpdir:
        tmp_path = Path(tmpdir)
        archive_path = tmp_path / Path(download_url).name

        await download_file(download_url, archive_path)

        if not archive_path.exists() or archive_path.stat().st_size == 0:
            raise BinaryFetchError(binary.name, "downloaded archive is missing or empty")

        if checksum_url:
            expected = await download_checksum(checksum_url, archive_path.name)
            if expected is None:
                logger.warning("checksum_not_published", binary=binary.name, archive=archive_path.name)
            elif compute_file_hash(archive_path) != expected:
                raise BinaryFetchError(binary.name, "checksum verification failed")

        # windows archives hold either "<name>.exe" or "<name>_<os>_<arch>.exe"
        names = list(dict.fromkeys([executable_name(binary.name, info), binary.name]))
        executable = extract_first_executable(
            archive_path, names, tmp_path / f"{binary.name}.extracted", extractor
        )
        cached = cache_binary(binary.name, version, executable, cache_dir=config.cache_dir)

    cleanup_cache(config.cache_dir)
    return cached


def get_installed_version(shell: Shell, program: str, *args: str) -> str:
    """Run ``program args`` and parse the version it reports."""
    output = shell.execute_with_options(program, args, capture_output=True)
    return extract_version(output.decode(errors="replace"))


async def ensure_binary(
    binary: HelperBinary,
    shell: Shell,
    minimum_version: Optional[str] = None,
    config: Optional[InstallConfig] = None,
    platform: Optional[PlatformInfo] = None,
) -> Path:
    """Make sure an installed binary satisfies ``minimum_version``.

    An existing installation is kept when its reported version is recent
    enough; otherwise the latest release is installed over it.
    """
    config = config or InstallConfig()
    info = platform or get_platform_info()
    target = config.bin_dir / executable_name(binary.name, info)

    if target.exists():
        try:
            current = get_installed_version(shell, str(target), *binary.version_args)
        except (ExecutionError, ValueError) as e:
            logger.debug("installed_version_unknown", binary=binary.name, error=str(e))
        else:
            if minimum_version is None or version_at_least(current, minimum_version):
                logger.debug("binary_up_to_date", binary=binary.name, version=current)
                return target
            logger.info(
                "binary_outdated", binary=binary.name, version=current, minimum=minimum_version
            )

    return await install_binary(binary, config=config, platform=info)
