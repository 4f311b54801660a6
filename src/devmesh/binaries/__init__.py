"""Helper binary provisioning."""
from devmesh.binaries.archives import (
    ARCHIVE_FORMATS,
    ArchiveFormat,
    ArchiveMember,
    Extractor,
    decompress_from_archive,
    unzip,
)
from devmesh.binaries.constants import DOCKER_COMPOSE, HELPER_BINARIES, MUTAGEN, HelperBinary
from devmesh.binaries.fetcher import ensure_binary, get_installed_version, install_binary
from devmesh.binaries.platforms import PlatformInfo, get_platform_info

__all__ = [
    "ARCHIVE_FORMATS",
    "ArchiveFormat",
    "ArchiveMember",
    "Extractor",
    "decompress_from_archive",
    "unzip",
    "DOCKER_COMPOSE",
    "HELPER_BINARIES",
    "MUTAGEN",
    "HelperBinary",
    "ensure_binary",
    "get_installed_version",
    "install_binary",
    "PlatformInfo",
    "get_platform_info",
]
