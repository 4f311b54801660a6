"""Platform detection and mapping."""
import platform
from dataclasses import dataclass
from typing import NamedTuple, Optional

from devmesh.errors import UnsupportedPlatform


@dataclass(frozen=True)
class PlatformInfo:
    """Platform information, using container-ecosystem identifiers."""
    os_name: str
    arch: str
    machine: str
    archive_format: str
    executable_suffix: str = ""

    @property
    def is_windows(self) -> bool:
        return self.os_name == "windows"


class PlatformMapping(NamedTuple):
    """Platform-specific values."""
    os_name: str
    archive_format: str
    executable_suffix: str


class ArchMapping(NamedTuple):
    """Architecture names as used by different release pipelines."""
    arch: str
    machine: str


ARCH_MAPPINGS = {
    "x86_64": ArchMapping(arch="amd64", machine="x86_64"),
    "amd64": ArchMapping(arch="amd64", machine="x86_64"),
    "aarch64": ArchMapping(arch="arm64", machine="aarch64"),
    "arm64": ArchMapping(arch="arm64", machine="aarch64"),
    "i386": ArchMapping(arch="386", machine="i386"),
    "i686": ArchMapping(arch="386", machine="i386"),
    "armv7l": ArchMapping(arch="arm", machine="armv7"),
}

PLATFORM_MAPPINGS = {
    "Linux": PlatformMapping(os_name="linux", archive_format="tar.gz", executable_suffix=""),
    "Darwin": PlatformMapping(os_name="darwin", archive_format="tar.gz", executable_suffix=""),
    "Windows": PlatformMapping(os_name="windows", archive_format="zip", executable_suffix=".exe"),
}


def get_platform_info(system: Optional[str] = None, machine: Optional[str] = None) -> PlatformInfo:
    """Get platform information for the running (or the given) host."""
    system = system or platform.system()
    machine = (machine or platform.machine()).lower()

    if system not in PLATFORM_MAPPINGS:
        raise UnsupportedPlatform(f"Unsupported operating system: {system}")

    if machine not in ARCH_MAPPINGS:
        raise UnsupportedPlatform(f"Unsupported architecture: {machine}")

    platform_map = PLATFORM_MAPPINGS[system]
    arch_map = ARCH_MAPPINGS[machine]

    return PlatformInfo(
        os_name=platform_map.os_name,
        arch=arch_map.arch,
        machine=arch_map.machine,
        archive_format=platform_map.archive_format,
        executable_suffix=platform_map.executable_suffix,
    )


def executable_name(name: str, info: Optional[PlatformInfo] = None) -> str:
    """File name of an executable on the platform."""
    info = info or get_platform_info()
    return f"{name}{info.executable_suffix}"


def get_os_distro() -> str:
    """Linux distribution id on linux, otherwise the os name."""
    info = get_platform_info()
    if info.os_name != "linux":
        return info.os_name

    try:
        release = platform.freedesktop_os_release()
    except OSError:
        return info.os_name
    return release.get("ID", info.os_name).lower()


def is_platform_supported() -> bool:
    """Check if current platform is supported."""
    try:
        get_platform_info()
        return True
    except UnsupportedPlatform:
        return False
