import io
import gzip
import lzma
import tarfile
import zipfile
from unittest.mock import MagicMock

import pytest

from devmesh.binaries.platforms import PlatformInfo
from devmesh.config import InstallConfig, MeshConfig


@pytest.fixture
def linux_amd64():
    return PlatformInfo(os_name="linux", arch="amd64", machine="x86_64", archive_format="tar.gz")


@pytest.fixture
def darwin_arm64():
    return PlatformInfo(os_name="darwin", arch="arm64", machine="aarch64", archive_format="tar.gz")


@pytest.fixture
def windows_amd64():
    return PlatformInfo(
        os_name="windows", arch="amd64", machine="x86_64", archive_format="zip", executable_suffix=".exe"
    )


@pytest.fixture
def install_config(tmp_path):
    return InstallConfig(bin_dir=tmp_path / "bin", cache_dir=tmp_path / "cache")


@pytest.fixture
def mesh_config():
    return MeshConfig(proxy_domain="devmesh.test", proxy_subdomain="app")


@pytest.fixture
def make_container():
    """Factory for containers as returned by ``client.containers.list``."""
    def factory(container_id, name, networks=()):
        container = MagicMock()
        container.id = container_id
        container.name = name
        container.attrs = {"NetworkSettings": {"Networks": {n: {} for n in networks}}}
        return container
    return factory


@pytest.fixture
def docker_client():
    """Engine client whose running containers are looked up by name substring."""
    client = MagicMock()
    client.running = {}

    def list_containers(filters=None, **kwargs):
        name = (filters or {}).get("name", "")
        return [c for key, c in client.running.items() if name in key]

    client.containers.list.side_effect = list_containers
    return client


class ArchiveBuilder:
    """Builds archives holding ``data`` as member ``name``."""

    @staticmethod
    def zip(name, data, mode=0o755):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            info = zipfile.ZipInfo(name)
            info.external_attr = mode << 16
            zf.writestr(info, data)
        return buf.getvalue()

    @staticmethod
    def tar(name, data, compression="gz"):
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode=f"w:{compression}") as tf:
            readme = tarfile.TarInfo("README.md")
            readme.size = 6
            tf.addfile(readme, io.BytesIO(b"readme"))
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
        return buf.getvalue()

    @staticmethod
    def tar_gz(name, data):
        return ArchiveBuilder.tar(name, data, "gz")

    @staticmethod
    def tar_xz(name, data):
        return ArchiveBuilder.tar(name, data, "xz")

    @staticmethod
    def gzip(name, data):
        buf = io.BytesIO()
        with gzip.GzipFile(filename=name, mode="wb", fileobj=buf, mtime=0) as gz:
            gz.write(data)
        return buf.getvalue()

    @staticmethod
    def xz(name, data):
        return lzma.compress(data)


@pytest.fixture
def archives():
    return ArchiveBuilder
