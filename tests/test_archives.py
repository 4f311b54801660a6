"""Tests for executable resolution inside release archives."""
import bz2
import io
import os
import zipfile

import pytest

from devmesh.binaries.archives import (
    ARCHIVE_FORMATS,
    ArchiveFormat,
    ArchiveMember,
    Extractor,
    unzip,
)
from devmesh.errors import ArchiveError, ArchiveMemberNotFound, PathEscape

PAYLOAD = b"#!/bin/sh\necho cmd\n" * 100


@pytest.mark.parametrize(
    "suffix,builder",
    [
        (".zip", "zip"),
        (".tar.gz", "tar_gz"),
        (".tgz", "tar_gz"),
        (".gz", "gzip"),
        (".gzip", "gzip"),
        (".tar.xz", "tar_xz"),
        (".xz", "xz"),
    ],
)
def test_decompress_every_format(archives, linux_amd64, suffix, builder):
    """Resolving the member yields its original bytes"""
    data = getattr(archives, builder)("cmd", PAYLOAD)
    extractor = Extractor(linux_amd64)

    with extractor.decompress_from_archive(io.BytesIO(data), f"cmd-1.0{suffix}", "cmd") as stream:
        assert stream.read() == PAYLOAD


def test_uncompressed_passthrough(linux_amd64):
    src = io.BytesIO(PAYLOAD)
    stream = Extractor(linux_amd64).decompress_from_archive(src, "cmd-linux-amd64", "cmd")

    assert stream is src
    assert stream.read() == PAYLOAD


def test_zip_member_in_subdirectory(archives, linux_amd64):
    data = archives.zip("release/bin/cmd", PAYLOAD)
    stream = Extractor(linux_amd64).decompress_from_archive(io.BytesIO(data), "r.zip", "cmd")

    assert isinstance(stream, ArchiveMember)
    assert stream.name == "release/bin/cmd"
    assert stream.read() == PAYLOAD


def test_zip_skips_directories(linux_amd64):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr(zipfile.ZipInfo("cmd/"), b"")
        zf.writestr("cmd/cmd", PAYLOAD)

    stream = Extractor(linux_amd64).decompress_from_archive(io.BytesIO(buf.getvalue()), "r.zip", "cmd")
    assert stream.name == "cmd/cmd"
    assert stream.read() == PAYLOAD


@pytest.mark.parametrize("name", ["cmd_linux_amd64", "cmd-linux-amd64"])
@pytest.mark.parametrize("builder,suffix", [("zip", ".zip"), ("tar_gz", ".tar.gz"), ("gzip", ".gz")])
def test_platform_suffixed_names(archives, linux_amd64, darwin_arm64, name, builder, suffix):
    data = getattr(archives, builder)(name, PAYLOAD)

    stream = Extractor(linux_amd64).decompress_from_archive(io.BytesIO(data), f"cmd{suffix}", "cmd")
    assert stream.read() == PAYLOAD

    with pytest.raises(ArchiveMemberNotFound):
        Extractor(darwin_arm64).decompress_from_archive(io.BytesIO(data), f"cmd{suffix}", "cmd")


def test_windows_names_need_exe(archives, windows_amd64):
    data = archives.zip("cmd_windows_amd64.exe", PAYLOAD)
    stream = Extractor(windows_amd64).decompress_from_archive(io.BytesIO(data), "cmd.zip", "cmd")
    assert stream.read() == PAYLOAD

    data = archives.zip("cmd_windows_amd64", PAYLOAD)
    with pytest.raises(ArchiveMemberNotFound):
        Extractor(windows_amd64).decompress_from_archive(io.BytesIO(data), "cmd.zip", "cmd")


def test_candidate_names(linux_amd64, windows_amd64):
    assert Extractor(linux_amd64).candidate_names("mutagen") == [
        "mutagen",
        "mutagen_linux_amd64",
        "mutagen-linux-amd64",
    ]
    assert Extractor(windows_amd64).candidate_names("mutagen")[1:] == [
        "mutagen_windows_amd64.exe",
        "mutagen-windows-amd64.exe",
    ]


def test_matching_is_exact(linux_amd64):
    extractor = Extractor(linux_amd64)
    assert extractor.matches("cmd", "cmd")
    assert not extractor.matches("cmd", "cmd.sig")
    assert not extractor.matches("cmd", "subcmd")
    assert not extractor.matches("cmd", "cmd_linux_arm64")


def test_zip_not_found(archives, linux_amd64):
    data = archives.zip("other", PAYLOAD)
    with pytest.raises(ArchiveMemberNotFound) as exc_info:
        Extractor(linux_amd64).decompress_from_archive(io.BytesIO(data), "r.zip", "cmd")

    assert exc_info.value.wanted == "cmd"


def test_tar_not_found_names_archive(archives, linux_amd64):
    data = archives.tar_gz("other", PAYLOAD)
    with pytest.raises(ArchiveMemberNotFound, match="release.tar.gz"):
        Extractor(linux_amd64).decompress_from_archive(io.BytesIO(data), "release.tar.gz", "cmd")


def test_gzip_mismatch_names_both(archives, linux_amd64):
    data = archives.gzip("other", PAYLOAD)
    with pytest.raises(ArchiveMemberNotFound) as exc_info:
        Extractor(linux_amd64).decompress_from_archive(io.BytesIO(data), "cmd.gz", "cmd")

    assert "other" in str(exc_info.value)
    assert "cmd" in str(exc_info.value)


def test_gzip_not_gzip(linux_amd64):
    with pytest.raises(ArchiveError):
        Extractor(linux_amd64).decompress_from_archive(io.BytesIO(b"plain text file"), "cmd.gz", "cmd")


def test_bad_zip(linux_amd64):
    with pytest.raises(ArchiveError) as exc_info:
        Extractor(linux_amd64).decompress_from_archive(io.BytesIO(b"not a zip"), "cmd.zip", "cmd")

    assert isinstance(exc_info.value.__cause__, zipfile.BadZipFile)


def test_zip_corrupt_member_header(archives, linux_amd64):
    data = archives.zip("cmd", PAYLOAD)
    # central directory still lists the entry
    data = data.replace(b"PK\x03\x04", b"XX\x03\x04", 1)

    with pytest.raises(ArchiveError, match="cmd") as exc_info:
        Extractor(linux_amd64).decompress_from_archive(io.BytesIO(data), "r.zip", "cmd")

    assert isinstance(exc_info.value.__cause__, zipfile.BadZipFile)


def test_member_close_releases_archive(archives, linux_amd64):
    data = archives.tar_gz("cmd", PAYLOAD)
    stream = Extractor(linux_amd64).decompress_from_archive(io.BytesIO(data), "r.tgz", "cmd")

    assert stream.read(4) == PAYLOAD[:4]
    stream.close()
    assert stream.closed
    with pytest.raises(ValueError):
        stream.read()


def test_custom_format_table(linux_amd64):
    """New formats are added as table entries"""

    def from_bz2(src, archive, wanted, matches):
        return ArchiveMember(wanted, bz2.BZ2File(src))

    formats = [ArchiveFormat("bz2", lambda archive: archive.endswith(".bz2"), from_bz2), *ARCHIVE_FORMATS]
    extractor = Extractor(linux_amd64, formats=formats)

    stream = extractor.decompress_from_archive(io.BytesIO(bz2.compress(PAYLOAD)), "cmd.bz2", "cmd")
    assert stream.read() == PAYLOAD


def test_format_precedence(linux_amd64):
    extractor = Extractor(linux_amd64)
    assert extractor.format_for("a.tar.gz").name == "tar.gz"
    assert extractor.format_for("a.tgz").name == "tar.gz"
    assert extractor.format_for("a.gz").name == "gzip"
    assert extractor.format_for("a.tar.xz").name == "tar.xz"
    assert extractor.format_for("a.xz").name == "xz"
    assert extractor.format_for("a.zip").name == "zip"
    assert extractor.format_for("a") is None


def test_unzip(tmp_path):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr(zipfile.ZipInfo("plugin/"), b"")
        script = zipfile.ZipInfo("plugin/run.sh")
        script.external_attr = 0o755 << 16
        zf.writestr(script, b"#!/bin/sh\n")
        zf.writestr("plugin/README", b"docs")

    written = unzip(io.BytesIO(buf.getvalue()), tmp_path)

    assert written == [
        tmp_path / "plugin",
        tmp_path / "plugin" / "run.sh",
        tmp_path / "plugin" / "README",
    ]
    assert (tmp_path / "plugin" / "run.sh").read_bytes() == b"#!/bin/sh\n"
    assert (tmp_path / "plugin" / "README").read_bytes() == b"docs"
    if os.name != "nt":
        assert (tmp_path / "plugin" / "run.sh").stat().st_mode & 0o777 == 0o755


@pytest.mark.parametrize("evil", ["../../evil", "../evil", "plugin/../../evil"])
def test_unzip_rejects_path_escape(tmp_path, evil):
    dest = tmp_path / "dest"
    dest.mkdir()

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("good.txt", b"fine")
        zf.writestr(evil, b"gotcha")

    with pytest.raises(PathEscape):
        unzip(io.BytesIO(buf.getvalue()), dest)

    assert list(dest.iterdir()) == []
    assert not (tmp_path / "evil").exists()
