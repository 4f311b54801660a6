"""Locate executables inside downloaded release archives.

Formats are detected from the archive's file name through ``ARCHIVE_FORMATS``,
an ordered table of (predicate, handler) pairs. The first matching entry wins;
when nothing matches the source stream is returned untouched.
"""
import gzip
import io
import lzma
import os
import posixpath
import struct
import tarfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Sequence

from devmesh.binaries.platforms import PlatformInfo, get_platform_info
from devmesh.errors import ArchiveError, ArchiveMemberNotFound, PathEscape
from devmesh.logging import get_logger

logger = get_logger(__name__)

NameMatcher = Callable[[str], bool]
ArchiveHandler = Callable[[BinaryIO, str, str, NameMatcher], BinaryIO]

GZIP_MAGIC = b"\x1f\x8b"
GZIP_FEXTRA = 0x04
GZIP_FNAME = 0x08


class ArchiveMember(io.RawIOBase):
    """Read-only stream over one archive entry.

    Owns the readers it was scanned from and closes them with itself.
    """

    def __init__(self, name: str, stream: BinaryIO, *owned):
        super().__init__()
        self.name = name
        self._stream = stream
        self._owned = owned

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed archive member")
        data = self._stream.read(len(buffer))
        size = len(data)
        buffer[:size] = data
        return size

    def close(self) -> None:
        if not self.closed:
            for resource in (self._stream, *self._owned):
                resource.close()
        super().close()


class _ReplayReader:
    """Replays already consumed bytes before reading on from the source."""

    def __init__(self, prefix: bytes, source: BinaryIO):
        self._prefix = prefix
        self._source = source

    def read(self, size: int = -1) -> bytes:
        if not self._prefix:
            return self._source.read(size)
        if size is None or size < 0:
            data, self._prefix = self._prefix + self._source.read(), b""
            return data
        data, self._prefix = self._prefix[:size], self._prefix[size:]
        if len(data) < size:
            data += self._source.read(size - len(data))
        return data

    def close(self) -> None:
        self._source.close()


def _read_gzip_header(src: BinaryIO) -> tuple[str, bytes]:
    """Return the file name recorded in a gzip header and the bytes consumed."""
    consumed = bytearray()

    def take(size: int) -> bytes:
        chunk = src.read(size)
        if len(chunk) < size:
            raise ArchiveError("Truncated gzip header")
        consumed.extend(chunk)
        return chunk

    head = take(10)
    if head[:2] != GZIP_MAGIC:
        raise ArchiveError("Not a gzip file")

    flags = head[3]
    if flags & GZIP_FEXTRA:
        (extra_len,) = struct.unpack("<H", take(2))
        take(extra_len)

    name = bytearray()
    if flags & GZIP_FNAME:
        while (char := take(1)) != b"\0":
            name.extend(char)

    return name.decode("latin-1"), bytes(consumed)


def _from_zip(src: BinaryIO, archive: str, wanted: str, matches: NameMatcher) -> BinaryIO:
    logger.debug("decompressing_zip", archive=archive)

    # zip needs random access
    buffer = io.BytesIO(src.read())
    try:
        zf = zipfile.ZipFile(buffer)
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"Failed to read zip archive {archive}") from e

    for info in zf.infolist():
        logger.debug("archive_entry", archive=archive, entry=info.filename)
        if info.is_dir():
            continue
        if matches(posixpath.basename(info.filename)):
            logger.debug("executable_found", archive=archive, entry=info.filename)
            try:
                member = zf.open(info)
            except (zipfile.BadZipFile, NotImplementedError, OSError) as e:
                zf.close()
                raise ArchiveError(f"Failed to read {info.filename} from zip archive {archive}") from e
            return ArchiveMember(info.filename, member, zf)

    zf.close()
    raise ArchiveMemberNotFound(wanted, archive)


def _scan_tar(stream: BinaryIO, archive: str, wanted: str, matches: NameMatcher) -> BinaryIO:
    try:
        tar = tarfile.open(fileobj=stream, mode="r|")
    except (tarfile.TarError, OSError, EOFError, lzma.LZMAError) as e:
        stream.close()
        raise ArchiveError(f"Failed to read tar archive {archive}") from e

    try:
        for info in tar:
            if info.isreg() and matches(posixpath.basename(info.name)):
                logger.debug("executable_found", archive=archive, entry=info.name)
                return ArchiveMember(info.name, tar.extractfile(info), tar, stream)
    except (tarfile.TarError, OSError, EOFError, lzma.LZMAError) as e:
        tar.close()
        stream.close()
        raise ArchiveError(f"Failed to read tar archive {archive}") from e

    tar.close()
    stream.close()
    raise ArchiveMemberNotFound(wanted, archive)


def _from_tar_gz(src: BinaryIO, archive: str, wanted: str, matches: NameMatcher) -> BinaryIO:
    logger.debug("decompressing_tar_gz", archive=archive)
    return _scan_tar(gzip.GzipFile(fileobj=src, mode="rb"), archive, wanted, matches)


def _from_tar_xz(src: BinaryIO, archive: str, wanted: str, matches: NameMatcher) -> BinaryIO:
    logger.debug("decompressing_tar_xz", archive=archive)
    return _scan_tar(lzma.LZMAFile(src), archive, wanted, matches)


def _from_gzip(src: BinaryIO, archive: str, wanted: str, matches: NameMatcher) -> BinaryIO:
    logger.debug("decompressing_gzip", archive=archive)

    name, header = _read_gzip_header(src)
    if not matches(name):
        raise ArchiveMemberNotFound(wanted, archive, found=name)

    logger.debug("executable_found", archive=archive, entry=name)
    gz = gzip.GzipFile(fileobj=_ReplayReader(header, src), mode="rb")
    return ArchiveMember(name, gz)


def _from_xz(src: BinaryIO, archive: str, wanted: str, matches: NameMatcher) -> BinaryIO:
    logger.info("xz_assumed_executable", archive=archive, executable=wanted)
    return ArchiveMember(wanted, lzma.LZMAFile(src))


def _suffix(*suffixes: str) -> Callable[[str], bool]:
    return lambda archive: archive.endswith(suffixes)


@dataclass(frozen=True)
class ArchiveFormat:
    """One entry of the format dispatch table."""
    name: str
    predicate: Callable[[str], bool]
    handler: ArchiveHandler


ARCHIVE_FORMATS: List[ArchiveFormat] = [
    ArchiveFormat("zip", _suffix(".zip"), _from_zip),
    ArchiveFormat("tar.gz", _suffix(".tar.gz", ".tgz"), _from_tar_gz),
    ArchiveFormat("gzip", _suffix(".gzip", ".gz"), _from_gzip),
    ArchiveFormat("tar.xz", _suffix(".tar.xz"), _from_tar_xz),
    ArchiveFormat("xz", _suffix(".xz"), _from_xz),
]


class Extractor:
    """Resolves executables for one platform."""

    def __init__(
        self,
        platform: Optional[PlatformInfo] = None,
        formats: Optional[Sequence[ArchiveFormat]] = None,
    ):
        self.platform = platform or get_platform_info()
        self.formats = list(formats) if formats is not None else ARCHIVE_FORMATS

    def candidate_names(self, wanted: str) -> list[str]:
        """Names accepted as the wanted executable."""
        names = [wanted]
        os_name, arch = self.platform.os_name, self.platform.arch
        for sep in ("_", "-"):
            names.append(f"{wanted}{sep}{os_name}{sep}{arch}{self.platform.executable_suffix}")
        return names

    def matches(self, wanted: str, candidate: str) -> bool:
        return candidate in self.candidate_names(wanted)

    def format_for(self, archive: str) -> Optional[ArchiveFormat]:
        for fmt in self.formats:
            if fmt.predicate(archive):
                return fmt
        return None

    def decompress_from_archive(self, src: BinaryIO, archive: str, wanted: str) -> BinaryIO:
        """Return a stream of the wanted executable inside ``archive``.

        The caller must read the returned stream to the end or close it.
        """
        fmt = self.format_for(archive)
        if fmt is None:
            logger.debug("decompression_not_needed", archive=archive, executable=wanted)
            return src

        return fmt.handler(src, archive, wanted, lambda name: self.matches(wanted, name))

    def unzip(self, src: BinaryIO, dest: Path) -> list[Path]:
        return unzip(src, dest)


def decompress_from_archive(
    src: BinaryIO, archive: str, wanted: str, platform: Optional[PlatformInfo] = None
) -> BinaryIO:
    """Resolve ``wanted`` inside ``archive`` for the running platform."""
    return Extractor(platform).decompress_from_archive(src, archive, wanted)


def unzip(src: BinaryIO, dest: Path) -> list[Path]:
    """Extract every entry of a zip archive below ``dest``.

    All entry paths are validated before anything is written; one entry
    escaping ``dest`` fails the whole extraction.
    """
    try:
        zf = zipfile.ZipFile(io.BytesIO(src.read()))
    except zipfile.BadZipFile as e:
        raise ArchiveError("Failed to read zip archive") from e

    root = os.path.normpath(str(dest))
    with zf:
        targets = []
        for info in zf.infolist():
            path = os.path.normpath(os.path.join(root, info.filename))
            if not path.startswith(root + os.sep):
                raise PathEscape(path, root)
            targets.append((info, Path(path)))

        written = []
        for info, path in targets:
            written.append(path)
            mode = (info.external_attr >> 16) & 0o7777

            if info.is_dir():
                path.mkdir(parents=True, exist_ok=True)
                continue

            path.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as member, open(path, "wb") as out:
                while chunk := member.read(1024 * 64):
                    out.write(chunk)
            if mode:
                path.chmod(mode)

    logger.debug("zip_extracted", dest=root, files=len(written))
    return written
