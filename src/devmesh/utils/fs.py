import os
import re
import shutil
from pathlib import Path
from typing import Union

from devmesh.logging import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


def create_dir(path: PathLike, mode: int = 0o755) -> Path:
    """Create a directory, or fix the mode of an existing one."""
    if not str(path):
        raise ValueError("empty directory name")

    dir_path = Path(path).absolute()

    if not dir_path.exists():
        logger.debug("creating_directory", path=str(dir_path), mode=oct(mode))
        dir_path.mkdir(mode=mode, parents=True)
        # mkdir mode is filtered by the umask
        dir_path.chmod(mode)
    elif dir_path.is_dir():
        if dir_path.stat().st_mode & 0o777 != mode:
            dir_path.chmod(mode)
    else:
        raise FileExistsError(f"file with the same name exists: {dir_path}")

    return dir_path


def write_bytes(data: bytes, path: PathLike, mode: int = 0o640, dir_mode: int = 0o755) -> Path:
    """Write ``data`` to ``path``, creating its parent directory first."""
    file_path = Path(path).absolute()
    if not file_path.parent.exists():
        create_dir(file_path.parent, dir_mode)

    file_path.write_bytes(data)
    file_path.chmod(mode)

    logger.debug("file_saved", path=str(file_path))
    return file_path


def check_file_exists(path: PathLike) -> bool:
    if not str(path):
        logger.debug("path_empty")
        return False
    return os.path.lexists(path)


def eval_symlink_path(path: PathLike) -> Path:
    """Resolved target of a symlink, or the path itself."""
    if not check_file_exists(path):
        raise FileNotFoundError(f"file not found: {path}")

    file_path = Path(path)
    if file_path.is_symlink():
        return file_path.resolve(strict=True)
    return file_path


def is_command_available(name: str) -> bool:
    return shutil.which(name) is not None


def check_regex_in_file(regex: str, path: PathLike) -> bool:
    """True if any line of the file matches ``regex``."""
    pattern = re.compile(regex)
    with open(path, encoding="utf-8", errors="replace") as f:
        return any(pattern.search(line) for line in f)


def copy_system_binary(binary: str, dest_dir: Path) -> Path:
    """Copy a binary found on PATH to destination directory."""
    binary_path = shutil.which(binary)
    if binary_path is None:
        raise FileNotFoundError(f"Binary {binary} not found")

    dest_path = dest_dir / os.path.basename(binary_path)

    # Copy preserving permissions
    shutil.copy2(binary_path, dest_path)

    logger.debug("binary_copied", source=binary_path, destination=str(dest_path))
    return dest_path
