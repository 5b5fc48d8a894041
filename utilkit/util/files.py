"""
File utilities for utilkit.

Thin wrappers over pathlib, shutil, zipfile and hashlib. Every
``OSError`` or text decoding error is re-raised as ``FileOperationError``
naming the path that failed. Async variants are built on aiofiles.
"""

import hashlib
import logging
import mimetypes
import os
import shutil
import stat
import tempfile
import zipfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Union

import aiofiles

from ..errors import FileOperationError, ValidationError
from .dates import format_date

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

DEFAULT_BUFFER_SIZE = 8192
DEFAULT_ENCODING = "utf-8"


@contextmanager
def _wrap_io(operation: str, path: PathLike):
    try:
        yield
    except FileOperationError:
        raise
    except OSError as e:
        logger.error(f"Failed to {operation} {path}: {e}")
        raise FileOperationError(f"Failed to {operation} {path}: {e}", path=str(path), cause=e)
    except UnicodeError as e:
        logger.error(f"Failed to {operation} {path}: {e}")
        raise FileOperationError(f"Failed to {operation} {path}: content is not valid text ({e})",
                                 path=str(path), cause=e)


def _require_path(path: Optional[PathLike], name: str = "path") -> Path:
    if path is None or not str(path).strip():
        raise ValidationError(f"{name} cannot be None or empty", field=name)
    return Path(path)


# Text and binary content

def read_file(path: PathLike, encoding: str = DEFAULT_ENCODING) -> str:
    file_path = _require_path(path)
    with _wrap_io("read", file_path):
        return file_path.read_text(encoding=encoding)


def write_file(path: PathLike, content: str, encoding: str = DEFAULT_ENCODING) -> None:
    """Write ``content``, creating or truncating the file."""
    file_path = _require_path(path)
    with _wrap_io("write", file_path):
        file_path.write_text(content, encoding=encoding)


def append_to_file(path: PathLike, content: str, encoding: str = DEFAULT_ENCODING) -> None:
    file_path = _require_path(path)
    with _wrap_io("append to", file_path):
        with open(file_path, "a", encoding=encoding) as f:
            f.write(content)


def read_file_as_lines(path: PathLike, encoding: str = DEFAULT_ENCODING) -> List[str]:
    """Read a file as a list of lines without line terminators."""
    return read_file(path, encoding).splitlines()


def read_binary_file(path: PathLike) -> bytes:
    file_path = _require_path(path)
    with _wrap_io("read", file_path):
        return file_path.read_bytes()


def write_binary_file(path: PathLike, data: bytes) -> None:
    file_path = _require_path(path)
    with _wrap_io("write", file_path):
        file_path.write_bytes(data)


def read_file_in_chunks(path: PathLike, chunk_size: int = DEFAULT_BUFFER_SIZE,
                        consumer: Optional[Callable[[bytes], None]] = None) -> Iterator[bytes]:
    """
    Read a file ``chunk_size`` bytes at a time.

    With a ``consumer`` every chunk is passed to it eagerly and an empty
    iterator is returned; otherwise a lazy generator of chunks is returned.
    The last chunk may be shorter.
    """
    if chunk_size <= 0:
        raise ValidationError("Chunk size must be greater than 0", field="chunk_size")
    file_path = _require_path(path)

    def chunks() -> Iterator[bytes]:
        with _wrap_io("read", file_path):
            with open(file_path, "rb") as f:
                while True:
                    chunk = f.read(chunk_size)
                    if not chunk:
                        break
                    yield chunk

    if consumer is None:
        return chunks()

    for chunk in chunks():
        consumer(chunk)
    return iter(())


# Copy, move, delete

def copy_file(source: PathLike, destination: PathLike, overwrite: bool = True) -> None:
    src = _require_path(source, "source")
    dst = _require_path(destination, "destination")
    if not overwrite and dst.exists():
        raise FileOperationError(f"Destination already exists: {dst}", path=str(dst))
    with _wrap_io("copy", src):
        shutil.copy2(src, dst)


def move_file(source: PathLike, destination: PathLike, overwrite: bool = True) -> None:
    src = _require_path(source, "source")
    dst = _require_path(destination, "destination")
    if not overwrite and dst.exists():
        raise FileOperationError(f"Destination already exists: {dst}", path=str(dst))
    with _wrap_io("move", src):
        shutil.move(str(src), str(dst))


def delete_file(path: PathLike) -> bool:
    """
    Delete a file.

    Returns True when the file was deleted and False when it did not
    exist; any other failure raises ``FileOperationError``.
    """
    file_path = _require_path(path)
    with _wrap_io("delete", file_path):
        try:
            file_path.unlink()
        except FileNotFoundError:
            return False
    return True


def delete_directory(path: PathLike) -> bool:
    """Delete a directory tree; False when it did not exist."""
    dir_path = _require_path(path)
    if not dir_path.exists():
        return False
    with _wrap_io("delete", dir_path):
        shutil.rmtree(dir_path)
    return True


def create_directory(path: PathLike) -> None:
    """Create a directory and any missing parents."""
    dir_path = _require_path(path)
    with _wrap_io("create directory", dir_path):
        dir_path.mkdir(parents=True, exist_ok=True)


def copy_directory(source: PathLike, destination: PathLike) -> None:
    """Recursively copy a directory, replacing existing files."""
    src = _require_path(source, "source")
    dst = _require_path(destination, "destination")
    with _wrap_io("copy directory", src):
        shutil.copytree(src, dst, dirs_exist_ok=True)


# Metadata

def file_exists(path: PathLike) -> bool:
    return path is not None and Path(path).is_file()


def is_directory(path: PathLike) -> bool:
    return path is not None and Path(path).is_dir()


def get_file_size(path: PathLike) -> int:
    file_path = _require_path(path)
    with _wrap_io("stat", file_path):
        return file_path.stat().st_size


def get_last_modified_time(path: PathLike) -> datetime:
    file_path = _require_path(path)
    with _wrap_io("stat", file_path):
        return datetime.fromtimestamp(file_path.stat().st_mtime)


def get_last_modified_time_formatted(path: PathLike, pattern: str) -> str:
    return format_date(get_last_modified_time(path), pattern)


def get_file_extension(path: PathLike) -> str:
    """Extension without the dot, or '' when there is none."""
    return Path(_require_path(path)).suffix.lstrip(".")


def get_file_name(path: PathLike) -> str:
    return _require_path(path).name


def get_file_name_without_extension(path: PathLike) -> str:
    return _require_path(path).stem


def get_mime_type(path: PathLike) -> Optional[str]:
    """Guess a MIME type from the file name."""
    mime_type, _ = mimetypes.guess_type(str(_require_path(path)))
    return mime_type


def get_canonical_path(path: PathLike) -> str:
    file_path = _require_path(path)
    with _wrap_io("resolve", file_path):
        return str(file_path.resolve())


def compare_files(first: PathLike, second: PathLike) -> bool:
    """Byte-for-byte comparison of two files."""
    a = _require_path(first, "first")
    b = _require_path(second, "second")
    if get_file_size(a) != get_file_size(b):
        return False
    with _wrap_io("compare", a):
        with open(a, "rb") as fa, open(b, "rb") as fb:
            while True:
                block_a = fa.read(DEFAULT_BUFFER_SIZE)
                block_b = fb.read(DEFAULT_BUFFER_SIZE)
                if block_a != block_b:
                    return False
                if not block_a:
                    return True


# Listing

def list_files(path: PathLike) -> List[str]:
    """Names of regular files directly inside ``path``; [] when it is not a directory."""
    dir_path = _require_path(path)
    if not dir_path.is_dir():
        return []
    return sorted(entry.name for entry in dir_path.iterdir() if entry.is_file())


def list_directories(path: PathLike) -> List[str]:
    dir_path = _require_path(path)
    if not dir_path.is_dir():
        return []
    return sorted(entry.name for entry in dir_path.iterdir() if entry.is_dir())


def list_files_recursively(path: PathLike) -> List[str]:
    """Paths of all regular files below ``path``."""
    dir_path = _require_path(path)
    with _wrap_io("walk", dir_path):
        if not dir_path.is_dir():
            raise NotADirectoryError(f"Not a directory: {dir_path}")
        return sorted(str(entry) for entry in dir_path.rglob("*") if entry.is_file())


# Temporary files

def create_temp_file(prefix: str = "tmp", suffix: str = "") -> str:
    with _wrap_io("create temp file in", tempfile.gettempdir()):
        fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix)
        os.close(fd)
    return os.path.abspath(name)


def create_temp_directory(prefix: str = "tmp") -> str:
    with _wrap_io("create temp directory in", tempfile.gettempdir()):
        return os.path.abspath(tempfile.mkdtemp(prefix=prefix))


# Hashing

def _digest(path: PathLike, algorithm: str) -> str:
    hasher = hashlib.new(algorithm)
    for chunk in read_file_in_chunks(path, DEFAULT_BUFFER_SIZE):
        hasher.update(chunk)
    return hasher.hexdigest()


def calculate_md5(path: PathLike) -> str:
    """Hex MD5 digest of a file's contents."""
    return _digest(path, "md5")


def calculate_sha256(path: PathLike) -> str:
    """Hex SHA-256 digest of a file's contents."""
    return _digest(path, "sha256")


# Zip archives

def compress_file(source: PathLike, zip_path: PathLike) -> None:
    compress_files([source], zip_path)


def compress_files(sources: List[PathLike], zip_path: PathLike) -> None:
    """Store each file at the archive root under its own name."""
    target = _require_path(zip_path, "zip_path")
    with _wrap_io("compress into", target):
        with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for source in sources:
                src = _require_path(source, "source")
                archive.write(src, arcname=src.name)


def compress_directory(source_dir: PathLike, zip_path: PathLike) -> None:
    """Zip a directory tree with entry names relative to ``source_dir``."""
    src = _require_path(source_dir, "source_dir")
    target = _require_path(zip_path, "zip_path")
    with _wrap_io("compress", src):
        if not src.is_dir():
            raise NotADirectoryError(f"Not a directory: {src}")
        with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for entry in sorted(src.rglob("*")):
                if entry.is_file() and entry.resolve() != target.resolve():
                    archive.write(entry, arcname=entry.relative_to(src).as_posix())


def extract_zip_file(zip_path: PathLike, destination: PathLike) -> List[str]:
    """
    Extract an archive into ``destination`` and return the extracted paths.
    Entries that would land outside ``destination`` are rejected.
    """
    archive_path = _require_path(zip_path, "zip_path")
    dest = _require_path(destination, "destination")
    extracted = []
    with _wrap_io("extract", archive_path):
        dest.mkdir(parents=True, exist_ok=True)
        root = dest.resolve()
        try:
            with zipfile.ZipFile(archive_path) as archive:
                for member in archive.infolist():
                    target = (root / member.filename).resolve()
                    if target != root and root not in target.parents:
                        raise FileOperationError(
                            f"Zip entry is outside the target dir: {member.filename}",
                            path=str(archive_path))
                    archive.extract(member, root)
                    if not member.is_dir():
                        extracted.append(str(target))
        except zipfile.BadZipFile as e:
            raise FileOperationError(f"Invalid zip archive {archive_path}: {e}",
                                     path=str(archive_path), cause=e)
    return extracted


# Permissions

_PERMISSION_BITS = (
    stat.S_IRUSR, stat.S_IWUSR, stat.S_IXUSR,
    stat.S_IRGRP, stat.S_IWGRP, stat.S_IXGRP,
    stat.S_IROTH, stat.S_IWOTH, stat.S_IXOTH,
)


def _parse_permissions(permissions: str) -> int:
    if not permissions or len(permissions) != 9:
        raise ValidationError(f"Invalid permission string: {permissions!r}", field="permissions")
    mode = 0
    for index, (char, bit) in enumerate(zip(permissions, _PERMISSION_BITS)):
        expected = "rwx"[index % 3]
        if char == expected:
            mode |= bit
        elif char != "-":
            raise ValidationError(f"Invalid permission string: {permissions!r}", field="permissions")
    return mode


def set_file_permissions(path: PathLike, permissions: str) -> None:
    """Apply a POSIX permission string such as ``rwxr-xr--``."""
    file_path = _require_path(path)
    mode = _parse_permissions(permissions)
    with _wrap_io("chmod", file_path):
        os.chmod(file_path, mode)


def get_file_permissions(path: PathLike) -> str:
    """Return the POSIX permission string such as ``rw-r--r--``."""
    file_path = _require_path(path)
    with _wrap_io("stat", file_path):
        mode = file_path.stat().st_mode
    return "".join("rwx"[index % 3] if mode & bit else "-"
                   for index, bit in enumerate(_PERMISSION_BITS))


# Async I/O

async def read_file_async(path: PathLike, encoding: str = DEFAULT_ENCODING) -> str:
    file_path = _require_path(path)
    with _wrap_io("read", file_path):
        async with aiofiles.open(file_path, "r", encoding=encoding) as f:
            return await f.read()


async def write_file_async(path: PathLike, content: str, encoding: str = DEFAULT_ENCODING) -> None:
    file_path = _require_path(path)
    with _wrap_io("write", file_path):
        async with aiofiles.open(file_path, "w", encoding=encoding) as f:
            await f.write(content)


async def append_to_file_async(path: PathLike, content: str,
                               encoding: str = DEFAULT_ENCODING) -> None:
    file_path = _require_path(path)
    with _wrap_io("append to", file_path):
        async with aiofiles.open(file_path, "a", encoding=encoding) as f:
            await f.write(content)


async def read_binary_file_async(path: PathLike) -> bytes:
    file_path = _require_path(path)
    with _wrap_io("read", file_path):
        async with aiofiles.open(file_path, "rb") as f:
            return await f.read()


async def write_binary_file_async(path: PathLike, data: bytes) -> None:
    file_path = _require_path(path)
    with _wrap_io("write", file_path):
        async with aiofiles.open(file_path, "wb") as f:
            await f.write(data)
