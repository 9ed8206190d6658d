"""File-system glue: atomic outputs, scratch buffers, paths and sizes."""

from __future__ import annotations

import contextlib
import io
import logging
import os
import tempfile
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import BinaryIO

from shrinkwrap.codecs.base import iter_chunks
from shrinkwrap.exceptions import InputNotFound

logger = logging.getLogger(__name__)

DECOMPRESSED_SUFFIX = ".decompressed"


@contextlib.contextmanager
def atomic_write(path: str | os.PathLike[str]) -> Iterator[BinaryIO]:
    """Open a temporary sibling of path for writing; rename it into place on success.

    The final name only ever holds a complete file. If the block raises,
    the temporary file is removed and path is left untouched.

    Example:
        with atomic_write("out.gz") as fh:
            fh.write(payload)
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".part", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as fh:
            yield fh
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise


def scratch_buffer(expected_size: int, threshold: int, directory: Path | None = None) -> BinaryIO:
    """Return a writable, seekable scratch stream.

    Small inputs get an in-memory buffer; inputs of at least threshold bytes
    get an anonymous temporary file that disappears when closed.
    """
    if expected_size < threshold:
        return io.BytesIO()
    return tempfile.TemporaryFile(dir=directory)


def nearest_existing_dir(path: Path) -> Path:
    """Return path, or its closest ancestor that is an existing directory."""
    for candidate in (path, *path.parents):
        if candidate.is_dir():
            return candidate
    return Path.cwd()


def copy_stream(src: BinaryIO, dst: BinaryIO, chunk_size: int) -> int:
    """Copy src to dst in chunk_size blocks and return the byte count."""
    copied = 0
    for chunk in iter_chunks(src, chunk_size):
        dst.write(chunk)
        copied += len(chunk)
    return copied


def require_file(path: str | os.PathLike[str]) -> Path:
    """Return path as a Path, or raise InputNotFound."""
    resolved = Path(path)
    if not resolved.is_file():
        raise InputNotFound(f"input file does not exist or is not a file: {resolved}")
    return resolved


def unique_path(path: Path) -> Path:
    """Return path, or "name (n).ext" with the first free n if path exists."""
    if not path.exists():
        return path
    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


def derive_compressed_path(src: Path, extension: str) -> Path:
    """Output path for a compressed src: "data.bin" -> "data.bin.zst"."""
    return unique_path(src.with_name(src.name + extension))


def derive_decompressed_path(src: Path, known_extensions: Iterable[str]) -> Path:
    """Output path for a decompressed src.

    A known codec extension is stripped ("data.bin.zst" -> "data.bin");
    otherwise ".decompressed" is appended.
    """
    suffix = src.suffix.lower()
    if suffix and suffix in set(known_extensions) and src.stem:
        return unique_path(src.with_name(src.stem))
    return unique_path(src.with_name(src.name + DECOMPRESSED_SUFFIX))


def format_size(num_bytes: int) -> str:
    """Human-readable size: 512 -> "512 B", 1536 -> "1.5 KB"."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    value = float(num_bytes)
    unit = -1
    while value >= 1024 and unit < 5:
        value /= 1024
        unit += 1
    return f"{value:.1f} {'KMGTPE'[unit]}B"
