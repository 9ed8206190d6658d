"""Base class and protocol for codecs.

A codec is a paired compress/decompress capability identified by an id,
optional magic bytes and one or more filename extensions. The codec protocol
is stream-first:
1. compress_stream(src, dst, level, size_hint)
2. decompress_stream(src, dst) -> bytes written

compress() and decompress() are in-memory conveniences built on the streams.
Codecs never guess: a truncated stream, trailing garbage or a library error
raises CodecError. After its end of stream a codec accepts only zero bytes
or a padding envelope (the marker followed by zero filler).
"""

from __future__ import annotations

import io
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO, Protocol, runtime_checkable

from shrinkwrap.exceptions import CodecError

DEFAULT_CHUNK_SIZE = 1024 * 1024

PADDING_MARKER = b"[PADDING]"


@dataclass(frozen=True)
class CodecDescriptor:
    """Static description of a codec.

    Attributes:
        id: Unique codec id (e.g. "gzip").
        extensions: Filename extensions, canonical one first (e.g. ".gz").
        magic: Leading bytes every artifact starts with, if any.
        supports_quality_levels: Whether the codec has an effort knob.
        quality_range: Inclusive (min, max) effort levels.
        default_quality: Effort used when no level is requested.
        pseudo: True for codecs that are synthesized rather than sniffed.
    """

    id: str
    extensions: tuple[str, ...] = ()
    magic: bytes | None = None
    supports_quality_levels: bool = True
    quality_range: tuple[int, int] = (0, 0)
    default_quality: int = 0
    pseudo: bool = False

    def __post_init__(self) -> None:
        normalized = tuple(
            ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in self.extensions
        )
        object.__setattr__(self, "extensions", normalized)
        low, high = self.quality_range
        if low > high:
            raise ValueError(f"{self.id}: invalid quality range {self.quality_range}")
        if self.supports_quality_levels and not low <= self.default_quality <= high:
            raise ValueError(f"{self.id}: default quality {self.default_quality} outside {self.quality_range}")

    @property
    def extension(self) -> str:
        """Canonical extension, or an empty string."""
        return self.extensions[0] if self.extensions else ""

    @property
    def max_quality(self) -> int:
        return self.quality_range[1]

    def resolve_level(self, level: int | None) -> int | None:
        """Map a requested level to the level actually used.

        Args:
            level: Requested effort, or None for the default.

        Returns:
            The effort level, or None for codecs without quality levels.

        Raises:
            ValueError: If the level is outside the quality range.
        """
        if not self.supports_quality_levels:
            return None
        if level is None:
            return self.default_quality
        low, high = self.quality_range
        if not low <= level <= high:
            raise ValueError(f"{self.id}: level {level} outside {low}..{high}")
        return level

    def effort_ladder(self) -> tuple[int | None, ...]:
        """Effort levels tried by the orchestrator, weakest first."""
        if not self.supports_quality_levels:
            return (None,)
        if self.default_quality == self.max_quality:
            return (self.default_quality,)
        return (self.default_quality, self.max_quality)


@runtime_checkable
class Codec(Protocol):
    """Protocol for codecs.

    Any class implementing the stream methods and exposing a descriptor can
    be registered.
    """

    @property
    def descriptor(self) -> CodecDescriptor:
        """Static codec description."""
        ...

    @property
    def id(self) -> str:
        """Codec id, shortcut for descriptor.id."""
        ...

    def compress_stream(
        self,
        src: BinaryIO,
        dst: BinaryIO,
        level: int | None = None,
        size_hint: int | None = None,
    ) -> None:
        """Compress everything readable from src into dst."""
        ...

    def decompress_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        """Decompress src into dst and return the number of bytes written."""
        ...

    def compress(self, data: bytes, level: int | None = None) -> bytes:
        """Compress a byte string."""
        ...

    def decompress(self, data: bytes) -> bytes:
        """Decompress a byte string."""
        ...


class BaseCodec(ABC):
    """Base implementation for codecs.

    Resolves effort levels, translates library exceptions into CodecError
    and provides the in-memory helpers. Subclasses set ``descriptor`` and
    ``errors`` and implement _compress_stream() and _decompress_stream().
    """

    descriptor: CodecDescriptor
    errors: tuple[type[BaseException], ...] = ()

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """Initialize the codec.

        Args:
            chunk_size: Block size used when reading sources and bounding
                decompressed output per step.
        """
        self.chunk_size = chunk_size

    @property
    def id(self) -> str:
        return self.descriptor.id

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r})"

    def compress_stream(
        self,
        src: BinaryIO,
        dst: BinaryIO,
        level: int | None = None,
        size_hint: int | None = None,
    ) -> None:
        """Compress src into dst.

        Args:
            src: Readable binary stream.
            dst: Writable binary stream. Some codecs need it seekable.
            level: Effort level, None for the codec default.
            size_hint: Expected input size, if known.

        Raises:
            CodecError: If the underlying compressor fails.
            ValueError: If the level is outside the quality range.
        """
        resolved = self.descriptor.resolve_level(level)
        try:
            self._compress_stream(src, dst, resolved, size_hint)
        except CodecError:
            raise
        except self.errors as e:
            raise CodecError(f"{self.id} compression failed: {e}", codec_id=self.id) from e

    def decompress_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        """Decompress src into dst.

        Args:
            src: Readable binary stream positioned at the artifact start.
            dst: Writable binary stream.

        Returns:
            Number of decompressed bytes written.

        Raises:
            CodecError: If the stream is corrupt, truncated or followed by
                trailing data.
        """
        try:
            return self._decompress_stream(src, dst)
        except CodecError:
            raise
        except (*self.errors, EOFError) as e:
            raise CodecError(f"{self.id} decompression failed: {e}", codec_id=self.id) from e

    def compress(self, data: bytes, level: int | None = None) -> bytes:
        with io.BytesIO(data) as src, io.BytesIO() as dst:
            self.compress_stream(src, dst, level=level, size_hint=len(data))
            return dst.getvalue()

    def decompress(self, data: bytes) -> bytes:
        with io.BytesIO(data) as src, io.BytesIO() as dst:
            self.decompress_stream(src, dst)
            return dst.getvalue()

    @abstractmethod
    def _compress_stream(
        self,
        src: BinaryIO,
        dst: BinaryIO,
        level: int | None,
        size_hint: int | None,
    ) -> None: ...

    @abstractmethod
    def _decompress_stream(self, src: BinaryIO, dst: BinaryIO) -> int: ...

    def _trailer(self) -> TrailerCheck:
        return TrailerCheck(self.id)

    def _pump(self, decompressor, src: BinaryIO, dst: BinaryIO) -> int:
        """Drive a bz2/lzma-style decompressor over src.

        Output per step is bounded by chunk_size so a small, highly
        compressed input cannot balloon memory.
        """
        trailer = self._trailer()
        written = 0
        for chunk in iter_chunks(src, self.chunk_size):
            if decompressor.eof:
                trailer.feed(chunk)
                continue
            data = chunk
            while True:
                out = decompressor.decompress(data, self.chunk_size)
                data = b""
                if out:
                    dst.write(out)
                    written += len(out)
                if decompressor.eof:
                    trailer.feed(decompressor.unused_data)
                    break
                if decompressor.needs_input:
                    break
        if not decompressor.eof:
            raise CodecError(f"{self.id}: truncated stream", codec_id=self.id)
        trailer.close()
        return written


class TrailerCheck:
    """Validates the bytes that follow a codec's end of stream.

    Zero bytes are tolerated, like gzip(1) does. So is a padding envelope:
    the marker followed by zero filler. The marker is only looked for where
    the stream has already ended, so payload bytes that contain it are
    decoded like any others.
    """

    def __init__(self, codec_id: str):
        self.codec_id = codec_id
        self._head = b""

    def feed(self, data: bytes) -> None:
        if not data:
            return
        missing = len(PADDING_MARKER) - len(self._head)
        if missing > 0:
            self._head += data[:missing]
            data = data[missing:]
            if not PADDING_MARKER.startswith(self._head) and self._head.strip(b"\x00"):
                self._reject()
        if data.strip(b"\x00"):
            self._reject()

    def close(self) -> None:
        """Reject a trailer that stops partway through the marker."""
        if self._head.strip(b"\x00") and self._head != PADDING_MARKER:
            self._reject()

    def _reject(self) -> None:
        raise CodecError(f"{self.codec_id}: trailing data after end of stream", codec_id=self.codec_id)


def iter_chunks(src: BinaryIO, chunk_size: int) -> Iterator[bytes]:
    """Yield successive blocks read from src until EOF."""
    while True:
        chunk = src.read(chunk_size)
        if not chunk:
            return
        yield chunk


class PrefixedReader:
    """Read-only stream that replays already-consumed bytes before src."""

    def __init__(self, prefix: bytes, src: BinaryIO):
        self._prefix = prefix
        self._src = src

    def read(self, size: int = -1) -> bytes:
        if not self._prefix:
            return self._src.read(size)
        if size is None or size < 0:
            data, self._prefix = self._prefix + self._src.read(), b""
            return data
        data, self._prefix = self._prefix[:size], self._prefix[size:]
        if len(data) < size:
            data += self._src.read(size - len(data))
        return data


class EnvelopeTrimReader:
    """Read-only view of src without a final padding envelope.

    For streams that cannot report where they end. The envelope is anchored
    at the tail: a marker is dropped only when nothing but zero bytes
    follows it up to EOF. A marker followed by any other byte is data.
    """

    def __init__(self, src: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._src = src
        self._chunk_size = chunk_size
        self._ready = bytearray()
        self._partial = b""  # tail that may be the start of a marker
        self._held_zeros: int | None = None  # filler after a held marker
        self._eof = False
        self.trimmed = False

    def read(self, size: int = -1) -> bytes:
        if size is None:
            size = -1
        while not self._eof and (size < 0 or len(self._ready) < size):
            chunk = self._src.read(self._chunk_size)
            if not chunk:
                self._eof = True
                self._ready += self._partial
                self._partial = b""
                self.trimmed = self._held_zeros is not None
                break
            self._feed(chunk)
        if size < 0 or size > len(self._ready):
            size = len(self._ready)
        data = bytes(self._ready[:size])
        del self._ready[:size]
        return data

    def _feed(self, chunk: bytes) -> None:
        if self._held_zeros is not None:
            if not chunk.strip(b"\x00"):
                self._held_zeros += len(chunk)
                return
            self._ready += PADDING_MARKER + bytes(self._held_zeros)
            self._held_zeros = None

        buf = self._partial + chunk
        self._partial = b""
        index = buf.rfind(PADDING_MARKER)
        if index >= 0 and not buf[index + len(PADDING_MARKER) :].strip(b"\x00"):
            self._ready += buf[:index]
            self._held_zeros = len(buf) - index - len(PADDING_MARKER)
            return
        for keep in range(len(PADDING_MARKER) - 1, 0, -1):
            if buf.endswith(PADDING_MARKER[:keep]):
                self._ready += buf[:-keep]
                self._partial = buf[-keep:]
                return
        self._ready += buf


class LimitedReader:
    """Read-only view of at most ``limit`` bytes of src."""

    def __init__(self, src: BinaryIO, limit: int):
        self._src = src
        self.remaining = limit

    def read(self, size: int = -1) -> bytes:
        if self.remaining <= 0:
            return b""
        if size is None or size < 0 or size > self.remaining:
            size = self.remaining
        data = self._src.read(size)
        self.remaining -= len(data)
        return data
