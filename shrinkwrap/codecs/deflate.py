"""DEFLATE-based codecs.

Two codecs share the zlib engine:

- ``gzip``: a plain gzip member (RFC 1952), magic ``1F 8B``.
- ``file``: the custom container. A 20-byte header precedes a gzip payload:

      offset 0,  4 bytes : magic "FILE"
      offset 4,  8 bytes : compressed size (u64, big-endian)
      offset 12, 8 bytes : original size (u64, big-endian)
      offset 20..        : gzip payload, exactly compressed-size bytes

  Input without the magic is decoded as a raw gzip stream. Bytes after the
  payload are ignored, which is where a padding envelope lives.
"""

from __future__ import annotations

import io
import logging
import struct
import zlib
from typing import BinaryIO

from shrinkwrap.codecs.base import (
    BaseCodec,
    CodecDescriptor,
    LimitedReader,
    PrefixedReader,
    iter_chunks,
)
from shrinkwrap.exceptions import CodecError

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
GZIP_WBITS = 31  # zlib window bits selecting the gzip wrapper

CONTAINER_MAGIC = b"FILE"
CONTAINER_HEADER = struct.Struct(">4sQQ")


class GzipCodec(BaseCodec):
    """Generic deflate stream in gzip framing."""

    descriptor = CodecDescriptor(
        id="gzip",
        extensions=(".gz", ".gzip"),
        magic=GZIP_MAGIC,
        quality_range=(1, 9),
        default_quality=6,
    )
    errors = (zlib.error,)

    def _compress_stream(
        self,
        src: BinaryIO,
        dst: BinaryIO,
        level: int | None,
        size_hint: int | None,
    ) -> None:
        self._deflate(src, dst, level)

    def _decompress_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        return self._inflate(src, dst)

    def _deflate(self, src: BinaryIO, dst: BinaryIO, level: int | None) -> tuple[int, int]:
        """Write one gzip member; return (bytes read, bytes written)."""
        compressor = zlib.compressobj(level, zlib.DEFLATED, GZIP_WBITS)
        consumed = produced = 0
        for chunk in iter_chunks(src, self.chunk_size):
            consumed += len(chunk)
            out = compressor.compress(chunk)
            if out:
                dst.write(out)
                produced += len(out)
        tail = compressor.flush()
        dst.write(tail)
        return consumed, produced + len(tail)

    def _inflate(self, src: BinaryIO, dst: BinaryIO) -> int:
        decompressor = zlib.decompressobj(GZIP_WBITS)
        trailer = self._trailer()
        written = 0
        for chunk in iter_chunks(src, self.chunk_size):
            if decompressor.eof:
                trailer.feed(chunk)
                continue
            data = chunk
            while data:
                out = decompressor.decompress(data, self.chunk_size)
                if out:
                    dst.write(out)
                    written += len(out)
                if decompressor.eof:
                    trailer.feed(decompressor.unused_data)
                    break
                data = decompressor.unconsumed_tail
        if not decompressor.eof:
            raise CodecError(f"{self.id}: truncated stream", codec_id=self.id)
        trailer.close()
        return written


class ContainerCodec(GzipCodec):
    """Custom header-wrapped deflate container (magic ``FILE``)."""

    descriptor = CodecDescriptor(
        id="file",
        extensions=(".uc",),
        magic=CONTAINER_MAGIC,
        quality_range=(1, 9),
        default_quality=6,
    )

    def _compress_stream(
        self,
        src: BinaryIO,
        dst: BinaryIO,
        level: int | None,
        size_hint: int | None,
    ) -> None:
        # Sizes are only known after the payload, so the header is patched.
        start = dst.tell()
        dst.write(CONTAINER_HEADER.pack(CONTAINER_MAGIC, 0, 0))
        original_size, payload_size = self._deflate(src, dst, level)
        end = dst.tell()
        dst.seek(start)
        dst.write(CONTAINER_HEADER.pack(CONTAINER_MAGIC, payload_size, original_size))
        dst.seek(end)

    def _decompress_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        header = _read_up_to(src, CONTAINER_HEADER.size)
        if not header.startswith(CONTAINER_MAGIC):
            logger.debug("No %r header, decoding as raw gzip stream", CONTAINER_MAGIC)
            return self._inflate(PrefixedReader(header, src), dst)
        if len(header) < CONTAINER_HEADER.size:
            raise CodecError(f"{self.id}: truncated container header", codec_id=self.id)

        _, compressed_size, original_size = CONTAINER_HEADER.unpack(header)
        available = _remaining(src)
        if available is not None and compressed_size > available:
            raise CodecError(
                f"{self.id}: declared compressed size {compressed_size} exceeds "
                f"remaining {available} bytes",
                codec_id=self.id,
            )

        payload = LimitedReader(src, compressed_size)
        written = self._inflate(payload, dst)
        if payload.remaining:
            raise CodecError(
                f"{self.id}: payload ended {payload.remaining} bytes short of declared size",
                codec_id=self.id,
            )
        if written != original_size:
            raise CodecError(
                f"{self.id}: decompressed {written} bytes, header declares {original_size}",
                codec_id=self.id,
            )
        return written


def _read_up_to(src: BinaryIO, size: int) -> bytes:
    parts = []
    while size > 0:
        part = src.read(size)
        if not part:
            break
        parts.append(part)
        size -= len(part)
    return b"".join(parts)


def _remaining(src: BinaryIO) -> int | None:
    """Bytes left in a seekable stream, None when it cannot be known."""
    seekable = getattr(src, "seekable", None)
    if seekable is None or not seekable():
        return None
    position = src.tell()
    end = src.seek(0, io.SEEK_END)
    src.seek(position, io.SEEK_SET)
    return end - position
