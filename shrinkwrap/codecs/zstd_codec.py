"""Zstandard codec with long-distance matching at high effort."""

from __future__ import annotations

from typing import BinaryIO

import zstandard as zstd

from shrinkwrap.codecs.base import DEFAULT_CHUNK_SIZE, BaseCodec, CodecDescriptor, iter_chunks
from shrinkwrap.exceptions import CodecError

ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"

# Levels from here on enable long-distance matching.
LONG_WINDOW_LEVEL = 19
MAX_WINDOW_SIZE = 1 << 31


class ZstdCodec(BaseCodec):
    """High-effort, long-window zstd frames with content checksums."""

    descriptor = CodecDescriptor(
        id="zstd",
        extensions=(".zst", ".zstd"),
        magic=ZSTD_MAGIC,
        quality_range=(1, 22),
        default_quality=3,
    )
    errors = (zstd.ZstdError,)

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, threads: int = 0):
        """Initialize the codec.

        Args:
            chunk_size: Streaming block size.
            threads: zstd worker threads. 0 compresses on the calling thread.
        """
        super().__init__(chunk_size=chunk_size)
        self.threads = threads

    def _compress_stream(
        self,
        src: BinaryIO,
        dst: BinaryIO,
        level: int | None,
        size_hint: int | None,
    ) -> None:
        params = zstd.ZstdCompressionParameters.from_level(
            level,
            source_size=size_hint or 0,
            enable_ldm=level >= LONG_WINDOW_LEVEL,
            write_checksum=1,
            threads=self.threads,
        )
        compressor = zstd.ZstdCompressor(compression_params=params)
        kwargs = {"read_size": self.chunk_size, "write_size": self.chunk_size}
        if size_hint is not None:
            kwargs["size"] = size_hint
        compressor.copy_stream(src, dst, **kwargs)

    def _decompress_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        decompressor = zstd.ZstdDecompressor(max_window_size=MAX_WINDOW_SIZE).decompressobj(
            write_size=self.chunk_size
        )
        trailer = self._trailer()
        written = 0
        for chunk in iter_chunks(src, self.chunk_size):
            if decompressor.eof:
                trailer.feed(chunk)
                continue
            out = decompressor.decompress(chunk)
            if out:
                dst.write(out)
                written += len(out)
            if decompressor.eof:
                trailer.feed(decompressor.unused_data)
        if not decompressor.eof:
            raise CodecError(f"{self.id}: truncated stream", codec_id=self.id)
        trailer.close()
        return written
