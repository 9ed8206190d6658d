"""XZ (LZMA2) and BZip2 codecs from the standard library."""

from __future__ import annotations

import bz2
import lzma
from typing import BinaryIO

from shrinkwrap.codecs.base import BaseCodec, CodecDescriptor, iter_chunks

XZ_MAGIC = b"\xfd7zXZ\x00"
BZIP2_MAGIC = b"BZh"


class XzCodec(BaseCodec):
    """LZMA2 in the .xz container. Level 9 also sets the extreme flag."""

    descriptor = CodecDescriptor(
        id="xz",
        extensions=(".xz",),
        magic=XZ_MAGIC,
        quality_range=(0, 9),
        default_quality=6,
    )
    errors = (lzma.LZMAError,)

    def _compress_stream(
        self,
        src: BinaryIO,
        dst: BinaryIO,
        level: int | None,
        size_hint: int | None,
    ) -> None:
        preset = level | lzma.PRESET_EXTREME if level == self.descriptor.max_quality else level
        compressor = lzma.LZMACompressor(format=lzma.FORMAT_XZ, check=lzma.CHECK_CRC64, preset=preset)
        for chunk in iter_chunks(src, self.chunk_size):
            out = compressor.compress(chunk)
            if out:
                dst.write(out)
        dst.write(compressor.flush())

    def _decompress_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        return self._pump(lzma.LZMADecompressor(format=lzma.FORMAT_XZ), src, dst)


class Bzip2Codec(BaseCodec):
    """Burrows-Wheeler block sorting (bzip2)."""

    descriptor = CodecDescriptor(
        id="bzip2",
        extensions=(".bz2", ".bzip2"),
        magic=BZIP2_MAGIC,
        quality_range=(1, 9),
        default_quality=9,
    )
    errors = (OSError, ValueError)

    def _compress_stream(
        self,
        src: BinaryIO,
        dst: BinaryIO,
        level: int | None,
        size_hint: int | None,
    ) -> None:
        compressor = bz2.BZ2Compressor(level)
        for chunk in iter_chunks(src, self.chunk_size):
            out = compressor.compress(chunk)
            if out:
                dst.write(out)
        dst.write(compressor.flush())

    def _decompress_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        return self._pump(bz2.BZ2Decompressor(), src, dst)
