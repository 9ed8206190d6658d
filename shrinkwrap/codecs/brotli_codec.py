"""Brotli codec.

Brotli streams carry no magic number, so this codec is only found by
extension or by brute-force trial decoding. The binding cannot say where a
stream ends inside a chunk, so a padding envelope is trimmed from the tail
of the input before it reaches the decoder.
"""

from __future__ import annotations

from typing import BinaryIO

import brotli

from shrinkwrap.codecs.base import BaseCodec, CodecDescriptor, EnvelopeTrimReader, iter_chunks
from shrinkwrap.exceptions import CodecError

BROTLI_WINDOW = 24  # lgwin, 16 MiB sliding window


class BrotliCodec(BaseCodec):
    """Brotli with the maximum sliding window."""

    descriptor = CodecDescriptor(
        id="brotli",
        extensions=(".br",),
        magic=None,
        quality_range=(0, 11),
        default_quality=5,
    )
    errors = (brotli.error,)

    def _compress_stream(
        self,
        src: BinaryIO,
        dst: BinaryIO,
        level: int | None,
        size_hint: int | None,
    ) -> None:
        compressor = brotli.Compressor(mode=brotli.MODE_GENERIC, quality=level, lgwin=BROTLI_WINDOW)
        for chunk in iter_chunks(src, self.chunk_size):
            out = compressor.process(chunk)
            if out:
                dst.write(out)
        dst.write(compressor.finish())

    def _decompress_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        decompressor = brotli.Decompressor()
        trailer = self._trailer()
        written = 0
        for chunk in iter_chunks(EnvelopeTrimReader(src, self.chunk_size), self.chunk_size):
            if decompressor.is_finished():
                trailer.feed(chunk)
                continue
            out = decompressor.process(chunk)
            if out:
                dst.write(out)
                written += len(out)
        if not decompressor.is_finished():
            raise CodecError(f"{self.id}: truncated stream", codec_id=self.id)
        trailer.close()
        return written
