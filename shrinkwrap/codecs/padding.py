"""Padding pseudo-codec.

Padding is not compression. When a size target must be hit exactly, a real
artifact is wrapped as::

    payload ++ b"[PADDING]" ++ b"\\x00" * filler

and unpadding keeps everything before the first marker. The marker is a
low-probability byte sequence, not a length-prefixed frame, so an artifact
that contains it is never padded. Real codecs do not need unpad(): they
accept an envelope after their own end of stream.
"""

from __future__ import annotations

from typing import BinaryIO

from shrinkwrap.codecs.base import (
    DEFAULT_CHUNK_SIZE,
    PADDING_MARKER,
    BaseCodec,
    CodecDescriptor,
    iter_chunks,
)
from shrinkwrap.exceptions import CodecError

MARKER = PADDING_MARKER
PADDING_ID = "padding"


def pad(payload: bytes, target_size: int) -> bytes:
    """Append the marker and zero filler so the result is target_size bytes.

    Args:
        payload: Bytes to wrap. Must not contain the marker.
        target_size: Exact size of the result.

    Returns:
        The padding envelope.

    Raises:
        ValueError: If payload plus marker exceed target_size.
        CodecError: If payload already contains the marker.
    """
    filler = target_size - len(payload) - len(MARKER)
    if filler < 0:
        raise ValueError(
            f"cannot pad {len(payload)} bytes to {target_size}: "
            f"marker alone needs {len(MARKER)} bytes"
        )
    if MARKER in payload:
        raise CodecError("payload contains the padding marker", codec_id=PADDING_ID)
    return payload + MARKER + bytes(filler)


def unpad(data: bytes) -> bytes:
    """Return the bytes before the first marker, or data unchanged."""
    index = data.find(MARKER)
    if index < 0:
        return data
    return data[:index]


def contains_marker(src: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bool:
    """Scan src from its current position for the marker.

    Consumes the stream. A marker split across chunk boundaries is found.
    """
    carry = b""
    for chunk in iter_chunks(src, chunk_size):
        window = carry + chunk
        if MARKER in window:
            return True
        carry = window[-(len(MARKER) - 1) :]
    return False


class PaddingStripReader:
    """Streaming unpad(): reads src and stops at the first marker.

    Up to len(MARKER) - 1 bytes are held back between reads so a marker
    split across chunk boundaries is still found.
    """

    def __init__(self, src: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._src = src
        self._chunk_size = chunk_size
        self._pending = bytearray()
        self._scanned = 0  # no marker starts before this offset in _pending
        self._eof = False
        self.padded = False

    def read(self, size: int = -1) -> bytes:
        if size is None:
            size = -1
        holdback = len(MARKER) - 1
        while not (self.padded or self._eof):
            if size >= 0 and len(self._pending) - holdback >= size:
                break
            chunk = self._src.read(self._chunk_size)
            if not chunk:
                self._eof = True
                break
            self._pending += chunk
            index = self._pending.find(MARKER, self._scanned)
            if index >= 0:
                del self._pending[index:]
                self.padded = True
            else:
                self._scanned = max(0, len(self._pending) - holdback)

        if self.padded or self._eof:
            available = len(self._pending)
        else:
            available = max(0, len(self._pending) - holdback)
        if size >= 0:
            available = min(available, size)

        data = bytes(self._pending[:available])
        del self._pending[:available]
        self._scanned = max(0, self._scanned - available)
        return data


class PaddingCodec(BaseCodec):
    """Pseudo-codec for padding envelopes.

    It never compresses and is never matched by sniffing; the orchestrator
    synthesizes envelopes with pad_stream(). Decompression strips the
    envelope and leaves the wrapped artifact.
    """

    descriptor = CodecDescriptor(id=PADDING_ID, supports_quality_levels=False, pseudo=True)

    pad = staticmethod(pad)
    unpad = staticmethod(unpad)

    def pad_stream(self, dst: BinaryIO, payload_size: int, target_size: int) -> int:
        """Append marker and zero filler to dst, which holds payload_size bytes.

        Returns:
            Number of filler bytes written.
        """
        filler = target_size - payload_size - len(MARKER)
        if filler < 0:
            raise ValueError(f"cannot pad {payload_size} bytes to {target_size}")
        dst.write(MARKER)
        zeros = bytes(min(filler, self.chunk_size))
        remaining = filler
        while remaining:
            step = min(remaining, len(zeros))
            dst.write(zeros[:step])
            remaining -= step
        return filler

    def strip_reader(self, src: BinaryIO) -> PaddingStripReader:
        return PaddingStripReader(src, self.chunk_size)

    def _compress_stream(
        self,
        src: BinaryIO,
        dst: BinaryIO,
        level: int | None,
        size_hint: int | None,
    ) -> None:
        raise CodecError("padding is synthesized by the orchestrator, it cannot compress", codec_id=self.id)

    def _decompress_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        written = 0
        for chunk in iter_chunks(self.strip_reader(src), self.chunk_size):
            dst.write(chunk)
            written += len(chunk)
        return written

