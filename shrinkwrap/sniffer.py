"""Identify the codec that produced an artifact.

Three stages, cheapest first:
1. Filename extension (".zst", ".br", ...)
2. Magic bytes at the start of the artifact
3. Brute force: decode with every real codec, in registration order, and
   take the first one that produces output

Padded artifacts are identified by the codec they wrap: magics sit at the
start of the payload and every codec accepts an envelope after its end
of stream.
"""

from __future__ import annotations

import io
import logging
import os
from pathlib import Path
from typing import BinaryIO

from shrinkwrap.codecs.base import CodecDescriptor
from shrinkwrap.codecs.registry import CodecRegistry
from shrinkwrap.exceptions import ShrinkwrapError, UnknownCodec, UnrecognizedFormat
from shrinkwrap.fileio import require_file

logger = logging.getLogger(__name__)


class _CountingSink:
    """Write-only stream that only counts bytes."""

    def __init__(self) -> None:
        self.size = 0

    def write(self, data: bytes) -> int:
        self.size += len(data)
        return len(data)


class FormatSniffer:
    """Resolve artifacts to codec descriptors.

    Example:
        >>> sniffer = FormatSniffer(default_registry())
        >>> sniffer.identify_bytes(gzip_bytes).id
        'gzip'
        >>> sniffer.identify("archive.br").id
        'brotli'
    """

    def __init__(
        self,
        registry: CodecRegistry,
        header_size: int = 16,
    ):
        """Initialize the sniffer.

        Args:
            registry: Codecs to choose from.
            header_size: Bytes read for magic matching (at least 8).
        """
        if header_size < 8:
            raise ValueError("header_size must be at least 8 bytes")
        self.registry = registry
        self.header_size = header_size

    def identify(self, path: str | os.PathLike[str]) -> CodecDescriptor:
        """Identify the codec of a file on disk.

        Raises:
            InputNotFound: If path is not a file.
            UnrecognizedFormat: If no stage resolves a codec.
        """
        resolved = require_file(path)
        with resolved.open("rb") as fh:
            return self.identify_stream(fh, name=resolved.name)

    def identify_bytes(self, data: bytes, name: str | None = None) -> CodecDescriptor:
        with io.BytesIO(data) as stream:
            return self.identify_stream(stream, name=name)

    def identify_stream(self, stream: BinaryIO, name: str | None = None) -> CodecDescriptor:
        """Identify the codec of a seekable stream.

        The stream is rewound to its starting position before returning.

        Args:
            stream: Seekable binary stream positioned at the artifact start.
            name: Optional filename used for the extension stage.

        Returns:
            Descriptor of the identified codec.

        Raises:
            UnrecognizedFormat: If extension, magic and brute force all fail.
        """
        if name:
            descriptor = self._by_extension(name)
            if descriptor is not None:
                logger.debug("Identified %s as %s by extension", name, descriptor.id)
                return descriptor

        start = stream.tell()
        try:
            header = stream.read(self.header_size)
            descriptor = self._by_magic(header)
            if descriptor is not None:
                logger.debug("Identified %s as %s by magic bytes", name or "stream", descriptor.id)
                return descriptor

            descriptor = self._by_trial(stream, start)
            if descriptor is not None:
                logger.debug("Identified %s as %s by trial decoding", name or "stream", descriptor.id)
                return descriptor
        finally:
            stream.seek(start)

        raise UnrecognizedFormat(
            f"could not identify the format of {name or 'stream'}: "
            "no extension, magic or trial decode matched"
        )

    def _by_extension(self, name: str) -> CodecDescriptor | None:
        if not Path(name).suffix:
            return None
        try:
            codec = self.registry.lookup_extension(name)
        except UnknownCodec:
            return None
        if codec.descriptor.pseudo:
            return None
        return codec.descriptor

    def _by_magic(self, header: bytes) -> CodecDescriptor | None:
        if not header:
            return None
        try:
            codec = self.registry.lookup_magic(header)
        except UnknownCodec as e:
            logger.debug("Magic lookup failed: %s", e)
            return None
        if codec.descriptor.pseudo:
            return None
        return codec.descriptor

    def _by_trial(self, stream: BinaryIO, start: int) -> CodecDescriptor | None:
        for codec in self.registry.real_codecs():
            stream.seek(start)
            sink = _CountingSink()
            try:
                codec.decompress_stream(stream, sink)
            except ShrinkwrapError as e:
                logger.debug("Trial decode with %s failed: %s", codec.id, e)
                continue
            if sink.size > 0:
                return codec.descriptor
            logger.debug("Trial decode with %s produced no output", codec.id)
        return None
