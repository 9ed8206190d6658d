"""Codec registry.

Codecs are registered once, at construction, and looked up by id, by
filename extension or by magic prefix. The registry preserves registration
order, which is also the brute-force sniffing order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import PurePath

from shrinkwrap.codecs.base import DEFAULT_CHUNK_SIZE, Codec
from shrinkwrap.codecs.brotli_codec import BrotliCodec
from shrinkwrap.codecs.classic import Bzip2Codec, XzCodec
from shrinkwrap.codecs.deflate import ContainerCodec, GzipCodec
from shrinkwrap.codecs.padding import PADDING_ID, PaddingCodec
from shrinkwrap.codecs.zstd_codec import ZstdCodec
from shrinkwrap.exceptions import UnknownCodec

logger = logging.getLogger(__name__)


def normalize_extension(name: str) -> str:
    """Turn "GZ", ".gz" or "archive.tar.GZ" into ".gz"."""
    suffix = PurePath(name).suffix or name
    suffix = suffix.lower()
    return suffix if suffix.startswith(".") else f".{suffix}"


class CodecRegistry:
    """Ordered set of codecs with id, extension and magic lookups.

    Example:
        >>> registry = default_registry()
        >>> registry.lookup_extension("backup.tar.gz").id
        'gzip'
        >>> registry.lookup_magic(b"\\x28\\xb5\\x2f\\xfd...").id
        'zstd'
    """

    def __init__(self, codecs: Iterable[Codec] = ()):
        self._codecs: dict[str, Codec] = {}
        self._by_extension: dict[str, Codec] = {}
        for codec in codecs:
            self.register(codec)

    def register(self, codec: Codec) -> None:
        """Register a codec.

        Raises:
            ValueError: If the id or one of its extensions is already taken.
        """
        descriptor = codec.descriptor
        if descriptor.id in self._codecs:
            raise ValueError(f"codec {descriptor.id!r} is already registered")
        for ext in descriptor.extensions:
            if ext in self._by_extension:
                owner = self._by_extension[ext].id
                raise ValueError(f"extension {ext!r} already belongs to {owner!r}")
        self._codecs[descriptor.id] = codec
        for ext in descriptor.extensions:
            self._by_extension[ext] = codec
        logger.debug("Registered codec %s (extensions=%s)", descriptor.id, descriptor.extensions)

    def get(self, codec_id: str) -> Codec:
        """Look up a codec by id.

        Raises:
            UnknownCodec: If no codec has this id.
        """
        try:
            return self._codecs[codec_id]
        except KeyError:
            raise UnknownCodec(f"no codec with id {codec_id!r}") from None

    def lookup_extension(self, name: str) -> Codec:
        """Look up a codec by extension or filename, case-insensitively.

        Raises:
            UnknownCodec: If the extension is not registered.
        """
        ext = normalize_extension(name)
        codec = self._by_extension.get(ext)
        if codec is None:
            raise UnknownCodec(f"no codec for extension {ext!r}")
        return codec

    def lookup_magic(self, header: bytes) -> Codec:
        """Look up the codec whose magic prefixes header.

        The longest matching magic wins. Two different codecs matching with
        magics of the same, longest length are ambiguous.

        Raises:
            UnknownCodec: If no magic matches or the match is ambiguous.
        """
        matches = [
            codec
            for codec in self._codecs.values()
            if codec.descriptor.magic and header.startswith(codec.descriptor.magic)
        ]
        if not matches:
            raise UnknownCodec(f"no codec matches header {header[:8].hex()}")
        longest = max(len(codec.descriptor.magic) for codec in matches)
        best = [codec for codec in matches if len(codec.descriptor.magic) == longest]
        if len(best) > 1:
            ids = ", ".join(codec.id for codec in best)
            raise UnknownCodec(f"header {header[:8].hex()} is ambiguous between {ids}")
        return best[0]

    def real_codecs(self) -> list[Codec]:
        """Registered codecs except pseudo-codecs, in registration order."""
        return [codec for codec in self._codecs.values() if not codec.descriptor.pseudo]

    @property
    def padding(self) -> PaddingCodec:
        codec = self.get(PADDING_ID)
        if not isinstance(codec, PaddingCodec):
            raise UnknownCodec(f"codec {PADDING_ID!r} is not a padding codec")
        return codec

    def __contains__(self, codec_id: object) -> bool:
        return codec_id in self._codecs

    def __iter__(self) -> Iterator[Codec]:
        return iter(self._codecs.values())

    def __len__(self) -> int:
        return len(self._codecs)


def default_registry(chunk_size: int = DEFAULT_CHUNK_SIZE, zstd_threads: int = 0) -> CodecRegistry:
    """Build the standard registry.

    Order: custom container, gzip, zstd, brotli, xz, bzip2, padding.
    """
    return CodecRegistry(
        [
            ContainerCodec(chunk_size=chunk_size),
            GzipCodec(chunk_size=chunk_size),
            ZstdCodec(chunk_size=chunk_size, threads=zstd_threads),
            BrotliCodec(chunk_size=chunk_size),
            XzCodec(chunk_size=chunk_size),
            Bzip2Codec(chunk_size=chunk_size),
            PaddingCodec(chunk_size=chunk_size),
        ]
    )
