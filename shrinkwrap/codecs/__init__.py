"""Codecs for different compressed formats.

Each codec wraps one compression library behind the same stream protocol.
Codecs don't decide anything - choosing a codec and effort level is the
orchestrator's job, and identifying one is the sniffer's.
"""

from shrinkwrap.codecs.base import (
    BaseCodec,
    Codec,
    CodecDescriptor,
)
from shrinkwrap.codecs.brotli_codec import BrotliCodec
from shrinkwrap.codecs.classic import Bzip2Codec, XzCodec
from shrinkwrap.codecs.deflate import ContainerCodec, GzipCodec
from shrinkwrap.codecs.padding import MARKER, PaddingCodec, PaddingStripReader, contains_marker, pad, unpad
from shrinkwrap.codecs.registry import CodecRegistry, default_registry
from shrinkwrap.codecs.zstd_codec import ZstdCodec

__all__ = [
    "Codec",
    "BaseCodec",
    "CodecDescriptor",
    "CodecRegistry",
    "default_registry",
    "ContainerCodec",
    "GzipCodec",
    "ZstdCodec",
    "BrotliCodec",
    "XzCodec",
    "Bzip2Codec",
    "PaddingCodec",
    "PaddingStripReader",
    "MARKER",
    "pad",
    "unpad",
    "contains_marker",
]
