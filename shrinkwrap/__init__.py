"""Adaptive compression with a guaranteed size reduction.

This package compresses arbitrary files so that the result is at least a
given fraction smaller than the input:
1. Escalates through codecs (deflate container, gzip, zstd, brotli, xz,
   bzip2) and effort levels until the target size is met
2. Round-trip verifies every artifact it returns
3. Identifies the codec of any artifact by extension, magic bytes or
   trial decoding

Quick Start:
    # One-liner for simple use
    from shrinkwrap import compress
    result = compress(data)

    # Or with configuration
    from shrinkwrap import RatioGuaranteeCompressor, ShrinkwrapConfig

    config = ShrinkwrapConfig(target_ratio=0.3, use_magika=False)
    compressor = RatioGuaranteeCompressor(config=config)
    result = compressor.compress_file("access.log")
    compressor.decompress_file(result.output_path)
"""

from shrinkwrap.codecs import CodecDescriptor, CodecRegistry, default_registry
from shrinkwrap.config import ShrinkwrapConfig
from shrinkwrap.detector import ContentKind, MagikaDetector
from shrinkwrap.exceptions import (
    CodecError,
    InputEmpty,
    InputNotFound,
    RatioUnattainable,
    ShrinkwrapError,
    UnknownCodec,
    UnrecognizedFormat,
    VerificationFailed,
)
from shrinkwrap.orchestrator import (
    AttemptOutcome,
    CompressionAttempt,
    CompressionResult,
    RatioGuaranteeCompressor,
    compress,
    compress_file,
    decompress_auto_detect,
)
from shrinkwrap.sniffer import FormatSniffer
from shrinkwrap.verifier import Fingerprint, RoundTripVerifier

__all__ = [
    # Simple API
    "compress",
    "compress_file",
    "decompress_auto_detect",
    # Full API
    "RatioGuaranteeCompressor",
    "ShrinkwrapConfig",
    "CompressionResult",
    "CompressionAttempt",
    "AttemptOutcome",
    # Advanced
    "CodecDescriptor",
    "CodecRegistry",
    "default_registry",
    "FormatSniffer",
    "RoundTripVerifier",
    "Fingerprint",
    "MagikaDetector",
    "ContentKind",
    # Errors
    "ShrinkwrapError",
    "InputNotFound",
    "InputEmpty",
    "CodecError",
    "UnknownCodec",
    "RatioUnattainable",
    "VerificationFailed",
    "UnrecognizedFormat",
]
