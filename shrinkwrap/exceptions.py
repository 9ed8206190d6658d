"""Exception hierarchy for shrinkwrap.

Errors fall into three groups:
1. Preconditions on the input (InputNotFound, InputEmpty)
2. Codec-level failures (CodecError, UnknownCodec, UnrecognizedFormat)
3. Pipeline outcomes (RatioUnattainable, VerificationFailed)
"""

from __future__ import annotations


class ShrinkwrapError(Exception):
    """Base class for all shrinkwrap errors."""


class InputNotFound(ShrinkwrapError):
    """Input file does not exist or is not a regular file."""


class InputEmpty(ShrinkwrapError):
    """Input file is empty and empty inputs are not allowed."""


class CodecError(ShrinkwrapError):
    """Underlying compressor or decompressor failed.

    Raised for library errors, truncated streams, trailing garbage and
    container headers that disagree with their payload.
    """

    def __init__(self, message: str, codec_id: str | None = None):
        super().__init__(message)
        self.codec_id = codec_id


class UnknownCodec(ShrinkwrapError, LookupError):
    """No registered codec matches an id, extension or magic prefix."""


class RatioUnattainable(ShrinkwrapError):
    """No codec or padding combination satisfies the requested ratio."""

    def __init__(self, message: str, best_size: int | None = None, target_size: int | None = None):
        super().__init__(message)
        self.best_size = best_size
        self.target_size = target_size


class VerificationFailed(ShrinkwrapError):
    """Round-trip decompression did not reproduce the original bytes."""


class UnrecognizedFormat(ShrinkwrapError):
    """Extension, magic and brute-force sniffing all failed."""
