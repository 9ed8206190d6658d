"""Round-trip verification of compressed artifacts.

An artifact is only handed back to a caller after it has been fully
decompressed with the exact codec that produced it and the output matched
the original. Output is streamed into a hashing sink, so verification needs
no scratch space.
"""

from __future__ import annotations

import hashlib
import io
import logging
from dataclasses import dataclass
from typing import BinaryIO

from shrinkwrap.codecs.base import DEFAULT_CHUNK_SIZE, iter_chunks
from shrinkwrap.codecs.registry import CodecRegistry
from shrinkwrap.exceptions import ShrinkwrapError, VerificationFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fingerprint:
    """Size and SHA-256 digest of a byte sequence."""

    size: int
    digest: bytes

    @classmethod
    def of_bytes(cls, data: bytes) -> Fingerprint:
        return cls(size=len(data), digest=hashlib.sha256(data).digest())

    @classmethod
    def of_stream(cls, stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Fingerprint:
        """Fingerprint everything readable from stream."""
        sink = DigestSink()
        for chunk in iter_chunks(stream, chunk_size):
            sink.write(chunk)
        return sink.fingerprint()


class DigestSink:
    """Write-only stream that keeps a running size and SHA-256."""

    def __init__(self) -> None:
        self._hash = hashlib.sha256()
        self.size = 0

    def write(self, data: bytes) -> int:
        self._hash.update(data)
        self.size += len(data)
        return len(data)

    def fingerprint(self) -> Fingerprint:
        return Fingerprint(size=self.size, digest=self._hash.digest())


class RoundTripVerifier:
    """Decompress an artifact and compare it with the original.

    Example:
        >>> verifier = RoundTripVerifier(default_registry())
        >>> artifact = registry.get("zstd").compress(data)
        >>> verifier.verify(artifact, data, "zstd")
        True
    """

    def __init__(
        self,
        registry: CodecRegistry,
        verify_content: bool = True,
    ):
        """Initialize the verifier.

        Args:
            registry: Registry used to resolve codec ids.
            verify_content: Compare SHA-256 digests as well as lengths.
        """
        self.registry = registry
        self.verify_content = verify_content

    def verify(self, artifact: bytes, original: bytes, codec_id: str) -> bool:
        """Verify an in-memory artifact against the original bytes."""
        with io.BytesIO(artifact) as stream:
            return self.verify_stream(stream, codec_id, Fingerprint.of_bytes(original))

    def verify_stream(self, artifact: BinaryIO, codec_id: str, expected: Fingerprint) -> bool:
        """Verify an artifact stream against a precomputed fingerprint.

        The artifact is decoded by its own codec, the same path
        auto-detected decompression takes. A trailing padding envelope is
        accepted by every codec.

        Args:
            artifact: Readable stream positioned at the artifact start.
            codec_id: Id of the codec that produced the artifact.
            expected: Fingerprint of the original input.

        Returns:
            True if the round trip reproduces the original, False otherwise.

        Raises:
            VerificationFailed: If decompression itself fails.
        """
        sink = DigestSink()
        try:
            codec = self.registry.get(codec_id)
            codec.decompress_stream(artifact, sink)
        except (ShrinkwrapError, OSError) as e:
            raise VerificationFailed(f"round-trip decode with {codec_id} failed: {e}") from e

        actual = sink.fingerprint()
        if actual.size != expected.size:
            logger.error(
                "Round-trip size mismatch for %s: expected %d bytes, got %d",
                codec_id,
                expected.size,
                actual.size,
            )
            return False
        if self.verify_content and actual.digest != expected.digest:
            logger.error("Round-trip content mismatch for %s (%d bytes)", codec_id, actual.size)
            return False

        logger.debug("Round-trip verified for %s (%d bytes)", codec_id, actual.size)
        return True
