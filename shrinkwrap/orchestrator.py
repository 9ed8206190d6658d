"""Ratio-guarantee compression pipeline.

This is the main entry point for compression. It:
1. Plans a codec order from the configured priority, the input size and
   what the content detector says about the input
2. Escalates through codecs and effort levels until an artifact is at most
   the target size (first success wins)
3. Pads an artifact to exactly the target size when configured to
4. Round-trip verifies the chosen artifact before handing it back

The target size is floor(original_size * (1 - target_ratio)), so an accepted
artifact always saves at least target_ratio of the input.

Usage:
    compressor = RatioGuaranteeCompressor()
    result = compressor.compress(data)

    # Result contains:
    # - artifact: The compressed bytes
    # - codec / level: What produced them
    # - ratio: compressed_size / original_size
    # - attempts: Every trial that ran, in order
"""

from __future__ import annotations

import io
import logging
import math
import os
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from shrinkwrap.codecs.base import Codec
from shrinkwrap.codecs.padding import MARKER, contains_marker
from shrinkwrap.codecs.registry import CodecRegistry, default_registry
from shrinkwrap.config import ShrinkwrapConfig
from shrinkwrap.detector import SAMPLE_SIZE, FallbackDetector, MagikaDetector, get_detector
from shrinkwrap.exceptions import (
    CodecError,
    InputEmpty,
    RatioUnattainable,
    ShrinkwrapError,
    VerificationFailed,
)
from shrinkwrap.fileio import (
    atomic_write,
    copy_stream,
    derive_compressed_path,
    derive_decompressed_path,
    format_size,
    nearest_existing_dir,
    require_file,
    scratch_buffer,
)
from shrinkwrap.sniffer import FormatSniffer
from shrinkwrap.verifier import Fingerprint, RoundTripVerifier

logger = logging.getLogger(__name__)


class AttemptOutcome(Enum):
    """What happened to a single codec trial."""

    ACCEPTED = "accepted"
    INSUFFICIENT = "insufficient"
    FAILED = "failed"


@dataclass
class CompressionAttempt:
    """One codec trial at one effort level."""

    codec_id: str
    level: int | None
    size: int | None
    elapsed: float
    outcome: AttemptOutcome
    error: str | None = None


@dataclass
class CompressionResult:
    """Result from compression.

    Attributes:
        original_size: Input size in bytes.
        compressed_size: Artifact size in bytes, padding included.
        codec: Id of the codec that produced the artifact.
        level: Effort level used, None for codecs without levels.
        success: False only for per-file failures in compress_files().
        error: Failure message when success is False.
        padded: Whether the artifact is wrapped in a padding envelope.
        target_ratio: Ratio the artifact was required to meet.
        attempts: Every trial that ran, in order.
        elapsed: Wall-clock seconds for the whole pipeline.
        artifact: Compressed bytes (in-memory calls only).
        output_path: Where the artifact was written (file calls only).
    """

    original_size: int
    compressed_size: int
    codec: str
    level: int | None
    success: bool = True
    error: str | None = None
    padded: bool = False
    target_ratio: float = 0.0
    attempts: list[CompressionAttempt] = field(default_factory=list)
    elapsed: float = 0.0
    artifact: bytes | None = field(default=None, repr=False)
    output_path: Path | None = None

    @property
    def ratio(self) -> float:
        """compressed_size / original_size (1.0 for empty input)."""
        if self.original_size == 0:
            return 1.0
        return self.compressed_size / self.original_size

    @property
    def savings_percentage(self) -> float:
        """Percentage of bytes saved."""
        if self.original_size == 0:
            return 0.0
        return (1.0 - self.ratio) * 100

    @property
    def trials(self) -> int:
        return len(self.attempts)

    @classmethod
    def failure(cls, original_size: int, error: str, target_ratio: float) -> CompressionResult:
        return cls(
            original_size=original_size,
            compressed_size=0,
            codec="",
            level=None,
            success=False,
            error=error,
            target_ratio=target_ratio,
        )


class RatioGuaranteeCompressor:
    """Compressor that guarantees a minimum size reduction.

    Codecs are tried in a planned order, each at its default and then its
    maximum effort. The first artifact at or under the target size wins and
    is verified by decompressing it again.

    Example:
        >>> compressor = RatioGuaranteeCompressor(ShrinkwrapConfig(target_ratio=0.5))
        >>> result = compressor.compress(b"hello " * 10_000)
        >>> result.codec, result.ratio < 0.5
        ('file', True)
        >>> compressor.decompress(result.artifact) == b"hello " * 10_000
        True
    """

    def __init__(
        self,
        config: ShrinkwrapConfig | None = None,
        registry: CodecRegistry | None = None,
        detector: MagikaDetector | FallbackDetector | None = None,
    ):
        """Initialize the compressor.

        Args:
            config: Pipeline configuration.
            registry: Codecs to use. Defaults to default_registry().
            detector: Content detector. If None, picks Magika or the
                byte-statistics detector according to config.use_magika.

        Raises:
            UnknownCodec: If codec_priority names an unregistered codec.
            ValueError: If codec_priority names a pseudo-codec.
        """
        self.config = config or ShrinkwrapConfig()
        self.registry = registry or default_registry(
            chunk_size=self.config.chunk_size,
            zstd_threads=self.config.zstd_threads,
        )
        self._detector = detector or get_detector(prefer_magika=self.config.use_magika)

        for codec_id in self.config.codec_priority:
            if self.registry.get(codec_id).descriptor.pseudo:
                raise ValueError(f"codec_priority may not contain pseudo-codec {codec_id!r}")

        self.verifier = RoundTripVerifier(
            self.registry,
            verify_content=self.config.verify_content,
        )
        self.sniffer = FormatSniffer(
            self.registry,
            header_size=self.config.sniff_header_size,
        )

    def compress(
        self,
        data: bytes,
        target_ratio: float | None = None,
        name: str | None = None,
    ) -> CompressionResult:
        """Compress bytes in memory.

        Args:
            data: Bytes to compress.
            target_ratio: Override config.target_ratio.
            name: Optional filename, used as a text-likeness hint.

        Returns:
            CompressionResult with the artifact attached.

        Raises:
            RatioUnattainable: If no codec reaches the target size.
            VerificationFailed: If the chosen artifact does not round-trip.
        """
        with io.BytesIO(data) as source:
            result, sink = self._orchestrate(
                source,
                original_size=len(data),
                expected=Fingerprint.of_bytes(data),
                name=name,
                target_ratio=target_ratio,
                new_sink=io.BytesIO,
            )
        with sink:
            result.artifact = sink.getvalue()
        return result

    def compress_file(
        self,
        src: str | os.PathLike[str],
        dst: str | os.PathLike[str] | None = None,
        target_ratio: float | None = None,
    ) -> CompressionResult:
        """Compress a file.

        The output appears atomically; on failure nothing is written.

        Args:
            src: File to compress.
            dst: Output path. Defaults to src plus the chosen codec's
                extension, with " (n)" added if that name is taken.
            target_ratio: Override config.target_ratio.

        Returns:
            CompressionResult with output_path set.

        Raises:
            InputNotFound: If src is not a file.
            InputEmpty: If src is empty and config.allow_empty is False.
            RatioUnattainable: If no codec reaches the target size.
            VerificationFailed: If the chosen artifact does not round-trip.
        """
        source_path = require_file(src)
        original_size = source_path.stat().st_size
        if original_size == 0 and not self.config.allow_empty:
            raise InputEmpty(f"input file is empty: {source_path}")

        target_path = Path(dst) if dst is not None else None
        # Missing output directories are left to atomic_write
        scratch_dir = nearest_existing_dir(target_path.parent if target_path else source_path.parent)

        def new_sink() -> BinaryIO:
            return scratch_buffer(original_size, self.config.stream_threshold, directory=scratch_dir)

        with source_path.open("rb") as source:
            expected = Fingerprint.of_stream(source, self.config.chunk_size)
            source.seek(0)
            result, sink = self._orchestrate(
                source,
                original_size=original_size,
                expected=expected,
                name=source_path.name,
                target_ratio=target_ratio,
                new_sink=new_sink,
            )

        with sink:
            if target_path is None:
                extension = self.registry.get(result.codec).descriptor.extension
                target_path = derive_compressed_path(source_path, extension)
            sink.seek(0)
            with atomic_write(target_path) as out:
                copy_stream(sink, out, self.config.chunk_size)

        result.output_path = target_path
        logger.info("Wrote %s (%s)", target_path, format_size(result.compressed_size))
        return result

    def compress_files(
        self,
        paths: Iterable[str | os.PathLike[str]],
        target_ratio: float | None = None,
    ) -> list[CompressionResult]:
        """Compress several files, one result per path.

        A file that cannot be compressed yields a result with success=False
        instead of aborting the batch.
        """
        ratio = self._resolve_ratio(target_ratio)
        results: list[CompressionResult] = []
        for path in paths:
            try:
                results.append(self.compress_file(path, target_ratio=ratio))
            except (ShrinkwrapError, OSError) as e:
                logger.warning("Failed to compress %s: %s", path, e)
                size = Path(path).stat().st_size if Path(path).is_file() else 0
                results.append(CompressionResult.failure(size, str(e), ratio))
        return results

    def decompress(self, data: bytes, name: str | None = None) -> bytes:
        """Decompress an artifact of any registered format.

        Args:
            data: Artifact bytes, padded or not.
            name: Optional filename, used as an extension hint.

        Raises:
            UnrecognizedFormat: If the format cannot be identified.
            CodecError: If the artifact is corrupt or truncated.
        """
        descriptor = self.sniffer.identify_bytes(data, name=name)
        codec = self.registry.get(descriptor.id)
        with io.BytesIO(data) as src, io.BytesIO() as dst:
            codec.decompress_stream(src, dst)
            return dst.getvalue()

    def decompress_file(
        self,
        src: str | os.PathLike[str],
        dst: str | os.PathLike[str] | None = None,
    ) -> Path:
        """Decompress a file of any registered format.

        Args:
            src: Artifact to decompress.
            dst: Output path. Defaults to src without its codec extension,
                or src + ".decompressed" when it has none.

        Returns:
            Path of the decompressed file.

        Raises:
            InputNotFound: If src is not a file.
            UnrecognizedFormat: If the format cannot be identified.
            CodecError: If the artifact is corrupt or truncated. No output
                file is left behind.
        """
        source_path = require_file(src)
        with source_path.open("rb") as source:
            descriptor = self.sniffer.identify_stream(source, name=source_path.name)
            codec = self.registry.get(descriptor.id)
            if dst is not None:
                target_path = Path(dst)
            else:
                known = [ext for c in self.registry.real_codecs() for ext in c.descriptor.extensions]
                target_path = derive_decompressed_path(source_path, known)

            with atomic_write(target_path) as out:
                written = codec.decompress_stream(source, out)

        logger.info(
            "Decompressed %s (%s) to %s (%s)",
            source_path,
            descriptor.id,
            target_path,
            format_size(written),
        )
        return target_path

    def _resolve_ratio(self, target_ratio: float | None) -> float:
        ratio = self.config.target_ratio if target_ratio is None else target_ratio
        if ratio >= 1.0:
            raise ValueError(f"target_ratio must be below 1.0, got {ratio}")
        return ratio

    def _is_text_like(self, source: BinaryIO, name: str | None) -> bool:
        if name and Path(name).suffix.lower() in self.config.text_extensions:
            return True
        sample = source.read(SAMPLE_SIZE)
        source.seek(0)
        detection = self._detector.detect(sample)
        logger.debug(
            "Detected %s content (label=%s, confidence=%.2f)",
            detection.content_kind.value,
            detection.raw_label,
            detection.confidence,
        )
        return detection.is_text

    def _plan(self, source: BinaryIO, original_size: int, name: str | None) -> list[Codec]:
        """Order codecs for trial.

        The default codec always goes first. Large inputs move the
        long-window codecs forward; otherwise text-like inputs move the
        high-context codecs forward.
        """
        priority = [self.registry.get(codec_id) for codec_id in self.config.codec_priority]
        listed = {codec.id for codec in priority}
        priority += [codec for codec in self.registry.real_codecs() if codec.id not in listed]

        default, rest = priority[0], priority[1:]
        if original_size == 0:
            return [default, *rest]

        if original_size >= self.config.large_input_threshold:
            preferred = self.config.long_window_codecs
        elif self._is_text_like(source, name):
            preferred = self.config.high_context_codecs
        else:
            preferred = ()

        front = [codec for codec_id in preferred for codec in rest if codec.id == codec_id]
        back = [codec for codec in rest if codec not in front]
        plan = [default, *front, *back]
        logger.debug("Codec plan: %s", ", ".join(codec.id for codec in plan))
        return plan

    def _run_trial(
        self,
        codec: Codec,
        level: int | None,
        source: BinaryIO,
        original_size: int,
        new_sink: Callable[[], BinaryIO],
    ) -> tuple[CompressionAttempt, BinaryIO | None]:
        source.seek(0)
        sink = new_sink()
        start = time.perf_counter()
        try:
            codec.compress_stream(source, sink, level=level, size_hint=original_size)
        except CodecError as e:
            sink.close()
            elapsed = time.perf_counter() - start
            logger.warning("Trial %s level %s failed: %s", codec.id, level, e)
            return (
                CompressionAttempt(codec.id, level, None, elapsed, AttemptOutcome.FAILED, str(e)),
                None,
            )
        except BaseException:
            sink.close()
            raise
        elapsed = time.perf_counter() - start
        size = sink.tell()
        logger.debug("Trial %s level %s: %d bytes in %.3fs", codec.id, level, size, elapsed)
        return CompressionAttempt(codec.id, level, size, elapsed, AttemptOutcome.INSUFFICIENT), sink

    def _orchestrate(
        self,
        source: BinaryIO,
        original_size: int,
        expected: Fingerprint,
        name: str | None,
        target_ratio: float | None,
        new_sink: Callable[[], BinaryIO],
    ) -> tuple[CompressionResult, BinaryIO]:
        """Run the trials and return the verified result with its open sink.

        The caller owns the returned sink. Every other sink is closed here,
        all of them on error.
        """
        ratio = self._resolve_ratio(target_ratio)
        target_size = math.floor(original_size * (1.0 - ratio)) if ratio > 0 else None
        started = time.perf_counter()

        def meets(size: int) -> bool:
            return original_size == 0 or target_size is None or size <= target_size

        attempts: list[CompressionAttempt] = []
        best: tuple[CompressionAttempt, BinaryIO] | None = None
        accepted: tuple[CompressionAttempt, BinaryIO] | None = None
        padded = False

        try:
            for codec in self._plan(source, original_size, name):
                for level in codec.descriptor.effort_ladder():
                    attempt, sink = self._run_trial(codec, level, source, original_size, new_sink)
                    attempts.append(attempt)
                    if sink is None:
                        continue
                    if meets(attempt.size):
                        attempt.outcome = AttemptOutcome.ACCEPTED
                        accepted = (attempt, sink)
                        break
                    if best is None or attempt.size < best[0].size:
                        if best is not None:
                            best[1].close()
                        best = (attempt, sink)
                    else:
                        sink.close()
                if accepted is not None:
                    break

            if accepted is not None:
                if best is not None:
                    best[1].close()
                    best = None
                chosen, sink = accepted
                if self.config.pad_to_target and original_size and _fits_padding(chosen.size, target_size):
                    padded = self._pad(sink, chosen.size, target_size)
            else:
                if best is not None and _fits_padding(best[0].size, target_size):
                    chosen, sink = best
                    padded = self._pad(sink, chosen.size, target_size)
                if not padded:
                    best_size = best[0].size if best is not None else None
                    raise RatioUnattainable(
                        f"no codec reached {target_size} bytes for a {original_size}-byte input "
                        f"(best: {best_size} bytes after {len(attempts)} trials)",
                        best_size=best_size,
                        target_size=target_size,
                    )

            compressed_size = sink.tell()
            sink.seek(0)
            if not self.verifier.verify_stream(sink, chosen.codec_id, expected):
                raise VerificationFailed(
                    f"{chosen.codec_id} artifact did not reproduce the {original_size}-byte input"
                )
            sink.seek(0)
        except BaseException:
            for held in (accepted, best):
                if held is not None:
                    held[1].close()
            raise

        result = CompressionResult(
            original_size=original_size,
            compressed_size=compressed_size,
            codec=chosen.codec_id,
            level=chosen.level,
            padded=padded,
            target_ratio=ratio,
            attempts=attempts,
            elapsed=time.perf_counter() - started,
        )
        logger.info(
            "Compressed %s: %s -> %s (%.1f%% saved) with %s level %s%s after %d trials",
            name or "input",
            format_size(original_size),
            format_size(compressed_size),
            result.savings_percentage,
            result.codec,
            result.level,
            ", padded" if padded else "",
            result.trials,
        )
        return result, sink

    def _pad(self, sink: BinaryIO, payload_size: int, target_size: int) -> bool:
        """Append a padding envelope to sink, leaving it positioned at the end.

        Returns False, without padding, when the artifact itself contains
        the marker: unpad() would cut such an artifact short.
        """
        sink.seek(0)
        if contains_marker(sink, self.config.chunk_size):
            sink.seek(0, io.SEEK_END)
            logger.debug("%d-byte artifact contains the padding marker, not padding it", payload_size)
            return False
        sink.seek(0, io.SEEK_END)
        filler = self.registry.padding.pad_stream(sink, payload_size, target_size)
        logger.debug("Padded %d-byte artifact with %d filler bytes", payload_size, filler)
        return True


def _fits_padding(size: int, target_size: int | None) -> bool:
    return target_size is not None and size + len(MARKER) <= target_size


def compress(data: bytes, target_ratio: float | None = None, **kwargs) -> CompressionResult:
    """Convenience function for one-off compression.

    Args:
        data: Bytes to compress.
        target_ratio: Minimum fractional reduction, defaults to 0.16.
        **kwargs: Passed to RatioGuaranteeCompressor.compress().

    Example:
        >>> from shrinkwrap import compress
        >>> result = compress(b"a" * 4096)
        >>> result.codec
        'file'
    """
    return RatioGuaranteeCompressor().compress(data, target_ratio=target_ratio, **kwargs)


def compress_file(
    src: str | os.PathLike[str],
    dst: str | os.PathLike[str] | None = None,
    target_ratio: float | None = None,
) -> CompressionResult:
    """Convenience function for one-off file compression."""
    return RatioGuaranteeCompressor().compress_file(src, dst, target_ratio=target_ratio)


def decompress_auto_detect(
    src: str | os.PathLike[str],
    dst: str | os.PathLike[str] | None = None,
) -> Path:
    """Decompress a file whose format is identified automatically."""
    return RatioGuaranteeCompressor().decompress_file(src, dst)
