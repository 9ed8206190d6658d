"""Configuration for the ratio-guarantee pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field

MIB = 1024 * 1024

DEFAULT_TEXT_EXTENSIONS = frozenset(
    {
        ".txt",
        ".json",
        ".jsonl",
        ".xml",
        ".html",
        ".htm",
        ".csv",
        ".tsv",
        ".md",
        ".rst",
        ".log",
        ".yaml",
        ".yml",
        ".toml",
        ".ini",
        ".py",
        ".js",
        ".ts",
        ".css",
        ".sql",
    }
)


@dataclass
class ShrinkwrapConfig:
    """Configuration for RatioGuaranteeCompressor.

    Attributes:
        target_ratio: Minimum fractional size reduction (0.16 = 16% smaller).
        codec_priority: Codec ids in trial order. The first real codec is the
            default codec.
        chunk_size: Read/write block size for streaming codecs.
        stream_threshold: Inputs at least this large keep trial artifacts in
            temporary files instead of memory.
        large_input_threshold: Inputs at least this large try
            long_window_codecs first after the default codec.
        text_extensions: Filename extensions treated as text-like.
        high_context_codecs: Codecs moved forward for text-like inputs.
        long_window_codecs: Codecs moved forward for large inputs.
        pad_to_target: Pad accepted artifacts up to exactly the target size.
        verify_content: Compare SHA-256 digests on round-trip, not only length.
        use_magika: Use ML-based content detection (Magika).
        sniff_header_size: Bytes read for magic-number sniffing.
        zstd_threads: Worker threads for zstd (0 = single-threaded).
        allow_empty: Accept empty input files.
    """

    target_ratio: float = 0.16
    codec_priority: tuple[str, ...] = ("file", "gzip", "zstd", "brotli", "xz", "bzip2")
    chunk_size: int = 8 * MIB
    stream_threshold: int = 100 * MIB
    large_input_threshold: int = 50 * MIB
    text_extensions: frozenset[str] = field(default_factory=lambda: DEFAULT_TEXT_EXTENSIONS)
    high_context_codecs: tuple[str, ...] = ("brotli", "xz")
    long_window_codecs: tuple[str, ...] = ("zstd",)
    pad_to_target: bool = False
    verify_content: bool = True
    use_magika: bool = True
    sniff_header_size: int = 16
    zstd_threads: int = 0
    allow_empty: bool = True

    def __post_init__(self) -> None:
        if self.target_ratio >= 1.0:
            raise ValueError(f"target_ratio must be below 1.0, got {self.target_ratio}")
        if not self.codec_priority:
            raise ValueError("codec_priority must name at least one codec")
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if self.sniff_header_size < 8:
            raise ValueError("sniff_header_size must be at least 8 bytes")
        self.text_extensions = frozenset(ext.lower() for ext in self.text_extensions)
