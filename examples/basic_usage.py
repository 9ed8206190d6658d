#!/usr/bin/env python3
"""
Basic usage example for shrinkwrap.

This example compresses a generated log file with a 30% size-reduction
guarantee, shows what happens with incompressible data, and restores files
without telling shrinkwrap which codec made them.

Run:
    python examples/basic_usage.py
"""

import logging
import os
import tempfile
from pathlib import Path

from shrinkwrap import (
    RatioGuaranteeCompressor,
    RatioUnattainable,
    ShrinkwrapConfig,
)
from shrinkwrap.fileio import format_size

# Enable logging to see what shrinkwrap is doing
logging.basicConfig(
    level=logging.INFO,
    format="%(name)s: %(message)s",
)

config = ShrinkwrapConfig(target_ratio=0.3, use_magika=False)
compressor = RatioGuaranteeCompressor(config=config)

workdir = Path(tempfile.mkdtemp(prefix="shrinkwrap_example_"))


def example_compress_file():
    """Compress a text file and restore it."""
    print("=" * 50)
    print("COMPRESS FILE EXAMPLE")
    print("=" * 50)

    src = workdir / "access.log"
    lines = [f"10.0.0.{i % 255} - GET /api/v1/items/{i} 200 {i % 97}ms\n" for i in range(20_000)]
    src.write_text("".join(lines))

    result = compressor.compress_file(src)
    print(f"Codec: {result.codec} (level {result.level})")
    print(f"Size: {format_size(result.original_size)} -> {format_size(result.compressed_size)}")
    print(f"Saved: {result.savings_percentage:.1f}% in {result.trials} trial(s)")

    restored = compressor.decompress_file(result.output_path, workdir / "restored.log")
    print(f"Restored matches: {restored.read_bytes() == src.read_bytes()}")
    print()


def example_unattainable():
    """Random bytes cannot meet any ratio."""
    print("=" * 50)
    print("UNATTAINABLE RATIO EXAMPLE")
    print("=" * 50)

    try:
        compressor.compress(os.urandom(256 * 1024))
    except RatioUnattainable as e:
        print(f"Refused: best artifact was {e.best_size} bytes, target {e.target_size}")
    print()


def example_auto_detect():
    """Decompress artifacts made by other tools."""
    print("=" * 50)
    print("AUTO-DETECT EXAMPLE")
    print("=" * 50)

    payload = b"hello from another tool\n" * 1000
    for codec_id in ("gzip", "zstd", "brotli", "xz", "bzip2"):
        artifact = compressor.registry.get(codec_id).compress(payload)
        descriptor = compressor.sniffer.identify_bytes(artifact)
        ok = compressor.decompress(artifact) == payload
        print(f"{codec_id:>7}: identified as {descriptor.id}, round-trip ok={ok}")
    print()


if __name__ == "__main__":
    example_compress_file()
    example_unattainable()
    example_auto_detect()
