"""Tests for content detection.

Magika itself is not exercised here; loading the model is slow and its
labels are version dependent. These tests cover the byte-statistics
detector and the detector factory.
"""

import gzip
import os

import pytest

from shrinkwrap.detector import (
    ContentKind,
    DetectionResult,
    FallbackDetector,
    MagikaDetector,
    get_detector,
)


class TestFallbackDetector:
    """Tests for FallbackDetector."""

    @pytest.fixture
    def detector(self):
        return FallbackDetector()

    def test_text(self, detector):
        """Printable ASCII is text."""
        result = detector.detect(b'{"users": [{"id": 1, "name": "Alice"}]}\n' * 20)

        assert result.content_kind == ContentKind.TEXT
        assert result.is_text
        assert result.confidence > 0.9

    def test_binary_with_nul(self, detector):
        """NUL bytes mark binary content."""
        result = detector.detect(b"ELF\x00\x01\x02" + bytes(100))

        assert result.content_kind == ContentKind.BINARY
        assert not result.is_text

    def test_random_bytes(self, detector):
        """Random bytes are binary or compressed, never text."""
        result = detector.detect(os.urandom(4096))

        assert result.content_kind in (ContentKind.BINARY, ContentKind.COMPRESSED)

    def test_compressed_signature(self, detector):
        """Known compressed formats are recognized by signature."""
        result = detector.detect(gzip.compress(b"hello world"))

        assert result.content_kind == ContentKind.COMPRESSED

    def test_empty(self, detector):
        """Empty samples are unknown."""
        result = detector.detect(b"")

        assert result.content_kind == ContentKind.UNKNOWN
        assert result.confidence == 0.0

    def test_control_ratio_threshold(self):
        """The control-byte threshold is configurable."""
        sample = b"ab\x01\x02"

        assert FallbackDetector(max_control_ratio=0.6).detect(sample).is_text
        assert not FallbackDetector(max_control_ratio=0.3).detect(sample).is_text


class TestGetDetector:
    """Tests for the detector factory."""

    def test_fallback(self):
        """prefer_magika=False gives the byte-statistics detector."""
        assert isinstance(get_detector(prefer_magika=False), FallbackDetector)

    def test_magika(self):
        """prefer_magika=True gives a Magika detector without loading the model."""
        detector = get_detector(prefer_magika=True)

        assert isinstance(detector, MagikaDetector)
        assert detector._magika is None

    def test_magika_empty_sample(self):
        """Empty samples short-circuit before the model is needed."""
        result = MagikaDetector().detect(b"")

        assert result.content_kind == ContentKind.UNKNOWN


def test_detection_result_metadata_default():
    """Metadata defaults to a fresh dict."""
    first = DetectionResult(ContentKind.TEXT, 1.0, "text")
    second = DetectionResult(ContentKind.TEXT, 1.0, "text")

    first.metadata["key"] = "value"

    assert second.metadata == {}
