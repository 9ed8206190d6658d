"""Tests for the padding pseudo-codec."""

import io

import pytest

from shrinkwrap.codecs import MARKER, PaddingCodec, PaddingStripReader, contains_marker, pad, unpad
from shrinkwrap.codecs.base import EnvelopeTrimReader, TrailerCheck
from shrinkwrap.exceptions import CodecError


class TestPad:
    """Tests for pad() and unpad()."""

    def test_exact_size(self):
        """The envelope is exactly the target size."""
        envelope = pad(b"payload", 64)

        assert len(envelope) == 64
        assert envelope.startswith(b"payload" + MARKER)
        assert envelope[len(b"payload") + len(MARKER) :] == bytes(64 - 7 - 9)

    def test_unpad_inverts_pad(self):
        """unpad(pad(p, t)) == p."""
        payload = bytes(range(256)) * 4

        assert unpad(pad(payload, 2000)) == payload

    def test_no_filler(self):
        """A target of payload plus marker leaves no filler."""
        envelope = pad(b"abc", 3 + len(MARKER))

        assert envelope == b"abc" + MARKER

    def test_target_too_small(self):
        """Targets that cannot hold the marker are rejected."""
        with pytest.raises(ValueError, match="cannot pad"):
            pad(b"abcdef", 10)

    def test_payload_contains_marker(self):
        """Payloads that already contain the marker are rejected."""
        with pytest.raises(CodecError):
            pad(b"before" + MARKER + b"after", 100)

    def test_unpad_without_marker(self):
        """Data without the marker is returned unchanged."""
        assert unpad(b"plain bytes") == b"plain bytes"

    def test_unpad_first_marker(self):
        """Everything from the first marker on is dropped."""
        assert unpad(b"a" + MARKER + b"b" + MARKER) == b"a"

    def test_empty_payload(self):
        """An empty payload pads and unpads."""
        assert unpad(pad(b"", 20)) == b""


class TestPaddingStripReader:
    """Tests for streaming unpad."""

    @pytest.mark.parametrize("chunk_size", [1, 3, 4, 8, 9, 10, 1024])
    def test_marker_across_chunks(self, chunk_size):
        """The marker is found wherever chunk boundaries fall."""
        payload = b"0123456789abcdef" * 5
        reader = PaddingStripReader(io.BytesIO(pad(payload, 200)), chunk_size=chunk_size)

        out = b"".join(iter(lambda: reader.read(7), b""))

        assert out == payload
        assert reader.padded is True

    def test_read_all(self):
        """read() with no size returns the whole payload."""
        reader = PaddingStripReader(io.BytesIO(pad(b"hello", 50)), chunk_size=4)

        assert reader.read() == b"hello"
        assert reader.read() == b""

    def test_unpadded_stream(self):
        """A stream without the marker passes through unchanged."""
        data = b"x" * 100 + b"[PADD"
        reader = PaddingStripReader(io.BytesIO(data), chunk_size=16)

        assert reader.read() == data
        assert reader.padded is False

    def test_partial_marker_is_payload(self):
        """A marker prefix at the very end is kept as payload."""
        data = b"payload[PADDING"
        reader = PaddingStripReader(io.BytesIO(data), chunk_size=4)

        assert reader.read(-1) == data

    @pytest.mark.parametrize("chunk_size", [1, 4, 8, 9, 1024])
    def test_contains_marker(self, chunk_size):
        """contains_marker finds a marker split across chunk boundaries."""
        data = b"x" * 37 + MARKER + b"y" * 20

        assert contains_marker(io.BytesIO(data), chunk_size) is True
        assert contains_marker(io.BytesIO(data.replace(MARKER, b"[PADDNG]")), chunk_size) is False


class TestTrailerCheck:
    """Tests for the bytes accepted after a codec's end of stream."""

    def test_zeros(self):
        """Zero bytes alone are accepted."""
        trailer = TrailerCheck("gzip")
        trailer.feed(bytes(4))
        trailer.feed(bytes(100))
        trailer.close()

    def test_envelope_split_across_feeds(self):
        """A marker followed by filler is accepted however it arrives."""
        trailer = TrailerCheck("gzip")
        trailer.feed(b"[PAD")
        trailer.feed(b"DING]\x00\x00")
        trailer.feed(bytes(50))
        trailer.close()

    def test_partial_marker(self):
        """Input that stops inside the marker is trailing data."""
        trailer = TrailerCheck("gzip")
        trailer.feed(b"[PADD")

        with pytest.raises(CodecError, match="gzip: trailing"):
            trailer.close()

    @pytest.mark.parametrize(
        "data",
        [b"junk", MARKER + b"\x00junk", bytes(3) + MARKER, MARKER + MARKER],
    )
    def test_rejected(self, data):
        """Anything other than zeros or marker plus zeros is rejected."""
        trailer = TrailerCheck("zstd")

        with pytest.raises(CodecError, match="trailing"):
            trailer.feed(data)


class TestEnvelopeTrimReader:
    """Tests for tail-anchored envelope removal."""

    @pytest.mark.parametrize("chunk_size", [1, 3, 8, 9, 10, 1024])
    def test_trims_final_envelope(self, chunk_size):
        """Only the last marker, followed by zeros up to EOF, is dropped."""
        payload = b"head" + MARKER + b"body" + MARKER + bytes(3) + b"tail"
        reader = EnvelopeTrimReader(io.BytesIO(payload + MARKER + bytes(40)), chunk_size=chunk_size)

        out = b"".join(iter(lambda: reader.read(7), b""))

        assert out == payload
        assert reader.trimmed is True

    @pytest.mark.parametrize(
        "data",
        [b"no envelope here", b"ends with" + MARKER[:6], b"x" + MARKER + bytes(20) + b"y"],
    )
    def test_passes_through(self, data):
        """Data without a final envelope is returned unchanged."""
        reader = EnvelopeTrimReader(io.BytesIO(data), chunk_size=4)

        assert reader.read() == data
        assert reader.trimmed is False

    def test_bare_marker(self):
        """A marker with no filler at the very end is an envelope too."""
        reader = EnvelopeTrimReader(io.BytesIO(b"abc" + MARKER), chunk_size=2)

        assert reader.read() == b"abc"


class TestPaddingCodec:
    """Tests for PaddingCodec."""

    def test_descriptor(self):
        """Padding is a pseudo-codec without levels or extensions."""
        descriptor = PaddingCodec.descriptor

        assert descriptor.id == "padding"
        assert descriptor.pseudo is True
        assert descriptor.magic is None
        assert descriptor.extensions == ()
        assert descriptor.supports_quality_levels is False

    def test_pad_stream(self):
        """pad_stream appends marker and filler to a sink."""
        codec = PaddingCodec(chunk_size=8)
        sink = io.BytesIO()
        sink.write(b"artifact")

        filler = codec.pad_stream(sink, payload_size=8, target_size=100)

        assert filler == 100 - 8 - len(MARKER)
        assert sink.getvalue() == pad(b"artifact", 100)

    def test_pad_stream_too_small(self):
        """pad_stream rejects targets that cannot hold the marker."""
        with pytest.raises(ValueError):
            PaddingCodec().pad_stream(io.BytesIO(), payload_size=10, target_size=12)

    def test_decompress_strips(self):
        """Decompressing an envelope yields the wrapped payload."""
        codec = PaddingCodec()

        assert codec.decompress(pad(b"inner", 40)) == b"inner"

    def test_cannot_compress(self):
        """Padding is never produced by compress()."""
        with pytest.raises(CodecError):
            PaddingCodec().compress(b"data")

    def test_static_helpers(self):
        """pad and unpad are exposed on the codec."""
        assert PaddingCodec.unpad(PaddingCodec.pad(b"x", 20)) == b"x"
