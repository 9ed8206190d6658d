"""Tests for CodecRegistry."""

import pytest

from shrinkwrap.codecs import (
    CodecDescriptor,
    CodecRegistry,
    GzipCodec,
    PaddingCodec,
    ZstdCodec,
    default_registry,
)
from shrinkwrap.codecs.registry import normalize_extension
from shrinkwrap.exceptions import UnknownCodec


class _GzipVariant(GzipCodec):
    """Gzip with a different id and a longer, overlapping magic."""

    descriptor = CodecDescriptor(
        id="gzip-deflate",
        extensions=(".gzd",),
        magic=b"\x1f\x8b\x08",
        quality_range=(1, 9),
        default_quality=6,
    )


class _GzipClone(GzipCodec):
    """Gzip with a different id and the same magic."""

    descriptor = CodecDescriptor(
        id="gzip-clone",
        extensions=(".gzc",),
        magic=b"\x1f\x8b",
        quality_range=(1, 9),
        default_quality=6,
    )


class TestDefaultRegistry:
    """Tests for the standard registry."""

    @pytest.fixture
    def registry(self):
        return default_registry(chunk_size=4096)

    def test_registration_order(self, registry):
        """Codecs are registered in the documented order."""
        assert [codec.id for codec in registry] == [
            "file",
            "gzip",
            "zstd",
            "brotli",
            "xz",
            "bzip2",
            "padding",
        ]

    def test_real_codecs_exclude_padding(self, registry):
        """real_codecs() leaves out the padding pseudo-codec."""
        ids = [codec.id for codec in registry.real_codecs()]

        assert "padding" not in ids
        assert ids[0] == "file"

    def test_get(self, registry):
        """Codecs are looked up by id."""
        assert registry.get("zstd").id == "zstd"
        assert "zstd" in registry
        assert len(registry) == 7

    def test_get_unknown(self, registry):
        """Unknown ids raise UnknownCodec, which is also a LookupError."""
        with pytest.raises(UnknownCodec):
            registry.get("lz4")
        with pytest.raises(LookupError):
            registry.get("lz4")

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("gz", "gzip"),
            (".GZ", "gzip"),
            ("backup.tar.gz", "gzip"),
            ("data.gzip", "gzip"),
            ("data.zst", "zstd"),
            ("data.ZSTD", "zstd"),
            ("page.br", "brotli"),
            ("dump.xz", "xz"),
            ("dump.bz2", "bzip2"),
            ("dump.bzip2", "bzip2"),
            ("report.uc", "file"),
        ],
    )
    def test_lookup_extension(self, registry, name, expected):
        """Extension lookup is case-insensitive and accepts filenames."""
        assert registry.lookup_extension(name).id == expected

    def test_lookup_extension_unknown(self, registry):
        """Unregistered extensions raise UnknownCodec."""
        with pytest.raises(UnknownCodec):
            registry.lookup_extension("photo.jpg")

    @pytest.mark.parametrize(
        "header,expected",
        [
            (b"FILE" + bytes(12), "file"),
            (b"\x1f\x8b\x08\x00" + bytes(12), "gzip"),
            (b"\x28\xb5\x2f\xfd" + bytes(12), "zstd"),
            (b"\xfd7zXZ\x00" + bytes(10), "xz"),
            (b"BZh9" + bytes(12), "bzip2"),
        ],
    )
    def test_lookup_magic(self, registry, header, expected):
        """Magic lookup identifies every codec that has a magic."""
        assert registry.lookup_magic(header).id == expected

    def test_lookup_magic_unknown(self, registry):
        """Headers without a known magic raise UnknownCodec."""
        with pytest.raises(UnknownCodec):
            registry.lookup_magic(b"PK\x03\x04" + bytes(12))

    def test_padding_property(self, registry):
        """The padding codec is reachable by property."""
        assert isinstance(registry.padding, PaddingCodec)


class TestRegistration:
    """Tests for register()."""

    def test_duplicate_id(self):
        """Registering the same id twice fails."""
        registry = CodecRegistry([GzipCodec()])

        with pytest.raises(ValueError, match="already registered"):
            registry.register(GzipCodec())

    def test_duplicate_extension(self):
        """Two codecs may not share an extension."""

        class _Clash(ZstdCodec):
            descriptor = CodecDescriptor(
                id="zstd-alt",
                extensions=(".zst",),
                quality_range=(1, 22),
                default_quality=3,
            )

        registry = CodecRegistry([ZstdCodec()])

        with pytest.raises(ValueError, match="already belongs"):
            registry.register(_Clash())

    def test_longest_magic_wins(self):
        """A longer matching magic beats a shorter one."""
        registry = CodecRegistry([GzipCodec(), _GzipVariant()])

        assert registry.lookup_magic(b"\x1f\x8b\x08\x00").id == "gzip-deflate"
        assert registry.lookup_magic(b"\x1f\x8b\x09\x00").id == "gzip"

    def test_ambiguous_magic(self):
        """Equal-length magics from different codecs are ambiguous."""
        registry = CodecRegistry([GzipCodec(), _GzipClone()])

        with pytest.raises(UnknownCodec, match="ambiguous"):
            registry.lookup_magic(b"\x1f\x8b\x08\x00")

    def test_padding_missing(self):
        """A registry without padding has no padding codec."""
        with pytest.raises(UnknownCodec):
            CodecRegistry([GzipCodec()]).padding


@pytest.mark.parametrize(
    "name,expected",
    [("GZ", ".gz"), (".gz", ".gz"), ("archive.tar.GZ", ".gz"), ("zst", ".zst")],
)
def test_normalize_extension(name, expected):
    """Extensions and filenames normalize to a lowercase dotted suffix."""
    assert normalize_extension(name) == expected
